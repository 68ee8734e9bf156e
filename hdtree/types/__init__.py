"""Type definitions for hdtree."""

from ..types.common import (
    HexStr,
    Address,
    ExtendedKey,
    PrivateKeyBytes,
    PublicKeyBytes,
    ChainCode,
    Fingerprint,
)

__all__ = [
    "HexStr",
    "Address",
    "ExtendedKey",
    "PrivateKeyBytes",
    "PublicKeyBytes",
    "ChainCode",
    "Fingerprint",
]
