"""Common type definitions for hdtree."""

from typing import NewType

__all__ = [
    "HexStr",
    "Address",
    "ExtendedKey",
    "PrivateKeyBytes",
    "PublicKeyBytes",
    "ChainCode",
    "Fingerprint",
]

# Basic types
HexStr = NewType("HexStr", str)
"""Hexadecimal string representation."""

Address = NewType("Address", str)
"""Bitcoin address string."""

ExtendedKey = NewType("ExtendedKey", str)
"""Base58Check serialized extended key (xprv/xpub/tprv/tpub)."""

# Crypto types
PrivateKeyBytes = NewType("PrivateKeyBytes", bytes)
"""32-byte private key."""

PublicKeyBytes = NewType("PublicKeyBytes", bytes)
"""33 or 65 byte public key."""

ChainCode = NewType("ChainCode", bytes)
"""32-byte chain code."""

Fingerprint = NewType("Fingerprint", bytes)
"""First 4 bytes of HASH160 of a compressed public key."""
