"""
hdtree

Hierarchical deterministic (BIP32) key derivation for Bitcoin: master keys
from seeds, path-based child derivation, parent recovery, extended key
serialization and legacy, P2SH-SegWit and bech32 addresses.
"""

from .constants import Network, NETWORKS, get_network
from .exceptions import (
    HDTreeError,
    ValidationError,
    KeyFormatNotFound,
    InvalidKey,
    InvalidPath,
    UnknownNetworkError,
    DerivationError,
    InvalidKeyForIndex,
    PrivatePublicMismatch,
    PublicDerivationFailure,
    KeyImportError,
    SeedGenerationError,
    RNGFailure,
    LengthFailure,
    ValidityError,
    SeedImportError,
    TooManyAttempts,
)
from .crypto import (
    PrivateKey,
    PublicKey,
    HDNode,
    MasterNode,
    DerivationPath,
    parse_path,
)

__version__ = "1.0.0"

__all__ = [
    # Network
    "Network",
    "NETWORKS",
    "get_network",

    # Exceptions
    "HDTreeError",
    "ValidationError",
    "KeyFormatNotFound",
    "InvalidKey",
    "InvalidPath",
    "UnknownNetworkError",
    "DerivationError",
    "InvalidKeyForIndex",
    "PrivatePublicMismatch",
    "PublicDerivationFailure",
    "KeyImportError",
    "SeedGenerationError",
    "RNGFailure",
    "LengthFailure",
    "ValidityError",
    "SeedImportError",
    "TooManyAttempts",

    # Crypto
    "PrivateKey",
    "PublicKey",
    "HDNode",
    "MasterNode",
    "DerivationPath",
    "parse_path",
]
