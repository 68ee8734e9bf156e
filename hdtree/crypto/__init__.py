"""Keys, HD derivation and extended key serialization."""

from ..crypto.keys import PrivateKey, PublicKey
from ..crypto.path import DerivationPath, PathStep, parse_path
from ..crypto.hd import HDNode, MasterNode
from ..crypto.serialization import (
    serialize,
    serialize_bytes,
    serialize_hex,
    deserialize,
    deserialize_bytes,
)

__all__ = [
    # Keys
    "PrivateKey",
    "PublicKey",

    # Paths
    "DerivationPath",
    "PathStep",
    "parse_path",

    # Nodes
    "HDNode",
    "MasterNode",

    # Extended keys
    "serialize",
    "serialize_bytes",
    "serialize_hex",
    "deserialize",
    "deserialize_bytes",
]
