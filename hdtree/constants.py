"""Constants and network parameters for hdtree."""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Union

from .exceptions import UnknownNetworkError

__all__ = [
    "Network",
    "NetworkParams",
    "NETWORKS",
    "get_network",
    "CURVE_ORDER",
    "HARDENED_OFFSET",
    "MAX_INDEX",
    "MAX_DEPTH",
    "SEED_KEY",
    "RANDOM_SEED_SIZE",
    "MIN_SEED_SIZE",
    "MAX_SEED_SIZE",
    "MAX_SEED_ATTEMPTS",
    "EXTENDED_KEY_SIZE",
]

# secp256k1 group order
CURVE_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

# Derivation
HARDENED_OFFSET = 0x80000000
MAX_INDEX = 0xFFFFFFFF
MAX_DEPTH = 0xFF

# Master key generation
SEED_KEY = b"Bitcoin seed"
RANDOM_SEED_SIZE = 32
MIN_SEED_SIZE = 16
MAX_SEED_SIZE = 64
MAX_SEED_ATTEMPTS = 10

# version(4) + depth(1) + fingerprint(4) + index(4) + chain code(32) + key(33)
EXTENDED_KEY_SIZE = 78


class Network(str, Enum):
    """Supported Bitcoin networks."""

    MAINNET = "bitcoin"
    TESTNET = "bitcoin_testnet"
    REGTEST = "regtest"


@dataclass(frozen=True)
class NetworkParams:
    """Version bytes and prefixes for a single network."""

    address_version: bytes
    p2sh_version: bytes
    wif_version: bytes
    extended_private_version: bytes
    extended_public_version: bytes
    bech32_hrp: str


NETWORKS: Mapping[Network, NetworkParams] = MappingProxyType({
    Network.MAINNET: NetworkParams(
        address_version=b"\x00",
        p2sh_version=b"\x05",
        wif_version=b"\x80",
        extended_private_version=bytes.fromhex("0488ade4"),
        extended_public_version=bytes.fromhex("0488b21e"),
        bech32_hrp="bc",
    ),
    Network.TESTNET: NetworkParams(
        address_version=b"\x6f",
        p2sh_version=b"\xc4",
        wif_version=b"\xef",
        extended_private_version=bytes.fromhex("04358394"),
        extended_public_version=bytes.fromhex("043587cf"),
        bech32_hrp="tb",
    ),
    Network.REGTEST: NetworkParams(
        address_version=b"\x6f",
        p2sh_version=b"\xc4",
        wif_version=b"\xef",
        extended_private_version=bytes.fromhex("04358394"),
        extended_public_version=bytes.fromhex("043587cf"),
        bech32_hrp="bcrt",
    ),
})


def get_network(network: Union[Network, str]) -> Network:
    """
    Resolve a network identifier.

    Args:
        network: Network member or its string value (e.g. "bitcoin_testnet")

    Returns:
        Network member

    Raises:
        UnknownNetworkError: If the network is not in the table
    """
    try:
        resolved = Network(network)
    except ValueError as e:
        raise UnknownNetworkError(f"Unknown network: {network!r}") from e

    if resolved not in NETWORKS:
        raise UnknownNetworkError(f"No parameters for network: {resolved.value}")
    return resolved
