"""Extended key (xprv/xpub) serialization."""

import logging
from typing import Optional, Tuple, Union

from ..constants import EXTENDED_KEY_SIZE, NETWORKS, Network, get_network
from ..crypto.hd import HDNode
from ..crypto.keys import PrivateKey, PublicKey
from ..exceptions import (
    KeyFormatNotFound,
    KeyImportError,
    PrivatePublicMismatch,
    ValidationError,
)
from ..types.common import ExtendedKey, HexStr
from ..utils.encoding import decode_base58_check, encode_base58_check

__all__ = [
    "serialize_bytes",
    "serialize_hex",
    "serialize",
    "deserialize_bytes",
    "deserialize",
]

logger = logging.getLogger(__name__)

# Field widths of the 78-byte layout
VERSION_SIZE = 4
DEPTH_SIZE = 1
FINGERPRINT_SIZE = 4
INDEX_SIZE = 4
CHAIN_CODE_SIZE = 32
KEY_DATA_SIZE = 33


def serialize_bytes(
    node: HDNode,
    private: bool = False,
    network: Optional[Union[Network, str]] = None
) -> bytes:
    """
    Build the 78-byte extended key payload.

    Layout: version(4) | depth(1) | parent fingerprint(4) | index(4) |
    chain code(32) | key data(33). Private key data is 0x00 followed by
    the scalar, public key data is the compressed point.

    Args:
        node: Node to serialize
        private: Emit xprv instead of xpub
        network: Version table to use, defaults to the node's network

    Raises:
        PrivatePublicMismatch: If private is requested on a public node
    """
    if private and node.private_key is None:
        raise PrivatePublicMismatch("Cannot serialize a public-only node as private")

    params = NETWORKS[get_network(node.network if network is None else network)]

    if private:
        version = params.extended_private_version
        key_data = b"\x00" + node.private_key.secret
    else:
        version = params.extended_public_version
        key_data = node.public_key.compressed().point

    return (
        version
        + bytes([node.depth])
        + node.parent_fingerprint
        + node.index.to_bytes(INDEX_SIZE, "big")
        + node.chain_code
        + key_data
    )


def serialize_hex(
    node: HDNode,
    private: bool = False,
    network: Optional[Union[Network, str]] = None
) -> HexStr:
    """Extended key payload as hex, without checksum."""
    return HexStr(serialize_bytes(node, private, network).hex())


def serialize(
    node: HDNode,
    private: bool = False,
    network: Optional[Union[Network, str]] = None
) -> ExtendedKey:
    """Extended key as Base58Check string."""
    return ExtendedKey(encode_base58_check(serialize_bytes(node, private, network)))


def _take(data: bytes, offset: int, size: int) -> Tuple[bytes, int]:
    chunk = data[offset:offset + size]
    if len(chunk) != size:
        raise KeyFormatNotFound(
            f"Extended key truncated at byte {offset}: need {size}, have {len(chunk)}"
        )
    return chunk, offset + size


def _lookup_version(
    version: bytes,
    network: Optional[Union[Network, str]]
) -> Tuple[Network, bool]:
    candidates = list(NETWORKS) if network is None else [get_network(network)]
    for candidate in candidates:
        params = NETWORKS[candidate]
        if version == params.extended_private_version:
            return candidate, True
        if version == params.extended_public_version:
            return candidate, False

    if network is None:
        raise KeyImportError(f"Unknown extended key version: {version.hex()}")
    raise KeyImportError(
        f"Extended key version {version.hex()} does not match network {get_network(network).value}"
    )


def deserialize_bytes(
    payload: bytes,
    network: Optional[Union[Network, str]] = None
) -> HDNode:
    """
    Parse a 78-byte extended key payload.

    Args:
        payload: Payload without checksum
        network: Expected network; detected from the version when None

    Returns:
        HDNode with the explicit parent fingerprint from the payload

    Raises:
        KeyFormatNotFound: If lengths are wrong or the point is invalid
        KeyImportError: If version, key data and depth are inconsistent
        InvalidKey: If the private scalar is out of range
    """
    offset = 0
    version, offset = _take(payload, offset, VERSION_SIZE)
    depth, offset = _take(payload, offset, DEPTH_SIZE)
    fingerprint, offset = _take(payload, offset, FINGERPRINT_SIZE)
    index, offset = _take(payload, offset, INDEX_SIZE)
    chain_code, offset = _take(payload, offset, CHAIN_CODE_SIZE)
    key_data, offset = _take(payload, offset, KEY_DATA_SIZE)

    if offset != len(payload) or offset != EXTENDED_KEY_SIZE:
        raise KeyFormatNotFound(
            f"Extended key must be {EXTENDED_KEY_SIZE} bytes, got {len(payload)}"
        )

    resolved, is_private = _lookup_version(version, network)
    depth_value = depth[0]
    index_value = int.from_bytes(index, "big")

    if depth_value == 0 and (fingerprint != b"\x00" * FINGERPRINT_SIZE or index_value != 0):
        raise KeyImportError("Master key must have zero parent fingerprint and index")

    prefix = key_data[0]
    if prefix == 0x00:
        if not is_private:
            raise KeyImportError("Public or private key data does not match version type")
        private_key = PrivateKey(key_data[1:])
        public_key = None
    elif prefix in (0x02, 0x03):
        if is_private:
            raise KeyImportError("Public or private key data does not match version type")
        private_key = None
        public_key = PublicKey(key_data)
    else:
        raise KeyImportError(f"Unknown key data prefix: {prefix:#04x}")

    logger.debug(
        f"Decoded extended {'private' if is_private else 'public'} key "
        f"network={resolved.value} depth={depth_value} index={index_value}"
    )

    return HDNode(
        chain_code=chain_code,
        private_key=private_key,
        public_key=public_key,
        depth=depth_value,
        index=index_value,
        parent_fingerprint=fingerprint,
        network=resolved
    )


def deserialize(
    xkey: str,
    network: Optional[Union[Network, str]] = None
) -> HDNode:
    """
    Parse a Base58Check extended key string.

    Raises:
        KeyFormatNotFound: If the string or checksum is malformed
        KeyImportError: If the decoded fields are inconsistent
    """
    try:
        payload = decode_base58_check(xkey)
    except ValidationError as e:
        raise KeyFormatNotFound(f"Invalid extended key encoding: {e}") from e
    return deserialize_bytes(payload, network)
