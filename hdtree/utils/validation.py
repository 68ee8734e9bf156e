"""Validation utilities for hdtree."""

import re
from typing import Union

from ..constants import (
    CURVE_ORDER,
    MAX_DEPTH,
    MAX_INDEX,
    MAX_SEED_SIZE,
    MIN_SEED_SIZE,
)
from ..exceptions import (
    InvalidKey,
    KeyFormatNotFound,
    LengthFailure,
    ValidationError,
)
from ..types.common import ChainCode, PrivateKeyBytes, PublicKeyBytes
from ..utils.encoding import hex_to_bytes, int_to_bytes

__all__ = [
    "is_valid_private_key",
    "validate_private_key",
    "is_valid_public_key",
    "validate_public_key",
    "validate_chain_code",
    "validate_index",
    "validate_depth",
    "validate_seed",
]

HEX_PATTERN = re.compile(r"^(0x)?[0-9a-fA-F]*$")


def _to_bytes(key: Union[bytes, str], what: str) -> bytes:
    if isinstance(key, (bytes, bytearray)):
        return bytes(key)
    if isinstance(key, str):
        if not HEX_PATTERN.match(key):
            raise KeyFormatNotFound(f"{what} is not valid hex")
        try:
            return hex_to_bytes(key)
        except ValidationError as e:
            raise KeyFormatNotFound(f"{what} is not valid hex") from e
    raise KeyFormatNotFound(f"Unsupported {what} type: {type(key).__name__}")


def is_valid_private_key(key: Union[bytes, str, int]) -> bool:
    """Check if key is a valid private scalar."""
    try:
        validate_private_key(key)
        return True
    except ValidationError:
        return False


def validate_private_key(key: Union[bytes, str, int]) -> PrivateKeyBytes:
    """
    Validate private key and return 32 bytes.

    Args:
        key: Private key as integer, 32 bytes or 64-char hex string

    Returns:
        32-byte big-endian scalar

    Raises:
        KeyFormatNotFound: If key cannot be parsed
        InvalidKey: If scalar is 0 or >= curve order
    """
    if isinstance(key, bool):
        raise KeyFormatNotFound("Private key cannot be a boolean")

    if isinstance(key, int):
        if not 0 < key < CURVE_ORDER:
            raise InvalidKey("Private key out of range [1, n-1]")
        return PrivateKeyBytes(int_to_bytes(key, 32))

    key_bytes = _to_bytes(key, "Private key")
    if len(key_bytes) != 32:
        raise KeyFormatNotFound(f"Private key must be 32 bytes, got {len(key_bytes)}")

    value = int.from_bytes(key_bytes, "big")
    if not 0 < value < CURVE_ORDER:
        raise InvalidKey("Private key out of range [1, n-1]")

    return PrivateKeyBytes(key_bytes)


def is_valid_public_key(key: Union[bytes, str]) -> bool:
    """Check if key has a valid public key encoding."""
    try:
        validate_public_key(key)
        return True
    except ValidationError:
        return False


def validate_public_key(key: Union[bytes, str]) -> PublicKeyBytes:
    """
    Validate public key encoding.

    Only prefix and length are checked here; whether the point lies on the
    curve is left to the curve library.

    Raises:
        KeyFormatNotFound: If prefix or length is wrong
    """
    key_bytes = _to_bytes(key, "Public key")

    if len(key_bytes) == 33 and key_bytes[0] in (0x02, 0x03):
        return PublicKeyBytes(key_bytes)
    if len(key_bytes) == 65 and key_bytes[0] == 0x04:
        return PublicKeyBytes(key_bytes)

    raise KeyFormatNotFound(
        f"Unrecognized public key format ({len(key_bytes)} bytes)"
    )


def validate_chain_code(chain_code: Union[bytes, str, int]) -> ChainCode:
    """
    Validate chain code and return 32 bytes.

    Raises:
        ValidationError: If chain code is not 32 bytes
    """
    if isinstance(chain_code, int) and not isinstance(chain_code, bool):
        if chain_code < 0:
            raise ValidationError("Chain code cannot be negative")
        return ChainCode(int_to_bytes(chain_code, 32))

    try:
        data = _to_bytes(chain_code, "Chain code")
    except KeyFormatNotFound as e:
        raise ValidationError(e.message) from e

    if len(data) != 32:
        raise ValidationError(f"Chain code must be 32 bytes, got {len(data)}")
    return ChainCode(data)


def validate_index(index: int) -> int:
    """
    Validate child index.

    Raises:
        ValidationError: If index is outside [0, 2^32 - 1]
    """
    if isinstance(index, bool) or not isinstance(index, int):
        raise ValidationError(f"Index must be an integer, got {type(index).__name__}")
    if not 0 <= index <= MAX_INDEX:
        raise ValidationError(f"Index out of range: {index}")
    return index


def validate_depth(depth: int) -> int:
    """
    Validate node depth.

    Raises:
        ValidationError: If depth is outside [0, 255]
    """
    if isinstance(depth, bool) or not isinstance(depth, int):
        raise ValidationError(f"Depth must be an integer, got {type(depth).__name__}")
    if not 0 <= depth <= MAX_DEPTH:
        raise ValidationError(f"Depth out of range: {depth}")
    return depth


def validate_seed(seed: bytes) -> bytes:
    """
    Validate raw seed length.

    Raises:
        LengthFailure: If seed is not between 16 and 64 bytes
    """
    if not isinstance(seed, (bytes, bytearray)):
        raise LengthFailure(f"Seed must be bytes, got {type(seed).__name__}")
    if not MIN_SEED_SIZE <= len(seed) <= MAX_SEED_SIZE:
        raise LengthFailure(
            f"Seed must be between {MIN_SEED_SIZE} and {MAX_SEED_SIZE} bytes, got {len(seed)}"
        )
    return bytes(seed)
