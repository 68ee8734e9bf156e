"""Encoding and hashing utilities for hdtree."""

import hashlib
import hmac
from typing import List, Union

from Crypto.Hash import RIPEMD160

from ..constants import NETWORKS, Network, get_network
from ..exceptions import ValidationError
from ..types.common import Address, HexStr

__all__ = [
    "hex_to_bytes",
    "int_to_bytes",
    "bytes_to_int",
    "sha256",
    "double_sha256",
    "ripemd160",
    "hash160",
    "hmac_sha512",
    "encode_base58",
    "decode_base58",
    "encode_base58_check",
    "decode_base58_check",
    "convertbits",
    "encode_bech32",
    "p2wpkh_redeem_script",
    "encode_address",
]

# Constants
BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
BECH32_CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"

# OpenSSL 3 moved RIPEMD-160 to the legacy provider
try:
    hashlib.new("ripemd160")
    _HASHLIB_HAS_RIPEMD160 = True
except ValueError:
    _HASHLIB_HAS_RIPEMD160 = False


def hex_to_bytes(hex_str: Union[HexStr, str]) -> bytes:
    """
    Convert hex string to bytes.

    Args:
        hex_str: Hex string with or without 0x prefix

    Returns:
        Decoded bytes

    Raises:
        ValidationError: If hex string is invalid
    """
    try:
        # Remove 0x prefix if present
        if isinstance(hex_str, str) and hex_str.startswith("0x"):
            hex_str = hex_str[2:]
        return bytes.fromhex(hex_str)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"Invalid hex string: {hex_str!r}") from e


def int_to_bytes(value: int, length: int, byteorder: str = "big") -> bytes:
    """
    Convert a non-negative integer to bytes of a fixed length.

    Raises:
        ValidationError: If the value does not fit
    """
    try:
        return value.to_bytes(length, byteorder=byteorder)
    except OverflowError as e:
        raise ValidationError(f"Integer does not fit in {length} bytes") from e


def bytes_to_int(data: bytes, byteorder: str = "big") -> int:
    """Convert bytes to a non-negative integer."""
    return int.from_bytes(data, byteorder=byteorder)


def sha256(data: bytes) -> bytes:
    """Perform single SHA256 hash."""
    return hashlib.sha256(data).digest()


def double_sha256(data: bytes) -> bytes:
    """Perform double SHA256 hash."""
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def ripemd160(data: bytes) -> bytes:
    """Perform RIPEMD160 hash."""
    if _HASHLIB_HAS_RIPEMD160:
        return hashlib.new("ripemd160", data).digest()
    return RIPEMD160.new(data).digest()


def hash160(data: bytes) -> bytes:
    """Perform RIPEMD160(SHA256(data))."""
    return ripemd160(sha256(data))


def hmac_sha512(key: bytes, data: bytes) -> bytes:
    """Compute HMAC-SHA512, 64 bytes."""
    return hmac.new(key, data, hashlib.sha512).digest()


def encode_base58(data: bytes) -> str:
    """
    Encode bytes as Base58 string.

    Args:
        data: Bytes to encode

    Returns:
        Base58 encoded string
    """
    # Convert to integer
    n = bytes_to_int(data)

    # Encode
    encoded = ""
    while n:
        n, remainder = divmod(n, 58)
        encoded = BASE58_ALPHABET[remainder] + encoded

    # Add leading zeros
    for byte in data:
        if byte == 0:
            encoded = "1" + encoded
        else:
            break

    return encoded


def decode_base58(string: str) -> bytes:
    """
    Decode Base58 string to bytes.

    Args:
        string: Base58 string

    Returns:
        Decoded bytes

    Raises:
        ValidationError: If string contains invalid characters
    """
    # Decode to integer
    n = 0
    for char in string:
        try:
            n = n * 58 + BASE58_ALPHABET.index(char)
        except ValueError:
            raise ValidationError(f"Invalid Base58 character: {char!r}")

    body = n.to_bytes((n.bit_length() + 7) // 8, "big")

    # Add leading zeros
    leading_zeros = len(string) - len(string.lstrip("1"))
    return b"\x00" * leading_zeros + body


def encode_base58_check(data: bytes) -> str:
    """
    Encode bytes as Base58Check (with checksum).

    Args:
        data: Bytes to encode

    Returns:
        Base58Check encoded string
    """
    checksum = double_sha256(data)[:4]
    return encode_base58(data + checksum)


def decode_base58_check(string: str) -> bytes:
    """
    Decode Base58Check string.

    Args:
        string: Base58Check string

    Returns:
        Decoded data (without checksum)

    Raises:
        ValidationError: If checksum is invalid
    """
    data = decode_base58(string)
    if len(data) < 4:
        raise ValidationError("Invalid Base58Check string: too short")

    payload, checksum = data[:-4], data[-4:]
    expected_checksum = double_sha256(payload)[:4]

    if checksum != expected_checksum:
        raise ValidationError("Invalid Base58Check checksum")

    return payload


def _bech32_polymod(values: List[int]) -> int:
    """Compute Bech32 checksum polymod."""
    generator = [0x3b6a57b2, 0x26508e6d, 0x1ea119fa, 0x3d4233dd, 0x2a1462b3]
    chk = 1
    for value in values:
        top = chk >> 25
        chk = (chk & 0x1ffffff) << 5 ^ value
        for i in range(5):
            chk ^= generator[i] if ((top >> i) & 1) else 0
    return chk


def _bech32_hrp_expand(hrp: str) -> List[int]:
    """Expand human-readable part for Bech32."""
    return [ord(x) >> 5 for x in hrp] + [0] + [ord(x) & 31 for x in hrp]


def convertbits(data: bytes, frombits: int, tobits: int) -> List[int]:
    """
    Regroup a sequence of frombits-wide values into tobits-wide values,
    zero-padding the last group.

    Raises:
        ValidationError: If a value does not fit in frombits
    """
    acc = 0
    bits = 0
    ret = []
    maxv = (1 << tobits) - 1
    for value in data:
        if value < 0 or value >> frombits:
            raise ValidationError(f"Value out of range for {frombits}-bit group: {value}")
        acc = (acc << frombits) | value
        bits += frombits
        while bits >= tobits:
            bits -= tobits
            ret.append((acc >> bits) & maxv)
    if bits:
        ret.append((acc << (tobits - bits)) & maxv)
    return ret


def encode_bech32(hrp: str, witver: int, witprog: bytes) -> str:
    """
    Encode as Bech32 address.

    Args:
        hrp: Human-readable part
        witver: Witness version
        witprog: Witness program

    Returns:
        Bech32 encoded address
    """
    values = [witver] + convertbits(witprog, 8, 5)

    # Calculate checksum
    polymod = _bech32_polymod(_bech32_hrp_expand(hrp) + values + [0, 0, 0, 0, 0, 0]) ^ 1
    checksum = [(polymod >> 5 * (5 - i)) & 31 for i in range(6)]

    return hrp + "1" + "".join(BECH32_CHARSET[v] for v in values + checksum)


def p2wpkh_redeem_script(witprog: bytes) -> bytes:
    """Build the P2SH redeem script OP_0 <20-byte program>."""
    if len(witprog) != 20:
        raise ValidationError("P2WPKH requires 20-byte hash")
    return b"\x00\x14" + witprog


def encode_address(
    address_type: str,
    hash_bytes: bytes,
    network: Union[Network, str] = Network.MAINNET
) -> Address:
    """
    Encode hash as Bitcoin address.

    Args:
        address_type: Type of address (p2pkh, p2sh, p2wpkh)
        hash_bytes: 20-byte hash to encode
        network: Target network

    Returns:
        Encoded address

    Raises:
        ValidationError: If parameters are invalid
    """
    params = NETWORKS[get_network(network)]
    if len(hash_bytes) != 20:
        raise ValidationError(f"{address_type.upper()} requires 20-byte hash")

    if address_type == "p2pkh":
        return Address(encode_base58_check(params.address_version + hash_bytes))

    elif address_type == "p2sh":
        return Address(encode_base58_check(params.p2sh_version + hash_bytes))

    elif address_type == "p2wpkh":
        return Address(encode_bech32(params.bech32_hrp, 0, hash_bytes))

    else:
        raise ValidationError(f"Unknown address type: {address_type}")
