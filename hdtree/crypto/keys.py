"""Key value types for hdtree."""

import logging
import secrets
from typing import Callable, Optional, Tuple, Union

from coincurve import PrivateKey as SecpPrivateKey, PublicKey as SecpPublicKey

from ..constants import MAX_SEED_ATTEMPTS, NETWORKS, Network, get_network
from ..exceptions import (
    InvalidKey,
    KeyFormatNotFound,
    RNGFailure,
    TooManyAttempts,
    UnknownNetworkError,
    ValidationError,
)
from ..types.common import Address, Fingerprint, HexStr, PrivateKeyBytes, PublicKeyBytes
from ..utils.encoding import (
    decode_base58_check,
    encode_address,
    encode_base58_check,
    hash160,
    p2wpkh_redeem_script,
)
from ..utils.validation import validate_private_key, validate_public_key

__all__ = ["PrivateKey", "PublicKey"]

logger = logging.getLogger(__name__)


class PrivateKey:
    """
    secp256k1 private key.

    Immutable scalar in [1, n-1]. Exposes raw bytes, hex, decimal and WIF
    forms, and derives its public key through coincurve.
    """

    def __init__(self, key: Union[int, bytes, str, "PrivateKey"]) -> None:
        """
        Initialize private key.

        Args:
            key: Integer scalar, 32 bytes, hex string, or another PrivateKey

        Raises:
            KeyFormatNotFound: If key cannot be parsed
            InvalidKey: If scalar is 0 or >= curve order
        """
        if isinstance(key, PrivateKey):
            self._secret = key._secret
            self._key = key._key
            return

        self._secret = PrivateKeyBytes(validate_private_key(key))
        self._key = SecpPrivateKey(self._secret)

    @classmethod
    def create(
        cls,
        entropy: Callable[[int], bytes] = secrets.token_bytes,
        attempts: int = MAX_SEED_ATTEMPTS
    ) -> "PrivateKey":
        """
        Create new random private key.

        Args:
            entropy: Source of random bytes, called with the byte count
            attempts: Maximum number of draws before giving up

        Returns:
            New PrivateKey instance

        Raises:
            RNGFailure: If the random source fails
            TooManyAttempts: If no draw was in range
        """
        for attempt in range(1, attempts + 1):
            try:
                key_bytes = entropy(32)
            except OSError as e:
                raise RNGFailure(f"Random source failed: {e}") from e
            if len(key_bytes) != 32:
                raise RNGFailure(f"Random source returned {len(key_bytes)} bytes, expected 32")
            try:
                return cls(key_bytes)
            except InvalidKey:
                logger.warning(f"Random private key out of range (attempt {attempt}/{attempts})")
        logger.error(f"Private key generation failed after {attempts} attempts")
        raise TooManyAttempts(attempts, f"No valid private key after {attempts} attempts")

    @classmethod
    def from_wif(cls, wif: str) -> Tuple["PrivateKey", bool, Network]:
        """
        Import private key from WIF.

        Args:
            wif: Wallet Import Format string

        Returns:
            Tuple of (private_key, is_compressed, network)

        Raises:
            KeyFormatNotFound: If WIF is malformed
            UnknownNetworkError: If the version byte is not known
        """
        try:
            data = decode_base58_check(wif)
        except ValidationError as e:
            raise KeyFormatNotFound(f"Invalid WIF format: {e}") from e

        if len(data) not in (33, 34):
            raise KeyFormatNotFound(f"Invalid WIF length: {len(data)}")

        version = data[0:1]
        network = next(
            (net for net, params in NETWORKS.items() if params.wif_version == version),
            None,
        )
        if network is None:
            raise UnknownNetworkError(f"Unknown WIF version: {version.hex()}")

        key_bytes = data[1:33]
        compressed = len(data) == 34
        if compressed and data[33] != 0x01:
            raise KeyFormatNotFound(f"Invalid compression flag: {data[33]:#x}")

        return cls(key_bytes), compressed, network

    @property
    def secret(self) -> PrivateKeyBytes:
        """Get private key as 32 big-endian bytes."""
        return self._secret

    def to_int(self) -> int:
        """Get private key as integer."""
        return int.from_bytes(self._secret, "big")

    def hex(self) -> HexStr:
        """Get private key as 64-char hex string."""
        return HexStr(self._secret.hex())

    def decimal(self) -> str:
        """Get private key as decimal string."""
        return str(self.to_int())

    def wif(
        self,
        network: Union[Network, str] = Network.MAINNET,
        compressed: bool = True
    ) -> str:
        """
        Export private key in Wallet Import Format.

        Args:
            network: Target network
            compressed: Append the compressed-pubkey flag

        Returns:
            WIF encoded private key
        """
        data = NETWORKS[get_network(network)].wif_version + self._secret
        if compressed:
            data += b"\x01"
        return encode_base58_check(data)

    def public_key(self, compressed: bool = True) -> "PublicKey":
        """
        Get corresponding public key (generator * scalar).

        Args:
            compressed: Initial compression view of the result

        Returns:
            PublicKey instance
        """
        return PublicKey._from_secp(self._key.public_key, compressed)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PrivateKey):
            return NotImplemented
        return self._secret == other._secret

    def __hash__(self) -> int:
        return hash(self._secret)

    def __repr__(self) -> str:
        # Show first and last 4 chars of hex for security
        hex_str = self.hex()
        return f"PrivateKey({hex_str[:4]}...{hex_str[-4:]})"


class PublicKey:
    """
    secp256k1 public key with a compression view.

    The underlying point never changes. ``compressed()`` and
    ``uncompressed()`` return new views over the same point, so every
    serialization and address can be produced in either form without
    touching the source object.
    """

    def __init__(
        self,
        key: Union[bytes, str, "PublicKey", PrivateKey],
        compressed: Optional[bool] = None
    ) -> None:
        """
        Initialize public key.

        Args:
            key: Serialized point (bytes or hex), PrivateKey, or PublicKey
            compressed: Compression view (auto-detected from input if None)

        Raises:
            KeyFormatNotFound: If the point cannot be parsed
        """
        if isinstance(key, PublicKey):
            self._key = key._key
            self._compressed = key._compressed if compressed is None else compressed
            return

        if isinstance(key, PrivateKey):
            self._key = key._key.public_key
            self._compressed = True if compressed is None else compressed
            return

        key_bytes = validate_public_key(key)
        try:
            self._key = SecpPublicKey(key_bytes)
        except ValueError as e:
            raise KeyFormatNotFound("Public key is not a point on secp256k1") from e

        if compressed is None:
            self._compressed = len(key_bytes) == 33
        else:
            self._compressed = compressed

    @classmethod
    def _from_secp(cls, key: SecpPublicKey, compressed: bool) -> "PublicKey":
        view = cls.__new__(cls)
        view._key = key
        view._compressed = compressed
        return view

    @property
    def is_compressed(self) -> bool:
        """Whether this view serializes to 33 bytes."""
        return self._compressed

    @property
    def point(self) -> PublicKeyBytes:
        """Get public key bytes in the current view."""
        return PublicKeyBytes(self._key.format(compressed=self._compressed))

    def compressed(self) -> "PublicKey":
        """Return a compressed view over the same point."""
        return PublicKey._from_secp(self._key, True)

    def uncompressed(self) -> "PublicKey":
        """Return an uncompressed view over the same point."""
        return PublicKey._from_secp(self._key, False)

    def hex(self) -> HexStr:
        """Get public key as hex string."""
        return HexStr(self.point.hex())

    def to_int(self) -> int:
        """Get serialized public key as integer."""
        return int.from_bytes(self.point, "big")

    def hash160(self) -> bytes:
        """Get HASH160 of public key in the current view."""
        return hash160(self.point)

    def identifier(self) -> bytes:
        """Alias of hash160, the BIP32 key identifier."""
        return self.hash160()

    @property
    def fingerprint_bytes(self) -> Fingerprint:
        """First 4 bytes of HASH160 of the compressed key."""
        return Fingerprint(hash160(self._key.format(compressed=True))[:4])

    def fingerprint(self) -> HexStr:
        """Get fingerprint as hex."""
        return HexStr(self.fingerprint_bytes.hex())

    def tweak_add(self, tweak: bytes) -> "PublicKey":
        """
        Compute self + G * tweak.

        Args:
            tweak: 32-byte big-endian scalar

        Returns:
            New PublicKey in the same view

        Raises:
            InvalidKey: If tweak is >= n or the sum is the point at infinity
        """
        if len(tweak) != 32:
            raise InvalidKey(f"Tweak must be 32 bytes, got {len(tweak)}")
        try:
            tweaked = self._key.add(tweak)
        except ValueError as e:
            raise InvalidKey("Tweak out of range or result is the point at infinity") from e
        return PublicKey._from_secp(tweaked, self._compressed)

    def p2pkh_address(self, network: Union[Network, str] = Network.MAINNET) -> Address:
        """
        Get Pay-to-PubKey-Hash address of the current view.

        Args:
            network: Target network

        Returns:
            P2PKH address
        """
        return encode_address("p2pkh", self.hash160(), network)

    address = p2pkh_address

    def p2sh_p2wpkh_address(self, network: Union[Network, str] = Network.MAINNET) -> Address:
        """
        Get P2SH-wrapped SegWit address.

        The witness program is HASH160 of the current view, so uncompressed
        views produce a different (non-standard) address.

        Args:
            network: Target network

        Returns:
            P2SH address
        """
        redeem_script = p2wpkh_redeem_script(self.hash160())
        return encode_address("p2sh", hash160(redeem_script), network)

    def p2wpkh_address(self, network: Union[Network, str] = Network.MAINNET) -> Address:
        """
        Get native SegWit (bech32) address.

        Always built from the compressed serialization.

        Args:
            network: Target network

        Returns:
            P2WPKH address
        """
        witprog = hash160(self._key.format(compressed=True))
        return encode_address("p2wpkh", witprog, network)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PublicKey):
            return NotImplemented
        return self._key.format(compressed=True) == other._key.format(compressed=True)

    def __hash__(self) -> int:
        return hash(self._key.format(compressed=True))

    def __repr__(self) -> str:
        return f"PublicKey({self.p2pkh_address()})"
