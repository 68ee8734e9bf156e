"""Hierarchical Deterministic key derivation (BIP32)."""

import copy
import logging
import secrets
import weakref
from typing import Callable, Optional, Union

from ..constants import (
    CURVE_ORDER,
    HARDENED_OFFSET,
    MAX_DEPTH,
    MAX_SEED_ATTEMPTS,
    RANDOM_SEED_SIZE,
    SEED_KEY,
    Network,
    get_network,
)
from ..crypto.keys import PrivateKey, PublicKey
from ..crypto.path import DerivationPath, parse_path
from ..exceptions import (
    DerivationError,
    InvalidKey,
    InvalidKeyForIndex,
    KeyImportError,
    LengthFailure,
    PrivatePublicMismatch,
    PublicDerivationFailure,
    RNGFailure,
    SeedImportError,
    TooManyAttempts,
    ValidationError,
    ValidityError,
)
from ..types.common import Address, ChainCode, ExtendedKey, Fingerprint, HexStr
from ..utils.encoding import bytes_to_int, hmac_sha512
from ..utils.validation import (
    validate_chain_code,
    validate_depth,
    validate_index,
    validate_seed,
)

__all__ = ["HDNode", "MasterNode"]

logger = logging.getLogger(__name__)

ZERO_FINGERPRINT = b"\x00\x00\x00\x00"

KeyMaterial = Union[PrivateKey, int, bytes, str]


class HDNode:
    """
    HD wallet node (BIP32).

    A node holds a chain code, a public key and optionally the matching
    private key. Nodes are never modified after construction, with one
    exception: ``strip_private_key`` drops the private key for good.

    The parent is referenced weakly. The parent's public key is kept so the
    parent fingerprint stays available after the parent node is gone.
    """

    def __init__(
        self,
        chain_code: Union[bytes, str, int],
        private_key: Optional[KeyMaterial] = None,
        public_key: Optional[Union[PublicKey, bytes, str]] = None,
        depth: int = 0,
        index: int = 0,
        parent: Optional["HDNode"] = None,
        parent_fingerprint: Optional[bytes] = None,
        network: Union[Network, str] = Network.MAINNET
    ) -> None:
        """
        Initialize node.

        Args:
            chain_code: 32-byte chain code (bytes, hex, or integer)
            private_key: Private key material, if known
            public_key: Public key; derived from private_key when omitted
            depth: Distance from the master node
            index: Child number, hardened when >= 2^31
            parent: Node this one was derived from
            parent_fingerprint: Explicit parent fingerprint (imported keys)
            network: Default network for exports

        Raises:
            KeyImportError: If no key is given or the keys disagree
            ValidationError: If any field is out of range
        """
        self._chain_code = validate_chain_code(chain_code)
        self._depth = validate_depth(depth)
        self._index = validate_index(index)
        self._network = get_network(network)

        if private_key is None and public_key is None:
            raise KeyImportError("Either a private or a public key is required")

        self._private_key = None if private_key is None else PrivateKey(private_key)

        if self._private_key is not None:
            derived = self._private_key.public_key(compressed=True)
            if public_key is not None and PublicKey(public_key) != derived:
                raise KeyImportError("Public key does not match private key")
            self._public_key = derived
        else:
            self._public_key = PublicKey(public_key).compressed()

        if parent_fingerprint is not None and len(parent_fingerprint) != 4:
            raise ValidationError("Parent fingerprint must be 4 bytes")
        self._parent_fingerprint = parent_fingerprint

        if parent is not None:
            if depth != parent.depth + 1:
                raise ValidationError(
                    f"Child depth must be {parent.depth + 1}, got {depth}"
                )
            self._parent = weakref.ref(parent)
            self._parent_public_key = parent.public_key
        else:
            self._parent = None
            self._parent_public_key = None

    @classmethod
    def from_extended_key(
        cls,
        xkey: str,
        network: Optional[Union[Network, str]] = None
    ) -> "HDNode":
        """Import node from an xprv/xpub style string."""
        from .serialization import deserialize
        return deserialize(xkey, network)

    @property
    def chain_code(self) -> ChainCode:
        return self._chain_code

    @property
    def private_key(self) -> Optional[PrivateKey]:
        return self._private_key

    @property
    def public_key(self) -> PublicKey:
        return self._public_key

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def index(self) -> int:
        return self._index

    @property
    def network(self) -> Network:
        return self._network

    @property
    def parent(self) -> Optional["HDNode"]:
        """Parent node if it is still alive."""
        return self._parent() if self._parent is not None else None

    @property
    def parent_fingerprint(self) -> Fingerprint:
        """Fingerprint of the parent, zero for the master node."""
        if self._parent_fingerprint is not None:
            return Fingerprint(self._parent_fingerprint)
        if self._parent_public_key is not None:
            return self._parent_public_key.fingerprint_bytes
        return Fingerprint(ZERO_FINGERPRINT)

    @property
    def is_private(self) -> bool:
        """Whether this node still holds a private key."""
        return self._private_key is not None

    @property
    def is_hardened(self) -> bool:
        """Whether this node came from hardened derivation."""
        return self._index >= HARDENED_OFFSET

    def _tweak_from(self, chain_code: bytes, data: bytes, index: int):
        h = hmac_sha512(chain_code, data)
        tweak, child_chain_code = h[:32], h[32:]
        if bytes_to_int(tweak) >= CURVE_ORDER:
            raise InvalidKeyForIndex(index, "IL is not less than the curve order")
        return tweak, child_chain_code

    def derive(self, index: int) -> "HDNode":
        """
        Derive child node.

        Indices >= 2^31 use hardened derivation and need the private key.
        Lower indices work from the public key alone, which allows
        watch-only trees.

        Args:
            index: Child number in [0, 2^32 - 1]

        Returns:
            Child node

        Raises:
            PublicDerivationFailure: Hardened index on a public-only node
            InvalidKeyForIndex: No valid child exists for this index
        """
        validate_index(index)
        if self._depth >= MAX_DEPTH:
            raise DerivationError(f"Cannot derive below depth {MAX_DEPTH}")

        hardened = index >= HARDENED_OFFSET
        if hardened:
            if self._private_key is None:
                raise PublicDerivationFailure(
                    f"Hardened index {index} requires a private key"
                )
            data = b"\x00" + self._private_key.secret + index.to_bytes(4, "big")
        else:
            data = self._public_key.compressed().point + index.to_bytes(4, "big")

        tweak, child_chain_code = self._tweak_from(self._chain_code, data, index)

        child_private_key = None
        child_public_key = None
        if self._private_key is not None:
            child_int = (bytes_to_int(tweak) + self._private_key.to_int()) % CURVE_ORDER
            if child_int == 0:
                raise InvalidKeyForIndex(index, "child private key is zero")
            child_private_key = PrivateKey(child_int)
        else:
            try:
                child_public_key = self._public_key.tweak_add(tweak)
            except InvalidKey as e:
                raise InvalidKeyForIndex(index, "child public key is the point at infinity") from e

        logger.debug(
            f"Derived child depth={self._depth + 1} index={index} hardened={hardened}"
        )

        return HDNode(
            chain_code=child_chain_code,
            private_key=child_private_key,
            public_key=child_public_key,
            depth=self._depth + 1,
            index=index,
            parent=self,
            network=self._network
        )

    subnode = derive

    def derive_path(self, path: Union[str, DerivationPath]) -> "HDNode":
        """
        Derive using a path like m/44'/0'/0'/0/0, 1p/-5/2/1 or 0/0/458.pub.

        Private keys are used along the way where available. With a
        trailing ".pub" or a leading "M" only the final node is made public.

        Raises:
            InvalidPath: If the path is malformed
            PrivatePublicMismatch: Hardened step on a public-only node
        """
        parsed = path if isinstance(path, DerivationPath) else parse_path(path)

        node = self
        for step in parsed:
            node = node.derive(step.index)

        logger.debug(f"Derived path {parsed} to depth {node.depth}")

        if parsed.force_public:
            if node is self:
                return self.to_public()
            node.strip_private_key()
        return node

    node_for_path = derive_path

    def derive_parent(self, parent: "HDNode") -> "HDNode":
        """
        Recover the parent's private key.

        Uses this node's private key together with the parent's public key
        and chain code: k_par = (k_child - IL) mod n. Only works for
        non-hardened children, since IL is computed from the parent's
        public key.

        Args:
            parent: Public-only (or private) version of the parent node

        Returns:
            Copy of the parent with its private key restored

        Raises:
            PrivatePublicMismatch: This node has no private key, or the
                recovered key does not belong to the given parent
            PublicDerivationFailure: This node is a hardened child
        """
        if self._private_key is None:
            raise PrivatePublicMismatch("Parent recovery requires the child's private key")
        if self.is_hardened:
            raise PublicDerivationFailure(
                f"Cannot recover parent from hardened index {self._index}"
            )

        data = parent.public_key.compressed().point + self._index.to_bytes(4, "big")
        tweak, _ = self._tweak_from(parent.chain_code, data, self._index)

        parent_int = (self._private_key.to_int() - bytes_to_int(tweak)) % CURVE_ORDER
        if parent_int == 0:
            raise InvalidKeyForIndex(self._index, "recovered parent key is zero")

        recovered = PrivateKey(parent_int)
        if recovered.public_key() != parent.public_key:
            raise PrivatePublicMismatch("Recovered key does not match the parent public key")

        logger.debug(f"Recovered parent at depth {parent.depth} from index {self._index}")

        return HDNode(
            chain_code=parent.chain_code,
            private_key=recovered,
            depth=parent.depth,
            index=parent.index,
            parent_fingerprint=parent.parent_fingerprint,
            network=parent.network
        )

    def strip_private_key(self) -> None:
        """Drop the private key from this node. Cannot be undone."""
        self._private_key = None

    def to_public(self) -> "HDNode":
        """Return a public-only copy, leaving this node untouched."""
        node = copy.copy(self)
        node._private_key = None
        return node

    def get_private_key(self) -> PrivateKey:
        """
        Get private key object.

        Raises:
            PrivatePublicMismatch: If this is a public-only node
        """
        if self._private_key is None:
            raise PrivatePublicMismatch("This is a public-only node")
        return self._private_key

    def fingerprint(self) -> HexStr:
        """Fingerprint of this node as hex."""
        return self._public_key.fingerprint()

    def identifier(self, compressed: bool = True) -> HexStr:
        """HASH160 of the public key as hex."""
        key = self._public_key.compressed() if compressed else self._public_key.uncompressed()
        return HexStr(key.identifier().hex())

    def address(
        self,
        compressed: bool = True,
        network: Optional[Union[Network, str]] = None
    ) -> Address:
        """Legacy P2PKH address."""
        key = self._public_key.compressed() if compressed else self._public_key.uncompressed()
        return key.p2pkh_address(self._resolve_network(network))

    def p2sh_p2wpkh_address(self, network: Optional[Union[Network, str]] = None) -> Address:
        """P2SH-wrapped SegWit address."""
        return self._public_key.p2sh_p2wpkh_address(self._resolve_network(network))

    def bech32_address(self, network: Optional[Union[Network, str]] = None) -> Address:
        """Native SegWit (bech32) address."""
        return self._public_key.p2wpkh_address(self._resolve_network(network))

    def serialize(
        self,
        private: bool = False,
        network: Optional[Union[Network, str]] = None
    ) -> ExtendedKey:
        """
        Serialize as extended key.

        Raises:
            PrivatePublicMismatch: If private is requested on a public node
        """
        from .serialization import serialize
        return serialize(self, private=private, network=network)

    def extended_private_key(self, network: Optional[Union[Network, str]] = None) -> ExtendedKey:
        """xprv/tprv string."""
        return self.serialize(private=True, network=network)

    def extended_public_key(self, network: Optional[Union[Network, str]] = None) -> ExtendedKey:
        """xpub/tpub string."""
        return self.serialize(private=False, network=network)

    def _resolve_network(self, network: Optional[Union[Network, str]]) -> Network:
        return self._network if network is None else get_network(network)

    def __repr__(self) -> str:
        kind = "private" if self.is_private else "public"
        return (
            f"{self.__class__.__name__}(depth={self._depth}, index={self._index}, "
            f"fingerprint={self.fingerprint()}, {kind})"
        )


class MasterNode(HDNode):
    """
    Root of an HD tree.

    Built from a seed, from fresh randomness, or from explicit key and
    chain code material. Depth and index are always zero.
    """

    def __init__(
        self,
        chain_code: Union[bytes, str, int],
        private_key: Optional[KeyMaterial] = None,
        public_key: Optional[Union[PublicKey, bytes, str]] = None,
        network: Union[Network, str] = Network.MAINNET,
        seed: Optional[bytes] = None,
        seed_hash: Optional[bytes] = None
    ) -> None:
        super().__init__(
            chain_code=chain_code,
            private_key=private_key,
            public_key=public_key,
            depth=0,
            index=0,
            network=network
        )
        self._seed = seed
        self._seed_hash = seed_hash

    @staticmethod
    def _check_seed_hash(seed_hash: bytes) -> None:
        if len(seed_hash) != 64:
            raise LengthFailure(f"Seed hash must be 64 bytes, got {len(seed_hash)}")
        master_key = bytes_to_int(seed_hash[:32])
        if master_key == 0 or master_key >= CURVE_ORDER:
            raise ValidityError("Seed does not produce a valid master key")

    @classmethod
    def _from_seed_hash(
        cls,
        seed: bytes,
        seed_hash: bytes,
        network: Union[Network, str]
    ) -> "MasterNode":
        return cls(
            chain_code=seed_hash[32:],
            private_key=seed_hash[:32],
            network=network,
            seed=seed,
            seed_hash=seed_hash
        )

    @classmethod
    def from_seed(
        cls,
        seed: bytes,
        network: Union[Network, str] = Network.MAINNET
    ) -> "MasterNode":
        """
        Create master node from seed.

        Args:
            seed: 16 to 64 bytes of seed material
            network: Default network for exports

        Raises:
            LengthFailure: If seed length is out of range
            SeedImportError: If the seed does not give a valid key
        """
        seed = validate_seed(seed)
        seed_hash = hmac_sha512(SEED_KEY, seed)
        try:
            cls._check_seed_hash(seed_hash)
        except ValidityError as e:
            raise SeedImportError("Seed does not produce a valid master key") from e
        return cls._from_seed_hash(seed, seed_hash, network)

    @classmethod
    def from_seed_hex(
        cls,
        seed_hex: str,
        network: Union[Network, str] = Network.MAINNET
    ) -> "MasterNode":
        """Create master node from hex-encoded seed."""
        try:
            seed = bytes.fromhex(seed_hex)
        except ValueError as e:
            raise SeedImportError(f"Invalid seed hex: {e}") from e
        return cls.from_seed(seed, network)

    @classmethod
    def generate(
        cls,
        network: Union[Network, str] = Network.MAINNET,
        entropy: Callable[[int], bytes] = secrets.token_bytes,
        attempts: int = MAX_SEED_ATTEMPTS
    ) -> "MasterNode":
        """
        Create master node from a fresh random seed.

        Args:
            network: Default network for exports
            entropy: Source of random bytes, called with the byte count
            attempts: Maximum number of seeds to try

        Raises:
            RNGFailure: If the random source fails or returns short reads
            TooManyAttempts: If every seed was rejected
        """
        if attempts < 1:
            raise ValidationError("attempts must be at least 1")

        for attempt in range(1, attempts + 1):
            try:
                seed = entropy(RANDOM_SEED_SIZE)
            except OSError as e:
                raise RNGFailure(f"Random source failed: {e}") from e
            if len(seed) != RANDOM_SEED_SIZE:
                raise RNGFailure(
                    f"Random source returned {len(seed)} bytes, expected {RANDOM_SEED_SIZE}"
                )

            seed_hash = hmac_sha512(SEED_KEY, seed)
            try:
                cls._check_seed_hash(seed_hash)
            except ValidityError:
                logger.warning(f"Rejected random seed (attempt {attempt}/{attempts})")
                continue
            return cls._from_seed_hash(seed, seed_hash, network)

        logger.error(f"Master key generation failed after {attempts} attempts")
        raise TooManyAttempts(attempts)

    @classmethod
    def from_keys(
        cls,
        chain_code: Optional[Union[bytes, str, int]],
        private_key: Optional[KeyMaterial] = None,
        public_key: Optional[Union[PublicKey, bytes, str]] = None,
        network: Union[Network, str] = Network.MAINNET
    ) -> "MasterNode":
        """
        Create master node from explicit key material.

        Raises:
            KeyImportError: If the chain code or both keys are missing
        """
        if chain_code is None:
            raise KeyImportError("Chain code required")
        if private_key is None and public_key is None:
            raise KeyImportError("Either a private or a public key is required")
        return cls(
            chain_code=chain_code,
            private_key=private_key,
            public_key=public_key,
            network=network
        )

    def strip_private_key(self) -> None:
        """Drop the private key and the seed it came from. Cannot be undone."""
        super().strip_private_key()
        self._seed = None
        self._seed_hash = None

    def to_public(self) -> "MasterNode":
        """Return a public-only copy without seed material."""
        node = super().to_public()
        node._seed = None
        node._seed_hash = None
        return node

    @property
    def seed(self) -> Optional[bytes]:
        return self._seed

    @property
    def seed_hash(self) -> Optional[bytes]:
        return self._seed_hash

    def seed_hex(self) -> Optional[HexStr]:
        """Seed as hex, None when built from key material."""
        return None if self._seed is None else HexStr(self._seed.hex())
