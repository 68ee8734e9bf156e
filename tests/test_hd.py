import gc
import logging

import pytest

from hdtree.constants import CURVE_ORDER, HARDENED_OFFSET, Network
from hdtree.crypto import hd
from hdtree.crypto.hd import HDNode, MasterNode
from hdtree.crypto.keys import PrivateKey
from hdtree.exceptions import (
    InvalidKeyForIndex, KeyImportError, LengthFailure, PrivatePublicMismatch,
    PublicDerivationFailure, RNGFailure, SeedImportError, TooManyAttempts,
)

SEED = bytes.fromhex("000102030405060708090a0b0c0d0e0f")


def test_master_from_seed_vector():
    master = MasterNode.from_seed(SEED)
    assert master.depth == 0
    assert master.index == 0
    assert master.parent is None
    assert master.parent_fingerprint == b"\x00" * 4
    assert master.fingerprint() == "3442193e"
    assert master.private_key.hex() == (
        "e8f32e723decf4051aefac8e2c93c9c5b214313817cdb01a1494b917c8436b35"
    )
    assert master.chain_code.hex() == (
        "873dff81c02f525623fd1fe5167eac3a55a049de3d314bb42ee227ffed37d508"
    )
    assert master.seed == SEED
    assert master.seed_hex() == SEED.hex()
    assert MasterNode.from_seed_hex(SEED.hex()).private_key == master.private_key


def test_master_is_deterministic():
    results = set()
    for _ in range(100):
        master = MasterNode.from_seed(SEED)
        results.add((master.private_key.secret, master.chain_code, master.public_key.point))
    assert len(results) == 1


def test_seed_length_is_checked():
    with pytest.raises(LengthFailure):
        MasterNode.from_seed(b"short")
    with pytest.raises(SeedImportError):
        MasterNode.from_seed_hex("zz")


def test_invalid_seed_hash(monkeypatch):
    monkeypatch.setattr(hd, "hmac_sha512", lambda key, data: b"\x00" * 64)
    with pytest.raises(SeedImportError):
        MasterNode.from_seed(SEED)


def test_generate():
    master = MasterNode.generate(Network.TESTNET)
    assert len(master.seed) == 32
    assert master.is_private
    assert master.network is Network.TESTNET
    assert MasterNode.from_seed(master.seed).private_key == master.private_key


def test_generate_gives_up(monkeypatch, caplog):
    monkeypatch.setattr(hd, "hmac_sha512", lambda key, data: b"\xff" * 64)
    with caplog.at_level(logging.WARNING, logger="hdtree.crypto.hd"):
        with pytest.raises(TooManyAttempts) as exc:
            MasterNode.generate(attempts=4)
    assert exc.value.attempts == 4
    assert len([r for r in caplog.records if r.levelno == logging.WARNING]) == 4
    assert len([r for r in caplog.records if r.levelno == logging.ERROR]) == 1


def test_generate_rng_failures():
    with pytest.raises(RNGFailure):
        MasterNode.generate(entropy=lambda n: b"\x01" * 16)

    def broken(n):
        raise OSError("no entropy")

    with pytest.raises(RNGFailure):
        MasterNode.generate(entropy=broken)


def test_master_from_keys():
    master = MasterNode.from_seed(SEED)
    rebuilt = MasterNode.from_keys(master.chain_code, private_key=master.private_key)
    assert rebuilt.public_key == master.public_key
    assert rebuilt.seed is None

    watch_only = MasterNode.from_keys(master.chain_code.hex(), public_key=master.public_key.hex())
    assert not watch_only.is_private
    assert watch_only.derive(3).public_key == master.derive(3).public_key

    with pytest.raises(KeyImportError):
        MasterNode.from_keys(None, private_key=master.private_key)
    with pytest.raises(KeyImportError):
        MasterNode.from_keys(master.chain_code)


def test_node_rejects_mismatched_keys():
    with pytest.raises(KeyImportError):
        HDNode(b"\x01" * 32, private_key=1, public_key=PrivateKey(2).public_key())


def test_derivation_is_deterministic():
    master = MasterNode.from_seed(SEED)
    for index in (0, 1, HARDENED_OFFSET, HARDENED_OFFSET + 7):
        first = master.derive(index)
        second = master.derive(index)
        assert first.private_key == second.private_key
        assert first.chain_code == second.chain_code
        assert first.depth == 1
        assert first.index == index
        assert first.parent is master
        assert first.is_hardened == (index >= HARDENED_OFFSET)


def test_derivation_order_matters():
    master = MasterNode.from_seed(SEED)
    assert master.derive(1).derive(2).public_key != master.derive(2).derive(1).public_key


def test_public_derivation_matches_private():
    master = MasterNode.from_seed(SEED)
    public = master.to_public()
    assert master.is_private
    assert not public.is_private
    for index in (0, 1, 458):
        child = public.derive(index)
        assert child.private_key is None
        assert child.public_key == master.derive(index).public_key
        assert child.chain_code == master.derive(index).chain_code


def test_hardened_needs_private_key():
    public = MasterNode.from_seed(SEED).to_public()
    with pytest.raises(PublicDerivationFailure):
        public.derive(HARDENED_OFFSET)
    with pytest.raises(PrivatePublicMismatch):
        public.derive_path("m/0'/1")


def test_invalid_key_for_index_is_surfaced(monkeypatch):
    master = MasterNode.from_seed(SEED)
    k = master.private_key.to_int()

    monkeypatch.setattr(hd, "hmac_sha512", lambda key, data: b"\xff" * 64)
    with pytest.raises(InvalidKeyForIndex) as exc:
        master.derive(5)
    assert exc.value.index == 5

    zero = (CURVE_ORDER - k).to_bytes(32, "big") + b"\x01" * 32
    monkeypatch.setattr(hd, "hmac_sha512", lambda key, data: zero)
    with pytest.raises(InvalidKeyForIndex):
        master.derive(6)
    with pytest.raises(InvalidKeyForIndex):
        master.to_public().derive(6)


def test_path_derivation():
    master = MasterNode.from_seed(SEED)
    node = master.derive_path("0/0/458.pub")
    assert node.depth == 3
    assert node.index == 458
    assert not node.is_private
    assert node.public_key == master.derive(0).derive(0).derive(458).public_key
    assert master.is_private

    node = master.node_for_path("1p/-5/2/1")
    assert node.is_private
    expected = master.derive(1 | HARDENED_OFFSET).derive(5 | HARDENED_OFFSET).derive(2).derive(1)
    assert node.private_key == expected.private_key

    node = master.derive_path("M/0'/1")
    assert not node.is_private
    assert node.public_key == master.derive(HARDENED_OFFSET).derive(1).public_key


def test_public_root_path_leaves_start_node_intact():
    master = MasterNode.from_seed(SEED)
    assert master.derive_path("m") is master
    for path in ("M", "m.pub"):
        public = master.derive_path(path)
        assert not public.is_private
        assert public.public_key == master.public_key
        assert public.seed is None
        assert public.seed_hash is None
        assert public.seed_hex() is None
    assert master.is_private
    assert master.seed == SEED
    assert master.seed_hash is not None


def test_strip_private_key_is_final():
    child = MasterNode.from_seed(SEED).derive(0)
    child.strip_private_key()
    assert child.private_key is None
    with pytest.raises(PrivatePublicMismatch):
        child.get_private_key()
    with pytest.raises(PrivatePublicMismatch):
        child.extended_private_key()


def test_stripped_master_drops_seed():
    master = MasterNode.from_seed(SEED)
    master.strip_private_key()
    assert master.private_key is None
    assert master.seed is None
    assert master.seed_hash is None
    assert master.seed_hex() is None
    with pytest.raises(PrivatePublicMismatch):
        master.extended_private_key()


def test_parent_fingerprint_outlives_parent():
    master = MasterNode.from_seed(SEED)
    leaf = master.derive(HARDENED_OFFSET).derive(1)
    gc.collect()
    assert leaf.parent_fingerprint.hex() == "5c1bd648"


def test_parent_recovery():
    master = MasterNode.from_seed(SEED)
    account = master.derive(HARDENED_OFFSET)
    child = account.derive(1)

    recovered = child.derive_parent(account.to_public())
    assert recovered.private_key == account.private_key
    assert recovered.depth == account.depth
    assert recovered.index == account.index
    assert recovered.chain_code == account.chain_code
    assert recovered.parent_fingerprint == account.parent_fingerprint

    with pytest.raises(PublicDerivationFailure):
        account.derive_parent(master.to_public())
    with pytest.raises(PrivatePublicMismatch):
        child.to_public().derive_parent(account)
    with pytest.raises(PrivatePublicMismatch):
        child.derive_parent(master.derive(2).to_public())


def test_addresses_and_identifiers():
    node = HDNode(
        b"\x00" * 32,
        private_key="5eae5375fb5f7a0ea650566363befa2830ef441bdcb19198adf318faee86d64b",
    )
    assert node.fingerprint() == "1fddf42e"
    assert node.identifier().startswith("1fddf42e")
    assert node.address() == "13uVqa35BMo4mYq9LiZrXVzoz9EFZ6aoXe"
    assert node.address(compressed=False) == "133bJA2xoVqBUsiR3uSkciMo5r15fLAaZg"
    assert node.p2sh_p2wpkh_address() == "31vNN7WVDxjvc5XZVKW3qV4B3nFLxsRPnE"
    assert node.bech32_address() == "bc1qrlwlgt5d0sdtq882qvk3jc0sywucn76fwcmqma"
    assert node.address(network="bitcoin_testnet")[0] in ("m", "n")
    assert node.bech32_address(Network.TESTNET).startswith("tb1q")
