import logging

import pytest

from hdtree.constants import CURVE_ORDER, Network
from hdtree.crypto.keys import PrivateKey, PublicKey
from hdtree.exceptions import (
    InvalidKey, KeyFormatNotFound, RNGFailure, TooManyAttempts, UnknownNetworkError,
)

SECRET = "5eae5375fb5f7a0ea650566363befa2830ef441bdcb19198adf318faee86d64b"
UNCOMPRESSED = (
    "042dfc2557a007c93092c2915f11e8aa70c4f399a6753e2e908330014091580e4b"
    "11203096f1a1c5276a73f91b9465357004c2103cc42c63d6d330df589080d2e4"
)
COMPRESSED = "022dfc2557a007c93092c2915f11e8aa70c4f399a6753e2e908330014091580e4b"


def test_known_vector_from_private_key():
    pub = PrivateKey(SECRET).public_key()

    assert len(pub.uncompressed().hex()) == 130
    assert pub.uncompressed().hex() == UNCOMPRESSED
    assert len(pub.hex()) == 66
    assert pub.hex() == COMPRESSED
    assert pub.fingerprint() == "1fddf42e"
    assert pub.uncompressed().p2pkh_address() == "133bJA2xoVqBUsiR3uSkciMo5r15fLAaZg"
    assert pub.p2pkh_address() == "13uVqa35BMo4mYq9LiZrXVzoz9EFZ6aoXe"
    assert pub.p2wpkh_address() == "bc1qrlwlgt5d0sdtq882qvk3jc0sywucn76fwcmqma"
    assert pub.p2sh_p2wpkh_address() == "31vNN7WVDxjvc5XZVKW3qV4B3nFLxsRPnE"


def test_known_vector_from_uncompressed_point():
    pub = PublicKey(UNCOMPRESSED)

    assert not pub.is_compressed
    assert pub.hex() == UNCOMPRESSED
    assert pub.compressed().hex() == COMPRESSED
    assert pub.compressed().fingerprint() == "1fddf42e"
    assert pub.p2pkh_address() == "133bJA2xoVqBUsiR3uSkciMo5r15fLAaZg"
    assert pub.compressed().p2pkh_address() == "13uVqa35BMo4mYq9LiZrXVzoz9EFZ6aoXe"
    # the witness program follows the current view
    assert pub.p2sh_p2wpkh_address() == "3JUBTtepUbTZgUtjbde7UANs5cey8N57xa"


def test_views_do_not_mutate_source():
    pub = PublicKey(COMPRESSED)
    before = pub.point
    pub.uncompressed()
    assert pub.point == before
    assert pub.is_compressed

    pub = PublicKey(UNCOMPRESSED)
    before = pub.point
    pub.compressed()
    assert pub.point == before
    assert not pub.is_compressed


def test_compression_roundtrip():
    pub = PrivateKey(SECRET).public_key()
    assert pub.uncompressed().compressed().point == pub.point
    assert pub.compressed().uncompressed().point == pub.uncompressed().point
    assert pub.uncompressed() == pub


def test_recalculating_public_key_is_stable():
    results = {PublicKey(UNCOMPRESSED).point for _ in range(100)}
    assert len(results) == 1
    views = {PublicKey(COMPRESSED).uncompressed().compressed().hex() for _ in range(100)}
    assert views == {COMPRESSED}


def test_bad_public_key():
    with pytest.raises(KeyFormatNotFound):
        PublicKey("THISISNOTAVALIDKEY")
    with pytest.raises(KeyFormatNotFound):
        # right prefix and length, but not a point on the curve
        PublicKey("04" + "11" * 64)


def test_wobine_vector():
    key = PrivateKey("A0DC65FFCA799873CBEA0AC274015B9526505DAAAED385155425F7337704883E")
    assert key.hex() == "a0dc65ffca799873cbea0ac274015b9526505daaaed385155425f7337704883e"
    pub = PublicKey(key)
    assert pub.hex() == "020791dc70b75aa995213244ad3f4886d74d61ccd3ef658243fcad14c9ccee2b0a"
    assert pub.uncompressed().hex() == (
        "040791dc70b75aa995213244ad3f4886d74d61ccd3ef658243fcad14c9ccee2b0a"
        "a762fbc6ac0921b8f17025bb8458b92794ae87a133894d70d7995fc0b6b5ab90"
    )


def test_private_key_forms():
    key = PrivateKey(1)
    assert key.secret == b"\x00" * 31 + b"\x01"
    assert key.to_int() == 1
    assert key.decimal() == "1"
    assert PrivateKey(key.secret) == key
    assert PrivateKey(key) == key
    assert "0000" in repr(key)
    assert key.public_key().p2pkh_address() == "1BgGZ9tcN4rm9KBzDn7KprQz87SZ26SAMH"
    assert key.public_key(compressed=False).p2pkh_address() == "1EHNa6Q4Jz2uvNExL497mE43ikXhwF6kZm"


def test_private_key_range():
    with pytest.raises(InvalidKey):
        PrivateKey(0)
    with pytest.raises(InvalidKey):
        PrivateKey(CURVE_ORDER)
    assert PrivateKey(CURVE_ORDER - 1).to_int() == CURVE_ORDER - 1


def test_private_key_wif():
    key = PrivateKey("0c28fca386c7a227600b2fe50b7cae11ec86d3bf1fbe471be89827e19d72aa1d")
    assert key.wif(compressed=False) == "5HueCGU8rMjxEXxiPuD5BDku4MkFqeZyd4dZ1jvhTVqvbTLvyTJ"
    assert key.wif() == "KwdMAjGmerYanjeui5SHS7JkmpZvVipYvB2LJGU1ZxJwYvP98617"

    imported, compressed, net = PrivateKey.from_wif(key.wif(Network.TESTNET))
    assert imported == key
    assert compressed is True
    assert net == Network.TESTNET

    with pytest.raises(KeyFormatNotFound):
        PrivateKey.from_wif("5HueCGU8rMjxEXxiPuD5BDku4MkFqeZyd4dZ1jvhTVqvbTLvyTj")


def test_private_key_wif_unknown_version():
    from hdtree.utils.encoding import encode_base58_check
    with pytest.raises(UnknownNetworkError):
        PrivateKey.from_wif(encode_base58_check(b"\x30" + b"\x01" * 32))


def test_create_is_bounded(caplog):
    assert isinstance(PrivateKey.create(), PrivateKey)
    with caplog.at_level(logging.WARNING, logger="hdtree.crypto.keys"):
        with pytest.raises(TooManyAttempts) as exc:
            PrivateKey.create(entropy=lambda n: b"\x00" * n, attempts=3)
    assert exc.value.attempts == 3
    assert len([r for r in caplog.records if r.levelno == logging.WARNING]) == 3
    assert len([r for r in caplog.records if r.levelno == logging.ERROR]) == 1
    with pytest.raises(RNGFailure):
        PrivateKey.create(entropy=lambda n: b"\x01" * (n - 1))


def test_tweak_add_to_infinity():
    key = PrivateKey(5)
    pub = key.public_key()
    with pytest.raises(InvalidKey):
        pub.tweak_add((CURVE_ORDER - 5).to_bytes(32, "big"))
    assert pub.tweak_add((1).to_bytes(32, "big")) == PrivateKey(6).public_key()


def test_testnet_addresses_start_with_m_or_n():
    pub = PrivateKey.create().public_key()
    assert pub.p2pkh_address(Network.TESTNET)[0] in ("m", "n")
    assert pub.uncompressed().p2pkh_address(Network.TESTNET)[0] in ("m", "n")
    assert pub.p2wpkh_address(Network.TESTNET).startswith("tb1q")
    assert pub.p2sh_p2wpkh_address(Network.TESTNET).startswith("2")

    watch_only = PublicKey("0297b033ba894611345a0e777861237ef1632370fbd58ebe644eb9f3714e8fe2bc")
    assert watch_only.p2pkh_address("bitcoin_testnet")[0] in ("m", "n")
