# tests/test_crypto.py

import pytest

from ekiden_client.crypto import (
    AUTHORIZE_MESSAGE,
    Crypto,
    KeyPair,
    ensure_hex_prefix,
    normalize_address,
    normalize_public_key,
    strip_hex_prefix,
    validate_address,
    validate_public_key,
    validate_signature,
)
from ekiden_client.exceptions import CryptoError, ValidationError

PRIVATE_KEY = "0x" + "01" * 32


def test_key_pair_generation_formats_hex():
    key_pair = KeyPair.generate()

    assert key_pair.public_key().startswith("0x")
    assert len(key_pair.public_key()) == 66
    assert key_pair.private_key().startswith("0x")
    assert len(key_pair.private_key()) == 66


def test_key_pair_from_private_key_is_deterministic():
    first = KeyPair.from_private_key(PRIVATE_KEY)
    second = KeyPair.from_private_key(PRIVATE_KEY[2:])

    assert first.public_key() == second.public_key()
    assert first.private_key() == second.private_key() == PRIVATE_KEY


def test_invalid_private_key_raises():
    with pytest.raises(CryptoError):
        KeyPair.from_private_key("0x1234")
    with pytest.raises(CryptoError):
        KeyPair.from_private_key("zz" * 32)


def test_signature_round_trip():
    key_pair = KeyPair.generate()
    signature = key_pair.sign(b"hello")

    assert len(signature) == 130
    assert Crypto.verify_signature(b"hello", signature, key_pair.public_key())
    assert not Crypto.verify_signature(b"tampered", signature, key_pair.public_key())


def test_authorize_signature_verifies():
    key_pair = KeyPair.from_private_key(PRIVATE_KEY)
    assert Crypto.verify_signature(AUTHORIZE_MESSAGE, key_pair.sign_authorize(), key_pair.public_key())


def test_verify_signature_rejects_malformed_input():
    key_pair = KeyPair.generate()
    signature = key_pair.sign(b"x")

    with pytest.raises(CryptoError):
        Crypto.verify_signature(b"x", "0xnothex", key_pair.public_key())
    with pytest.raises(CryptoError):
        Crypto.verify_signature(b"x", signature[:-2], key_pair.public_key())
    with pytest.raises(CryptoError):
        Crypto.verify_signature(b"x", signature, "0x1234")


def test_keccak256_known_vector():
    assert Crypto.keccak256_hex(b"") == "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
    assert len(Crypto.keccak256(b"abc")) == 32


def test_address_from_public_key_is_last_20_bytes_of_hash():
    key_pair = KeyPair.from_private_key(PRIVATE_KEY)
    public_key_bytes = bytes.fromhex(key_pair.public_key()[2:])

    address = Crypto.generate_address_from_public_key(key_pair.public_key())

    assert address == "0x" + Crypto.keccak256(public_key_bytes)[12:].hex()
    validate_address(address)


def test_hex_prefix_helpers():
    assert ensure_hex_prefix("123") == "0x123"
    assert ensure_hex_prefix("0x123") == "0x123"
    assert strip_hex_prefix("0x123") == "123"
    assert strip_hex_prefix("123") == "123"


@pytest.mark.parametrize(
    "address",
    ["0x1234567890abcdef1234567890abcdef12345678", "1234567890abcdef1234567890abcdef12345678", "0x" + "ab" * 32],
)
def test_validate_address_accepts_short_and_long_forms(address):
    validate_address(address)


@pytest.mark.parametrize("address", ["0x123", "0xgg34567890abcdef1234567890abcdef12345678", ""])
def test_validate_address_rejects_bad_input(address):
    with pytest.raises(ValidationError):
        validate_address(address)


def test_validate_public_key_and_signature_lengths():
    validate_public_key("0x" + "ab" * 32)
    validate_signature("0x" + "cd" * 64)
    with pytest.raises(ValidationError):
        validate_public_key("0x123")
    with pytest.raises(ValidationError):
        validate_signature("0x123")


def test_normalization_lowercases_and_prefixes():
    assert normalize_address("1234567890ABCDEF1234567890ABCDEF12345678") == "0x1234567890abcdef1234567890abcdef12345678"
    assert normalize_public_key("AB" * 32) == "0x" + "ab" * 32


def test_key_pair_repr_hides_private_key():
    key_pair = KeyPair.from_private_key(PRIVATE_KEY)
    assert "01" * 32 not in repr(key_pair)
    assert key_pair.public_key() in repr(key_pair)
