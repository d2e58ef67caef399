# src/ekiden_client/crypto.py

from __future__ import annotations

import binascii

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey
from eth_utils import keccak

from ekiden_client.exceptions import CryptoError, ValidationError

AUTHORIZE_MESSAGE = b"AUTHORIZE"

_PRIVATE_KEY_BYTES = 32
_PUBLIC_KEY_BYTES = 32
_SIGNATURE_BYTES = 64


def _decode_hex(value: str, what: str) -> bytes:
    try:
        return binascii.unhexlify(strip_hex_prefix(value))
    except (binascii.Error, ValueError) as exc:
        raise CryptoError(f"Invalid {what} hex format") from exc


class Crypto:
    """Stateless signing, verification and hashing helpers."""

    @staticmethod
    def sign_message(message: bytes, private_key: Ed25519PrivateKey) -> str:
        return ensure_hex_prefix(private_key.sign(message).hex())

    @staticmethod
    def verify_signature(message: bytes, signature: str, public_key: str) -> bool:
        """
        Verifies an Ed25519 signature. Malformed input raises CryptoError;
        a well-formed signature that does not match returns False.
        """
        signature_bytes = _decode_hex(signature, "signature")
        public_key_bytes = _decode_hex(public_key, "public key")

        if len(signature_bytes) != _SIGNATURE_BYTES:
            raise CryptoError("Signature must be 64 bytes")
        if len(public_key_bytes) != _PUBLIC_KEY_BYTES:
            raise CryptoError("Public key must be 32 bytes")

        try:
            verifying_key = Ed25519PublicKey.from_public_bytes(public_key_bytes)
        except ValueError as exc:
            raise CryptoError("Invalid public key format") from exc

        try:
            verifying_key.verify(signature_bytes, message)
        except InvalidSignature:
            return False
        return True

    @staticmethod
    def private_key_from_hex(private_key_hex: str) -> Ed25519PrivateKey:
        raw = _decode_hex(private_key_hex, "private key")
        if len(raw) != _PRIVATE_KEY_BYTES:
            raise CryptoError("Invalid private key hex: expected 32 bytes")
        return Ed25519PrivateKey.from_private_bytes(raw)

    @staticmethod
    def public_key_from_private_key(private_key: Ed25519PrivateKey) -> str:
        raw = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        return ensure_hex_prefix(raw.hex())

    @staticmethod
    def generate_address_from_public_key(public_key: str) -> str:
        """Keccak-256 of the public key; the address is the last 20 bytes."""
        public_key_bytes = _decode_hex(public_key, "public key")
        if len(public_key_bytes) != _PUBLIC_KEY_BYTES:
            raise CryptoError("Public key must be 32 bytes")
        return ensure_hex_prefix(keccak(public_key_bytes)[12:].hex())

    @staticmethod
    def keccak256(data: bytes) -> bytes:
        return keccak(data)

    @staticmethod
    def keccak256_hex(data: bytes) -> str:
        return keccak(data).hex()


class KeyPair:
    """An Ed25519 key pair used for the authorize handshake and intent signing."""

    def __init__(self, private_key: Ed25519PrivateKey):
        self._private_key = private_key

    @classmethod
    def from_private_key(cls, private_key_hex: str) -> "KeyPair":
        return cls(Crypto.private_key_from_hex(private_key_hex))

    @classmethod
    def generate(cls) -> "KeyPair":
        return cls(Ed25519PrivateKey.generate())

    def private_key(self) -> str:
        raw = self._private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )
        return ensure_hex_prefix(raw.hex())

    def public_key(self) -> str:
        return Crypto.public_key_from_private_key(self._private_key)

    def sign(self, message: bytes) -> str:
        return Crypto.sign_message(message, self._private_key)

    def sign_authorize(self) -> str:
        return self.sign(AUTHORIZE_MESSAGE)

    def get_private_key(self) -> Ed25519PrivateKey:
        return self._private_key

    def __repr__(self) -> str:
        # Never include the private key.
        return f"KeyPair(public_key={self.public_key()!r})"


# --- Hex formatting and validation ---


def ensure_hex_prefix(hex_str: str) -> str:
    return hex_str if hex_str.startswith("0x") else f"0x{hex_str}"


def strip_hex_prefix(hex_str: str) -> str:
    return hex_str[2:] if hex_str.startswith("0x") else hex_str


def _validate_hex(value: str, lengths: tuple[int, ...], message: str, what: str) -> None:
    stripped = strip_hex_prefix(value)
    if len(stripped) not in lengths:
        raise ValidationError(message)
    try:
        binascii.unhexlify(stripped)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError(f"Invalid hex characters in {what}") from exc


def validate_address(address: str) -> None:
    """
    Accepts 20-byte (40 hex chars) and 32-byte (64 hex chars) account addresses,
    with or without the 0x prefix.
    """
    _validate_hex(
        address,
        (40, 64),
        "Address must be 40 or 64 hex characters (20 or 32 bytes)",
        "address",
    )


def validate_public_key(public_key: str) -> None:
    _validate_hex(public_key, (64,), "Public key must be 64 hex characters (32 bytes)", "public key")


def validate_signature(signature: str) -> None:
    _validate_hex(signature, (128,), "Signature must be 128 hex characters (64 bytes)", "signature")


def normalize_address(address: str) -> str:
    validate_address(address)
    return ensure_hex_prefix(strip_hex_prefix(address).lower())


def normalize_public_key(public_key: str) -> str:
    validate_public_key(public_key)
    return ensure_hex_prefix(strip_hex_prefix(public_key).lower())


def normalize_signature(signature: str) -> str:
    validate_signature(signature)
    return ensure_hex_prefix(strip_hex_prefix(signature).lower())
