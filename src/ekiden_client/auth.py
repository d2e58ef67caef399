# src/ekiden_client/auth.py

from __future__ import annotations

import copy
import json
from typing import Any, Dict, Optional

from ekiden_client.crypto import (
    KeyPair,
    normalize_public_key,
    normalize_signature,
    validate_public_key,
    validate_signature,
)
from ekiden_client.exceptions import AuthError
from ekiden_client.types import AuthorizeParams, AuthorizeResponse, Model


class Auth:
    """
    Holds the signing key pair and the bearer token obtained from /authorize.

    The handshake is: sign the literal message ``AUTHORIZE`` with the Ed25519
    key, POST the signature and public key, store the returned token and send it
    as ``Authorization: Bearer <token>`` on private endpoints.
    """

    def __init__(self, key_pair: Optional[KeyPair] = None, token: Optional[str] = None):
        self._key_pair = key_pair
        self._token = token

    def with_key_pair(self, key_pair: KeyPair) -> "Auth":
        auth = copy.copy(self)
        auth._key_pair = key_pair
        return auth

    def with_private_key(self, private_key: str) -> "Auth":
        return self.with_key_pair(KeyPair.from_private_key(private_key))

    def with_token(self, token: str) -> "Auth":
        auth = copy.copy(self)
        auth._token = token
        return auth

    def token(self) -> Optional[str]:
        return self._token

    def set_token(self, token: str) -> None:
        self._token = token

    def clear_token(self) -> None:
        self._token = None

    def is_authenticated(self) -> bool:
        return self._token is not None

    def has_key_pair(self) -> bool:
        return self._key_pair is not None

    def public_key(self) -> Optional[str]:
        return self._key_pair.public_key() if self._key_pair else None

    def ensure_key_pair(self) -> KeyPair:
        if self._key_pair is None:
            raise AuthError("No key pair available. Please set a private key.")
        return self._key_pair

    def ensure_authenticated(self) -> None:
        if self._token is None:
            raise AuthError("Not authenticated. Please call authorize() first.")

    def generate_authorize_params(self) -> AuthorizeParams:
        """Signs the authorize message and returns the normalized /authorize body."""
        key_pair = self.ensure_key_pair()
        signature = key_pair.sign_authorize()
        public_key = key_pair.public_key()

        validate_signature(signature)
        validate_public_key(public_key)

        return AuthorizeParams(
            signature=normalize_signature(signature),
            public_key=normalize_public_key(public_key),
        )

    def process_authorize_response(self, response: AuthorizeResponse) -> None:
        self._token = response.token

    def sign_message(self, message: bytes) -> str:
        return normalize_signature(self.ensure_key_pair().sign(message))

    def sign_json(self, data: Any) -> str:
        """Signs the compact JSON encoding of ``data`` (models are converted first)."""
        if isinstance(data, Model):
            data = data.to_dict()
        payload = json.dumps(data, separators=(",", ":"))
        return self.sign_message(payload.encode())

    def bearer_token(self) -> Optional[str]:
        return f"Bearer {self._token}" if self._token else None

    def auth_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def __repr__(self) -> str:
        # Intentionally omit the token to avoid leaking it via logs.
        return (
            "Auth("
            f"has_key_pair={self.has_key_pair()!r}, "
            f"authenticated={self.is_authenticated()!r})"
        )


class AuthBuilder:
    def __init__(self) -> None:
        self._auth = Auth()

    def private_key(self, private_key: str) -> "AuthBuilder":
        self._auth = self._auth.with_private_key(private_key)
        return self

    def key_pair(self, key_pair: KeyPair) -> "AuthBuilder":
        self._auth = self._auth.with_key_pair(key_pair)
        return self

    def token(self, token: str) -> "AuthBuilder":
        self._auth = self._auth.with_token(token)
        return self

    def build(self) -> Auth:
        return self._auth
