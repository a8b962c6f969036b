#  ApplePush - Python library for delivering notifications through the Apple Push Notification service
#  Copyright (C) 2024  Cypheriel
"""Module containing the JSON Web Token used for token-based provider authentication."""

from __future__ import annotations

import time
from logging import getLogger
from threading import Lock
from typing import Final, Self

import jwt
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric.ec import EllipticCurvePrivateKey
from cryptography.hazmat.primitives.serialization import load_pem_private_key

from ._exceptions import TokenError

TOKEN_TIMEOUT: Final = 3000
"""Seconds before a bearer is re-signed. APNs rejects tokens older than one hour."""

logger = getLogger(__name__)


class Token:
    """A provider authentication token, signed with an APNs auth key (ES256)."""

    def __init__(self: Self, auth_key: EllipticCurvePrivateKey, key_id: str, team_id: str) -> None:
        """
        Initialize the token.

        :param auth_key: The EC private key downloaded from the developer account.
        :param key_id: The 10-character key identifier of `auth_key`.
        :param team_id: The 10-character team identifier the key belongs to.
        """
        if not isinstance(auth_key, EllipticCurvePrivateKey):
            msg = f"Expected an EC private key, got {type(auth_key).__name__}."
            raise TokenError(msg)

        self.auth_key = auth_key
        self.key_id = key_id
        self.team_id = team_id

        self.issued_at: int = 0
        self.bearer: str = ""

        self._lock = Lock()

    @classmethod
    def from_key_bytes(cls: type[Self], data: bytes, key_id: str, team_id: str) -> Self:
        """
        Create a token from a PEM-encoded PKCS#8 auth key, as downloaded from the developer account.

        :raises TokenError: If the data is not a PEM private key, or the key is not an EC key.
        """
        try:
            auth_key = load_pem_private_key(data, password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            msg = f"Failed to load auth key {key_id}."
            raise TokenError(msg) from e

        return cls(auth_key, key_id, team_id)

    @property
    def expired(self: Self) -> bool:
        return time.time() >= self.issued_at + TOKEN_TIMEOUT

    def generate(self: Self) -> str:
        """Sign a new bearer, regardless of whether the current one has expired."""
        issued_at = int(time.time())

        try:
            bearer = jwt.encode(
                {"iss": self.team_id, "iat": issued_at},
                self.auth_key,
                algorithm="ES256",
                headers={"kid": self.key_id},
            )
        except (jwt.PyJWTError, ValueError, TypeError) as e:
            msg = f"Failed to sign provider token for key {self.key_id}."
            raise TokenError(msg) from e

        self.issued_at = issued_at
        self.bearer = bearer

        logger.debug(f"Signed new provider token for team {self.team_id} (key {self.key_id}).")

        return bearer

    def generate_if_expired(self: Self) -> str:
        """Return the current bearer, re-signing it first if it has expired."""
        with self._lock:
            if self.expired:
                return self.generate()

            return self.bearer
