"""
security helpers:
- Argon2 password hashing via argon2-cffi
- JWT creation/verification via PyJWT, one secret per token class
- JTI generation for token identifiers
"""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Any

import jwt
from argon2 import PasswordHasher as Argon2Hasher
from argon2.exceptions import VerificationError, InvalidHashError

ACCESS = "access"
REFRESH = "refresh"

IDENTITY_CLAIMS = ("userId", "name", "email")


class TokenInvalid(Exception):
    """Raised for any token that fails verification (signature, expiry, shape)."""


class PasswordHasher:
    """Salted argon2id hashing. Every call to hash() draws a fresh salt."""

    def __init__(self, time_cost: int = 3, memory_cost: int = 65536, parallelism: int = 4):
        self._ph = Argon2Hasher(
            time_cost=time_cost, memory_cost=memory_cost, parallelism=parallelism
        )

    @classmethod
    def from_config(cls, config) -> "PasswordHasher":
        return cls(
            time_cost=config["ARGON2_TIME_COST"],
            memory_cost=config["ARGON2_MEMORY_COST"],
            parallelism=config["ARGON2_PARALLELISM"],
        )

    def hash(self, password: str) -> str:
        """Hash a plaintext password using Argon2
        """
        return self._ph.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        """ Verify a plaintext password against a stored argon2 hash
        """
        if not isinstance(password, str) or not isinstance(password_hash, str):
            return False
        try:
            return self._ph.verify(password_hash, password)
        except (VerificationError, InvalidHashError, UnicodeEncodeError):
            return False


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TokenIssuer:
    """
    Signs and verifies the two token classes. Access and refresh tokens use
    independent secrets, and the "type" claim is checked on top of that.
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_expires: timedelta = timedelta(hours=3),
        refresh_expires: timedelta = timedelta(days=1),
        algorithm: str = "HS256",
    ):
        if access_secret == refresh_secret:
            raise ValueError("access and refresh secrets must differ")
        self._secrets = {ACCESS: access_secret, REFRESH: refresh_secret}
        self._expires = {ACCESS: access_expires, REFRESH: refresh_expires}
        self.algorithm = algorithm

    @classmethod
    def from_config(cls, config) -> "TokenIssuer":
        return cls(
            access_secret=config["ACCESS_TOKEN_SECRET"],
            refresh_secret=config["REFRESH_TOKEN_SECRET"],
            access_expires=config["ACCESS_TOKEN_EXPIRES"],
            refresh_expires=config["REFRESH_TOKEN_EXPIRES"],
            algorithm=config["JWT_ALGORITHM"],
        )

    @property
    def refresh_expires(self) -> timedelta:
        return self._expires[REFRESH]

    def _issue(self, claims: Dict[str, Any], token_type: str) -> str:
        now = _now()
        payload = {key: claims[key] for key in IDENTITY_CLAIMS}
        payload.update(
            {
                "type": token_type,
                "jti": generate_jti(),
                "iat": int(now.timestamp()),
                "exp": int((now + self._expires[token_type]).timestamp()),
            }
        )
        return jwt.encode(payload, self._secrets[token_type], algorithm=self.algorithm)

    def _verify(self, token: str, expected_type: str) -> Dict[str, Any]:
        if not isinstance(token, str) or not token:
            raise TokenInvalid("Invalid token")
        try:
            decoded = jwt.decode(
                token,
                self._secrets[expected_type],
                algorithms=[self.algorithm],
                options={"require": ["exp", "iat"]},
            )
        except jwt.InvalidTokenError as exc:
            # expired, bad signature and malformed all end up here
            raise TokenInvalid("Invalid token") from exc

        if decoded.get("type") != expected_type:
            raise TokenInvalid("Invalid token")
        if any(key not in decoded for key in IDENTITY_CLAIMS):
            raise TokenInvalid("Invalid token")
        return {key: decoded[key] for key in IDENTITY_CLAIMS}

    def issue_access(self, claims: Dict[str, Any]) -> str:
        return self._issue(claims, ACCESS)

    def issue_refresh(self, claims: Dict[str, Any]) -> str:
        return self._issue(claims, REFRESH)

    def verify_access(self, token: str) -> Dict[str, Any]:
        """Return the identity claims of a valid access token, else raise TokenInvalid."""
        return self._verify(token, ACCESS)

    def verify_refresh(self, token: str) -> Dict[str, Any]:
        """Return the identity claims of a valid refresh token, else raise TokenInvalid."""
        return self._verify(token, REFRESH)
