"""
security helpers:
- Argon2 password hashing via argon2-cffi
- JWT access/refresh token creation and verification via PyJWT
- token hashing for server-side refresh token records
"""
from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from models.user import Role
from utils.exceptions import InvalidToken

ACCESS = "access"
REFRESH = "refresh"


class PasswordManager:
    """Opaque hash/verify capability; cost parameters are fixed at construction."""

    def __init__(self, time_cost: int = 3, memory_cost: int = 65536, parallelism: int = 4):
        self._ph = PasswordHasher(time_cost=time_cost, memory_cost=memory_cost, parallelism=parallelism)
        # verified against when the user does not exist so timing stays the same
        self._dummy_hash = self._ph.hash(secrets.token_urlsafe(16))

    def hash(self, password: str) -> str:
        """Hash a plaintext password using Argon2
        """
        return self._ph.hash(password)

    def verify(self, password: str, password_hash: Optional[str]) -> bool:
        """ Verify a plaintext password using argon2
        """
        try:
            return self._ph.verify(password_hash or self._dummy_hash, password)
        except (VerifyMismatchError, VerificationError, InvalidHashError):
            return False

    def needs_rehash(self, password_hash: str) -> bool:
        return self._ph.check_needs_rehash(password_hash)


def hash_token(token: str) -> str:
    """SHA-256 hex digest used as the lookup key for refresh token records."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _from_timestamp(value: int) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class AccessClaims:
    user_id: str
    role: Role
    expires_at: datetime


@dataclass(frozen=True)
class RefreshClaims:
    user_id: str
    token_id: str
    expires_at: datetime


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "token_type": "bearer",
            "expires_in": self.expires_in,
        }


class TokenCodec:
    """
    Encodes and verifies signed, expiring tokens.

    Access and refresh tokens are signed with independent secrets so that
    leaking one key does not let anyone forge the other kind of token.
    The codec holds no mutable state; `clock` exists for tests.
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_expires: timedelta = timedelta(minutes=15),
        refresh_expires: timedelta = timedelta(days=7),
        algorithm: str = "HS256",
        issuer: str = "session-auth-api",
        clock: Callable[[], datetime] = _utcnow,
    ):
        if not access_secret or not refresh_secret:
            raise ValueError("both token secrets must be set")
        if access_secret == refresh_secret:
            raise ValueError("access and refresh token secrets must differ")
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self.access_expires = access_expires
        self.refresh_expires = refresh_expires
        self.algorithm = algorithm
        self.issuer = issuer
        self._clock = clock

    @classmethod
    def from_config(cls, config) -> "TokenCodec":
        return cls(
            access_secret=config["ACCESS_TOKEN_SECRET"],
            refresh_secret=config["REFRESH_TOKEN_SECRET"],
            access_expires=config["ACCESS_TOKEN_EXPIRES"],
            refresh_expires=config["REFRESH_TOKEN_EXPIRES"],
            algorithm=config["JWT_ALGORITHM"],
            issuer=config["JWT_ISSUER"],
        )

    def _claims(self, subject: str, token_type: str, lifetime: timedelta) -> Dict[str, Any]:
        now = self._clock()
        return {
            "iss": self.issuer,
            "sub": str(subject),
            "iat": int(now.timestamp()),
            "exp": int((now + lifetime).timestamp()),
            "type": token_type,
        }

    def issue_access_token(self, user) -> str:
        payload = self._claims(user.id, ACCESS, self.access_expires)
        payload["role"] = Role(user.role).value
        return jwt.encode(payload, self._access_secret, algorithm=self.algorithm)

    def issue_refresh_token(self, user) -> str:
        payload = self._claims(user.id, REFRESH, self.refresh_expires)
        # random component keeps concurrent issuances for one user distinct
        payload["jti"] = secrets.token_urlsafe(24)
        return jwt.encode(payload, self._refresh_secret, algorithm=self.algorithm)

    def issue_pair(self, user) -> TokenPair:
        return TokenPair(
            access_token=self.issue_access_token(user),
            refresh_token=self.issue_refresh_token(user),
            expires_in=int(self.access_expires.total_seconds()),
        )

    def _decode(self, token: str, secret: str, expected_type: str) -> Dict[str, Any]:
        """
        Decode and validate a JWT. Raises InvalidToken on invalid signature,
        malformed payload, expiry or wrong token type.
        """
        if not token or not isinstance(token, str):
            raise InvalidToken("Token missing")
        try:
            decoded = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={"require": ["exp", "iat", "sub", "type"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise InvalidToken("Token expired") from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidToken(f"Invalid token: {exc}") from exc

        if decoded.get("type") != expected_type:
            raise InvalidToken("Wrong token type")
        if not decoded.get("sub"):
            raise InvalidToken("Token has no subject")
        return decoded

    def verify_access_token(self, token: str) -> AccessClaims:
        decoded = self._decode(token, self._access_secret, ACCESS)
        try:
            role = Role(decoded.get("role"))
        except ValueError as exc:
            raise InvalidToken("Unknown role claim") from exc
        return AccessClaims(user_id=decoded["sub"], role=role, expires_at=_from_timestamp(decoded["exp"]))

    def verify_refresh_token(self, token: str) -> RefreshClaims:
        decoded = self._decode(token, self._refresh_secret, REFRESH)
        token_id = decoded.get("jti")
        if not token_id:
            raise InvalidToken("Token has no id")
        return RefreshClaims(user_id=decoded["sub"], token_id=token_id, expires_at=_from_timestamp(decoded["exp"]))
