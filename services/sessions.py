"""
Session lifecycle: signup, login, refresh, logout, logout-all, password
change and profile access.

One session is one refresh token lineage:
    ISSUED -> ROTATED (on every refresh) -> REVOKED
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError

from models.schemas.user import UserOutSchema
from models.user import DEFAULT_ROLE, Role, User, normalize_email
from services.refresh_tokens import RefreshTokenStore
from utils.exceptions import AuthenticationFailed, Conflict, InvalidToken, NotFound, ValidationFailed
from utils.security import PasswordManager, TokenCodec, TokenPair

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
INVALID_REFRESH = "Invalid or expired refresh token"

user_out_schema = UserOutSchema()


@dataclass(frozen=True)
class AuthResult:
    user: Dict[str, Any]
    tokens: TokenPair

    def to_dict(self) -> Dict[str, Any]:
        return {"user": self.user, "tokens": self.tokens.to_dict()}


def _require(**fields) -> None:
    """Reject missing or blank required values."""
    missing = {
        name: ["Missing data for required field."]
        for name, value in fields.items()
        if value is None or (isinstance(value, str) and not value.strip())
    }
    if missing:
        raise ValidationFailed(details=missing)


class SessionService:
    def __init__(self, storage, hasher: PasswordManager, codec: TokenCodec, tokens: RefreshTokenStore):
        self.storage = storage
        self.hasher = hasher
        self.codec = codec
        self.tokens = tokens

    # lookups

    def _find_by_email(self, email: str) -> Optional[User]:
        with self.storage.guard():
            return self.storage.query(User).filter(User.email == normalize_email(email)).first()

    def _find_by_id(self, user_id: str) -> Optional[User]:
        with self.storage.guard():
            return self.storage.get(User, str(user_id))

    def _get_user(self, user_id: str) -> User:
        user = self._find_by_id(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def _start_session(self, user: User) -> TokenPair:
        pair = self.codec.issue_pair(user)
        self.tokens.store(user.id, pair.refresh_token)
        return pair

    # flows

    def signup(
        self,
        email: str,
        password: str,
        full_name: str,
        role: Optional[Role] = None,
        phone_number: Optional[str] = None,
    ) -> AuthResult:
        _require(email=email, password=password, full_name=full_name)
        email = normalize_email(email)
        if self._find_by_email(email) is not None:
            raise Conflict("User with this email already exists")

        user = User(
            email=email,
            password_hash=self.hasher.hash(password),
            full_name=full_name.strip(),
            role=Role(role) if role else DEFAULT_ROLE,
            phone_number=phone_number or None,
            is_active=True,
            email_verified=False,
        )
        with self.storage.guard():
            self.storage.new(user)
            try:
                self.storage.save()
            except IntegrityError as exc:
                # lost a race against a concurrent signup for the same email
                raise Conflict("User with this email already exists") from exc

        pair = self._start_session(user)
        logger.info("user %s signed up with role %s", user.id, user.role.value)
        return AuthResult(user=user_out_schema.dump(user), tokens=pair)

    def login(self, email: str, password: str) -> AuthResult:
        _require(email=email, password=password)
        user = self._find_by_email(email)
        if user is None:
            # same cost as a real check so response time does not reveal the miss
            self.hasher.verify(password, None)
            raise AuthenticationFailed(INVALID_CREDENTIALS)
        if not self.hasher.verify(password, user.password_hash) or not user.is_active:
            logger.info("login rejected for user %s", user.id)
            raise AuthenticationFailed(INVALID_CREDENTIALS)

        if self.hasher.needs_rehash(user.password_hash):
            user.password_hash = self.hasher.hash(password)
            with self.storage.guard():
                self.storage.new(user)
                self.storage.save()

        pair = self._start_session(user)
        logger.info("user %s logged in", user.id)
        return AuthResult(user=user_out_schema.dump(user), tokens=pair)

    def refresh(self, refresh_token: str) -> TokenPair:
        _require(refresh_token=refresh_token)
        try:
            claims = self.codec.verify_refresh_token(refresh_token)
        except InvalidToken as exc:
            raise AuthenticationFailed(INVALID_REFRESH) from exc
        if not self.tokens.is_valid(refresh_token):
            raise AuthenticationFailed(INVALID_REFRESH)

        user = self._find_by_id(claims.user_id)
        if user is None or not user.is_active:
            logger.info("refresh rejected for user %s: account missing or inactive", claims.user_id)
            raise AuthenticationFailed(INVALID_REFRESH)

        pair = self.codec.issue_pair(user)
        self.tokens.rotate(refresh_token, user.id, pair.refresh_token)
        logger.info("rotated refresh token for user %s", user.id)
        return pair

    def logout(self, refresh_token: Optional[str] = None, user_id: Optional[str] = None) -> None:
        """Revoke the given token if any. Never fails for absent or unknown tokens."""
        if refresh_token:
            self.tokens.revoke(refresh_token, user_id=user_id)

    def logout_all(self, user_id: str) -> int:
        _require(user_id=user_id)
        return self.tokens.revoke_all_for_user(user_id)

    def change_password(self, user_id: str, current_password: str, new_password: str) -> None:
        _require(user_id=user_id, current_password=current_password, new_password=new_password)
        user = self._get_user(user_id)
        if not self.hasher.verify(current_password, user.password_hash):
            raise AuthenticationFailed("Current password is incorrect")

        # hash first, then revoke-all; revoke_all_for_user commits both together
        user.password_hash = self.hasher.hash(new_password)
        with self.storage.guard():
            self.storage.new(user)
        revoked = self.tokens.revoke_all_for_user(user.id)
        logger.info("password changed for user %s, %d session(s) revoked", user.id, revoked)

    def get_profile(self, user_id: str) -> Dict[str, Any]:
        return user_out_schema.dump(self._get_user(user_id))

    def update_profile(
        self,
        user_id: str,
        full_name: Optional[str] = None,
        phone_number: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Apply the non-blank values only; the others keep their stored value."""
        user = self._get_user(user_id)
        full_name = full_name.strip() if full_name else None
        phone_number = phone_number.strip() if phone_number else None
        if full_name:
            user.full_name = full_name
        if phone_number:
            user.phone_number = phone_number
        with self.storage.guard():
            self.storage.new(user)
            self.storage.save()
        return user_out_schema.dump(user)
