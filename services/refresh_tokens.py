"""
Server-side bookkeeping for refresh tokens.

Records are keyed by the SHA-256 of the token. Rotation and bulk revocation
are single conditional UPDATE statements, so two callers racing on the same
token can never both see it as live.
"""
from __future__ import annotations

from datetime import datetime
import logging
from typing import Optional

from models.base_model import utcnow
from models.refresh_token import RefreshToken
from utils.exceptions import AuthenticationFailed, InvalidToken
from utils.security import TokenCodec, hash_token

logger = logging.getLogger(__name__)


class RefreshTokenStore:
    def __init__(self, storage, codec: TokenCodec):
        self.storage = storage
        self.codec = codec

    def _record_for(self, user_id: str, refresh_token: str) -> RefreshToken:
        claims = self.codec.verify_refresh_token(refresh_token)
        if claims.user_id != str(user_id):
            raise InvalidToken("Token subject does not match user")
        return RefreshToken(
            token_hash=hash_token(refresh_token),
            user_id=str(user_id),
            issued_at=utcnow(),
            expires_at=claims.expires_at,
            revoked=False,
        )

    def store(self, user_id: str, refresh_token: str) -> RefreshToken:
        """Persist a freshly issued refresh token."""
        record = self._record_for(user_id, refresh_token)
        with self.storage.guard():
            self.storage.new(record)
            self.storage.save()
        return record

    def is_valid(self, refresh_token: str) -> bool:
        """True iff the token verifies and a live (not revoked, not expired) record exists."""
        try:
            self.codec.verify_refresh_token(refresh_token)
        except InvalidToken:
            return False
        with self.storage.guard():
            found = (
                self.storage.query(RefreshToken)
                .filter(
                    RefreshToken.token_hash == hash_token(refresh_token),
                    RefreshToken.revoked.is_(False),
                    RefreshToken.expires_at > utcnow(),
                )
                .first()
            )
        return found is not None

    def revoke(self, refresh_token: Optional[str], user_id: Optional[str] = None) -> bool:
        """
        Mark the token's record revoked. Idempotent: unknown, malformed and
        already revoked tokens are a no-op. Returns whether a row changed.
        """
        if not refresh_token:
            return False
        with self.storage.guard():
            query = self.storage.query(RefreshToken).filter(
                RefreshToken.token_hash == hash_token(refresh_token),
                RefreshToken.revoked.is_(False),
            )
            if user_id is not None:
                query = query.filter(RefreshToken.user_id == str(user_id))
            changed = query.update({"revoked": True, "revoked_at": utcnow()}, synchronize_session=False)
            self.storage.save()
        return changed > 0

    def revoke_all_for_user(self, user_id: str) -> int:
        """
        Revoke every live record of a user in one UPDATE. Anything pending in
        the session (e.g. a new password hash) is committed together with it.
        """
        with self.storage.guard():
            changed = (
                self.storage.query(RefreshToken)
                .filter(RefreshToken.user_id == str(user_id), RefreshToken.revoked.is_(False))
                .update({"revoked": True, "revoked_at": utcnow()}, synchronize_session=False)
            )
            self.storage.save()
        logger.info("revoked %d refresh token(s) for user %s", changed, user_id)
        return changed

    def rotate(self, old_token: str, user_id: str, new_token: str) -> RefreshToken:
        """
        Revoke old_token and store new_token in one transaction.

        The revoke only matches a live record; when another rotation got
        there first no row changes, nothing is stored and AuthenticationFailed
        is raised.
        """
        record = self._record_for(user_id, new_token)
        now = utcnow()
        with self.storage.guard():
            changed = (
                self.storage.query(RefreshToken)
                .filter(
                    RefreshToken.token_hash == hash_token(old_token),
                    RefreshToken.user_id == str(user_id),
                    RefreshToken.revoked.is_(False),
                    RefreshToken.expires_at > now,
                )
                .update({"revoked": True, "revoked_at": now}, synchronize_session=False)
            )
            if changed != 1:
                self.storage.rollback()
                logger.warning("refresh token rotation rejected for user %s", user_id)
                raise AuthenticationFailed("Invalid or expired refresh token")
            self.storage.new(record)
            self.storage.save()
        return record

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Delete records whose expiry has passed. Returns the number removed."""
        cutoff = now or utcnow()
        with self.storage.guard():
            removed = (
                self.storage.query(RefreshToken)
                .filter(RefreshToken.expires_at <= cutoff)
                .delete(synchronize_session=False)
            )
            self.storage.save()
        logger.info("purged %d expired refresh token(s)", removed)
        return removed
