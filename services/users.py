"""Administrative user operations: listing, role changes, (de)activation."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Tuple

from models.schemas.user import UserOutSchema
from models.user import Role, User
from services.refresh_tokens import RefreshTokenStore
from utils.exceptions import NotFound

logger = logging.getLogger(__name__)

MAX_LIMIT = 100

user_list_out_schema = UserOutSchema(many=True)
user_out_schema = UserOutSchema()


class UserAdminService:
    def __init__(self, storage, tokens: RefreshTokenStore):
        self.storage = storage
        self.tokens = tokens

    def _get_user(self, user_id: str) -> User:
        with self.storage.guard():
            user = self.storage.get(User, str(user_id))
        if user is None:
            raise NotFound("User not found")
        return user

    def list_users(self, page: int = 1, limit: int = 20) -> Tuple[List[Dict[str, Any]], int]:
        page = max(page, 1)
        limit = max(1, min(limit, MAX_LIMIT))
        with self.storage.guard():
            query = self.storage.query(User)
            total = query.count()
            rows = query.order_by(User.created_at.asc(), User.email.asc()).offset((page - 1) * limit).limit(limit).all()
        return user_list_out_schema.dump(rows), total

    def set_role(self, user_id: str, role: Role) -> Dict[str, Any]:
        """Takes effect on the user's next token refresh or login."""
        user = self._get_user(user_id)
        user.role = Role(role)
        with self.storage.guard():
            self.storage.new(user)
            self.storage.save()
        logger.info("user %s role set to %s", user.id, user.role.value)
        return user_out_schema.dump(user)

    def set_active(self, user_id: str, is_active: bool) -> Dict[str, Any]:
        user = self._get_user(user_id)
        user.is_active = bool(is_active)
        with self.storage.guard():
            self.storage.new(user)
            self.storage.save()
        if not user.is_active:
            self.tokens.revoke_all_for_user(user.id)
        logger.info("user %s active=%s", user.id, user.is_active)
        return user_out_schema.dump(user)
