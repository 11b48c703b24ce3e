from __future__ import annotations
from functools import wraps
from typing import Iterable

from flask import current_app, request

from utils.exceptions import AuthenticationFailed, InvalidToken, Unauthenticated
from utils.rbac import ADMIN_ONLY, Identity, authorize, authorize_owner_or_role, role_set


def _identity_from_request() -> Identity:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        raise Unauthenticated("Missing or invalid Authorization header")
    token = auth.split(" ", 1)[1].strip()
    codec = current_app.extensions["token_codec"]
    try:
        claims = codec.verify_access_token(token)
    except InvalidToken as exc:
        raise AuthenticationFailed("Invalid or expired access token") from exc
    return Identity(user_id=claims.user_id, role=claims.role)


def jwt_required():
    """Verify the bearer access token and pass it to the view as `identity`."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            kwargs["identity"] = _identity_from_request()
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def roles_required(roles: Iterable):
    """
    Allow access if the caller's role is one of `roles`.
    The role set is normalized and validated when the view is decorated.
    """
    allowed = role_set(roles)

    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            authorize(kwargs.get("identity"), allowed)
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def owner_or_roles_required(owner_param: str = "user_id", roles: Iterable = ADMIN_ONLY):
    """Allow the user named by the `owner_param` URL argument, or a privileged role."""
    privileged = role_set(roles)

    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            authorize_owner_or_role(kwargs.get("identity"), kwargs.get(owner_param), privileged)
            return fn(*args, **kwargs)

        return wrapper

    return decorator
