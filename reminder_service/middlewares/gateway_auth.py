import secrets
from typing import Optional

from fastapi import Header

from reminder_service.config.settings import settings
from reminder_service.utils.errors import AuthenticationError, AuthorizationError

USER_ID_HEADER = "X-User-Id"
ADMIN_TOKEN_HEADER = "X-Admin-Token"


class AuthState:
    """Caller identity as asserted by the upstream gateway"""

    def __init__(self, user_id: int, is_admin: bool = False):
        self.user_id = user_id
        self.is_admin = is_admin


def get_current_user(
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
) -> AuthState:
    """Dependency resolving the calling user from the gateway header"""
    if not x_user_id:
        raise AuthenticationError("Not authenticated", "NOT_AUTHENTICATED")

    try:
        user_id = int(x_user_id)
    except ValueError:
        raise AuthenticationError("Invalid user id header", "INVALID_USER_ID")

    if user_id <= 0:
        raise AuthenticationError("Invalid user id header", "INVALID_USER_ID")

    return AuthState(user_id=user_id)


def require_admin(
    x_admin_token: Optional[str] = Header(default=None, alias=ADMIN_TOKEN_HEADER),
) -> AuthState:
    """Dependency guarding the admin notification routes"""
    if not x_admin_token:
        raise AuthenticationError("Admin token required", "NOT_AUTHENTICATED")

    configured = settings.ADMIN_API_TOKEN.strip()
    # Unset or still the "<...>" placeholder from an env template
    if not configured or configured.startswith("<"):
        raise AuthorizationError("Admin API is not configured", "ADMIN_API_DISABLED")

    if not secrets.compare_digest(x_admin_token.encode(), configured.encode()):
        raise AuthorizationError("Insufficient permissions", "INSUFFICIENT_PERMISSIONS")

    return AuthState(user_id=0, is_admin=True)
