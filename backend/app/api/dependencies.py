from typing import Optional
from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from app.core.errors import ForbiddenError, UnauthorizedError
from app.core.security import InvalidTokenError, TokenCodec, token_codec
from app.services.auth_service import AuthService, auth_service

UNKNOWN_DEVICE = "Unknown device"

# Parses 'Authorization: Bearer <token>'; yields None instead of raising so the
# 401 body stays in the app's own error format
bearer_scheme = HTTPBearer(auto_error=False)


def get_token_codec() -> TokenCodec:
    return token_codec


def get_auth_service() -> AuthService:
    return auth_service


def _require_token(credentials: Optional[HTTPAuthorizationCredentials]) -> str:
    # None covers a missing header, a non-Bearer scheme and an empty token
    if credentials is None:
        raise UnauthorizedError("Unauthorized: No token provided")
    return credentials.credentials


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    codec: TokenCodec = Depends(get_token_codec),
) -> str:
    """
    Authenticate a request by its access token.

    Used in route handlers that require a signed-in user. The token is
    verified by signature and expiry alone - no database lookup - so a
    missing header is 401 and a token that fails verification is 403.
    """
    token = _require_token(credentials)
    try:
        return codec.verify_access(token)
    except InvalidTokenError:
        raise ForbiddenError("Forbidden: Invalid token")


async def get_session_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """
    Extract the session-termination token for logout.

    Logout expects the refresh token in the Authorization header, not the
    access token, so it is only extracted here; the auth service verifies it.
    """
    return _require_token(credentials)


def get_device_info(user_agent: Optional[str] = Header(default=None)) -> str:
    return user_agent or UNKNOWN_DEVICE
