"""FastAPI dependencies: runtime access and get_current_user_id.

Usage in any protected router:
    from src.pm_gateway.auth.dependencies import get_current_user_id

    @router.get("/protected")
    async def protected(user_id: str = Depends(get_current_user_id)):
        ...
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from src.pm_common.errors import AdminRequiredError, InvalidCredentialsError
from src.pm_gateway.auth.jwt_handler import decode_token
from src.runtime import PlatformRuntime

# tokenUrl points at the upstream identity provider
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


def get_runtime(request: Request) -> PlatformRuntime:
    runtime: PlatformRuntime = request.app.state.runtime
    return runtime


async def get_current_user_id(
    token: str = Depends(oauth2_scheme),
    runtime: PlatformRuntime = Depends(get_runtime),
) -> str:
    """Validate the JWT Bearer token and return its subject.

    Raises HTTP 401 if the token is missing, invalid, or expired.
    """
    settings = runtime.settings
    try:
        payload = decode_token(token, settings.JWT_SECRET, settings.JWT_ALGORITHM)
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None
    return payload["sub"]


async def require_admin(
    user_id: str = Depends(get_current_user_id),
    runtime: PlatformRuntime = Depends(get_runtime),
) -> str:
    """Verify the caller may manage markets (create, close, resolve)."""
    if user_id not in runtime.settings.ADMIN_USER_IDS:
        raise AdminRequiredError()
    return user_id
