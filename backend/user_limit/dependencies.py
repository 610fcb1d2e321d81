"""FastAPI dependencies for the admin API.

This module provides:
- require_admin: Bearer token check against ADMIN_API_TOKEN
- get_plugin: The process-wide UserLimitPlugin stored on app.state

Usage:
    @router.get("/retention/settings")
    def read_settings(
        _: None = Depends(require_admin),
        plugin: UserLimitPlugin = Depends(get_plugin),
    ):
        return plugin.config_store.get_config()
"""

import hmac

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from .config import Settings, get_settings
from .retention.plugin import UserLimitPlugin


# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def require_admin(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    settings: Settings = Depends(get_settings),
) -> None:
    """Reject requests that do not carry the admin token.

    Raises:
        HTTPException 401: If the token is missing or wrong
        HTTPException 503: If no admin token is configured
    """
    if not settings.ADMIN_API_TOKEN:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin API is disabled: ADMIN_API_TOKEN is not set",
        )

    if credentials is None or not hmac.compare_digest(
        credentials.credentials.encode(), settings.ADMIN_API_TOKEN.encode()
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing admin token",
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_plugin(request: Request) -> UserLimitPlugin:
    """Return the plugin created during application startup.

    Raises:
        HTTPException 503: If the application has not finished starting
    """
    plugin = getattr(request.app.state, "plugin", None)
    if plugin is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="User limit service is not initialized",
        )
    return plugin
