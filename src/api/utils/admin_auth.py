"""
Admin API Key Authentication

Validates the operator key for the audit and maintenance endpoints.
"""

import hmac

from fastapi import Header, Request, status

from libs.result import Error
from src.api.error import ClientError
from src.domain.errors import ErrorCode


async def verify_admin_api_key(request: Request, x_admin_api_key: str = Header(None)):
    """
    Verify admin API key from X-Admin-API-Key header.

    An empty ADMIN_API_KEY disables the admin endpoints entirely.

    Raises:
        ClientError: 401 if key is missing or invalid

    Returns:
        True if valid
    """
    if not x_admin_api_key:
        raise ClientError(
            Error(ErrorCode.INVALID_CLIENT, "Admin API key required"),
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    valid_admin_key = request.app.state.config.ADMIN_API_KEY or ""
    if not valid_admin_key or not hmac.compare_digest(
        x_admin_api_key.encode(), valid_admin_key.encode()
    ):
        raise ClientError(
            Error(ErrorCode.INVALID_CLIENT, "Invalid admin API key"),
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    return True
