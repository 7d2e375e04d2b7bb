"""Shared route dependencies."""

from typing import Optional

from fastapi import Header

from ..config import settings
from .errors import ApiError


async def require_api_token(
    x_api_key: Optional[str] = Header(default=None, alias=settings.api_key_header),
) -> None:
    """Reject the request unless it carries the configured API key.

    Open when ``SYSTEM_API_TOKEN`` is empty.
    """
    token = settings.system_api_token.strip()
    if not token:
        return
    if x_api_key != token:
        raise ApiError(401, "Invalid API key", code="UNAUTHORIZED")
