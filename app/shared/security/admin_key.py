"""
Admin API key check.

Admin routes require the ``X-Admin-Key`` header to match the configured
``ADMIN_API_KEY``. With no key configured every admin call is refused.
"""

import logging
import secrets
from typing import Optional

from fastapi import Depends, Header, Request

from app.core.config import settings

logger = logging.getLogger(__name__)

ADMIN_KEY_HEADER = "X-Admin-Key"


class AdminAccessError(Exception):
    """Raised when an admin route is called without valid credentials."""

    def __init__(self, status_code: int, error: str, detail: str) -> None:
        super().__init__(detail)
        self.status_code = status_code
        self.error = error
        self.detail = detail


def get_admin_api_key() -> Optional[str]:
    """Return the configured admin key (overridable in tests)."""
    return settings.admin_api_key


def require_admin_key(
    request: Request,
    x_admin_key: Optional[str] = Header(default=None, alias=ADMIN_KEY_HEADER),
    configured_key: Optional[str] = Depends(get_admin_api_key),
) -> None:
    """FastAPI dependency guarding admin routes.

    Raises:
        AdminAccessError: 500 when no key is configured, 401 when the
            header is missing or wrong.
    """
    if not configured_key:
        logger.warning("ADMIN_API_KEY not configured, admin access denied")
        raise AdminAccessError(
            500, "Administration not configured", "Contact the system administrator"
        )
    if not x_admin_key:
        raise AdminAccessError(
            401, "Unauthorized", f"{ADMIN_KEY_HEADER} header is required"
        )
    if not secrets.compare_digest(x_admin_key.encode(), configured_key.encode()):
        client = request.client.host if request.client else "unknown"
        logger.warning("Rejected admin key from %s", client)
        raise AdminAccessError(401, "Unauthorized", "Invalid API key")
