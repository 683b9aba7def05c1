"""
Admin authentication for NextCap.

The license administration routes are protected by a shared secret sent
in the X-Admin-Password header. The expected value comes from
ADMIN_PASSWORD (see config.AdminConfig).

This is separate from license.py:
- The admin password authenticates operators of the license server
- License keys authenticate end users of the capture client
"""

import hmac
import logging
from typing import Optional

from fastapi import Security
from fastapi.security import APIKeyHeader

from errors import ErrorCode, raise_api_error

logger = logging.getLogger(__name__)

ADMIN_HEADER = "X-Admin-Password"

# FastAPI security scheme
admin_password_header = APIKeyHeader(name=ADMIN_HEADER, auto_error=False)

_default_password_warned = False


def verify_admin_password(candidate: Optional[str], expected: str) -> bool:
    """Compare a supplied admin password against the configured one (constant-time).

    Args:
        candidate: Value of the header, None if absent.
        expected: Configured admin password.

    Returns:
        True if they match.
    """
    if not candidate or not expected:
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


def _warn_default_password() -> None:
    global _default_password_warned
    if not _default_password_warned:
        logger.warning(
            "ADMIN_PASSWORD is not set; the default admin password is in use. "
            "Set ADMIN_PASSWORD before exposing the server."
        )
        _default_password_warned = True


async def require_admin_password(
    password: Optional[str] = Security(admin_password_header),
) -> None:
    """FastAPI dependency guarding the license administration routes.

    Raises 401 when the header is missing or does not match.
    """
    from config import get_config
    admin_config = get_config().admin

    if admin_config.uses_default_password:
        _warn_default_password()

    if not verify_admin_password(password, admin_config.password):
        logger.warning("Rejected admin request with missing or wrong %s header", ADMIN_HEADER)
        raise_api_error(ErrorCode.UNAUTHORIZED)
