"""
Shared service instances and helpers for the NextCap API.
"""

import logging
from typing import Optional

from database import get_db_manager, LicenseRepository

logger = logging.getLogger(__name__)

# Singletons for services
license_repository: Optional[LicenseRepository] = None

# Initialization state
init_complete = False
init_error = None


def get_license_repository() -> LicenseRepository:
    """Get or create singleton license repository.

    Used as a FastAPI dependency; tests override it with an in-memory store.
    """
    global license_repository
    if license_repository is None:
        license_repository = LicenseRepository(get_db_manager())
    return license_repository


def mark_init_complete():
    global init_complete, init_error
    init_complete = True
    init_error = None


def set_init_failed(error_msg: str):
    """Force an initialization failure state (primarily for testing)."""
    global init_complete, init_error
    init_complete = False
    init_error = error_msg


def reset_services():
    """Reset service singletons (primarily for testing)."""
    global license_repository, init_complete, init_error
    license_repository = None
    init_complete = False
    init_error = None
