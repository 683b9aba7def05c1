"""
API error registry for the NextCap license server.

Admin routes fail through raise_api_error() so every error body has the
same ``{"detail": {error_code, message, details}}`` shape. The validation
route is the exception: it always answers with a validation result.
"""

from enum import Enum
from typing import Optional, Dict, Any
from fastapi import HTTPException, status


class ErrorCode(Enum):
    """
    Central registry of API error codes.
    Each code maps to an HTTP status and a default user-facing message.
    """
    # System (1xxx)
    INTERNAL_SERVER_ERROR = ("SYS_1001", status.HTTP_500_INTERNAL_SERVER_ERROR, "An unexpected internal server error occurred.")

    # Admin authentication (2xxx)
    UNAUTHORIZED = ("AUTH_2001", status.HTTP_401_UNAUTHORIZED, "Unauthorized")

    # License administration (3xxx)
    LICENSE_NOT_FOUND = ("LIC_3001", status.HTTP_404_NOT_FOUND, "License not found.")
    LICENSE_INVALID_REQUEST = ("LIC_3002", status.HTTP_400_BAD_REQUEST, "holder_name and email are required")
    LICENSE_INVALID_EXPIRY = ("LIC_3003", status.HTTP_400_BAD_REQUEST, "Invalid expires_at date format")
    LICENSE_KEY_EXHAUSTED = ("LIC_3004", status.HTTP_500_INTERNAL_SERVER_ERROR, "Could not generate a unique license key.")
    LICENSE_CREATE_FAILED = ("LIC_3005", status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to create license")

    # Database (5xxx)
    DATABASE_CONNECTION_ERROR = ("DB_5001", status.HTTP_503_SERVICE_UNAVAILABLE, "Failed to connect to the database.")
    DATABASE_QUERY_ERROR = ("DB_5002", status.HTTP_500_INTERNAL_SERVER_ERROR, "A database query error occurred.")

    def __init__(self, code: str, status_code: int, message: str):
        self.code = code
        self.status_code = status_code
        self.message = message

    def detail(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Body placed under ``detail`` in the error response."""
        return {
            "error_code": self.code,
            "message": message or self.message,
            "details": details,
        }


def raise_api_error(error_code: ErrorCode, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
    """Raise a structured HTTPException for a registered error code."""
    raise HTTPException(
        status_code=error_code.status_code,
        detail=error_code.detail(message, details),
    )
