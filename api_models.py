"""
Pydantic models for NextCap API.

This module centralizes request and response models to be shared across
the modular routers.
"""

from typing import Optional, Dict, Any
from datetime import datetime
from pydantic import BaseModel, Field

# API Version Constants
API_VERSION = "1"


class LicenseValidateRequest(BaseModel):
    """Request model for validating a license key."""
    key: Optional[str] = Field(default=None, description="License key as entered by the user")


class LicenseValidateResponse(BaseModel):
    """Response model for license validation."""
    valid: bool
    holder_name: Optional[str] = None
    reason: Optional[str] = None


class LicenseCreateRequest(BaseModel):
    """Request model for issuing a license.

    Fields are optional at the schema level so that missing values are
    reported with the license error codes rather than a generic 422.
    """
    holder_name: Optional[str] = Field(default=None, description="License holder display name")
    email: Optional[str] = Field(default=None, description="License holder email")
    expires_at: Optional[str] = Field(default=None, description="ISO 8601 expiry date, empty for no expiry")


class LicenseUpdateRequest(BaseModel):
    """Request model for toggling a license."""
    is_active: bool = Field(..., description="New value of the active flag")


class LicenseModel(BaseModel):
    """Model for a stored license."""
    id: int
    key: str
    holder_name: str
    email: str
    is_active: bool
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class SuccessResponse(BaseModel):
    """Response model for mutations without a body."""
    success: bool = True


class HealthResponse(BaseModel):
    """Response model for health check."""
    status: str
    timestamp: str
    database: Dict[str, Any]


class APIErrorDetail(BaseModel):
    error_code: str
    message: str
    details: Optional[Dict[str, Any]] = None


class APIErrorResponse(BaseModel):
    """Shape of errors raised through errors.raise_api_error."""
    detail: APIErrorDetail
