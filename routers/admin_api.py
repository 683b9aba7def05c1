"""
License administration routes for NextCap.

All routes require the X-Admin-Password header (see auth.require_admin_password).
"""

import asyncio
import logging
from typing import List
from fastapi import APIRouter, Depends, status

from api_models import (
    LicenseCreateRequest, LicenseUpdateRequest, LicenseModel,
    SuccessResponse, APIErrorResponse,
)
from auth import require_admin_password
from config import get_config
from database import DatabaseError
from errors import ErrorCode, raise_api_error
from license import LicenseKeyCollisionError, issue_license
from license_utils import InvalidExpiryError, parse_expiry
from services import get_license_repository

logger = logging.getLogger(__name__)

admin_router = APIRouter(
    prefix="/admin/licenses",
    tags=["License Administration"],
    dependencies=[Depends(require_admin_password)],
    responses={401: {"model": APIErrorResponse}},
)


@admin_router.get("", response_model=List[LicenseModel])
async def list_licenses(store=Depends(get_license_repository)):
    """List all licenses, newest first."""
    try:
        records = await asyncio.to_thread(store.list_licenses)
        return [LicenseModel(**record.to_dict()) for record in records]
    except DatabaseError as e:
        logger.error(f"Failed to list licenses: {e}")
        raise_api_error(ErrorCode.DATABASE_QUERY_ERROR, details={"error": str(e)})


@admin_router.post(
    "",
    response_model=LicenseModel,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": APIErrorResponse}},
)
async def create_license(request: LicenseCreateRequest, store=Depends(get_license_repository)):
    """Issue a new license and return it with its generated key.

    Input is fully validated before anything is written.
    """
    holder_name = (request.holder_name or "").strip()
    email = (request.email or "").strip()
    if not holder_name or not email:
        raise_api_error(ErrorCode.LICENSE_INVALID_REQUEST)

    try:
        expires_at = parse_expiry(request.expires_at)
    except InvalidExpiryError:
        raise_api_error(ErrorCode.LICENSE_INVALID_EXPIRY, details={"expires_at": request.expires_at})

    license_config = get_config().license
    try:
        record = await asyncio.to_thread(
            issue_license,
            store,
            holder_name,
            email,
            expires_at,
            license_config.key_segments,
            license_config.key_segment_length,
            license_config.max_key_attempts,
        )
    except LicenseKeyCollisionError as e:
        logger.error(f"Error creating license: {e}")
        raise_api_error(ErrorCode.LICENSE_KEY_EXHAUSTED)
    except DatabaseError as e:
        logger.error(f"Error creating license: {e}")
        raise_api_error(ErrorCode.LICENSE_CREATE_FAILED, details={"error": str(e)})

    return LicenseModel(**record.to_dict())


@admin_router.patch(
    "/{license_id}",
    response_model=SuccessResponse,
    responses={404: {"model": APIErrorResponse}},
)
async def update_license(
    license_id: int,
    request: LicenseUpdateRequest,
    store=Depends(get_license_repository),
):
    """Activate or deactivate a license."""
    try:
        updated = await asyncio.to_thread(store.set_active, license_id, request.is_active)
    except DatabaseError as e:
        logger.error(f"Failed to update license {license_id}: {e}")
        raise_api_error(ErrorCode.DATABASE_QUERY_ERROR, details={"error": str(e)})

    if not updated:
        raise_api_error(ErrorCode.LICENSE_NOT_FOUND, details={"id": license_id})

    logger.info(f"License {license_id} {'activated' if request.is_active else 'deactivated'}")
    return SuccessResponse()


@admin_router.delete(
    "/{license_id}",
    response_model=SuccessResponse,
    responses={404: {"model": APIErrorResponse}},
)
async def delete_license(license_id: int, store=Depends(get_license_repository)):
    """Revoke a license by deleting it."""
    try:
        deleted = await asyncio.to_thread(store.delete_license, license_id)
    except DatabaseError as e:
        logger.error(f"Failed to delete license {license_id}: {e}")
        raise_api_error(ErrorCode.DATABASE_QUERY_ERROR, details={"error": str(e)})

    if not deleted:
        raise_api_error(ErrorCode.LICENSE_NOT_FOUND, details={"id": license_id})

    return SuccessResponse()
