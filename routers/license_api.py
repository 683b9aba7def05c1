"""
License validation route for the NextCap capture client.
"""

import asyncio
import logging
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from api_models import LicenseValidateRequest, LicenseValidateResponse
from license import DenialReason, ValidationResult, validate_license_key
from services import get_license_repository

logger = logging.getLogger(__name__)

license_router = APIRouter(tags=["License"])


@license_router.post(
    "/license/validate",
    response_model=LicenseValidateResponse,
    response_model_exclude_none=True,
)
async def validate_license(
    request: LicenseValidateRequest,
    store=Depends(get_license_repository),
):
    """Check whether a key currently grants access to capture.

    Always answers with ``{valid, holder_name?, reason?}`` so the client can
    show the reason verbatim.
    """
    if not request.key:
        result = ValidationResult.denied(DenialReason.MISSING_KEY)
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=result.to_dict())

    try:
        result = await asyncio.to_thread(validate_license_key, request.key, store)
    except Exception as e:
        logger.error(f"License validation error: {e}")
        result = ValidationResult.denied(DenialReason.SERVER_ERROR)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=result.to_dict())

    return result.to_dict()
