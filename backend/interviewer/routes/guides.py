# /interviewer/routes/guides.py

import logging
from fastapi import APIRouter, Request

from interviewer.config.settings import settings
from interviewer.models.api import APIResponse, GuideUpsertRequest
from interviewer.services.guide_service import guide_service
from interviewer.utils.rate_limiter import limiter

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/guides",
    tags=["Guides"]
)


@router.post("", response_model=APIResponse)
@limiter.limit("20/minute")
async def create_or_update_guide(request: Request, payload: GuideUpsertRequest):
    """Create a guide, or publish a new active version of an existing one with the same title."""
    result = await guide_service.create_or_update_guide(payload.title, payload.description, payload.questions)
    return APIResponse(
        success=True,
        message=f"Guide saved as version {result['version']}",
        data=result,
        version=settings.api_version
    )


@router.get("", response_model=APIResponse)
async def list_guides(request: Request):
    guides = await guide_service.list_guides()
    return APIResponse(
        success=True,
        message=f"Retrieved {len(guides)} guides",
        data={"guides": guides},
        version=settings.api_version
    )


@router.get("/{guide_id}", response_model=APIResponse)
async def get_guide(request: Request, guide_id: str):
    """The guide summary merged with the content of its active version."""
    guide = await guide_service.get_active_guide_content(guide_id)
    return APIResponse(
        success=True,
        message="Guide retrieved successfully",
        data=guide,
        version=settings.api_version
    )


@router.get("/{guide_id}/versions", response_model=APIResponse)
async def list_versions(request: Request, guide_id: str):
    versions = await guide_service.list_versions(guide_id)
    return APIResponse(
        success=True,
        message=f"Retrieved {len(versions)} versions",
        data={"versions": versions},
        version=settings.api_version
    )


@router.post("/{guide_id}/versions/{version_number}/activate", response_model=APIResponse)
@limiter.limit("20/minute")
async def activate_version(request: Request, guide_id: str, version_number: int):
    result = await guide_service.activate_version(guide_id, version_number)
    return APIResponse(
        success=True,
        message=result["message"],
        data={"guide_id": result["guide_id"], "version": result["version"]},
        version=settings.api_version
    )
