# /interviewer/routes/sessions.py

import logging
from fastapi import APIRouter, Request, status
from fastapi.encoders import jsonable_encoder

from interviewer.config.settings import settings
from interviewer.models.api import APIResponse, StartSessionRequest, SubmitAnswerRequest
from interviewer.services.session_service import session_service
from interviewer.utils.rate_limiter import limiter

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/sessions",
    tags=["Sessions"]
)


@router.post("", response_model=APIResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
async def start_session(request: Request, payload: StartSessionRequest):
    """Start an interview on the guide's active version."""
    result = await session_service.start_session(payload.guide_id)
    return APIResponse(
        success=True,
        message="Session started",
        data=jsonable_encoder(result),
        version=settings.api_version
    )


@router.get("/{session_id}", response_model=APIResponse)
async def get_session(request: Request, session_id: str):
    result = await session_service.get_session(session_id)
    return APIResponse(
        success=True,
        message="Session retrieved successfully",
        data=jsonable_encoder(result, by_alias=False),
        version=settings.api_version
    )


@router.post("/{session_id}/answer", response_model=APIResponse)
@limiter.limit("60/minute")
async def submit_answer(request: Request, session_id: str, payload: SubmitAnswerRequest):
    """
    Record an answer to the current question.

    Returns the next question (null once the interview is complete) and any
    follow-up prompts generated for the answer.
    """
    result = await session_service.submit_answer(session_id, payload.question_id, payload.answer)
    return APIResponse(
        success=True,
        message="Interview complete" if result["is_complete"] else "Answer recorded",
        data=jsonable_encoder(result),
        version=settings.api_version
    )
