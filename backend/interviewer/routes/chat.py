# /interviewer/routes/chat.py

import logging
from fastapi import APIRouter, Request

from interviewer.config.settings import settings
from interviewer.models.api import APIResponse, ChatRequest
from interviewer.services.ai_service import ai_service
from interviewer.utils.exceptions import ValidationError
from interviewer.utils.rate_limiter import limiter

# Free-form passthrough to the text-generation capability, continuing a
# client-held conversation history. No session state is involved.

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Chat"])


@router.post("/chat", response_model=APIResponse)
@limiter.limit("30/minute")
async def chat(request: Request, payload: ChatRequest):
    question = (payload.question or "").strip()
    if not question:
        raise ValidationError("Question is required")

    history = [
        (item.role, " ".join(part.text for part in item.parts))
        for item in payload.history
    ]
    answer = await ai_service.chat(question, history)
    logger.info(f"Chat answered with {len(history)} prior turns")

    return APIResponse(
        success=True,
        message="Chat response generated",
        data={"answer": answer},
        version=settings.api_version
    )
