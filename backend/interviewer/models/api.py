# /interviewer/models/api.py

from pydantic import BaseModel, Field, field_validator
from typing import List, Dict, Optional, Literal
from datetime import datetime, timezone

from interviewer.models.guide import Question

# This file contains Pydantic models that define the structure of data for
# API requests and responses, ensuring type safety and validation.


class APIResponse(BaseModel):
    success: bool
    message: str
    data: Optional[Dict] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: str


class ErrorResponse(BaseModel):
    success: bool = False
    error_code: str
    message: str


class GuideUpsertRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    questions: List[Question] = Field(..., min_length=1)

    @field_validator("title")
    @classmethod
    def title_must_not_be_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title cannot be blank")
        return v

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else v


class StartSessionRequest(BaseModel):
    guide_id: str = Field(..., min_length=1)


class SubmitAnswerRequest(BaseModel):
    question_id: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)


class ChatHistoryPart(BaseModel):
    text: str


class ChatHistoryItem(BaseModel):
    role: Literal["user", "model"]
    parts: List[ChatHistoryPart] = Field(default_factory=list)


class ChatRequest(BaseModel):
    history: List[ChatHistoryItem] = Field(default_factory=list)
    question: Optional[str] = None
