# /interviewer/models/session.py

from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict

from interviewer.models.guide import new_id, utc_now


class FollowUpPrompt(BaseModel):
    question_id: str
    prompt: str
    generated_at: datetime = Field(default_factory=utc_now)
    source_answer: str
    rule_id: Optional[str] = Field(default=None, description="Condition type of the rule that produced it")


class Answer(BaseModel):
    question_id: str
    text: str
    timestamp: datetime = Field(default_factory=utc_now)
    follow_ups: List[FollowUpPrompt] = Field(default_factory=list)


class SessionState(BaseModel):
    """
    Progress of one respondent through a guide version.

    PURE DATA: transitions live in interviewer.workflows.engine.
    `version` is bumped on every accepted answer and is used as the
    optimistic concurrency token when the state is written back.
    """
    current_question_id: Optional[str] = Field(default=None, description="None once the interview is complete")
    answered_questions: List[Answer] = Field(default_factory=list)
    is_complete: bool = False
    version: int = 1
    last_updated: datetime = Field(default_factory=utc_now)


class InterviewSession(BaseModel):
    id: str = Field(default_factory=new_id, alias="_id")
    guide_id: str
    # Bound at start; never changes even if the guide is re-activated later
    guide_version_id: str
    state: SessionState
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    model_config = ConfigDict(populate_by_name=True)
