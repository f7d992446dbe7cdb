# /interviewer/models/guide.py

from typing import Optional, List, Literal, Union, Annotated
from datetime import datetime, timezone
from bson import ObjectId
from pydantic import BaseModel, Field, ConfigDict, StringConstraints, field_validator

# Guide content is stored as immutable snapshots. A Question tree is owned by
# exactly one GuideVersion and is never edited in place once written.


def new_id() -> str:
    return str(ObjectId())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# --- Follow-up rule conditions (tagged by "type") ---

class KeywordsCondition(BaseModel):
    type: Literal["keywords"] = "keywords"
    value: List[Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]] = Field(
        ..., min_length=1, description="Keywords of interest"
    )


class LengthCondition(BaseModel):
    type: Literal["length"] = "length"
    value: int = Field(..., ge=0, description="Minimum number of words")


class SentimentCondition(BaseModel):
    type: Literal["sentiment"] = "sentiment"
    value: Literal["positive", "negative", "neutral"] = Field(..., description="Target sentiment")

    @field_validator("value", mode="before")
    @classmethod
    def lowercase_sentiment(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


RuleCondition = Annotated[
    Union[KeywordsCondition, LengthCondition, SentimentCondition],
    Field(discriminator="type"),
]


class FollowUpRule(BaseModel):
    """A condition plus the template used to phrase the follow-up it triggers."""
    condition: RuleCondition
    prompt_template: str = Field(..., min_length=1)
    # Non-positive means uncapped
    max_follow_ups: int = Field(default=-1)

    @property
    def rule_id(self) -> str:
        return self.condition.type


class Question(BaseModel):
    id: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)
    sub_questions: List["Question"] = Field(default_factory=list)
    follow_up_rules: List[FollowUpRule] = Field(default_factory=list)
    context_included: bool = Field(default=False, description="Include previous Q&A when generating follow-ups")


Question.model_rebuild()


class GuideContent(BaseModel):
    """The full question tree as it was at the time of a snapshot."""
    title: str
    description: Optional[str] = None
    questions: List[Question]
    version: int


class Guide(BaseModel):
    id: str = Field(default_factory=new_id, alias="_id")
    title: str
    description: Optional[str] = None
    current_version: int = 1
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    model_config = ConfigDict(populate_by_name=True)


class GuideVersion(BaseModel):
    id: str = Field(default_factory=new_id, alias="_id")
    guide_id: str
    version: int
    content: GuideContent
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)

    model_config = ConfigDict(populate_by_name=True)
