# backend/app/schemas/briefs.py
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_LINKEDIN_URL_LEN = 2048
MAX_CUSTOM_GOAL_LEN = 500


class MeetingGoal(str, Enum):
    NETWORKING = "networking"
    SALES = "sales"
    HIRING = "hiring"
    INVESTOR = "investor"
    PARTNER = "partner"
    GENERAL = "general"
    CUSTOM = "custom"


def _blank_to_none(v):
    if v is None:
        return None
    if isinstance(v, str):
        stripped = v.strip()
        return stripped or None
    return v


def _check_custom_goal(v: str | None) -> str | None:
    if v is not None and len(v) > MAX_CUSTOM_GOAL_LEN:
        raise ValueError(
            f"custom_goal must be at most {MAX_CUSTOM_GOAL_LEN} characters"
        )
    return v


class BriefGenerateRequest(BaseModel):
    linkedin_url: str
    meeting_goal: str
    custom_goal: str | None = None

    @field_validator("meeting_goal", "custom_goal", mode="before")
    @classmethod
    def _strip(cls, v):
        return _blank_to_none(v)

    @field_validator("linkedin_url")
    @classmethod
    def validate_linkedin_url(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("linkedin_url must not be empty")
        if len(v) > MAX_LINKEDIN_URL_LEN:
            raise ValueError("linkedin_url is too long")
        return v

    @field_validator("custom_goal")
    @classmethod
    def validate_custom_goal(cls, v: str | None) -> str | None:
        return _check_custom_goal(v)


class BriefRefreshRequest(BaseModel):
    # Omitted goal keeps the stored one
    meeting_goal: str | None = None
    custom_goal: str | None = None

    @field_validator("meeting_goal", "custom_goal", mode="before")
    @classmethod
    def _strip(cls, v):
        return _blank_to_none(v)

    @field_validator("custom_goal")
    @classmethod
    def validate_custom_goal(cls, v: str | None) -> str | None:
        return _check_custom_goal(v)


class BriefPatchRequest(BaseModel):
    is_saved: bool


class BriefOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    linkedin_url: str
    meeting_goal: str
    profile_name: str | None = None
    profile_headline: str | None = None
    profile_photo_url: str | None = None
    profile_location: str | None = None
    profile_company: str | None = None
    profile_data: dict[str, Any]
    summary: str
    talking_points: list[str]
    common_ground: list[str]
    icebreaker: str
    questions: list[str]
    is_saved: bool
    created_at: datetime
    updated_at: datetime


class BriefListOut(BaseModel):
    briefs: list[BriefOut]
    total: int
    page: int
    limit: int
    has_more: bool


class UsageStatsOut(BaseModel):
    plan: str
    limit: int
    used: int
    remaining: int
    total_briefs: int
    period_start: datetime


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str | None = None
    name: str | None = None
    company: str | None = None
    role: str | None = None
    plan: str
    linkedin_url: str | None = None
    linkedin_data: dict[str, Any] | None = None


class LinkedInConnectRequest(BaseModel):
    linkedin_url: str


# -----------------------------------------------------------------------------
# Generation output
# -----------------------------------------------------------------------------

ENHANCED_INSIGHT_FIELDS = (
    "personality_insights",
    "communication_style",
    "rapport_tips",
    "potential_challenges",
    "meeting_strategy",
    "follow_up_hooks",
    "linkedin_dm_template",
    "email_template",
)


class GenerationResult(BaseModel):
    """
    Structured content one provider call must produce.

    The five core fields are required: a provider response missing any of
    them fails validation and counts as a failed call. Enhanced insights are
    optional extras.
    """

    summary: str = Field(min_length=1)
    talking_points: list[str]
    common_ground: list[str]
    icebreaker: str = Field(min_length=1)
    questions: list[str]

    personality_insights: str | None = None
    communication_style: str | None = None
    rapport_tips: list[str] = Field(default_factory=list)
    potential_challenges: list[str] = Field(default_factory=list)
    meeting_strategy: str | None = None
    follow_up_hooks: list[str] = Field(default_factory=list)
    linkedin_dm_template: str | None = None
    email_template: str | None = None

    @field_validator("summary", "icebreaker")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator(
        "talking_points",
        "common_ground",
        "questions",
        "rapport_tips",
        "potential_challenges",
        "follow_up_hooks",
    )
    @classmethod
    def _drop_blank_items(cls, v: list[str]) -> list[str]:
        return [item.strip() for item in v if item and item.strip()]

    def content_fields(self) -> dict[str, Any]:
        return {
            "summary": self.summary,
            "talking_points": self.talking_points,
            "common_ground": self.common_ground,
            "icebreaker": self.icebreaker,
            "questions": self.questions,
        }

    def enhanced_insights(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in ENHANCED_INSIGHT_FIELDS}
