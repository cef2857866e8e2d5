from pydantic import BaseModel, EmailStr, Field, field_validator, ConfigDict
from typing import Optional, List, Dict, Union
from datetime import datetime

from .roles import ROLE_HIERARCHY, normalize_role

# Raw survey response: Likert number, "yes"/"no", or a multiple-choice value.
# Anything else is accepted and scored as zero.
AnswerValue = Optional[Union[bool, int, float, str]]


# Authentication schemas
class LoginRequest(BaseModel):
    """Request schema for the development login."""
    email: EmailStr = Field(
        ...,
        description="Email address of the account to sign in as",
        json_schema_extra={"examples": ["member@example.com"]}
    )


class Token(BaseModel):
    """JWT token response schema."""
    access_token: str = Field(..., description="JWT access token for authenticated requests")
    token_type: str = Field("bearer", description="Token type, fixed as 'bearer'")


class UserResponse(BaseModel):
    """User response schema."""
    id: int = Field(..., description="Unique internal user ID")
    email: str = Field(..., description="User's email address")
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str = Field("attendee", description="User's role")
    is_archived: bool = False
    created_at: datetime = Field(..., description="Timestamp of user account creation")
    last_login: Optional[datetime] = Field(None, description="Timestamp of the most recent successful login")

    model_config = ConfigDict(from_attributes=True)


class UserUpdate(BaseModel):
    """Schema for updating a user (admins only)."""
    role: Optional[str] = Field(None, description="New role; legacy names are normalized")
    is_archived: Optional[bool] = Field(None, description="Hide the user from dashboards")
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if v.strip().lower() not in ROLE_HIERARCHY:
            raise ValueError(f"Unknown role '{v}'")
        return normalize_role(v)


# Survey progress schemas
class SurveyProgressSave(BaseModel):
    """Answers saved so far plus the member's position in the survey."""
    answers: Dict[str, AnswerValue] = Field(
        default_factory=dict,
        description="Map of question ID to raw response",
        json_schema_extra={"examples": [{"sg1": 5, "sk2": "yes", "pr8": "creative"}]}
    )
    current_section: int = Field(1, ge=0, description="Section the member is on")
    current_question: int = Field(0, ge=0, description="Index of the current question within the section")

    @field_validator("answers")
    @classmethod
    def validate_answer_keys(cls, v: Dict[str, AnswerValue]) -> Dict[str, AnswerValue]:
        cleaned = {}
        for key, value in v.items():
            question_id = key.strip()
            if not question_id:
                raise ValueError("Question IDs cannot be blank")
            cleaned[question_id] = value
        return cleaned


class SurveyProgressResponse(BaseModel):
    id: int
    user_id: int
    answers: Dict[str, AnswerValue]
    current_section: int
    current_question: int
    is_complete: bool
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SurveySubmit(BaseModel):
    """Submission body. When answers are omitted the saved progress is scored."""
    answers: Optional[Dict[str, AnswerValue]] = Field(
        None,
        description="Full answer map; falls back to the saved survey progress"
    )


# Scoring output
class GiftScore(BaseModel):
    gift: str
    name: str
    score: int = Field(..., ge=0, le=100, description="Normalized score, strongest gift = 100")
    description: str = ""
    biblical_reference: str = ""


class PersonalityProfile(BaseModel):
    type: str
    traits: List[str] = Field(default_factory=list)
    description: str = ""
    introvert_extrovert: str
    people_tasks: str
    detail_big_picture: str
    structured_flexible: str
    trait_scores: Dict[str, float] = Field(default_factory=dict, description="Averaged raw value per axis (-1..1)")

    def classification(self, axis: str) -> Optional[str]:
        return getattr(self, axis, None)


class MinistryMatch(BaseModel):
    ministry_id: str
    name: str
    category: str
    score: float
    description: str = ""
    why_matched: str = ""
    is_primary: bool = False
    requires_skill_verification: bool = False
    growth_pathway: Optional[str] = None


class ScoringResult(BaseModel):
    spiritual_gifts: List[GiftScore]
    personality_profile: PersonalityProfile
    ministry_matches: List[MinistryMatch]


class SurveyResultResponse(BaseModel):
    id: int
    user_id: int
    spiritual_gifts: List[GiftScore]
    personality_profile: PersonalityProfile
    ministry_matches: List[MinistryMatch]
    raw_answers: Dict[str, AnswerValue]
    catalog_version: str
    completed_at: datetime

    model_config = ConfigDict(from_attributes=True)
