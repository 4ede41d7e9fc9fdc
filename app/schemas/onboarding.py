# app/schemas/onboarding.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

BudgetRange = Literal["small", "medium", "large", "enterprise"]
Timeline = Literal["urgent", "short", "medium", "long"]
CompanySize = Literal[
    "1-10 employees",
    "11-50 employees",
    "51-200 employees",
    "201-500 employees",
    "500+ employees",
]

MAX_PROJECT_GOALS = 5
MAX_SKILLS = 15
MAX_PORTFOLIO_ITEMS = 10
MAX_WORK_EXPERIENCE = 10


def _strip_or_none(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    return v or None


def _clean_tags(values: list[str], limit: int, label: str) -> list[str]:
    """
    Trim entries, drop blanks and case-insensitive duplicates (first wins),
    then enforce the upper bound.
    """
    seen: set[str] = set()
    cleaned: list[str] = []
    for raw in values:
        item = raw.strip()
        if not item or item.lower() in seen:
            continue
        seen.add(item.lower())
        cleaned.append(item)

    if len(cleaned) > limit:
        raise ValueError(f"You can select up to {limit} {label}")
    return cleaned


# ---------------------------------------------------------------------------
# Client onboarding
# ---------------------------------------------------------------------------


class ClientOnboardingData(SQLModel):
    """
    Client onboarding submission.

    Required:
      - budget_range
      - timeline
    Everything else is optional company information.
    """

    model_config = ConfigDict(extra="forbid")

    profile_image: str | None = Field(default=None, max_length=500)
    location: str | None = Field(default=None, max_length=100)
    website: str | None = Field(default=None, max_length=255)
    industry: str | None = Field(default=None, max_length=100)
    company_size: CompanySize | None = None
    about_company: str | None = Field(default=None, max_length=1000)
    project_goals: list[str] = Field(default_factory=list)
    project_description: str | None = Field(default=None, max_length=1000)
    budget_range: BudgetRange
    timeline: Timeline

    @field_validator(
        "profile_image",
        "location",
        "industry",
        "about_company",
        "project_description",
    )
    @classmethod
    def normalize_text(cls, v: str | None) -> str | None:
        return _strip_or_none(v)

    @field_validator("website")
    @classmethod
    def validate_website(cls, v: str | None) -> str | None:
        v = _strip_or_none(v)
        if v is None:
            return v
        if not v.lower().startswith(("http://", "https://")):
            raise ValueError("website must start with http:// or https://")
        return v

    @field_validator("project_goals")
    @classmethod
    def validate_goals(cls, v: list[str]) -> list[str]:
        return _clean_tags(v, MAX_PROJECT_GOALS, "project goals")


class ClientProfileRead(SQLModel):
    id: uuid.UUID
    profile_id: uuid.UUID
    profile_image: str | None
    location: str | None
    website: str | None
    industry: str | None
    company_size: CompanySize | None
    about_company: str | None
    project_goals: list[str]
    project_description: str | None
    budget_range: BudgetRange | None
    timeline: Timeline | None
    onboarding_completed: bool
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Freelancer onboarding
# ---------------------------------------------------------------------------


class PortfolioItem(SQLModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=2, max_length=100)
    description: str = Field(default="", max_length=1000)
    tags: list[str] = Field(default_factory=list)
    image_url: str | None = Field(default=None, max_length=500)
    url: str | None = Field(default=None, max_length=500)

    @field_validator("title")
    @classmethod
    def normalize_title(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("title must be at least 2 characters")
        return v

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str]) -> list[str]:
        return _clean_tags(v, MAX_SKILLS, "tags")


class WorkExperience(SQLModel):
    model_config = ConfigDict(extra="forbid")

    position: str = Field(min_length=1, max_length=100)
    company: str = Field(min_length=1, max_length=100)
    period: str = Field(min_length=1, max_length=50)
    description: str = Field(default="", max_length=1000)


class FreelancerOnboardingData(SQLModel):
    """
    Freelancer onboarding submission.

    Required:
      - title, location, bio
      - experience (years, 0..50)
      - skills (1..15)
      - hourly_rate (USD, 5..500)
    """

    model_config = ConfigDict(extra="forbid")

    profile_image: str | None = Field(default=None, max_length=500)
    title: str = Field(max_length=100)
    location: str = Field(max_length=100)
    bio: str = Field(max_length=1000)
    experience: int = Field(ge=0, le=50)
    skills: list[str]
    portfolio: list[PortfolioItem] = Field(default_factory=list)
    work_experience: list[WorkExperience] = Field(default_factory=list)
    hourly_rate: float = Field(ge=5, le=500)

    @field_validator("profile_image")
    @classmethod
    def normalize_image(cls, v: str | None) -> str | None:
        return _strip_or_none(v)

    @field_validator("title", "location")
    @classmethod
    def min_two_chars(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("must be at least 2 characters")
        return v

    @field_validator("bio")
    @classmethod
    def validate_bio(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 20:
            raise ValueError("bio must be at least 20 characters")
        return v

    @field_validator("skills")
    @classmethod
    def validate_skills(cls, v: list[str]) -> list[str]:
        cleaned = _clean_tags(v, MAX_SKILLS, "skills")
        if not cleaned:
            raise ValueError("select at least one skill")
        return cleaned

    @field_validator("portfolio")
    @classmethod
    def limit_portfolio(cls, v: list[PortfolioItem]) -> list[PortfolioItem]:
        if len(v) > MAX_PORTFOLIO_ITEMS:
            raise ValueError(f"at most {MAX_PORTFOLIO_ITEMS} portfolio items")
        return v

    @field_validator("work_experience")
    @classmethod
    def limit_work_experience(cls, v: list[WorkExperience]) -> list[WorkExperience]:
        if len(v) > MAX_WORK_EXPERIENCE:
            raise ValueError(f"at most {MAX_WORK_EXPERIENCE} work experience entries")
        return v


class FreelancerProfileRead(SQLModel):
    id: uuid.UUID
    profile_id: uuid.UUID
    profile_image: str | None
    title: str | None
    location: str | None
    bio: str | None
    experience: int | None
    skills: list[str]
    portfolio: list[PortfolioItem]
    work_experience: list[WorkExperience]
    hourly_rate: float | None
    onboarding_completed: bool
    created_at: datetime
    updated_at: datetime


ONBOARDING_SCHEMAS: dict[str, type[SQLModel]] = {
    "client": ClientOnboardingData,
    "freelancer": FreelancerOnboardingData,
}
