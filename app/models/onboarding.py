# app/models/onboarding.py
import uuid
from datetime import datetime

from sqlalchemy import JSON, Column
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import SQLModel, Field

from app.models.profile import utcnow

# JSONB on Supabase Postgres, plain JSON elsewhere (local SQLite).
JSONType = JSON().with_variant(JSONB(), "postgresql")


def json_column() -> Column:
    return Column(JSONType, nullable=False)


class ClientProfile(SQLModel, table=True):
    """
    Role-specific onboarding data for clients.

    One row per base profile (profile_id UNIQUE); the onboarding writer
    upserts against that constraint.
    """

    __tablename__ = "client_profiles"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    profile_id: uuid.UUID = Field(
        foreign_key="profiles.id",
        unique=True,
        index=True,
    )

    profile_image: str | None = Field(default=None)
    location: str | None = Field(default=None)
    website: str | None = Field(default=None)
    industry: str | None = Field(default=None)
    company_size: str | None = Field(default=None)
    about_company: str | None = Field(default=None)
    project_goals: list[str] = Field(default_factory=list, sa_column=json_column())
    project_description: str | None = Field(default=None)

    # small | medium | large | enterprise
    budget_range: str | None = Field(default=None)

    # urgent | short | medium | long
    timeline: str | None = Field(default=None)

    onboarding_completed: bool = Field(default=False)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class FreelancerProfile(SQLModel, table=True):
    """
    Role-specific onboarding data for freelancers.

    portfolio / work_experience are stored as JSON arrays of the item
    shapes in `app.schemas.onboarding`.
    """

    __tablename__ = "freelancer_profiles"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    profile_id: uuid.UUID = Field(
        foreign_key="profiles.id",
        unique=True,
        index=True,
    )

    profile_image: str | None = Field(default=None)
    title: str | None = Field(default=None)
    location: str | None = Field(default=None)
    bio: str | None = Field(default=None)

    # Years of experience
    experience: int | None = Field(default=None)

    skills: list[str] = Field(default_factory=list, sa_column=json_column())
    portfolio: list[dict] = Field(default_factory=list, sa_column=json_column())
    work_experience: list[dict] = Field(default_factory=list, sa_column=json_column())

    # USD
    hourly_rate: float | None = Field(default=None)

    onboarding_completed: bool = Field(default=False)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


ROLE_PROFILE_MODELS: dict[str, type[SQLModel]] = {
    "client": ClientProfile,
    "freelancer": FreelancerProfile,
}
