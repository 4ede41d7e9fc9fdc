# app/schemas/profile.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

# App-level roles. "admin" is promoted manually, never through onboarding.
Role = Literal["client", "freelancer", "admin"]
OnboardingRole = Literal["client", "freelancer"]


class ProfileRead(SQLModel):
    """Response schema for the base profile row."""

    id: uuid.UUID
    auth_user_id: str
    email: str | None
    full_name: str | None
    avatar_url: str | None
    role: Role | None
    company_name: str | None
    created_at: datetime
    updated_at: datetime


class ProfileUpdate(SQLModel):
    """
    Partial update of common profile fields.

    `role` and `email` are deliberately absent: role is only assigned by
    the onboarding resolver and email is owned by Supabase Auth.
    """

    model_config = ConfigDict(extra="forbid")

    full_name: str | None = Field(default=None, max_length=100)
    company_name: str | None = Field(default=None, max_length=100)
    avatar_url: str | None = Field(default=None, max_length=500)

    @field_validator("full_name")
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if len(v) < 2:
            raise ValueError("name must be at least 2 characters")
        return v

    @field_validator("company_name", "avatar_url")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None
