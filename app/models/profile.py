# app/models/profile.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Profile(SQLModel, table=True):
    """
    Base profile binding a Supabase Auth identity to a marketplace role.

    Identity:
      - auth_user_id: Supabase auth.users.id (JWT "sub"), UNIQUE.
        The unique constraint is what keeps concurrent first visits from
        creating two rows; writers rely on ON CONFLICT against it.

    Role:
      - NULL until the user picks an onboarding route
      - "client" | "freelancer" once set (never changed by onboarding)
      - "admin" is promoted manually

    This table is *not* responsible for credentials. Supabase Auth
    stores those in its own schema.
    """

    __tablename__ = "profiles"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    auth_user_id: str = Field(
        unique=True,
        index=True,
        max_length=255,
        description="Matches Supabase auth.users.id",
    )

    email: str | None = Field(
        default=None,
        index=True,
        description="Email from Supabase auth.users",
    )

    full_name: str | None = Field(default=None, max_length=100)

    avatar_url: str | None = Field(default=None, max_length=500)

    # Application role (not Supabase RLS role)
    role: str | None = Field(
        default=None,
        index=True,
        description="Application role: client | freelancer | admin",
    )

    company_name: str | None = Field(default=None, max_length=100)

    created_at: datetime = Field(
        default_factory=utcnow,
        description="Creation timestamp (UTC)",
    )

    updated_at: datetime = Field(
        default_factory=utcnow,
        description="Last modification timestamp (UTC)",
    )
