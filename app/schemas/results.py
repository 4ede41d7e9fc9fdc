# app/schemas/results.py
from typing import Any, Literal

from sqlmodel import SQLModel

from app.schemas.onboarding import ClientProfileRead, FreelancerProfileRead
from app.schemas.profile import OnboardingRole, ProfileRead, Role

ErrorKind = Literal[
    "unauthenticated",
    "role_mismatch",
    "role_forbidden",
    "validation_failed",
    "store_unavailable",
    "not_found",
]


class ActionError(SQLModel):
    """
    Failure half of every onboarding/profile action.

    Callers branch on `success` and then on `error`:
      - unauthenticated   -> redirect to login
      - role_mismatch     -> explain; never retried or overridden
      - role_forbidden    -> explain; no write happened
      - validation_failed -> `details` maps field path -> messages
      - store_unavailable -> generic "try again later"
      - not_found         -> nothing stored yet
    """

    success: Literal[False] = False
    error: ErrorKind
    message: str
    details: dict[str, Any] | None = None


class RoleResolved(SQLModel):
    success: Literal[True] = True
    role: Role


class OnboardingSaved(SQLModel):
    """
    `revalidate` lists the UI views whose cached data is now stale.
    """

    success: Literal[True] = True
    role: OnboardingRole
    profile: ClientProfileRead | FreelancerProfileRead
    revalidate: list[str]


class OnboardingFetched(SQLModel):
    success: Literal[True] = True
    role: OnboardingRole
    profile: ClientProfileRead | FreelancerProfileRead


class ProfileFetched(SQLModel):
    success: Literal[True] = True
    profile: ProfileRead


class ImageUploaded(SQLModel):
    success: Literal[True] = True
    url: str
