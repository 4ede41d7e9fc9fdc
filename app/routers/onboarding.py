# app/routers/onboarding.py
from typing import Any

from fastapi import APIRouter, Body, Depends, File, UploadFile
from sqlmodel import Session

from app.core.auth import get_cache_invalidator, get_current_identity, get_identity_provider
from app.core.cache import CacheInvalidator
from app.core.errors import ERROR_RESPONSES, to_response
from app.core.identity_provider import IdentityProvider
from app.database import get_session
from app.repositories.onboarding_repo import OnboardingRepository
from app.repositories.profile_repo import ProfileRepository
from app.schemas.identity import Identity
from app.schemas.profile import OnboardingRole
from app.schemas.results import (
    ImageUploaded,
    OnboardingFetched,
    OnboardingSaved,
    RoleResolved,
)
from app.routers.profile import get_profile_service
from app.services.onboarding_service import OnboardingService
from app.services.profile_service import ProfileService
from app.services.role_service import RoleService

router = APIRouter(prefix="/onboarding", tags=["Onboarding"])

profile_repo = ProfileRepository()
onboarding_repo = OnboardingRepository()


def get_role_service(
    identity_provider: IdentityProvider = Depends(get_identity_provider),
) -> RoleService:
    return RoleService(profile_repo, identity_provider)


def get_onboarding_service(
    invalidator: CacheInvalidator = Depends(get_cache_invalidator),
) -> OnboardingService:
    return OnboardingService(profile_repo, onboarding_repo, invalidator)


# -------- Profile image --------
# Declared before the /{role} routes so "profile-image" is not read as a role.


@router.post(
    "/profile-image",
    response_model=ImageUploaded,
    responses=ERROR_RESPONSES,
    summary="Upload a profile image for onboarding",
)
def upload_profile_image(
    file: UploadFile = File(...),
    identity: Identity | None = Depends(get_current_identity),
    service: ProfileService = Depends(get_profile_service),
):
    """
    Upload an avatar to Storage and return its public URL.

    - Accepts JPEG, PNG, WEBP (max 5MB by default).
    - The URL is then submitted as `profile_image` in the onboarding form.
    """
    file_bytes = file.file.read()
    return to_response(
        service.upload_profile_image(identity, file.content_type, file_bytes)
    )


# -------- Role resolution --------


@router.post(
    "/{role}/resolve",
    response_model=RoleResolved,
    responses=ERROR_RESPONSES,
)
def resolve_role(
    role: OnboardingRole,
    session: Session = Depends(get_session),
    identity: Identity | None = Depends(get_current_identity),
    service: RoleService = Depends(get_role_service),
):
    """
    Bind the caller to `role` (the onboarding route they are on).

    Called when an onboarding page loads:
      - 200 {"success": true, "role": ...}  -> render the onboarding step
      - 401 unauthenticated                  -> redirect to login
      - 409 role_mismatch                    -> account already has the other role
      - 503 store_unavailable                -> retry later
    """
    return to_response(service.resolve_role(session, identity, role))


# -------- Onboarding profiles --------


@router.post(
    "/{role}",
    response_model=OnboardingSaved,
    responses=ERROR_RESPONSES,
)
def save_onboarding(
    role: OnboardingRole,
    form_data: dict[str, Any] = Body(...),
    session: Session = Depends(get_session),
    identity: Identity | None = Depends(get_current_identity),
    service: OnboardingService = Depends(get_onboarding_service),
):
    """
    Create or update the caller's client / freelancer profile.

    Validation failures come back as 422 `validation_failed` with
    field-level `details`; nothing is written in that case.
    """
    return to_response(service.save_onboarding(session, identity, role, form_data))


@router.get(
    "/{role}",
    response_model=OnboardingFetched,
    responses=ERROR_RESPONSES,
)
def get_onboarding(
    role: OnboardingRole,
    session: Session = Depends(get_session),
    identity: Identity | None = Depends(get_current_identity),
    service: OnboardingService = Depends(get_onboarding_service),
):
    """
    Return the caller's saved onboarding data for `role`.

    404 `not_found` until the first successful submission.
    """
    return to_response(service.get_onboarding(session, identity, role))
