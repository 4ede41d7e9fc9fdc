# app/routers/profile.py
from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlmodel import Session

from app.core.auth import get_cache_invalidator, get_current_identity
from app.core.cache import CacheInvalidator
from app.core.errors import ERROR_RESPONSES, to_response
from app.database import get_session
from app.repositories.profile_repo import ProfileRepository
from app.schemas.identity import Identity
from app.schemas.results import ProfileFetched
from app.services.profile_service import ProfileService

router = APIRouter(prefix="/profile", tags=["Profile"])

repo = ProfileRepository()


def get_profile_service(
    invalidator: CacheInvalidator = Depends(get_cache_invalidator),
) -> ProfileService:
    return ProfileService(repo, invalidator)


@router.get("", response_model=ProfileFetched, responses=ERROR_RESPONSES)
def read_profile(
    session: Session = Depends(get_session),
    identity: Identity | None = Depends(get_current_identity),
    service: ProfileService = Depends(get_profile_service),
):
    """
    Return the caller's base profile.

    Auth:
      - Requires valid Supabase JWT.
    """
    return to_response(service.get_profile(session, identity))


@router.post("/ensure", response_model=ProfileFetched, responses=ERROR_RESPONSES)
def ensure_profile(
    session: Session = Depends(get_session),
    identity: Identity | None = Depends(get_current_identity),
    service: ProfileService = Depends(get_profile_service),
):
    """
    Create the base profile on first sign-in, or refresh email / name /
    avatar / company from the identity provider.

    Never changes an assigned role.
    """
    return to_response(service.sync_profile(session, identity))


@router.patch("", response_model=ProfileFetched, responses=ERROR_RESPONSES)
def update_profile(
    payload: dict[str, Any] = Body(...),
    session: Session = Depends(get_session),
    identity: Identity | None = Depends(get_current_identity),
    service: ProfileService = Depends(get_profile_service),
):
    """
    Update the caller's profile (partial update).

    Editable: full_name, company_name, avatar_url.
    Role and email are rejected as unknown fields.
    """
    return to_response(service.update_profile(session, identity, payload))
