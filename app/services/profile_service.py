# app/services/profile_service.py
import logging
from typing import Any

from pydantic import ValidationError
from sqlmodel import Session

from app.core.cache import ONBOARDING_VIEWS, CacheInvalidator
from app.core.config import get_settings
from app.core.errors import (
    NotFoundError,
    UnauthenticatedError,
    ValidationFailedError,
    returns_result,
)
from app.core.storage_utils import (
    delete_public_url,
    generate_filename,
    upload_to_storage,
)
from app.models.profile import Profile
from app.repositories.profile_repo import ProfileRepository
from app.schemas.identity import Identity
from app.schemas.profile import ProfileRead, ProfileUpdate
from app.schemas.results import ActionError, ImageUploaded, ProfileFetched

settings = get_settings()

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_CONTENT_TYPES: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


class ProfileService:
    """
    Business logic for the base profile outside of role assignment.

    Responsibilities:
      - read the caller's profile
      - sync identity-derived fields (email, name, avatar, company)
      - partial edits of common fields (never role or email)
      - profile image upload to Supabase Storage
    """

    def __init__(self, repo: ProfileRepository, invalidator: CacheInvalidator):
        self.repo = repo
        self.invalidator = invalidator

    def _require_profile(self, session: Session, identity: Identity | None) -> Profile:
        if identity is None:
            raise UnauthenticatedError()
        profile = self.repo.get_by_auth_user_id(session, identity.id)
        if profile is None:
            raise NotFoundError()
        return profile

    @returns_result
    def get_profile(
        self,
        session: Session,
        identity: Identity | None,
    ) -> ProfileFetched | ActionError:
        profile = self._require_profile(session, identity)
        return ProfileFetched(profile=ProfileRead.model_validate(profile))

    @returns_result
    def sync_profile(
        self,
        session: Session,
        identity: Identity | None,
    ) -> ProfileFetched | ActionError:
        """
        Create the base profile if missing, otherwise refresh the fields
        owned by the identity provider.

        Role is only seeded on first insert (from metadata, when it is an
        onboarding role); an existing role is never touched here.
        """
        if identity is None:
            raise UnauthenticatedError()

        candidate = Profile(
            auth_user_id=identity.id,
            email=identity.email,
            full_name=identity.display_name,
            avatar_url=identity.avatar_url,
            role=identity.metadata.onboarding_role,
            company_name=identity.metadata.company_name,
        )
        profile = self.repo.upsert_identity_fields(session, candidate)
        return ProfileFetched(profile=ProfileRead.model_validate(profile))

    @returns_result
    def update_profile(
        self,
        session: Session,
        identity: Identity | None,
        payload: Any,
    ) -> ProfileFetched | ActionError:
        """
        Partial update of full_name / company_name / avatar_url.

        Replacing an avatar that lives in our Storage bucket removes the
        old object (best effort).
        """
        profile = self._require_profile(session, identity)

        try:
            changes = ProfileUpdate.model_validate(payload).model_dump(exclude_unset=True)
        except ValidationError as exc:
            raise ValidationFailedError.from_pydantic(exc) from exc

        old_avatar = profile.avatar_url
        for field, value in changes.items():
            setattr(profile, field, value)

        profile = self.repo.update(session, profile)

        if "avatar_url" in changes and old_avatar and old_avatar != profile.avatar_url:
            try:
                delete_public_url(old_avatar)
            except Exception:
                logger.warning("Failed to delete old avatar %s", old_avatar, exc_info=True)

        self.invalidator.invalidate(identity.id, ONBOARDING_VIEWS)
        return ProfileFetched(profile=ProfileRead.model_validate(profile))

    @returns_result
    def upload_profile_image(
        self,
        identity: Identity | None,
        content_type: str | None,
        file_bytes: bytes,
    ) -> ImageUploaded | ActionError:
        """
        Upload an avatar and return its public URL.

        Path pattern:
            profiles/<auth_user_id>/<uuid>.<ext>

        The URL is not written to any profile; the client submits it as
        `profile_image` / `avatar_url` afterwards.
        """
        if identity is None:
            raise UnauthenticatedError()

        ext = ALLOWED_IMAGE_CONTENT_TYPES.get(content_type or "")
        if ext is None:
            raise ValidationFailedError(
                "Unsupported image type. Allowed: JPEG, PNG, WEBP.",
                details={"file": ["Unsupported image type"]},
            )

        if len(file_bytes) > settings.MAX_AVATAR_BYTES:
            limit_mb = settings.MAX_AVATAR_BYTES // (1024 * 1024)
            raise ValidationFailedError(
                f"Image too large (max {limit_mb}MB).",
                details={"file": ["Image too large"]},
            )

        path = f"profiles/{identity.id}/{generate_filename(ext)}"
        return ImageUploaded(url=upload_to_storage(path, file_bytes, content_type))
