# app/services/onboarding_service.py
from typing import Any

from pydantic import ValidationError
from sqlmodel import Session, SQLModel

from app.core.cache import ONBOARDING_VIEWS, CacheInvalidator
from app.core.errors import (
    NotFoundError,
    RoleForbiddenError,
    UnauthenticatedError,
    ValidationFailedError,
    returns_result,
)
from app.models.onboarding import ROLE_PROFILE_MODELS
from app.models.profile import Profile
from app.repositories.onboarding_repo import OnboardingRepository
from app.repositories.profile_repo import ProfileRepository
from app.schemas.identity import Identity
from app.schemas.onboarding import (
    ONBOARDING_SCHEMAS,
    ClientProfileRead,
    FreelancerProfileRead,
)
from app.schemas.profile import OnboardingRole
from app.schemas.results import ActionError, OnboardingFetched, OnboardingSaved

READ_SCHEMAS: dict[str, type[SQLModel]] = {
    "client": ClientProfileRead,
    "freelancer": FreelancerProfileRead,
}


class OnboardingService:
    """
    Business logic for role-specific onboarding profiles.

    Responsibilities:
      - only the bound role may read/write its profile kind
      - validate submissions before anything is persisted
      - upsert keyed on the base profile (idempotent under retry)
      - signal cache invalidation for the affected views
    """

    def __init__(
        self,
        profile_repo: ProfileRepository,
        onboarding_repo: OnboardingRepository,
        invalidator: CacheInvalidator,
    ):
        self.profile_repo = profile_repo
        self.onboarding_repo = onboarding_repo
        self.invalidator = invalidator

    # ---- internal helpers ----

    def _bound_profile(
        self,
        session: Session,
        identity: Identity | None,
        role_kind: OnboardingRole,
    ) -> Profile:
        """
        Return the caller's base profile if it is bound to `role_kind`.

        Raises:
            UnauthenticatedError: guest request.
            RoleForbiddenError: no profile yet, or bound to another role.
        """
        if identity is None:
            raise UnauthenticatedError()

        profile = self.profile_repo.get_by_auth_user_id(session, identity.id)
        bound_role = profile.role if profile else None
        if profile is None or bound_role != role_kind:
            raise RoleForbiddenError(role_kind, bound_role)
        return profile

    @staticmethod
    def _validate(role_kind: OnboardingRole, form_data: Any) -> dict[str, Any]:
        """
        Validate against the role's schema and return only submitted fields.
        """
        schema = ONBOARDING_SCHEMAS[role_kind]
        try:
            data = schema.model_validate(form_data)
        except ValidationError as exc:
            raise ValidationFailedError.from_pydantic(exc) from exc
        return data.model_dump(mode="json", exclude_unset=True)

    # ---- public operations ----

    @returns_result
    def save_onboarding(
        self,
        session: Session,
        identity: Identity | None,
        role_kind: OnboardingRole,
        form_data: Any,
    ) -> OnboardingSaved | ActionError:
        """
        Create or update the caller's `role_kind` profile.

        Order of checks:
          1. authenticated
          2. base profile bound to role_kind (no write otherwise)
          3. schema validation (no write otherwise)
          4. single upsert
        """
        profile = self._bound_profile(session, identity, role_kind)
        data = self._validate(role_kind, form_data)

        model = ROLE_PROFILE_MODELS[role_kind]
        saved = self.onboarding_repo.upsert(session, model, profile.id, data)

        paths = self.invalidator.invalidate(identity.id, ONBOARDING_VIEWS)

        return OnboardingSaved(
            role=role_kind,
            profile=READ_SCHEMAS[role_kind].model_validate(saved),
            revalidate=paths,
        )

    @returns_result
    def get_onboarding(
        self,
        session: Session,
        identity: Identity | None,
        role_kind: OnboardingRole,
    ) -> OnboardingFetched | ActionError:
        """Return the stored `role_kind` profile for the caller."""
        profile = self._bound_profile(session, identity, role_kind)

        model = ROLE_PROFILE_MODELS[role_kind]
        stored = self.onboarding_repo.get_for_profile(session, model, profile.id)
        if stored is None:
            raise NotFoundError(f"No {role_kind} profile yet")

        return OnboardingFetched(
            role=role_kind,
            profile=READ_SCHEMAS[role_kind].model_validate(stored),
        )
