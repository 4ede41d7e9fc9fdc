# app/services/role_service.py
import logging

from sqlmodel import Session

from app.core.errors import (
    RoleMismatchError,
    StoreUnavailableError,
    UnauthenticatedError,
    returns_result,
)
from app.core.identity_provider import IdentityProvider
from app.models.profile import Profile
from app.repositories.profile_repo import ProfileRepository
from app.schemas.identity import ONBOARDING_ROLES, Identity
from app.schemas.profile import OnboardingRole
from app.schemas.results import ActionError, RoleResolved

logger = logging.getLogger(__name__)


class RoleService:
    """
    Binds an identity to a marketplace role.

    Role lifecycle on the base profile:

      unset -> client | freelancer

    Once set, the role is only ever confirmed. A request for the other
    onboarding role is a hard stop (`role_mismatch`), never an overwrite.

    All decisions that race with other requests are pushed into the store:
      - first visit: INSERT ... ON CONFLICT (auth_user_id) DO NOTHING
      - unset role:  UPDATE ... WHERE role IS NULL
    If either loses, the row written by the winner is re-read and judged
    like any existing row.
    """

    def __init__(self, repo: ProfileRepository, identity_provider: IdentityProvider):
        self.repo = repo
        self.identity_provider = identity_provider

    @returns_result
    def resolve_role(
        self,
        session: Session,
        identity: Identity | None,
        expected_role: OnboardingRole,
    ) -> RoleResolved | ActionError:
        """
        Resolve the role for `identity` given the onboarding route it is on.

        Steps:
          1. Reject guests (unauthenticated).
          2. No profile row: create it with the metadata role if it is an
             onboarding role, else `expected_role`.
          3. Row with NULL role: claim `expected_role`.
          4. Row with a role: confirm it, or fail with role_mismatch.
             A confirmed role is written back to metadata when they differ.
        """
        if identity is None:
            raise UnauthenticatedError()

        if expected_role not in ONBOARDING_ROLES:
            raise ValueError(f"Not an onboarding role: {expected_role!r}")

        profile = self.repo.get_by_auth_user_id(session, identity.id)

        if profile is None:
            initial_role = identity.metadata.onboarding_role or expected_role
            created = self.repo.insert_if_absent(
                session, self._new_profile(identity, initial_role)
            )
            if created:
                logger.info("Created profile for %s with role %s", identity.id, initial_role)
                self._mirror_role(identity, initial_role)
                return RoleResolved(role=initial_role)

            # A concurrent request created the row first.
            profile = self._reload(session, identity.id)

        if profile.role is None:
            if self.repo.claim_role(session, identity.id, expected_role):
                logger.info("Assigned role %s to %s", expected_role, identity.id)
                self._mirror_role(identity, expected_role)
                return RoleResolved(role=expected_role)

            # Someone else set the role between our read and update.
            profile = self._reload(session, identity.id)

        if profile.role != expected_role:
            logger.info(
                "Role mismatch for %s: stored=%s expected=%s",
                identity.id,
                profile.role,
                expected_role,
            )
            raise RoleMismatchError(profile.role, expected_role)

        if identity.metadata.role is not None and identity.metadata.role != profile.role:
            logger.warning(
                "Identity metadata role %s disagrees with stored role %s for %s",
                identity.metadata.role,
                profile.role,
                identity.id,
            )
        # Also repairs metadata left empty by an earlier failed write.
        self._mirror_role(identity, profile.role)

        return RoleResolved(role=profile.role)

    # ---- internal helpers ----

    def _reload(self, session: Session, auth_user_id: str) -> Profile:
        profile = self.repo.get_by_auth_user_id(session, auth_user_id)
        if profile is None:
            # Rows are never deleted by this flow; treat as a store fault.
            raise StoreUnavailableError()
        return profile

    @staticmethod
    def _new_profile(identity: Identity, role: str) -> Profile:
        return Profile(
            auth_user_id=identity.id,
            email=identity.email,
            full_name=identity.display_name,
            avatar_url=identity.avatar_url,
            role=role,
            company_name=identity.metadata.company_name,
        )

    def _mirror_role(self, identity: Identity, role: str) -> None:
        """
        Copy the stored role into identity metadata.

        The profile store is authoritative, so a failed write here is
        logged and left for the next resolution to repair.
        """
        if identity.metadata.role == role:
            return
        try:
            self.identity_provider.set_role(identity.id, role)
        except Exception:
            logger.warning("Failed to mirror role %s into identity %s", role, identity.id, exc_info=True)
