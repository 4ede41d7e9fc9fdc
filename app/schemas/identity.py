# app/schemas/identity.py
from typing import Any, get_args

from pydantic import BaseModel, ConfigDict

from app.schemas.profile import OnboardingRole, Role

ROLES: frozenset[str] = frozenset(get_args(Role))
ONBOARDING_ROLES: frozenset[str] = frozenset(get_args(OnboardingRole))


def _coerce_role(value: Any) -> Role | None:
    """Return `value` if it is a known role string, else None."""
    if isinstance(value, str) and value in ROLES:
        return value  # type: ignore[return-value]
    return None


class IdentityMetadata(BaseModel):
    """
    Typed view over the identity provider's metadata bags.

    Only the keys this service reads are modelled; everything else in
    `app_metadata` / `user_metadata` is ignored.
    """

    model_config = ConfigDict(frozen=True)

    role: Role | None = None
    company_name: str | None = None

    @property
    def onboarding_role(self) -> OnboardingRole | None:
        """Metadata role if it is one a user can onboard as."""
        if self.role in ONBOARDING_ROLES:
            return self.role  # type: ignore[return-value]
        return None


class Identity(BaseModel):
    """
    A verified end-user as known to Supabase Auth.

    Built from the access token claims in `app.core.auth`; read-only for
    this service apart from the role write-back in `IdentityProvider`.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    full_name: str | None = None
    username: str | None = None
    avatar_url: str | None = None
    metadata: IdentityMetadata = IdentityMetadata()

    @property
    def display_name(self) -> str | None:
        """
        Best display name available:
          full_name -> "first last" -> username -> email
        """
        if self.full_name:
            return self.full_name

        parts = [p.strip() for p in (self.first_name or "", self.last_name or "")]
        joined = " ".join(p for p in parts if p)
        if joined:
            return joined

        return self.username or self.email

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "Identity":
        """
        Map Supabase access-token claims onto an Identity.

        Role lookup order: app_metadata.role (server-controlled), then
        user_metadata.role (set by the client at sign-up).
        """
        app_meta = claims.get("app_metadata") or {}
        user_meta = claims.get("user_metadata") or {}

        role = _coerce_role(app_meta.get("role")) or _coerce_role(user_meta.get("role"))
        company_name = app_meta.get("company_name") or user_meta.get("company_name")

        return cls(
            id=str(claims["sub"]),
            email=claims.get("email") or user_meta.get("email"),
            first_name=user_meta.get("first_name"),
            last_name=user_meta.get("last_name"),
            full_name=user_meta.get("full_name") or user_meta.get("name"),
            username=user_meta.get("user_name") or user_meta.get("username"),
            avatar_url=user_meta.get("avatar_url") or user_meta.get("picture"),
            metadata=IdentityMetadata(role=role, company_name=company_name),
        )
