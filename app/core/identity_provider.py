# app/core/identity_provider.py
from typing import Callable

from supabase import Client

from app.core.supabase_client import supabase_admin


class IdentityProvider:
    """
    Write side of the identity source.

    The only write this service performs is mirroring the resolved role
    into the identity's metadata so the role claim travels with future
    tokens.
    """

    def set_role(self, identity_id: str, role: str) -> None:
        raise NotImplementedError


class SupabaseIdentityProvider(IdentityProvider):
    """
    Supabase Auth implementation.

    The role goes into `app_metadata`, which end users cannot edit and
    which GoTrue merges key-by-key, so other metadata is preserved.
    """

    def __init__(self, client_factory: Callable[[], Client] = supabase_admin):
        self._client_factory = client_factory

    def set_role(self, identity_id: str, role: str) -> None:
        client = self._client_factory()
        client.auth.admin.update_user_by_id(
            identity_id,
            {"app_metadata": {"role": role}},
        )
