# tests/test_role_service.py
import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, select

from app.models.profile import Profile
from app.repositories.profile_repo import ProfileRepository
from app.schemas.results import ActionError, RoleResolved
from app.services.role_service import RoleService


def _rows(session: Session, auth_user_id: str) -> list[Profile]:
    session.expire_all()
    return list(session.exec(select(Profile).where(Profile.auth_user_id == auth_user_id)).all())


@pytest.fixture
def service(identity_provider) -> RoleService:
    return RoleService(ProfileRepository(), identity_provider)


# ---- first visit ----


def test_first_visit_without_metadata_uses_expected_role(session, service, identity_provider, make_identity):
    result = service.resolve_role(session, make_identity("u1"), "freelancer")

    assert result == RoleResolved(role="freelancer")
    rows = _rows(session, "u1")
    assert len(rows) == 1
    assert rows[0].role == "freelancer"
    assert rows[0].email == "u1@example.com"
    assert identity_provider.calls == [("u1", "freelancer")]


def test_first_visit_prefers_metadata_role(session, service, identity_provider, make_identity):
    result = service.resolve_role(session, make_identity("u4", role="client"), "freelancer")

    assert isinstance(result, RoleResolved)
    assert result.role == "client"
    assert _rows(session, "u4")[0].role == "client"
    # metadata already says client; nothing to mirror
    assert identity_provider.calls == []


def test_first_visit_ignores_admin_metadata(session, service, make_identity):
    result = service.resolve_role(session, make_identity("u5", role="admin"), "client")

    assert result.role == "client"
    assert _rows(session, "u5")[0].role == "client"


def test_first_visit_copies_identity_fields(session, service, make_identity):
    identity = make_identity("u6", first_name="Ada", last_name="Lovelace", avatar_url="https://img/a.png")

    service.resolve_role(session, identity, "client")

    row = _rows(session, "u6")[0]
    assert row.full_name == "Ada Lovelace"
    assert row.avatar_url == "https://img/a.png"


# ---- existing rows ----


def test_existing_matching_role_is_confirmed(session, service, identity_provider, make_identity):
    session.add(Profile(auth_user_id="u7", role="client"))
    session.commit()

    result = service.resolve_role(session, make_identity("u7", role="client"), "client")

    assert result == RoleResolved(role="client")
    assert identity_provider.calls == []


def test_existing_other_role_is_mismatch_and_unchanged(session, service, identity_provider, make_identity):
    session.add(Profile(auth_user_id="u2", role="client"))
    session.commit()

    result = service.resolve_role(session, make_identity("u2"), "freelancer")

    assert isinstance(result, ActionError)
    assert result.error == "role_mismatch"
    assert result.details == {"stored_role": "client", "expected_role": "freelancer"}
    assert _rows(session, "u2")[0].role == "client"
    assert identity_provider.calls == []


def test_mismatch_is_stable_across_calls(session, service, make_identity):
    session.add(Profile(auth_user_id="u2", role="client"))
    session.commit()

    for _ in range(3):
        assert service.resolve_role(session, make_identity("u2"), "freelancer").error == "role_mismatch"
    assert _rows(session, "u2")[0].role == "client"


def test_null_role_is_claimed_once(session, service, identity_provider, make_identity):
    session.add(Profile(auth_user_id="u8", role=None))
    session.commit()
    identity = make_identity("u8")

    first = service.resolve_role(session, identity, "freelancer")
    # next token carries the mirrored role
    second = service.resolve_role(session, make_identity("u8", role="freelancer"), "freelancer")

    assert first == second == RoleResolved(role="freelancer")
    rows = _rows(session, "u8")
    assert len(rows) == 1
    assert rows[0].role == "freelancer"
    # one transition, one metadata write
    assert identity_provider.calls == [("u8", "freelancer")]


def test_metadata_drift_is_repaired_from_store(session, service, identity_provider, make_identity):
    session.add(Profile(auth_user_id="u9", role="client"))
    session.commit()

    # metadata changed out-of-band to freelancer; the store wins
    result = service.resolve_role(session, make_identity("u9", role="freelancer"), "client")

    assert result.role == "client"
    assert identity_provider.calls == [("u9", "client")]


# ---- failures ----


def test_guest_is_unauthenticated(session, service):
    result = service.resolve_role(session, None, "client")

    assert isinstance(result, ActionError)
    assert result.error == "unauthenticated"


def test_admin_is_not_an_onboarding_role(session, service, make_identity):
    with pytest.raises(ValueError):
        service.resolve_role(session, make_identity("u1"), "admin")


def test_metadata_write_failure_does_not_fail_resolution(session, service, identity_provider, make_identity):
    identity_provider.fail = True

    result = service.resolve_role(session, make_identity("u10"), "client")

    assert result == RoleResolved(role="client")
    assert _rows(session, "u10")[0].role == "client"


def test_failed_metadata_write_is_retried_on_next_resolution(session, service, identity_provider, make_identity):
    identity_provider.fail = True
    service.resolve_role(session, make_identity("m1"), "client")
    identity_provider.fail = False
    identity_provider.calls.clear()

    # metadata still has no role, so the next visit writes it
    result = service.resolve_role(session, make_identity("m1"), "client")

    assert result == RoleResolved(role="client")
    assert identity_provider.calls == [("m1", "client")]


def test_store_failure_is_reported(session, service, make_identity, monkeypatch):
    def broken_exec(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection refused"))

    monkeypatch.setattr(session, "exec", broken_exec)

    result = service.resolve_role(session, make_identity("u11"), "client")

    assert isinstance(result, ActionError)
    assert result.error == "store_unavailable"


# ---- races ----


class StaleReadRepository(ProfileRepository):
    """First lookup returns a stale snapshot, as if another request wrote in between."""

    def __init__(self, snapshot: Profile | None):
        self.snapshot = snapshot
        self.stale = True

    def get_by_auth_user_id(self, session, auth_user_id):
        if self.stale:
            self.stale = False
            return self.snapshot
        return super().get_by_auth_user_id(session, auth_user_id)


def test_lost_insert_race_uses_winners_row(session, identity_provider, make_identity):
    # Another request already created the row with role=client.
    session.add(Profile(auth_user_id="u12", role="client"))
    session.commit()
    service = RoleService(StaleReadRepository(snapshot=None), identity_provider)

    result = service.resolve_role(session, make_identity("u12"), "freelancer")

    assert result.error == "role_mismatch"
    rows = _rows(session, "u12")
    assert len(rows) == 1
    assert rows[0].role == "client"


def test_lost_insert_race_with_same_role_succeeds(session, identity_provider, make_identity):
    session.add(Profile(auth_user_id="u13", role="freelancer"))
    session.commit()
    service = RoleService(StaleReadRepository(snapshot=None), identity_provider)

    result = service.resolve_role(session, make_identity("u13"), "freelancer")

    assert result == RoleResolved(role="freelancer")
    assert len(_rows(session, "u13")) == 1


def test_lost_claim_race_is_mismatch(session, identity_provider, make_identity):
    session.add(Profile(auth_user_id="u14", role="client"))
    session.commit()
    stale = Profile(auth_user_id="u14", role=None)
    service = RoleService(StaleReadRepository(snapshot=stale), identity_provider)

    result = service.resolve_role(session, make_identity("u14"), "freelancer")

    assert result.error == "role_mismatch"
    assert _rows(session, "u14")[0].role == "client"
    assert identity_provider.calls == []
