# tests/test_onboarding_service.py
import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, select

from app.models.onboarding import ClientProfile, FreelancerProfile
from app.models.profile import Profile
from app.repositories.onboarding_repo import OnboardingRepository
from app.repositories.profile_repo import ProfileRepository
from app.schemas.onboarding import ClientProfileRead, FreelancerProfileRead
from app.schemas.results import ActionError, OnboardingFetched, OnboardingSaved
from app.services.onboarding_service import OnboardingService

FREELANCER_FORM = {
    "title": "Machine Learning Engineer",
    "location": "Berlin",
    "bio": "I build and ship production LLM pipelines for startups.",
    "experience": 6,
    "skills": ["PyTorch", "LLM Fine-tuning", "RAG"],
    "hourly_rate": 120,
    "portfolio": [
        {"title": "Support bot", "description": "RAG over docs", "tags": ["RAG"]},
    ],
}

CLIENT_FORM = {
    "industry": "Healthcare",
    "company_size": "11-50 employees",
    "website": "https://acme.example",
    "project_goals": ["Chatbot", "Analytics"],
    "budget_range": "medium",
    "timeline": "short",
}


def _count(session: Session, model) -> int:
    session.expire_all()
    return len(session.exec(select(model)).all())


def _bind(session: Session, auth_user_id: str, role: str | None) -> Profile:
    profile = Profile(auth_user_id=auth_user_id, role=role)
    session.add(profile)
    session.commit()
    session.refresh(profile)
    return profile


@pytest.fixture
def service(invalidator) -> OnboardingService:
    return OnboardingService(ProfileRepository(), OnboardingRepository(), invalidator)


def test_freelancer_submission_creates_profile(session, service, make_identity, invalidations):
    base = _bind(session, "f1", "freelancer")

    result = service.save_onboarding(session, make_identity("f1"), "freelancer", FREELANCER_FORM)

    assert isinstance(result, OnboardingSaved)
    assert isinstance(result.profile, FreelancerProfileRead)
    assert result.profile.profile_id == base.id
    assert result.profile.skills == ["PyTorch", "LLM Fine-tuning", "RAG"]
    assert result.profile.portfolio[0].title == "Support bot"
    assert result.profile.onboarding_completed is True
    assert result.revalidate == ["/dashboard", "/onboarding"]
    assert invalidations == [("f1", ["/dashboard", "/onboarding"])]


def test_same_payload_twice_keeps_one_row(session, service, make_identity):
    _bind(session, "f2", "freelancer")
    identity = make_identity("f2")

    first = service.save_onboarding(session, identity, "freelancer", FREELANCER_FORM)
    second = service.save_onboarding(session, identity, "freelancer", FREELANCER_FORM)

    assert first.profile.id == second.profile.id
    assert _count(session, FreelancerProfile) == 1


def test_resubmission_merges_only_submitted_fields(session, service, make_identity):
    _bind(session, "c1", "client")
    identity = make_identity("c1")
    service.save_onboarding(session, identity, "client", CLIENT_FORM)

    result = service.save_onboarding(
        session,
        identity,
        "client",
        {"budget_range": "large", "timeline": "long"},
    )

    assert isinstance(result.profile, ClientProfileRead)
    assert result.profile.budget_range == "large"
    assert result.profile.timeline == "long"
    # untouched fields survive
    assert result.profile.industry == "Healthcare"
    assert result.profile.project_goals == ["Chatbot", "Analytics"]
    assert _count(session, ClientProfile) == 1


def test_client_cannot_write_freelancer_profile(session, service, make_identity, invalidations):
    _bind(session, "u3", "client")

    result = service.save_onboarding(session, make_identity("u3"), "freelancer", FREELANCER_FORM)

    assert isinstance(result, ActionError)
    assert result.error == "role_forbidden"
    assert result.details == {"role_kind": "freelancer", "bound_role": "client"}
    assert _count(session, FreelancerProfile) == 0
    assert invalidations == []


def test_unresolved_role_is_forbidden(session, service, make_identity):
    _bind(session, "u15", None)

    result = service.save_onboarding(session, make_identity("u15"), "client", CLIENT_FORM)

    assert result.error == "role_forbidden"
    assert _count(session, ClientProfile) == 0


def test_missing_base_profile_is_forbidden(session, service, make_identity):
    result = service.save_onboarding(session, make_identity("ghost"), "client", CLIENT_FORM)

    assert result.error == "role_forbidden"


def test_guest_is_unauthenticated(session, service):
    result = service.save_onboarding(session, None, "client", CLIENT_FORM)

    assert result.error == "unauthenticated"


def test_role_is_checked_before_validation(session, service, make_identity):
    _bind(session, "u16", "client")

    result = service.save_onboarding(session, make_identity("u16"), "freelancer", {})

    assert result.error == "role_forbidden"


def test_invalid_submission_writes_nothing(session, service, make_identity, invalidations):
    _bind(session, "f3", "freelancer")
    form = dict(FREELANCER_FORM, hourly_rate=2, skills=[])

    result = service.save_onboarding(session, make_identity("f3"), "freelancer", form)

    assert isinstance(result, ActionError)
    assert result.error == "validation_failed"
    assert set(result.details) == {"hourly_rate", "skills"}
    assert _count(session, FreelancerProfile) == 0
    assert invalidations == []


def test_non_object_submission_fails_validation(session, service, make_identity):
    _bind(session, "f4", "freelancer")

    result = service.save_onboarding(session, make_identity("f4"), "freelancer", ["not", "a", "form"])

    assert result.error == "validation_failed"


def test_get_onboarding_round_trip(session, service, make_identity):
    _bind(session, "c2", "client")
    identity = make_identity("c2")

    missing = service.get_onboarding(session, identity, "client")
    service.save_onboarding(session, identity, "client", CLIENT_FORM)
    found = service.get_onboarding(session, identity, "client")

    assert missing.error == "not_found"
    assert isinstance(found, OnboardingFetched)
    assert found.profile.website == "https://acme.example"


def test_get_onboarding_for_other_role_is_forbidden(session, service, make_identity):
    _bind(session, "c3", "client")

    result = service.get_onboarding(session, make_identity("c3"), "freelancer")

    assert result.error == "role_forbidden"


def test_store_failure_during_save_writes_nothing(session, service, make_identity, invalidations, monkeypatch):
    _bind(session, "f5", "freelancer")
    real_exec = session.exec

    def failing_insert(statement, *args, **kwargs):
        if getattr(statement, "is_insert", False):
            raise OperationalError("INSERT", {}, Exception("connection reset"))
        return real_exec(statement, *args, **kwargs)

    monkeypatch.setattr(session, "exec", failing_insert)

    result = service.save_onboarding(session, make_identity("f5"), "freelancer", FREELANCER_FORM)

    assert isinstance(result, ActionError)
    assert result.error == "store_unavailable"
    assert invalidations == []
    monkeypatch.undo()
    assert _count(session, FreelancerProfile) == 0
