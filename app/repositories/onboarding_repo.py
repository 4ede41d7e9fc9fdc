# app/repositories/onboarding_repo.py
import uuid
from typing import Any

from sqlmodel import Session, select

from app.database import store_errors, upsert_statement
from app.models.onboarding import ClientProfile, FreelancerProfile
from app.models.profile import utcnow

RoleProfile = ClientProfile | FreelancerProfile


class OnboardingRepository:
    """
    Data access for role-specific profiles (client_profiles /
    freelancer_profiles). The model class is passed in by the service.
    """

    def get_for_profile(
        self,
        session: Session,
        model: type[RoleProfile],
        profile_id: uuid.UUID,
    ) -> RoleProfile | None:
        with store_errors(session, f"loading {model.__tablename__}"):
            stmt = select(model).where(model.profile_id == profile_id)
            return session.exec(stmt).first()

    def upsert(
        self,
        session: Session,
        model: type[RoleProfile],
        profile_id: uuid.UUID,
        data: dict[str, Any],
    ) -> RoleProfile:
        """
        Single-statement upsert keyed on profile_id.

        Insert path: a full row (submitted fields + column defaults).
        Conflict path: only the keys in `data` are overwritten, plus
        onboarding_completed / updated_at.

        Re-running with the same payload leaves exactly one row.
        """
        now = utcnow()
        row = model(
            profile_id=profile_id,
            onboarding_completed=True,
            created_at=now,
            updated_at=now,
            **data,
        ).model_dump()

        table = model.__table__
        stmt = upsert_statement(session, table).values(**row)
        update_set = {key: stmt.excluded[key] for key in data}
        update_set["onboarding_completed"] = True
        update_set["updated_at"] = now
        stmt = stmt.on_conflict_do_update(
            index_elements=["profile_id"],
            set_=update_set,
        )

        with store_errors(session, f"saving {model.__tablename__}"):
            session.exec(stmt)
            session.commit()

        return self.get_for_profile(session, model, profile_id)
