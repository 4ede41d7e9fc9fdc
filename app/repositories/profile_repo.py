# app/repositories/profile_repo.py
from sqlalchemy import func, update
from sqlmodel import Session, select

from app.database import store_errors, upsert_statement
from app.models.profile import Profile, utcnow


class ProfileRepository:
    """
    Data access layer for the base profile table.

    Responsibilities:
      - Pure DB operations (queries + single-statement writes)
      - No FastAPI, no HTTP, no business logic

    Every write is one statement committed on its own, so a request that
    dies halfway never leaves a partially written row. Race-sensitive
    writes are expressed against the `auth_user_id` unique constraint
    (ON CONFLICT) or as conditional updates, never as check-then-insert.
    """

    def get_by_auth_user_id(self, session: Session, auth_user_id: str) -> Profile | None:
        """Return the Profile for a Supabase user id, or None if not found."""
        with store_errors(session, "loading profile"):
            stmt = select(Profile).where(Profile.auth_user_id == auth_user_id)
            return session.exec(stmt).first()

    def insert_if_absent(self, session: Session, profile: Profile) -> bool:
        """
        INSERT ... ON CONFLICT (auth_user_id) DO NOTHING.

        Returns:
            True if this call created the row, False if one already existed
            (for example a concurrent first visit won the insert).
        """
        table = Profile.__table__
        stmt = (
            upsert_statement(session, table)
            .values(**profile.model_dump())
            .on_conflict_do_nothing(index_elements=["auth_user_id"])
            .returning(table.c.id)
        )
        with store_errors(session, "creating profile"):
            created = session.exec(stmt).first() is not None
            session.commit()
        return created

    def claim_role(self, session: Session, auth_user_id: str, role: str) -> bool:
        """
        Set `role` only if it is still NULL (compare-and-set).

        Returns:
            True if the row was updated by this call.
        """
        table = Profile.__table__
        stmt = (
            update(table)
            .where(table.c.auth_user_id == auth_user_id, table.c.role.is_(None))
            .values(role=role, updated_at=utcnow())
            .returning(table.c.id)
        )
        with store_errors(session, "assigning role"):
            claimed = session.exec(stmt).first() is not None
            session.commit()
        return claimed

    def upsert_identity_fields(self, session: Session, profile: Profile) -> Profile:
        """
        Insert the profile, or refresh its identity-derived fields.

        On conflict only email / full_name / avatar_url / company_name are
        touched, and a NULL incoming value keeps what is stored. `role` is
        never part of the update set.
        """
        table = Profile.__table__
        stmt = upsert_statement(session, table).values(**profile.model_dump())
        stmt = stmt.on_conflict_do_update(
            index_elements=["auth_user_id"],
            set_={
                "email": func.coalesce(stmt.excluded.email, table.c.email),
                "full_name": func.coalesce(stmt.excluded.full_name, table.c.full_name),
                "avatar_url": func.coalesce(stmt.excluded.avatar_url, table.c.avatar_url),
                "company_name": func.coalesce(
                    stmt.excluded.company_name, table.c.company_name
                ),
                "updated_at": stmt.excluded.updated_at,
            },
        )
        with store_errors(session, "syncing profile"):
            session.exec(stmt)
            session.commit()
        return self.get_by_auth_user_id(session, profile.auth_user_id)

    def update(self, session: Session, profile: Profile) -> Profile:
        """Persist changes to an existing Profile."""
        profile.updated_at = utcnow()
        with store_errors(session, "updating profile"):
            session.add(profile)
            session.commit()
            session.refresh(profile)
        return profile
