from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from opshub.platform.security.context import ActorUser
from opshub.platform.security.gate import AccessGate, access_gate
from opshub.users.models import User
from opshub.users.repository import UserRepository, user_repository


@dataclass(frozen=True, slots=True)
class UserDirectoryService:
    repository: UserRepository = user_repository
    gate: AccessGate = access_gate

    def manageable_users(self, session: Session, actor: ActorUser) -> list[User]:
        """Active users strictly below the actor and inside the actor's scope."""

        scope = self.gate.visibility_scope(session, actor)
        stmt = self.gate.apply_scope_filter(
            select(User).where(User.active.is_(True), User.id != actor.user_id),
            scope,
            User.area_id,
        )
        candidates = session.scalars(stmt.order_by(User.id.asc())).all()
        return [user for user in candidates if self.gate.can_act(session, actor, user)]


user_directory_service = UserDirectoryService()
