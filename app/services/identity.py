from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.orm import Session

from app.models.user import Tier, User


@dataclass(frozen=True)
class IdentityFacts:
    user_id: int
    tier: Tier
    is_admin: bool


class IdentityFactsProvider(Protocol):
    def facts(self, user_id: int) -> IdentityFacts: ...

    def get_tier(self, user_id: int) -> Tier: ...

    def is_administrator(self, user_id: int) -> bool: ...


class SqlIdentityProvider:
    """Lee plan y rol de administrador desde la tabla de usuarios."""

    def __init__(self, db: Session):
        self.db = db

    def facts(self, user_id: int) -> IdentityFacts:
        user = self.db.get(User, user_id)
        if user is None:
            # usuario borrado entre el login y la petición: sin privilegios
            return IdentityFacts(user_id=user_id, tier=Tier.NONE, is_admin=False)
        return IdentityFacts(user_id=user.id, tier=Tier.parse(user.plan), is_admin=bool(user.is_admin))

    def get_tier(self, user_id: int) -> Tier:
        return self.facts(user_id).tier

    def is_administrator(self, user_id: int) -> bool:
        return self.facts(user_id).is_admin
