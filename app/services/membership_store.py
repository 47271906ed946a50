import logging
from typing import Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import PersistenceError
from app.models.membership import Membership, MembershipStatus

logger = logging.getLogger(__name__)


class MembershipExists(Exception):
    """Otra petición ya creó la membresía (user, group)."""


class MembershipStore(Protocol):
    def find(self, user_id: int, group_id: int) -> Optional[Membership]: ...

    def create(
        self, user_id: int, group_id: int, status: MembershipStatus, is_creator: bool = False
    ) -> Membership: ...

    def update(self, membership: Membership) -> None: ...

    def list_pending(self, group_id: int) -> list[Membership]: ...


class SqlMembershipStore:
    """
    Membresías en SQLAlchemy. La unicidad (user_id, group_id) la garantiza la
    restricción ``uq_membership_user_group``; si el INSERT choca con ella se
    lanza ``MembershipExists``.
    """

    def __init__(self, db: Session):
        self.db = db

    def find(self, user_id: int, group_id: int) -> Optional[Membership]:
        try:
            return self.db.execute(
                select(Membership).where(
                    Membership.user_id == user_id,
                    Membership.group_id == group_id,
                )
            ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"cannot read membership ({user_id}, {group_id})") from exc

    def create(self, user_id, group_id, status, is_creator=False) -> Membership:
        membership = Membership(user_id=user_id, group_id=group_id, status=status, is_creator=is_creator)
        self.db.add(membership)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if self.find(user_id, group_id) is not None:
                raise MembershipExists(f"membership ({user_id}, {group_id}) already exists") from exc
            logger.exception("membership insert failed user=%s group=%s", user_id, group_id)
            raise PersistenceError(f"cannot create membership ({user_id}, {group_id})") from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("membership insert failed user=%s group=%s", user_id, group_id)
            raise PersistenceError(f"cannot create membership ({user_id}, {group_id})") from exc

        self.db.refresh(membership)
        return membership

    def update(self, membership: Membership) -> None:
        try:
            self.db.add(membership)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("membership update failed id=%s", membership.id)
            raise PersistenceError(f"cannot update membership {membership.id}") from exc

    def list_pending(self, group_id: int) -> list[Membership]:
        try:
            return list(
                self.db.execute(
                    select(Membership)
                    .where(
                        Membership.group_id == group_id,
                        Membership.status == MembershipStatus.PENDING,
                    )
                    .order_by(Membership.id.asc())
                ).scalars()
            )
        except SQLAlchemyError as exc:
            raise PersistenceError(f"cannot list pending memberships of group {group_id}") from exc
