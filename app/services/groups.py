import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import PersistenceError
from app.models.group import Group, Visibility
from app.models.membership import Membership, MembershipStatus
from app.models.user import User
from app.services.notifications import Notifier

logger = logging.getLogger(__name__)


def create_group(
    db: Session,
    creator: User,
    title: str,
    visibility: Visibility,
    notifier: Optional[Notifier] = None,
) -> Group:
    group = Group(title=title.strip(), visibility=visibility, creator_id=creator.id)
    # el creador es el primer miembro, ya aprobado; se guarda en la misma transacción
    group.memberships.append(
        Membership(user_id=creator.id, status=MembershipStatus.APPROVED, is_creator=True)
    )
    db.add(group)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("group create failed user=%s", creator.id)
        raise PersistenceError("cannot create group") from exc
    db.refresh(group)

    logger.info("group=%s created by user=%s (%s)", group.id, creator.id, group.visibility.value)
    if notifier is not None:
        notifier.group_created(creator, group)
    return group


def update_group(
    db: Session,
    group: Group,
    title: Optional[str] = None,
    visibility: Optional[Visibility] = None,
) -> Group:
    if title is not None:
        group.title = title.strip()
    if visibility is not None:
        group.visibility = visibility
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError(f"cannot update group {group.id}") from exc
    db.refresh(group)
    return group


def delete_group(db: Session, group: Group, notifier: Optional[Notifier] = None) -> None:
    group_id = group.id
    # membresías y posts caen por cascade
    db.delete(group)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("group delete failed group=%s", group_id)
        raise PersistenceError(f"cannot delete group {group_id}") from exc

    logger.info("group=%s deleted", group_id)
    if notifier is not None:
        notifier.group_deleted(group_id)


def pending_count(db: Session, group: Group) -> int:
    return db.execute(
        select(func.count(Membership.id)).where(
            Membership.group_id == group.id,
            Membership.status == MembershipStatus.PENDING,
        )
    ).scalar_one()


def membership_status(db: Session, group: Group, user: User) -> Optional[MembershipStatus]:
    m = db.execute(
        select(Membership).where(
            Membership.group_id == group.id,
            Membership.user_id == user.id,
        )
    ).scalar_one_or_none()
    return m.status if m else None


def join_url(group: Group) -> str:
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/groups/{group.id}/join"
