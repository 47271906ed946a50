"""
Flujo de membresías de un grupo.

Estados: sin membresía -> pendiente -> aprobada (grupo restringido) o
sin membresía -> aprobada (grupo público). Una membresía aprobada nunca
vuelve a pendiente y este módulo no expone bajas: solo desaparecen al
borrar el grupo.
"""
import enum
import logging
from typing import Optional

from app.core.permissions import Action, AuthorizationEngine, ResourceType
from app.models.group import Group
from app.models.membership import Membership, MembershipStatus
from app.models.user import User
from app.services.membership_store import MembershipExists, MembershipStore
from app.services.notifications import Notifier

logger = logging.getLogger(__name__)


class JoinResult(str, enum.Enum):
    JOINED = "joined"
    REQUEST_SUBMITTED = "request_submitted"
    ALREADY_MEMBER = "already_member"


class ApproveResult(str, enum.Enum):
    APPROVED = "approved"
    MEMBERSHIP_NOT_FOUND = "membership_not_found"
    UNAUTHORIZED = "unauthorized"


class MembershipWorkflow:
    def __init__(self, store: MembershipStore, notifier: Optional[Notifier] = None):
        self.store = store
        self.notifier = notifier

    def request_join(self, user: User, group: Group) -> JoinResult:
        if self.store.find(user.id, group.id) is not None:
            return JoinResult.ALREADY_MEMBER

        if group.is_public:
            status, result = MembershipStatus.APPROVED, JoinResult.JOINED
        else:
            status, result = MembershipStatus.PENDING, JoinResult.REQUEST_SUBMITTED

        try:
            self.store.create(user.id, group.id, status)
        except MembershipExists:
            # otra petición concurrente ganó la carrera
            return JoinResult.ALREADY_MEMBER

        logger.info("user=%s group=%s join -> %s", user.id, group.id, result.value)
        if result == JoinResult.REQUEST_SUBMITTED and self.notifier is not None:
            self.notifier.membership_requested(user, group)
        return result

    def approve(self, approver: User, group: Group, target_user: User) -> ApproveResult:
        # la autorización del approver la comprueba el llamador (ver approve_request)
        membership = self.store.find(target_user.id, group.id)
        if membership is None:
            return ApproveResult.MEMBERSHIP_NOT_FOUND

        if membership.is_approved:
            return ApproveResult.APPROVED

        membership.status = MembershipStatus.APPROVED
        self.store.update(membership)

        logger.info("user=%s approved in group=%s by user=%s", target_user.id, group.id, approver.id)
        if self.notifier is not None:
            self.notifier.membership_approved(target_user, group)
        return ApproveResult.APPROVED

    def pending_requests(self, group: Group) -> list[Membership]:
        return self.store.list_pending(group.id)


def can_approve(engine: AuthorizationEngine, approver: User, group: Group) -> bool:
    """Solo el creador del grupo (con manage sobre él) o un administrador."""
    decision = engine.explain(approver, Action.MANAGE, ResourceType.GROUP, group)
    if not decision.allowed:
        return False
    return decision.facts.is_admin or group.created_by(approver)


def approve_request(
    engine: AuthorizationEngine,
    workflow: MembershipWorkflow,
    approver: User,
    group: Group,
    target_user: User,
) -> ApproveResult:
    if not can_approve(engine, approver, group):
        logger.info("user=%s not allowed to approve requests of group=%s", approver.id, group.id)
        return ApproveResult.UNAUTHORIZED
    return workflow.approve(approver, group, target_user)
