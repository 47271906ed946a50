from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.permissions import AuthorizationEngine
from app.services.identity import SqlIdentityProvider
from app.services.membership import MembershipWorkflow
from app.services.membership_store import SqlMembershipStore
from app.services.notifications import Notifier, SseNotifier


def get_notifier() -> Notifier:
    return SseNotifier()


def get_authz(db: Session = Depends(get_db)) -> AuthorizationEngine:
    return AuthorizationEngine(SqlIdentityProvider(db))


def get_workflow(
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> MembershipWorkflow:
    return MembershipWorkflow(SqlMembershipStore(db), notifier)
