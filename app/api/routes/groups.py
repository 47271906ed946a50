from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_authz, get_db, get_notifier, get_workflow
from app.core.auth import get_current_user
from app.core.permissions import Action, AuthorizationEngine, ResourceType
from app.models.group import Group
from app.models.membership import Membership
from app.models.user import User
from app.schemas.group import GroupCreate, GroupPublic, GroupUpdate
from app.schemas.membership import (
    ApproveResponse,
    JoinResponse,
    JoinUrl,
    MyMembership,
    PendingRequest,
)
from app.services import groups as group_service
from app.services.membership import (
    ApproveResult,
    JoinResult,
    MembershipWorkflow,
    approve_request,
    can_approve,
)
from app.services.notifications import Notifier


router = APIRouter(prefix="/groups", tags=["groups"])


JOIN_RESPONSES = {
    JoinResult.JOINED: (201, "Te has unido al grupo"),
    JoinResult.REQUEST_SUBMITTED: (202, "Solicitud enviada"),
    JoinResult.ALREADY_MEMBER: (200, "Ya eres miembro o ya lo has solicitado"),
}


def _get_group(db: Session, group_id: int) -> Group:
    group = db.get(Group, group_id)
    if not group:
        raise HTTPException(status_code=404, detail="Grupo no encontrado")
    return group


def _require(authz: AuthorizationEngine, user: User, action: Action, resource_type, resource=None):
    if not authz.can_perform(user, action, resource_type, resource):
        raise HTTPException(status_code=403, detail="No autorizado")


def _group_view(db: Session, group: Group, user: User) -> GroupPublic:
    view = GroupPublic.model_validate(group)
    view.pending_count = group_service.pending_count(db, group)
    view.my_status = group_service.membership_status(db, group, user)
    view.is_creator = group.created_by(user)
    return view


@router.get("", response_model=list[GroupPublic])
def list_groups(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    authz: AuthorizationEngine = Depends(get_authz),
):
    _require(authz, current_user, Action.READ, ResourceType.GROUP)
    groups = db.execute(select(Group).order_by(Group.id)).scalars().all()
    return [GroupPublic.model_validate(g) for g in groups]


@router.post("", response_model=GroupPublic, status_code=201)
def create_group(
    payload: GroupCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    authz: AuthorizationEngine = Depends(get_authz),
    notifier: Notifier = Depends(get_notifier),
):
    if not authz.can_perform(current_user, Action.CREATE, ResourceType.GROUP):
        raise HTTPException(status_code=403, detail="El usuario no es administrador ni premium")

    group = group_service.create_group(
        db, current_user, payload.title, payload.visibility, notifier=notifier
    )
    return _group_view(db, group, current_user)


@router.get("/{group_id}", response_model=GroupPublic)
def get_group(
    group_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    authz: AuthorizationEngine = Depends(get_authz),
):
    group = _get_group(db, group_id)
    _require(authz, current_user, Action.READ, ResourceType.GROUP, group)
    return _group_view(db, group, current_user)


@router.put("/{group_id}", response_model=GroupPublic)
def update_group(
    group_id: int,
    payload: GroupUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    authz: AuthorizationEngine = Depends(get_authz),
):
    group = _get_group(db, group_id)
    _require(authz, current_user, Action.UPDATE, ResourceType.GROUP, group)

    group = group_service.update_group(db, group, title=payload.title, visibility=payload.visibility)
    return _group_view(db, group, current_user)


@router.delete("/{group_id}")
def delete_group(
    group_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    authz: AuthorizationEngine = Depends(get_authz),
    notifier: Notifier = Depends(get_notifier),
):
    group = _get_group(db, group_id)
    _require(authz, current_user, Action.DELETE, ResourceType.GROUP, group)

    group_service.delete_group(db, group, notifier=notifier)
    return {"ok": True, "deleted_group_id": group_id}


@router.post("/{group_id}/join", response_model=JoinResponse)
def join_group(
    group_id: int,
    response: Response,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    authz: AuthorizationEngine = Depends(get_authz),
    workflow: MembershipWorkflow = Depends(get_workflow),
):
    group = _get_group(db, group_id)
    # quien puede ver el grupo puede pedir entrar
    _require(authz, current_user, Action.READ, ResourceType.GROUP, group)

    result = workflow.request_join(current_user, group)
    status_code, message = JOIN_RESPONSES[result]
    response.status_code = status_code
    return JoinResponse(result=result.value, message=message)


@router.get("/{group_id}/join-url", response_model=JoinUrl)
def get_join_url(
    group_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    authz: AuthorizationEngine = Depends(get_authz),
):
    group = _get_group(db, group_id)
    _require(authz, current_user, Action.READ, ResourceType.GROUP, group)
    return JoinUrl(group_id=group.id, url=group_service.join_url(group))


@router.get("/{group_id}/membership", response_model=MyMembership)
def my_membership(
    group_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    group = _get_group(db, group_id)
    return MyMembership(
        group_id=group.id,
        status=group_service.membership_status(db, group, current_user),
        is_creator=group.created_by(current_user),
    )


@router.get("/{group_id}/requests", response_model=list[PendingRequest])
def list_requests(
    group_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    authz: AuthorizationEngine = Depends(get_authz),
    workflow: MembershipWorkflow = Depends(get_workflow),
):
    group = _get_group(db, group_id)
    if not can_approve(authz, current_user, group):
        raise HTTPException(status_code=403, detail="Solo el creador del grupo puede ver las solicitudes")

    pending: list[Membership] = workflow.pending_requests(group)
    return [
        PendingRequest(
            user_id=m.user_id,
            group_id=m.group_id,
            status=m.status,
            is_creator=m.is_creator,
            created_at=m.created_at,
            email=m.user.email,
        )
        for m in pending
    ]


@router.post("/{group_id}/requests/{user_id}/accept", response_model=ApproveResponse)
def accept_request(
    group_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    authz: AuthorizationEngine = Depends(get_authz),
    workflow: MembershipWorkflow = Depends(get_workflow),
):
    group = _get_group(db, group_id)
    target = db.get(User, user_id)
    if not target:
        raise HTTPException(status_code=404, detail="Usuario no encontrado")

    result = approve_request(authz, workflow, current_user, group, target)
    if result == ApproveResult.UNAUTHORIZED:
        raise HTTPException(status_code=403, detail="No autorizado")
    if result == ApproveResult.MEMBERSHIP_NOT_FOUND:
        raise HTTPException(status_code=404, detail="No hay solicitud de este usuario")

    return ApproveResponse(result=result.value, user_id=user_id)
