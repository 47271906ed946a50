from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_authz, get_db
from app.core.auth import get_current_user
from app.core.permissions import Action, AuthorizationEngine, ResourceType
from app.models.group import Group
from app.models.post import Post
from app.models.user import User
from app.schemas.post import CommentCreate, CommentPublic, PostCreate, PostPublic, PostUpdate
from app.services import posts as post_service

router = APIRouter(tags=["posts"])


def _get_group(db: Session, group_id: int) -> Group:
    group = db.get(Group, group_id)
    if not group:
        raise HTTPException(status_code=404, detail="Grupo no encontrado")
    return group


def _get_post(db: Session, post_id: int) -> Post:
    post = db.get(Post, post_id)
    if not post:
        raise HTTPException(status_code=404, detail="Post no encontrado")
    return post


def _require(authz: AuthorizationEngine, user: User, action: Action, resource_type, resource=None):
    if not authz.can_perform(user, action, resource_type, resource):
        raise HTTPException(status_code=403, detail="No autorizado")


@router.get("/groups/{group_id}/posts", response_model=list[PostPublic])
def list_posts(
    group_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    authz: AuthorizationEngine = Depends(get_authz),
):
    group = _get_group(db, group_id)
    # leer los posts de un grupo = leer el grupo
    _require(authz, current_user, Action.READ, ResourceType.GROUP, group)

    posts = db.execute(
        select(Post).where(Post.group_id == group.id).order_by(Post.id)
    ).scalars().all()
    return posts


@router.post("/groups/{group_id}/posts", response_model=PostPublic, status_code=201)
def create_post(
    group_id: int,
    payload: PostCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    authz: AuthorizationEngine = Depends(get_authz),
):
    group = _get_group(db, group_id)

    post = Post(
        group_id=group.id,
        author_id=current_user.id,
        title=payload.title.strip(),
        description=(payload.description.strip() if payload.description else None),
    )
    _require(authz, current_user, Action.CREATE, ResourceType.POST, post)

    return post_service.create_post(db, post)


@router.get("/posts/{post_id}", response_model=PostPublic)
def get_post(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    authz: AuthorizationEngine = Depends(get_authz),
):
    post = _get_post(db, post_id)
    _require(authz, current_user, Action.READ, ResourceType.GROUP, post.group)
    return post


@router.put("/posts/{post_id}", response_model=PostPublic)
def update_post(
    post_id: int,
    payload: PostUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    authz: AuthorizationEngine = Depends(get_authz),
):
    post = _get_post(db, post_id)
    _require(authz, current_user, Action.UPDATE, ResourceType.POST, post)

    return post_service.update_post(db, post, title=payload.title, description=payload.description)


@router.delete("/posts/{post_id}")
def delete_post(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    authz: AuthorizationEngine = Depends(get_authz),
):
    post = _get_post(db, post_id)
    _require(authz, current_user, Action.DELETE, ResourceType.POST, post)

    post_service.delete_post(db, post)
    return {"ok": True, "deleted_post_id": post_id}


@router.get("/posts/{post_id}/comments", response_model=list[CommentPublic])
def list_comments(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    authz: AuthorizationEngine = Depends(get_authz),
):
    post = _get_post(db, post_id)
    _require(authz, current_user, Action.READ, ResourceType.GROUP, post.group)
    return post.comments


@router.post("/posts/{post_id}/comments", response_model=CommentPublic, status_code=201)
def create_comment(
    post_id: int,
    payload: CommentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    authz: AuthorizationEngine = Depends(get_authz),
):
    post = _get_post(db, post_id)
    # comentar = poder leer el grupo del post
    _require(authz, current_user, Action.READ, ResourceType.GROUP, post.group)

    if not payload.body.strip():
        raise HTTPException(status_code=400, detail="Comentario vacío")
    return post_service.add_comment(db, post, current_user, payload.body)
