import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import PersistenceError
from app.models.comment import Comment
from app.models.post import Post
from app.models.user import User

logger = logging.getLogger(__name__)


def _commit(db: Session, what: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("%s failed", what)
        raise PersistenceError(f"cannot {what}") from exc


def create_post(db: Session, post: Post) -> Post:
    db.add(post)
    _commit(db, "create post")
    db.refresh(post)
    logger.info("post=%s created in group=%s by user=%s", post.id, post.group_id, post.author_id)
    return post


def update_post(
    db: Session,
    post: Post,
    title: Optional[str] = None,
    description: Optional[str] = None,
) -> Post:
    if title is not None:
        post.title = title.strip()
    if description is not None:
        post.description = description.strip() or None
    _commit(db, f"update post {post.id}")
    db.refresh(post)
    return post


def delete_post(db: Session, post: Post) -> None:
    post_id = post.id
    # los comentarios caen por cascade
    db.delete(post)
    _commit(db, f"delete post {post_id}")
    logger.info("post=%s deleted", post_id)


def add_comment(db: Session, post: Post, author: User, body: str) -> Comment:
    comment = Comment(post_id=post.id, author_id=author.id, body=body.strip())
    db.add(comment)
    _commit(db, f"comment on post {post.id}")
    db.refresh(comment)
    return comment
