import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base


class Visibility(str, enum.Enum):
    PUBLIC = "public"
    RESTRICTED = "restricted"


class Group(Base):
    __tablename__ = "groups"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    visibility: Mapped[Visibility] = mapped_column(
        Enum(Visibility, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        default=Visibility.PUBLIC,
        nullable=False,
    )
    creator_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    # el grupo es dueño exclusivo de sus membresías y posts
    memberships: Mapped[list["Membership"]] = relationship(  # noqa: F821
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="Membership.id",
    )
    posts: Mapped[list["Post"]] = relationship(  # noqa: F821
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="Post.id",
    )

    @property
    def is_public(self) -> bool:
        return self.visibility == Visibility.PUBLIC

    def created_by(self, user) -> bool:
        return user is not None and self.creator_id == user.id
