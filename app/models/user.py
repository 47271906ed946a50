import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from app.core.database import Base


class Tier(str, enum.Enum):
    NONE = "none"
    BASIC = "basic"
    PREMIUM = "premium"

    @classmethod
    def parse(cls, value) -> "Tier":
        # planes desconocidos o vacíos caen en el plan sin suscripción
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.NONE


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)

    # texto libre: lo escribe un proceso de administración externo, se interpreta con Tier.parse
    plan: Mapped[str] = mapped_column(String(20), default=Tier.NONE.value, nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    posts: Mapped[list["Post"]] = relationship(back_populates="author")  # noqa: F821
    memberships: Mapped[list["Membership"]] = relationship(back_populates="user")  # noqa: F821

    @validates("plan")
    def _plan_as_text(self, key, value):
        return value.value if isinstance(value, Tier) else value

    @property
    def tier(self) -> Tier:
        return Tier.parse(self.plan)
