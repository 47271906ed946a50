from datetime import datetime
from pydantic import BaseModel
from typing import Optional

from app.models.membership import MembershipStatus

class MembershipPublic(BaseModel):
    user_id: int
    group_id: int
    status: MembershipStatus
    is_creator: bool
    created_at: datetime

    class Config:
        from_attributes = True

class PendingRequest(MembershipPublic):
    email: Optional[str] = None

class MyMembership(BaseModel):
    group_id: int
    status: Optional[MembershipStatus] = None  # None = no es miembro
    is_creator: bool = False

class JoinResponse(BaseModel):
    ok: bool = True
    result: str
    message: str

class ApproveResponse(BaseModel):
    ok: bool = True
    result: str
    user_id: int

class JoinUrl(BaseModel):
    group_id: int
    url: str
