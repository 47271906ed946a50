from datetime import datetime
from pydantic import BaseModel, Field
from typing import Optional

from app.models.group import Visibility
from app.models.membership import MembershipStatus

class GroupCreate(BaseModel):
    title: str = Field(min_length=1, max_length=120)
    visibility: Visibility = Visibility.PUBLIC

class GroupUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=120)
    visibility: Optional[Visibility] = None

class GroupPublic(BaseModel):
    id: int
    title: str
    visibility: Visibility
    creator_id: int
    created_at: datetime

    pending_count: Optional[int] = None
    my_status: Optional[MembershipStatus] = None
    is_creator: Optional[bool] = None

    class Config:
        from_attributes = True
