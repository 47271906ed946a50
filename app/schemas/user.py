from pydantic import BaseModel, EmailStr

from app.models.user import Tier

class UserPublic(BaseModel):
    id: int
    email: EmailStr

class UserMe(UserPublic):
    plan: Tier
    is_admin: bool
