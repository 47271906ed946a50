from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class PostCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None


class PostUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None


class PostPublic(BaseModel):
    id: int
    group_id: int
    author_id: int
    title: str
    description: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class CommentCreate(BaseModel):
    body: str = Field(min_length=1, max_length=2000)


class CommentPublic(BaseModel):
    id: int
    post_id: int
    author_id: int
    body: str
    created_at: datetime

    class Config:
        from_attributes = True
