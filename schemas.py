from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class Credentials(BaseModel):
    """Schema for registration and login"""
    login: str = Field(..., min_length=1, max_length=100)
    secret: str = Field(..., max_length=200)


class UserUpdate(BaseModel):
    """Schema for updating the current user; login may be echoed but not changed"""
    login: Optional[str] = Field(None, max_length=100)
    display_name: Optional[str] = Field(None, max_length=200)
    email: Optional[str] = Field(None, max_length=320)
    secret: Optional[str] = Field(None, max_length=200)


class UserResponse(BaseModel):
    """Schema for user response; never carries the password hash"""
    id: int
    login: str
    display_name: Optional[str]
    email: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class GroupCreate(BaseModel):
    """Schema for creating a new group"""
    name: str = Field(..., min_length=1, max_length=200)


class GroupUpdate(BaseModel):
    """Schema for updating a group"""
    name: Optional[str] = Field(None, min_length=1, max_length=200)


class GroupResponse(BaseModel):
    """Schema for group response"""
    id: int
    owner_id: int
    name: str
    removable: bool
    created_at: datetime

    class Config:
        from_attributes = True


class TodoCreate(BaseModel):
    """Schema for creating a new todo"""
    text: str = Field(..., min_length=1, max_length=1000)
    group_id: Optional[int] = None
    due_at: Optional[datetime] = None


class TodoUpdate(BaseModel):
    """Schema for updating a todo; an explicit null group_id detaches it"""
    text: Optional[str] = Field(None, min_length=1, max_length=1000)
    group_id: Optional[int] = None
    completed: Optional[bool] = None
    due_at: Optional[datetime] = None


class TodoResponse(BaseModel):
    """Schema for todo response"""
    id: int
    owner_id: int
    group_id: Optional[int]
    text: str
    completed: bool
    due_at: Optional[datetime]
    completed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DeleteResponse(BaseModel):
    id: int
    deleted: bool = True


class ErrorDetail(BaseModel):
    kind: str
    message: str


class ErrorResponse(BaseModel):
    """Body of every non-2xx response"""
    error: ErrorDetail
