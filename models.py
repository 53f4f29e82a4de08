from sqlmodel import SQLModel, Field
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every table column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(SQLModel, table=True):
    """Registered account; the login never changes after creation"""
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    login: str = Field(max_length=100, unique=True, index=True)
    password_hash: str
    display_name: Optional[str] = Field(default=None, max_length=200)
    email: Optional[str] = Field(default=None, max_length=320)
    created_at: datetime = Field(default_factory=utcnow)


class Group(SQLModel, table=True):
    """Todo category owned by a single user"""
    __tablename__ = "todo_groups"

    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: int = Field(foreign_key="users.id", index=True)
    name: str = Field(max_length=200)
    # The default group made at registration cannot be deleted
    removable: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utcnow)


class Todo(SQLModel, table=True):
    """Todo item; group_id, when set, points at a group of the same owner"""
    __tablename__ = "todos"

    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: int = Field(foreign_key="users.id", index=True)
    group_id: Optional[int] = Field(default=None, foreign_key="todo_groups.id", index=True)
    text: str = Field(max_length=1000)
    completed: bool = Field(default=False)
    due_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class UserSession(SQLModel, table=True):
    """Server-side login session; id is the SHA-256 of the session identifier"""
    __tablename__ = "sessions"

    id: str = Field(primary_key=True, max_length=64)
    user_id: int = Field(foreign_key="users.id", index=True)
    created_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime = Field(index=True)
    revoked_at: Optional[datetime] = None
