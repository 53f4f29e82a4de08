"""
Entity store: ownership-scoped CRUD over users, groups and todos.

Every method takes the caller's user id as its scope. Records owned by
someone else are reported exactly like missing ones (NotFound), so the
store never confirms that another user's record exists.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlmodel import Session, select

from config import Settings
from errors import NotFound, ValidationError
from models import Group, Todo, User, utcnow
from schemas import GroupUpdate, TodoUpdate, UserUpdate
from services.base import Store
from services.credentials import CredentialStore
from utils.retry import retry_read

logger = logging.getLogger(__name__)

TODO_STATUSES = ("all", "pending", "completed")


def _require_text(value: Optional[str], field: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{field} must not be empty")
    return value


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Columns hold naive UTC; convert client-supplied offsets first
    if value is not None and value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class EntityStore(Store):

    def __init__(self, session: Session, settings: Settings, credentials: CredentialStore = None):
        super().__init__(session, settings)
        self.credentials = credentials or CredentialStore(session, settings)

    # Lookups

    def _owned_group(self, user_id: int, group_id: int, lock: bool = False) -> Group:
        query = select(Group).where(Group.id == group_id, Group.owner_id == user_id)
        if lock:
            query = query.with_for_update()
        group = self.session.exec(query).first()
        if group is None:
            raise NotFound("Group not found")
        return group

    def _owned_todo(self, user_id: int, todo_id: int, lock: bool = False) -> Todo:
        query = select(Todo).where(Todo.id == todo_id, Todo.owner_id == user_id)
        if lock:
            query = query.with_for_update()
        todo = self.session.exec(query).first()
        if todo is None:
            raise NotFound("Todo not found")
        return todo

    # Users

    @retry_read
    def get_user(self, user_id: int) -> User:
        user = self.session.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def update_user(self, user_id: int, patch: UserUpdate) -> User:
        """
        Apply a partial update to the caller's own profile

        Raises:
            ValidationError: If the patch tries to change the login
            WeakCredential: If a new secret fails the policy
        """
        changes = patch.model_dump(exclude_unset=True)
        with self.transaction():
            user = self.session.exec(select(User).where(User.id == user_id).with_for_update()).first()
            if user is None:
                raise NotFound("User not found")

            login = changes.pop("login", None)
            if login is not None and login.strip() != user.login:
                raise ValidationError("Login cannot be changed")

            secret = changes.pop("secret", None)
            if secret is not None:
                self.credentials.change_secret(user, secret)

            for field in ("display_name", "email"):
                if field in changes:
                    value = changes[field]
                    setattr(user, field, value.strip() if value else None)

            self.session.add(user)
        self.session.refresh(user)
        return user

    def add_default_group(self, user: User) -> None:
        """Stage the non-removable default group of a new account; the caller commits"""
        name = self.settings.default_group_name
        if not name:
            return
        self.session.add(Group(owner_id=user.id, name=name, removable=False))

    # Groups

    def create_group(self, user_id: int, name: str) -> Group:
        group = Group(owner_id=user_id, name=_require_text(name, "Group name"))
        with self.transaction():
            self.session.add(group)
        self.session.refresh(group)
        return group

    @retry_read
    def list_groups(self, user_id: int) -> List[Group]:
        query = select(Group).where(Group.owner_id == user_id).order_by(Group.created_at, Group.id)
        return list(self.session.exec(query).all())

    @retry_read
    def get_group(self, user_id: int, group_id: int) -> Group:
        return self._owned_group(user_id, group_id)

    def update_group(self, user_id: int, group_id: int, patch: GroupUpdate) -> Group:
        changes = patch.model_dump(exclude_unset=True)
        name = None
        if "name" in changes:
            name = _require_text(changes["name"], "Group name")

        with self.transaction():
            group = self._owned_group(user_id, group_id, lock=True)
            if name is not None:
                group.name = name
                self.session.add(group)
        self.session.refresh(group)
        return group

    def delete_group(self, user_id: int, group_id: int) -> int:
        """
        Delete a group and resolve the todos that reference it

        With the "detach" policy the todos stay and lose their group_id;
        with "cascade" they are deleted. Group and todo changes commit
        together.

        Returns:
            Number of todos detached or deleted

        Raises:
            NotFound: Group missing or owned by someone else
            ValidationError: Group is the account's non-removable default
        """
        policy = self.settings.group_delete_policy
        with self.transaction():
            group = self._owned_group(user_id, group_id, lock=True)
            if not group.removable:
                raise ValidationError("This group cannot be deleted")

            todos = self.session.exec(
                select(Todo).where(Todo.group_id == group.id).with_for_update()
            ).all()
            now = utcnow()
            for todo in todos:
                if policy == "cascade":
                    self.session.delete(todo)
                else:
                    todo.group_id = None
                    todo.updated_at = now
                    self.session.add(todo)
            # Todo changes must reach the database before the row they reference goes
            self.session.flush()
            self.session.delete(group)

        logger.info(
            "Deleted group id=%s of user id=%s, %s %d todos",
            group_id, user_id, "deleted" if policy == "cascade" else "detached", len(todos),
        )
        return len(todos)

    # Todos

    def create_todo(self, user_id: int, text: str, group_id: Optional[int] = None,
                    due_at: Optional[datetime] = None) -> Todo:
        """
        Create a todo, optionally inside one of the caller's groups

        Raises:
            ValidationError: Empty text
            NotFound: group_id given but not an existing group of the caller
        """
        text = _require_text(text, "Todo text")
        with self.transaction():
            if group_id is not None:
                self._owned_group(user_id, group_id)
            todo = Todo(owner_id=user_id, group_id=group_id, text=text, due_at=_naive_utc(due_at))
            self.session.add(todo)
        self.session.refresh(todo)
        return todo

    @retry_read
    def list_todos(self, user_id: int, group_id: Optional[int] = None, status: str = "all") -> List[Todo]:
        if status not in TODO_STATUSES:
            raise ValidationError(f"status must be one of {', '.join(TODO_STATUSES)}")

        query = select(Todo).where(Todo.owner_id == user_id)
        if group_id is not None:
            query = query.where(Todo.group_id == group_id)
        if status == "pending":
            query = query.where(Todo.completed == False)  # noqa: E712
        elif status == "completed":
            query = query.where(Todo.completed == True)  # noqa: E712

        query = query.order_by(Todo.created_at, Todo.id)
        return list(self.session.exec(query).all())

    @retry_read
    def get_todo(self, user_id: int, todo_id: int) -> Todo:
        return self._owned_todo(user_id, todo_id)

    def update_todo(self, user_id: int, todo_id: int, patch: TodoUpdate) -> Todo:
        """
        Apply a partial update; fields absent from the patch keep their value

        Raises:
            NotFound: Todo not owned by the caller, or new group_id not owned by the caller
            ValidationError: Empty text
        """
        changes = patch.model_dump(exclude_unset=True)
        if "text" in changes:
            changes["text"] = _require_text(changes["text"], "Todo text")
        if "completed" in changes and changes["completed"] is None:
            raise ValidationError("completed must be true or false")
        if "due_at" in changes:
            changes["due_at"] = _naive_utc(changes["due_at"])

        with self.transaction():
            todo = self._owned_todo(user_id, todo_id, lock=True)

            if "group_id" in changes and changes["group_id"] is not None:
                self._owned_group(user_id, changes["group_id"])

            now = utcnow()
            if "completed" in changes and changes["completed"] != todo.completed:
                todo.completed_at = now if changes["completed"] else None

            for field, value in changes.items():
                setattr(todo, field, value)
            todo.updated_at = now
            self.session.add(todo)
        self.session.refresh(todo)
        return todo

    def mark_done(self, user_id: int, todo_id: int) -> Todo:
        """Complete a todo; calling it on a completed todo changes nothing"""
        with self.transaction():
            todo = self._owned_todo(user_id, todo_id, lock=True)
            if not todo.completed:
                now = utcnow()
                todo.completed = True
                todo.completed_at = now
                todo.updated_at = now
                self.session.add(todo)
        self.session.refresh(todo)
        return todo

    def delete_todo(self, user_id: int, todo_id: int) -> None:
        with self.transaction():
            todo = self._owned_todo(user_id, todo_id, lock=True)
            self.session.delete(todo)
