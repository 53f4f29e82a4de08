from fastapi import APIRouter, Depends, status
from typing import List, Optional

from dependencies import get_entity_store
from middleware.auth import AuthContext, require_auth
from schemas import DeleteResponse, TodoCreate, TodoResponse, TodoUpdate
from services.entities import EntityStore

router = APIRouter()


@router.get("/todo/get", response_model=List[TodoResponse])
def list_todos(
    group_id: Optional[int] = None,
    filter_status: str = "all",
    auth: AuthContext = Depends(require_auth),
    store: EntityStore = Depends(get_entity_store),
):
    """
    Get all todos of the authenticated user

    Args:
        group_id: Only todos of this group
        filter_status: Filter by status (all, pending, completed)

    Returns:
        List of todos, oldest first
    """
    todos = store.list_todos(auth.user_id, group_id=group_id, status=filter_status)
    return [TodoResponse.model_validate(todo) for todo in todos]


@router.get("/todo/get/{todo_id}", response_model=TodoResponse)
def get_todo(
    todo_id: int,
    auth: AuthContext = Depends(require_auth),
    store: EntityStore = Depends(get_entity_store),
):
    """Get todo details"""
    return TodoResponse.model_validate(store.get_todo(auth.user_id, todo_id))


@router.post("/todo/create", response_model=TodoResponse, status_code=status.HTTP_201_CREATED)
def create_todo(
    todo_data: TodoCreate,
    auth: AuthContext = Depends(require_auth),
    store: EntityStore = Depends(get_entity_store),
):
    """
    Create a new todo

    Args:
        todo_data: Text, optional group and due date

    Returns:
        The created todo
    """
    todo = store.create_todo(
        auth.user_id,
        todo_data.text,
        group_id=todo_data.group_id,
        due_at=todo_data.due_at,
    )
    return TodoResponse.model_validate(todo)


@router.post("/todo/update/{todo_id}", response_model=TodoResponse)
def update_todo(
    todo_id: int,
    patch: TodoUpdate,
    auth: AuthContext = Depends(require_auth),
    store: EntityStore = Depends(get_entity_store),
):
    """
    Update a todo

    Args:
        todo_id: Todo ID
        patch: Only the supplied fields change

    Returns:
        The updated todo
    """
    return TodoResponse.model_validate(store.update_todo(auth.user_id, todo_id, patch))


@router.post("/todo/markdone/{todo_id}", response_model=TodoResponse)
def mark_todo_done(
    todo_id: int,
    auth: AuthContext = Depends(require_auth),
    store: EntityStore = Depends(get_entity_store),
):
    """Mark a todo as completed"""
    return TodoResponse.model_validate(store.mark_done(auth.user_id, todo_id))


@router.api_route("/todo/delete/{todo_id}", methods=["DELETE", "POST"], response_model=DeleteResponse)
def delete_todo(
    todo_id: int,
    auth: AuthContext = Depends(require_auth),
    store: EntityStore = Depends(get_entity_store),
):
    """Delete a todo"""
    store.delete_todo(auth.user_id, todo_id)
    return DeleteResponse(id=todo_id)
