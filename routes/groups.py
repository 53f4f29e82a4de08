from fastapi import APIRouter, Depends, status
from typing import List

from dependencies import get_entity_store
from middleware.auth import AuthContext, require_auth
from schemas import DeleteResponse, GroupCreate, GroupResponse, GroupUpdate
from services.entities import EntityStore

router = APIRouter()


@router.get("/group/get", response_model=List[GroupResponse])
def list_groups(
    auth: AuthContext = Depends(require_auth),
    store: EntityStore = Depends(get_entity_store),
):
    """Get all groups of the authenticated user"""
    return [GroupResponse.model_validate(group) for group in store.list_groups(auth.user_id)]


@router.get("/group/get/{group_id}", response_model=GroupResponse)
def get_group(
    group_id: int,
    auth: AuthContext = Depends(require_auth),
    store: EntityStore = Depends(get_entity_store),
):
    return GroupResponse.model_validate(store.get_group(auth.user_id, group_id))


@router.post("/group/create", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
def create_group(
    group_data: GroupCreate,
    auth: AuthContext = Depends(require_auth),
    store: EntityStore = Depends(get_entity_store),
):
    """Create a new group"""
    return GroupResponse.model_validate(store.create_group(auth.user_id, group_data.name))


@router.post("/group/update/{group_id}", response_model=GroupResponse)
def update_group(
    group_id: int,
    patch: GroupUpdate,
    auth: AuthContext = Depends(require_auth),
    store: EntityStore = Depends(get_entity_store),
):
    """
    Update a group

    Args:
        group_id: Group ID
        patch: Whatever subset of the group fields the client sends

    Returns:
        The updated group
    """
    return GroupResponse.model_validate(store.update_group(auth.user_id, group_id, patch))


@router.api_route("/group/delete/{group_id}", methods=["DELETE", "POST"], response_model=DeleteResponse)
def delete_group(
    group_id: int,
    auth: AuthContext = Depends(require_auth),
    store: EntityStore = Depends(get_entity_store),
):
    """
    Delete a group

    Todos in the group are detached or deleted according to
    GROUP_DELETE_POLICY.
    """
    store.delete_group(auth.user_id, group_id)
    return DeleteResponse(id=group_id)
