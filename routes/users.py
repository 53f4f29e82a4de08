import logging

from fastapi import APIRouter, Depends, Request, Response, status

from config import Settings, get_settings
from dependencies import get_credential_store, get_entity_store, get_session_manager
from errors import InvalidCredentials
from middleware.auth import (
    AuthContext,
    clear_session_cookie,
    read_session_cookie,
    require_auth,
    set_session_cookie,
)
from schemas import Credentials, UserResponse, UserUpdate
from services.credentials import CredentialStore
from services.entities import EntityStore
from services.sessions import SessionManager

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/user/create", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    credentials: Credentials,
    response: Response,
    store: CredentialStore = Depends(get_credential_store),
    entities: EntityStore = Depends(get_entity_store),
    sessions: SessionManager = Depends(get_session_manager),
    settings: Settings = Depends(get_settings),
):
    """
    Register a new user and log them in

    Args:
        credentials: Login and secret
        response: Receives the session cookie

    Returns:
        The created user
    """
    user_id = store.register(credentials.login, credentials.secret, provision=entities.add_default_group)
    set_session_cookie(response, sessions.create_session(user_id), settings)
    return UserResponse.model_validate(entities.get_user(user_id))


@router.post("/user/login", response_model=UserResponse)
def login(
    credentials: Credentials,
    response: Response,
    store: CredentialStore = Depends(get_credential_store),
    entities: EntityStore = Depends(get_entity_store),
    sessions: SessionManager = Depends(get_session_manager),
    settings: Settings = Depends(get_settings),
):
    """
    Exchange a login and secret for a session cookie

    Returns:
        The logged in user
    """
    try:
        user_id = store.verify(credentials.login, credentials.secret)
    except InvalidCredentials:
        logger.warning("Failed login attempt for %r", credentials.login)
        raise

    set_session_cookie(response, sessions.create_session(user_id), settings)
    logger.info("User id=%s logged in", user_id)
    return UserResponse.model_validate(entities.get_user(user_id))


@router.post("/user/logout")
def logout(
    request: Request,
    response: Response,
    sessions: SessionManager = Depends(get_session_manager),
    settings: Settings = Depends(get_settings),
):
    """End the current session; safe to call without one"""
    sessions.revoke(read_session_cookie(request, settings))
    clear_session_cookie(response, settings)
    return {"logged_out": True}


@router.get("/user/get", response_model=UserResponse)
def get_user(
    auth: AuthContext = Depends(require_auth),
    entities: EntityStore = Depends(get_entity_store),
):
    """Get the current user"""
    return UserResponse.model_validate(entities.get_user(auth.user_id))


@router.post("/user/update", response_model=UserResponse)
def update_user(
    patch: UserUpdate,
    auth: AuthContext = Depends(require_auth),
    entities: EntityStore = Depends(get_entity_store),
):
    """
    Update the current user

    Args:
        patch: Fields to change; login must be absent or unchanged

    Returns:
        The updated user
    """
    return UserResponse.model_validate(entities.update_user(auth.user_id, patch))
