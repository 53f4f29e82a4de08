from fastapi import Depends
from sqlmodel import Session

from config import Settings, get_settings
from database import get_session
from services.credentials import CredentialStore
from services.entities import EntityStore
from services.sessions import SessionManager


def get_credential_store(
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> CredentialStore:
    return CredentialStore(session, settings)


def get_session_manager(
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> SessionManager:
    return SessionManager(session, settings)


def get_entity_store(
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    credentials: CredentialStore = Depends(get_credential_store),
) -> EntityStore:
    return EntityStore(session, settings, credentials)
