import logging
from dataclasses import dataclass

from fastapi import Depends, Request, Response

from config import Settings, get_settings
from dependencies import get_session_manager
from errors import Unauthenticated
from services.sessions import Rejected, SessionManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    """Identity of the caller, passed explicitly to every handler"""
    user_id: int
    token: str


def read_session_cookie(request: Request, settings: Settings) -> str:
    return request.cookies.get(settings.session_cookie_name) or ""


def require_auth(
    request: Request,
    settings: Settings = Depends(get_settings),
    sessions: SessionManager = Depends(get_session_manager),
) -> AuthContext:
    """
    Resolve the session cookie to the caller's identity

    Args:
        request: FastAPI request object
        settings: Cookie name lives here
        sessions: Session manager bound to this request's database session

    Raises:
        Unauthenticated: If the cookie is missing, invalid, revoked or expired
    """
    token = read_session_cookie(request, settings)
    outcome = sessions.authenticate(token)

    if isinstance(outcome, Rejected):
        logger.debug("Rejected %s %s: %s", request.method, request.url.path, outcome.reason)
        raise Unauthenticated()

    return AuthContext(user_id=outcome.user_id, token=token)


def set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=int(settings.session_ttl_hours * 3600),
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
        path="/",
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        settings.session_cookie_name,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
        path="/",
    )
