"""
Session manager: issues, resolves and revokes login sessions.

The cookie carries a signed JWT holding a random session identifier;
the server keeps only the identifier's digest, so revocation and expiry
are decided by the stored record, not by the token alone.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Union

from sqlmodel import select

from errors import Unauthenticated
from models import User, UserSession, utcnow
from services.base import Store
from utils.jwt import encode_session_token, get_user_id_from_token, verify_jwt
from utils.retry import retry_read
from utils.security import new_session_id, session_digest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Authenticated:
    user_id: int


@dataclass(frozen=True)
class Rejected:
    # Only ever logged, never sent to the client
    reason: str


AuthOutcome = Union[Authenticated, Rejected]


class SessionManager(Store):

    @property
    def ttl(self) -> timedelta:
        return timedelta(hours=self.settings.session_ttl_hours)

    def create_session(self, user_id: int) -> str:
        """
        Start a session for user_id

        Returns:
            Signed token to hand to the client as its session cookie
        """
        session_id = new_session_id()
        now = utcnow()
        expires_at = now + self.ttl
        record = UserSession(
            id=session_digest(session_id),
            user_id=user_id,
            created_at=now,
            expires_at=expires_at,
        )
        with self.transaction():
            self.session.add(record)
        return encode_session_token(session_id, user_id, expires_at, self.settings.session_secret)

    @retry_read
    def authenticate(self, token: Optional[str]) -> AuthOutcome:
        """Resolve a token to an AuthOutcome without raising"""
        if not token:
            return Rejected("missing token")

        payload = verify_jwt(token, self.settings.session_secret)
        if payload is None:
            return Rejected("malformed, forged or expired token")

        record = self.session.get(UserSession, session_digest(payload["sid"]))
        if record is None:
            return Rejected("unknown session")
        if record.revoked_at is not None:
            return Rejected("revoked session")
        if record.expires_at <= utcnow():
            return Rejected("expired session")
        if get_user_id_from_token(payload) != record.user_id:
            return Rejected("subject does not match session")
        if self.session.get(User, record.user_id) is None:
            return Rejected("session user no longer exists")

        return Authenticated(record.user_id)

    def resolve(self, token: Optional[str]) -> int:
        """
        Return the user bound to token

        Raises:
            Unauthenticated: For every kind of invalid token
        """
        outcome = self.authenticate(token)
        if isinstance(outcome, Rejected):
            logger.debug("Session rejected: %s", outcome.reason)
            raise Unauthenticated()
        return outcome.user_id

    def revoke(self, token: Optional[str]) -> None:
        """Invalidate the session behind token; repeated or bogus calls are no-ops"""
        if not token:
            return
        payload = verify_jwt(token, self.settings.session_secret, verify_exp=False)
        if payload is None:
            return

        with self.transaction():
            record = self.session.exec(
                select(UserSession)
                .where(UserSession.id == session_digest(payload["sid"]))
                .with_for_update()
            ).first()
            if record is None or record.revoked_at is not None:
                return
            record.revoked_at = utcnow()
            self.session.add(record)
        logger.info("Revoked session for user id=%s", record.user_id)

    def sweep_expired(self) -> int:
        """
        Delete expired and revoked session records

        Returns:
            Number of records removed
        """
        now = utcnow()
        with self.transaction():
            stale = self.session.exec(
                select(UserSession).where(
                    (UserSession.expires_at <= now) | (UserSession.revoked_at.is_not(None))
                )
            ).all()
            for record in stale:
                self.session.delete(record)
        if stale:
            logger.info("Swept %d stale sessions", len(stale))
        return len(stale)
