"""
Credential store: account creation and login-secret verification.
"""
import logging
from functools import lru_cache
from typing import Callable, Optional

from sqlmodel import select

from errors import Conflict, DuplicateLogin, InvalidCredentials, ValidationError, WeakCredential
from models import User
from services.base import Store
from utils.retry import retry_read
from utils.security import hash_secret, verify_secret

logger = logging.getLogger(__name__)

MIN_LOGIN_LENGTH = 3
MAX_LOGIN_LENGTH = 100
FORBIDDEN_LOGIN_CHARACTERS = "|<>\"'`\\/\u200b"


@lru_cache(maxsize=4)
def _dummy_hash(iterations: int) -> str:
    # Verified against when the login is unknown so both paths cost one hash
    return hash_secret("dummy-secret-for-timing", iterations)


def validate_login(login: str) -> str:
    """
    Check a login against the naming rules

    Returns:
        The login with surrounding whitespace removed

    Raises:
        ValidationError: If the login is too short, too long or has a forbidden character
    """
    login = (login or "").strip()
    if len(login) < MIN_LOGIN_LENGTH:
        raise ValidationError(f"Login must be at least {MIN_LOGIN_LENGTH} characters long")
    if len(login) > MAX_LOGIN_LENGTH:
        raise ValidationError(f"Login must be at most {MAX_LOGIN_LENGTH} characters long")
    for char in login:
        if char in FORBIDDEN_LOGIN_CHARACTERS:
            raise ValidationError(f"Login contains a forbidden character {char!r}")
    return login


class CredentialStore(Store):

    def check_secret_policy(self, secret: str) -> None:
        if not secret:
            raise WeakCredential("Secret must not be empty")
        if len(secret) < self.settings.min_secret_length:
            raise WeakCredential(
                f"Secret must be at least {self.settings.min_secret_length} characters long"
            )

    def register(self, login: str, secret: str, provision: Optional[Callable[[User], None]] = None) -> int:
        """
        Create a user account

        Args:
            login: Unique login identifier
            secret: Plaintext secret, only its salted hash is stored
            provision: Called with the flushed user inside the same transaction,
                used to create per-account defaults

        Returns:
            ID of the new user

        Raises:
            ValidationError: Malformed login
            WeakCredential: Secret fails the policy
            DuplicateLogin: Login already registered
        """
        login = validate_login(login)
        self.check_secret_policy(secret)

        if self.session.exec(select(User.id).where(User.login == login)).first() is not None:
            raise DuplicateLogin()

        user = User(
            login=login,
            password_hash=hash_secret(secret, self.settings.password_hash_iterations),
        )
        try:
            with self.transaction():
                self.session.add(user)
                self.session.flush()
                if provision is not None:
                    provision(user)
        except Conflict as exc:
            # Lost a race with a concurrent registration of the same login
            raise DuplicateLogin() from exc

        self.session.refresh(user)
        logger.info("Registered user %s (id=%s)", user.login, user.id)
        return user.id

    @retry_read
    def verify(self, login: str, secret: str) -> int:
        """
        Check a login/secret pair

        Returns:
            ID of the matching user

        Raises:
            InvalidCredentials: Unknown login or wrong secret, indistinguishably
        """
        user = self.session.exec(select(User).where(User.login == (login or "").strip())).first()
        if user is None:
            verify_secret(secret or "", _dummy_hash(self.settings.password_hash_iterations))
            raise InvalidCredentials()
        if not verify_secret(secret or "", user.password_hash):
            raise InvalidCredentials()
        return user.id

    def change_secret(self, user: User, secret: str) -> None:
        """Re-hash a new secret onto user; the caller commits"""
        self.check_secret_policy(secret)
        user.password_hash = hash_secret(secret, self.settings.password_hash_iterations)
