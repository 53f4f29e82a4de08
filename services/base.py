import logging
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from config import Settings
from errors import STORAGE_ERRORS, Conflict, Transient

logger = logging.getLogger(__name__)


class Store:
    """Common plumbing for components working on one database session"""

    retry_delay = 0.05

    def __init__(self, session: Session, settings: Settings):
        self.session = session
        self.settings = settings
        self.read_attempts = settings.read_retry_attempts

    @contextmanager
    def transaction(self):
        """Commit once on success, roll back on any failure; never retried"""
        try:
            yield self.session
            self.session.commit()
        except STORAGE_ERRORS as exc:
            self.session.rollback()
            logger.warning("Write aborted, storage unavailable: %s", exc)
            raise Transient() from exc
        except IntegrityError as exc:
            self.session.rollback()
            logger.warning("Write refused by a database constraint: %s", exc.orig)
            raise Conflict() from exc
        except Exception:
            self.session.rollback()
            raise
