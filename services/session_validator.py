import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type, before_sleep_log, RetryError

from models.portal_session import PortalSession
from utils.auth_errors import InternalError, MissingFieldError
from utils.logger_factory import new_logger, mask_token
from utils.time_utils import as_utc, utcnow

REASON_NOT_FOUND = "Session not found"
REASON_EXPIRED = "Session expired"

session_retry_logger = new_logger("session_check_retry")


@dataclass
class SessionCheck:
    valid: bool
    email: Optional[str] = None
    expires_at: Optional[datetime] = None
    reason: Optional[str] = None


class SessionValidator:
    """Checks a session token on every protected page load."""

    def __init__(self, db: Session):
        self.db = db

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(OperationalError),
        before_sleep=before_sleep_log(session_retry_logger, logging.WARNING)
    )
    def _fetch(self, session_id: str) -> Optional[PortalSession]:
        log = new_logger("fetch_session")
        try:
            return self.db.query(PortalSession).filter_by(session_id=session_id).first()
        except OperationalError:
            self.db.rollback()
            log.exception(f"OperationalError while fetching session [{mask_token(session_id)}], will retry.")
            raise

    def _delete(self, session_id: str) -> None:
        try:
            # Zero rows is fine, a concurrent check may have deleted it first
            self.db.query(PortalSession).filter_by(session_id=session_id).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def _touch(self, session_id: str, now: datetime) -> None:
        log = new_logger("touch_session")
        try:
            self.db.query(PortalSession).filter_by(session_id=session_id).update(
                {"last_accessed_at": now}, synchronize_session=False
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            log.warning(f"Could not update last_accessed_at for [{mask_token(session_id)}]: {e}")

    def check(self, session_id: str) -> SessionCheck:
        log = new_logger("check_session")
        if not session_id:
            raise MissingFieldError("Session ID is required")
        now = utcnow()

        try:
            session = self._fetch(session_id)
        except (SQLAlchemyError, RetryError) as e:
            log.error(f"Session lookup failed for [{mask_token(session_id)}]: {e}")
            raise InternalError("Failed to check session") from e

        if session is None:
            log.info(f"Session not found [{mask_token(session_id)}]")
            return SessionCheck(valid=False, reason=REASON_NOT_FOUND)

        if session.is_expired(now):
            log.info(f"Session expired [{session.to_dict()}]")
            try:
                self._delete(session_id)
            except SQLAlchemyError as e:
                log.error(f"Failed to delete expired session [{mask_token(session_id)}]: {e}")
                raise InternalError("Failed to check session") from e
            return SessionCheck(valid=False, reason=REASON_EXPIRED)

        email = session.email
        expires_at = as_utc(session.expires_at)
        self._touch(session_id, now)
        log.info(f"Valid session accessed: {email}")
        return SessionCheck(valid=True, email=email, expires_at=expires_at)
