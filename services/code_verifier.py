import logging
import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type, before_sleep_log, RetryError

from models.portal_session import PortalSession
from models.verification_code import VerificationCode
from services.whitelist_guard import normalize_email
from utils.auth_errors import (
    CodeConflictError,
    CodeExpiredError,
    CodeInvalidError,
    InternalError,
    MalformedCodeError,
    MissingFieldError,
)
from utils.logger_factory import new_logger, mask_token
from utils.time_utils import as_utc, utcnow

SESSION_DURATION_HOURS = 24
SESSION_TOKEN_BYTES = 32  # 256 bits, hex encoded to 64 chars

CODE_PATTERN = re.compile(r"[0-9]{5}")

verify_retry_logger = new_logger("code_verify_retry")


def validate_code_format(code: str) -> str:
    if not isinstance(code, str) or not CODE_PATTERN.fullmatch(code):
        raise MalformedCodeError()
    return code


def generate_session_id() -> str:
    return secrets.token_hex(SESSION_TOKEN_BYTES)


@dataclass
class VerifyResult:
    session_id: str
    email: str
    expires_at: datetime


class CodeVerifier:
    """
    Redeems a login code for a new portal session.

    A matched code is consumed with a conditional ``used=false -> true``
    update before any session is created, so one code yields at most one
    session even when requests race. Only the request whose update touched
    the row may go on to create the session.
    """

    def __init__(self, db: Session, session_hours: int = SESSION_DURATION_HOURS):
        self.db = db
        self.session_hours = session_hours

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(OperationalError),
        before_sleep=before_sleep_log(verify_retry_logger, logging.WARNING)
    )
    def _find_candidate(self, email: str, code: str) -> Optional[VerificationCode]:
        """Newest unused row for (email, code); older rows are ignored."""
        log = new_logger("find_code")
        try:
            return (
                self.db.query(VerificationCode)
                .filter_by(email=email, code=code, used=False)
                .order_by(VerificationCode.created_at.desc(), VerificationCode.id.desc())
                .first()
            )
        except OperationalError:
            # The next attempt needs a clean transaction
            self.db.rollback()
            log.exception("OperationalError while looking up verification code, will retry.")
            raise

    def _claim(self, code_id: int, used_at: Optional[datetime] = None) -> bool:
        """Compare-and-set on ``used``. True only for the request that flipped it."""
        values = {"used": True}
        if used_at is not None:
            values["used_at"] = used_at
        try:
            updated = (
                self.db.query(VerificationCode)
                .filter_by(id=code_id, used=False)
                .update(values, synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        return updated == 1

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(OperationalError),
        before_sleep=before_sleep_log(verify_retry_logger, logging.WARNING)
    )
    def _create_session(self, email: str, now: datetime) -> PortalSession:
        log = new_logger("create_session")
        session = PortalSession(
            session_id=generate_session_id(),
            email=email,
            created_at=now,
            expires_at=now + timedelta(hours=self.session_hours),
            last_accessed_at=now,
        )
        try:
            self.db.add(session)
            self.db.commit()
            self.db.refresh(session)
        except OperationalError:
            self.db.rollback()
            log.exception("OperationalError while creating session, will retry.")
            raise
        except SQLAlchemyError:
            self.db.rollback()
            log.exception("Database commit/refresh failed while creating session.")
            raise
        return session

    def verify(self, email: str, code: str) -> VerifyResult:
        log = new_logger("verify_code")
        email = normalize_email(email)
        if not email or not code:
            raise MissingFieldError("Email and code are required")
        validate_code_format(code)
        now = utcnow()

        try:
            candidate = self._find_candidate(email, code)
        except (SQLAlchemyError, RetryError) as e:
            log.error(f"Verification code lookup failed for {email}: {e}")
            raise InternalError("Failed to verify code") from e

        if candidate is None:
            log.info(f"Code not found or already used for {email}")
            raise CodeInvalidError()

        if candidate.is_expired(now):
            log.info(f"Code expired for {email} [{candidate.to_dict()}]")
            try:
                self._claim(candidate.id)
            except SQLAlchemyError:
                # Expiry alone already keeps the row from ever redeeming
                log.exception(f"Failed to mark expired code {candidate.id} as used")
            raise CodeExpiredError()

        try:
            claimed = self._claim(candidate.id, used_at=now)
        except SQLAlchemyError as e:
            log.error(f"Error marking code {candidate.id} as used: {e}")
            raise InternalError("Failed to verify code") from e
        if not claimed:
            log.warning(f"Code {candidate.id} for {email} was redeemed by a concurrent request")
            raise CodeConflictError()

        try:
            session = self._create_session(email, now)
        except (SQLAlchemyError, RetryError) as e:
            # The code stays consumed; the user has to request a new one
            log.error(f"Error creating session for {email}: {e}")
            raise InternalError("Failed to create session") from e

        log.info(f"Session created successfully for {email} [{mask_token(session.session_id)}]")
        return VerifyResult(
            session_id=session.session_id,
            email=email,
            expires_at=as_utc(session.expires_at),
        )
