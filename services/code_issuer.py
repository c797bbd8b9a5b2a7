import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type, before_sleep_log, RetryError

from models.verification_code import VerificationCode
from utils.auth_errors import InternalError
from utils.logger_factory import new_logger
from utils.time_utils import as_utc, utcnow

CODE_EXPIRY_MINUTES = 10
CODE_MIN = 10000
CODE_MAX = 99999

# (recipient, code) -> delivered
CodeSender = Callable[[str, str], bool]

issue_retry_logger = new_logger("code_issue_retry")


def generate_code() -> str:
    """Uniform 5 digit code in 10000..99999, no zero padding needed."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


@dataclass
class IssueResult:
    email: str
    expires_at: datetime
    delivered: bool


class CodeIssuer:
    """Creates, stores and emails one-time login codes."""

    def __init__(self, db: Session, sender: CodeSender, expiry_minutes: int = CODE_EXPIRY_MINUTES):
        self.db = db
        self.sender = sender
        self.expiry_minutes = expiry_minutes

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(OperationalError),
        before_sleep=before_sleep_log(issue_retry_logger, logging.WARNING)
    )
    def _store_code(self, email: str, code: str, now: datetime) -> VerificationCode:
        log = new_logger("store_code")
        verification_code = VerificationCode(
            email=email,
            code=code,
            created_at=now,
            expires_at=now + timedelta(minutes=self.expiry_minutes),
            used=False,
        )
        try:
            self.db.add(verification_code)
            self.db.commit()
            self.db.refresh(verification_code)
        except OperationalError:
            self.db.rollback()
            log.exception("OperationalError while storing verification code, will retry.")
            raise
        except SQLAlchemyError:
            self.db.rollback()
            log.exception("Database commit/refresh failed while storing verification code.")
            raise
        return verification_code

    def _dispatch(self, email: str, code: str) -> bool:
        log = new_logger("dispatch_code")
        try:
            delivered = bool(self.sender(email, code))
        except Exception:
            log.exception(f"Email transport raised while sending code to {email}")
            return False
        if not delivered:
            log.warning(f"Code stored but email delivery failed for {email}")
        return delivered

    def issue(self, email: str) -> IssueResult:
        """
        Store a fresh code for an already authorized ``email`` and email it.

        The code is redeemable as soon as it is stored; a failed delivery only
        flips ``delivered`` to False.
        """
        log = new_logger("issue_code")
        now = utcnow()
        code = generate_code()
        try:
            verification_code = self._store_code(email, code, now)
        except (SQLAlchemyError, RetryError) as e:
            log.error(f"Failed to store verification code for {email}: {e}")
            raise InternalError("Failed to generate verification code") from e
        log.info(f"Verification code stored [{verification_code.to_dict()}]")

        delivered = self._dispatch(email, code)
        return IssueResult(email=email, expires_at=as_utc(verification_code.expires_at), delivered=delivered)
