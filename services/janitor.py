"""
Optional cleanup of expired rows.

Expiry is enforced whenever a row is read, so nothing in the login flow
depends on this running. It only reclaims space.
"""
from datetime import timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.portal_session import PortalSession
from models.verification_code import VerificationCode
from utils.logger_factory import new_logger
from utils.time_utils import utcnow


def prune_expired(db: Session, codes_older_than_days: Optional[int] = None, dry_run: bool = False) -> dict:
    """
    Delete expired sessions and, when ``codes_older_than_days`` is set,
    verification codes that expired more than that many days ago.

    Returns the number of matching rows per table.
    """
    log = new_logger("prune_expired")
    now = utcnow()
    sessions = db.query(PortalSession).filter(PortalSession.expires_at < now)
    counts = {"sessions": sessions.count(), "codes": 0}

    codes = None
    if codes_older_than_days is not None:
        cutoff = now - timedelta(days=codes_older_than_days)
        codes = db.query(VerificationCode).filter(VerificationCode.expires_at < cutoff)
        counts["codes"] = codes.count()

    if dry_run:
        log.info(f"Dry run, would delete {counts}")
        return counts

    try:
        sessions.delete(synchronize_session=False)
        if codes is not None:
            codes.delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        log.exception("Pruning failed, rolled back")
        raise
    log.info(f"Deleted {counts}")
    return counts
