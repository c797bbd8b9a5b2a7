from sqlalchemy import Column, String, DateTime
from database import Base
from utils.time_utils import as_utc, isoformat_utc, utcnow


class PortalSession(Base):
    __tablename__ = "sessions"

    session_id = Column(String(64), primary_key=True)
    email = Column(String, index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    last_accessed_at = Column(DateTime(timezone=True), nullable=True)

    def is_expired(self, now=None) -> bool:
        """A session stays valid up to and including its expiry instant."""
        now = now or utcnow()
        return now > as_utc(self.expires_at)

    def to_dict(self):
        return {
            "session_id": f"{self.session_id[:8]}..." if self.session_id else None,
            "email": self.email,
            "created_at": isoformat_utc(self.created_at),
            "expires_at": isoformat_utc(self.expires_at),
            "last_accessed_at": isoformat_utc(self.last_accessed_at),
        }
