from sqlalchemy import Column, Integer, String, DateTime, Boolean, Index
from database import Base
from utils.time_utils import as_utc, isoformat_utc, utcnow


class VerificationCode(Base):
    __tablename__ = "verification_codes"
    __table_args__ = (
        Index("idx_verification_codes_lookup", "email", "code", "used"),
    )

    id = Column(Integer, primary_key=True)
    email = Column(String, index=True, nullable=False)  # normalized: trimmed, lowercase
    code = Column(String(5), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used = Column(Boolean, default=False, nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=True)

    def is_expired(self, now=None) -> bool:
        now = now or utcnow()
        return now > as_utc(self.expires_at)

    def to_dict(self):
        # The code itself is left out so the dict is safe to log
        return {
            "id": self.id,
            "email": self.email,
            "created_at": isoformat_utc(self.created_at),
            "expires_at": isoformat_utc(self.expires_at),
            "used": self.used,
            "used_at": isoformat_utc(self.used_at),
        }
