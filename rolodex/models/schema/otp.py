from sqlalchemy import Boolean, Column, Index, Integer, String

from rolodex.database import Base, UtcDateTime


class OtpEntry(Base):
    __tablename__ = "otp_codes"

    id = Column(Integer, primary_key=True)
    identifier = Column(String(255), nullable=False)
    channel = Column(String(16), nullable=False)
    purpose = Column(String(32), nullable=False)
    code = Column(String(10), nullable=False)
    is_used = Column(Boolean, nullable=False, default=False)
    used_at = Column(UtcDateTime, nullable=True)
    attempts = Column(Integer, nullable=False, default=0)
    max_attempts = Column(Integer, nullable=False, default=3)
    expires_at = Column(UtcDateTime, nullable=False)
    created_at = Column(UtcDateTime, nullable=False)
    updated_at = Column(UtcDateTime, nullable=False)

    __table_args__ = (
        Index("ix_otp_scope", "identifier", "channel", "purpose", "is_used"),
        Index("ix_otp_expires_at", "expires_at"),
        # Ids are handed out as references and must not be reused after a delete.
        {"sqlite_autoincrement": True},
    )
