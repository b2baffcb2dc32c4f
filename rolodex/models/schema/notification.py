from sqlalchemy import Column, Index, Integer, JSON, String, Text

from rolodex.database import Base, UtcDateTime


class NotificationEntry(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True)
    type = Column(String(32), nullable=False)
    status = Column(String(16), nullable=False)
    recipient = Column(String(255), nullable=False)
    subject = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    # "metadata" is reserved on declarative classes.
    metadata_ = Column("metadata", JSON, nullable=True)
    error_message = Column(Text, nullable=True)
    sent_at = Column(UtcDateTime, nullable=True)
    user_id = Column(Integer, nullable=True, index=True)
    created_at = Column(UtcDateTime, nullable=False)
    updated_at = Column(UtcDateTime, nullable=False)

    __table_args__ = (
        Index("ix_notifications_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )
