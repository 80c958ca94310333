from app.database.database import Base
from sqlalchemy import Column, String, Boolean, DateTime, JSON, Uuid
from sqlalchemy.sql import func
from uuid import uuid4


class Notification(Base):
    """In-app inbox entry written by the notification worker."""
    __tablename__ = "notifications"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    event_type = Column(String(50), nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
