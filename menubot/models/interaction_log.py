import uuid

from sqlalchemy import Boolean, Column, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID

from menubot.database import Base


class InteractionLog(Base):
    __tablename__ = "chatbot_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    seller_id = Column(UUID(as_uuid=True), nullable=False)
    contact_phone = Column(Text, nullable=False)
    incoming_message = Column(Text)
    response_sent = Column(Text)
    menu_key = Column(Text)
    trigger_matched = Column(Text)
    was_fallback = Column(Boolean, nullable=False, default=False)
    status = Column(Text)  # sending, sent, failed, skipped
    created_at = Column(TIMESTAMP(timezone=True), nullable=False)
