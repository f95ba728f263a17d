import uuid

from sqlalchemy import Boolean, Column, Integer, Text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID

from menubot.database import Base


class GlobalTrigger(Base):
    __tablename__ = "chatbot_triggers"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    seller_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    trigger_name = Column(Text, nullable=False)
    keywords = Column(JSONB, nullable=False, default=list)
    action_type = Column(Text, nullable=False)  # goto_home, goto_previous, goto_menu, message, human
    target_menu_key = Column(Text)
    response_text = Column(Text)
    priority = Column(Integer, nullable=False, default=0)
    condition_type = Column(Text)
    condition_value = Column(Text)
    sort_order = Column(Integer, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(TIMESTAMP(timezone=True))
