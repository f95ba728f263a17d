import uuid

from sqlalchemy import Boolean, Column, Integer, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID

from menubot.database import Base


class ChatbotConfig(Base):
    __tablename__ = "chatbot_configs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    seller_id = Column(UUID(as_uuid=True), nullable=False, unique=True)
    is_enabled = Column(Boolean, nullable=False, default=True)
    fallback_message = Column(Text, nullable=False, default="Não entendi 😕 Digite *MENU* para ver as opções disponíveis.")
    welcome_message = Column(Text)
    human_handoff_message = Column(Text)
    typing_enabled = Column(Boolean, nullable=False, default=True)
    response_delay_min_ms = Column(Integer, nullable=False, default=1000)
    response_delay_max_ms = Column(Integer, nullable=False, default=3000)
    ignore_groups = Column(Boolean, nullable=False, default=True)
    use_list_message = Column(Boolean, nullable=False, default=True)
    list_button_text = Column(Text, default="📋 Ver opções")
    created_at = Column(TIMESTAMP(timezone=True))
    updated_at = Column(TIMESTAMP(timezone=True))
