import uuid

from sqlalchemy import Boolean, Column, Integer, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID

from menubot.database import Base


class Contact(Base):
    __tablename__ = "chatbot_contacts"
    __table_args__ = (UniqueConstraint("seller_id", "phone", name="uq_chatbot_contacts_seller_phone"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    seller_id = Column(UUID(as_uuid=True), nullable=False)
    phone = Column(Text, nullable=False)
    name = Column(Text)
    current_menu_key = Column(Text, nullable=False, default="main")
    previous_menu_key = Column(Text)
    last_sent_menu_key = Column(Text)  # anti-repeat marker
    navigation_stack = Column(JSONB, nullable=False, default=list)  # ancestors, most recent last
    awaiting_human = Column(Boolean, nullable=False, default=False)
    interaction_count = Column(Integer, nullable=False, default=0)
    last_message_at = Column(TIMESTAMP(timezone=True))
    last_response_at = Column(TIMESTAMP(timezone=True))
    created_at = Column(TIMESTAMP(timezone=True))
