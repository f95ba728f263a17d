import uuid

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import relationship

from menubot.database import Base


class Menu(Base):
    __tablename__ = "chatbot_menus"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    seller_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    menu_key = Column(Text, nullable=False)
    list_id = Column(Text)
    title = Column(Text, nullable=False)
    message_text = Column(Text, nullable=False)
    image_url = Column(Text)
    parent_menu_key = Column(Text)  # informational, navigation uses the contact stack
    sort_order = Column(Integer, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(TIMESTAMP(timezone=True))

    options = relationship("MenuOption", back_populates="menu")


class MenuOption(Base):
    __tablename__ = "chatbot_options"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    seller_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    menu_id = Column(UUID(as_uuid=True), ForeignKey("chatbot_menus.id"), nullable=False)
    option_number = Column(Integer, nullable=False)
    option_text = Column(Text, nullable=False)
    list_id = Column(Text, nullable=False)
    keywords = Column(JSONB, nullable=False, default=list)
    action_type = Column(Text, nullable=False, default="menu")  # menu, message, human, end
    target_menu_key = Column(Text)
    action_response = Column(Text)
    condition_type = Column(Text)
    condition_value = Column(Text)
    sort_order = Column(Integer, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(TIMESTAMP(timezone=True))

    menu = relationship("Menu", back_populates="options")
