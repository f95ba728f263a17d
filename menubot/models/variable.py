import uuid

from sqlalchemy import Boolean, Column, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID

from menubot.database import Base


class Variable(Base):
    __tablename__ = "chatbot_variables"
    __table_args__ = (UniqueConstraint("seller_id", "variable_key", name="uq_chatbot_variables_seller_key"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    seller_id = Column(UUID(as_uuid=True), nullable=False)
    variable_key = Column(Text, nullable=False)
    variable_value = Column(Text)
    description = Column(Text)
    is_system = Column(Boolean, nullable=False, default=False)
