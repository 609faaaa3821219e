from sqlalchemy import BigInteger, Boolean, Column, DateTime, Text

from relay.database import Base


class Contact(Base):
    __tablename__ = "contacts"

    wa_id = Column(Text, primary_key=True)
    thread_id = Column(BigInteger, index=True)
    last_message_id = Column(Text)
    ai_enabled = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, index=True)
