from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Text

from relay.database import Base


class ThreadBinding(Base):
    __tablename__ = "threads"

    thread_id = Column(BigInteger, primary_key=True, autoincrement=False)
    wa_id = Column(Text, ForeignKey("contacts.wa_id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
