from sqlalchemy import Column, DateTime, Text

from relay.database import Base


class Setting(Base):
    __tablename__ = "settings"

    key = Column(Text, primary_key=True)
    value = Column(Text)
    updated_at = Column(DateTime(timezone=True), nullable=False)
