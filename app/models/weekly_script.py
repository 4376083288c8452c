from sqlalchemy import Column, Integer, String, Text
from sqlalchemy.sql import func
from sqlalchemy.types import JSON, DateTime

from app.core.database import Base


class WeeklyScript(Base):
    __tablename__ = "weekly_scripts"

    id = Column(Integer, primary_key=True, index=True)
    llm = Column(String(50), nullable=False, index=True)
    status = Column(String(20), nullable=False)
    script_text = Column(Text, nullable=True)
    error = Column(Text, nullable=True)
    stories_used = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
