from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from app.core.database import Base


class AINews(Base):
    __tablename__ = "ai_news"

    id = Column(Integer, primary_key=True, index=True)
    platform = Column(String(50), nullable=False, index=True)
    title = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    url = Column(String(1000), nullable=False, unique=True, index=True)
    date = Column(DateTime(timezone=True), nullable=False, index=True)
    category = Column(String(20), nullable=True)
    score = Column(Integer, default=0, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
