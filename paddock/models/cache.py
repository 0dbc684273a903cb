from sqlalchemy import Column, DateTime, Integer, String, Text
from paddock.db.base import Base


class ApiCache(Base):
    __tablename__ = "api_cache"
    url = Column(String, primary_key=True)           # e.g. "stats://overview"
    response_data = Column(Text, nullable=False)     # JSON string
    last_fetched = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    response_size = Column(Integer, nullable=False)  # bytes
    http_status = Column(Integer, nullable=False, default=200)
    error_message = Column(String, nullable=True)
