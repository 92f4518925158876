from sqlalchemy import Column, Integer, String, DateTime, Text

from app.database import Base, utcnow


class OperationLog(Base):
    __tablename__ = "operation_logs"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, index=True, nullable=True)
    action = Column(String, index=True, nullable=False)
    stream_id = Column(Integer, index=True, nullable=True)
    detail = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
