from sqlalchemy import Column, Integer, String, DateTime, Float, ForeignKey

from app.database import Base, utcnow


class ViewerProfile(Base):
    __tablename__ = "viewer_profiles"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), unique=True, nullable=False)
    level = Column(Integer, nullable=False, default=1)
    points = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class StreamerProfile(Base):
    __tablename__ = "streamer_profiles"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), unique=True, nullable=False)
    level = Column(Integer, nullable=False, default=1)
    hours_total = Column(Float, nullable=False, default=0.0)
    channel_title = Column(String, nullable=True)
    last_stream_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
