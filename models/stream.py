from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Float, Index, text

from app.database import Base, utcnow


class Stream(Base):
    __tablename__ = "streams"

    id = Column(Integer, primary_key=True, index=True)
    streamer_id = Column(Integer, ForeignKey("streamer_profiles.id"), index=True, nullable=False)
    title = Column(String, default="")
    status = Column(String, nullable=False, default="offline")  # offline|live|ended
    started_at = Column(DateTime(timezone=True), nullable=True)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    stream_key = Column(String, nullable=True)
    push_url = Column(String, nullable=True)
    view_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class BroadcastSession(Base):
    __tablename__ = "broadcast_sessions"
    __table_args__ = (
        # 每个直播间同一时间最多一个未结束场次
        Index(
            "uq_open_session_per_stream",
            "stream_id",
            unique=True,
            sqlite_where=text("ended_at IS NULL"),
            postgresql_where=text("ended_at IS NULL"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    stream_id = Column(Integer, ForeignKey("streams.id"), index=True, nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=False)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    duration_hours = Column(Float, nullable=True)
