from sqlalchemy import Column, Integer, Float, Boolean, ForeignKey, UniqueConstraint

from app.database import Base


class ViewerLevelRule(Base):
    # 观众等级为全局规则
    __tablename__ = "viewer_level_rules"

    id = Column(Integer, primary_key=True, index=True)
    level = Column(Integer, unique=True, nullable=False)
    min_points = Column(Integer, nullable=False)
    reward_coins = Column(Integer, nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)


class StreamerLevelRule(Base):
    # streamer_id 为空表示全局规则
    __tablename__ = "streamer_level_rules"
    __table_args__ = (
        UniqueConstraint("streamer_id", "level", name="uq_streamer_level"),
    )

    id = Column(Integer, primary_key=True, index=True)
    streamer_id = Column(Integer, ForeignKey("streamer_profiles.id"), index=True, nullable=True)
    level = Column(Integer, nullable=False)
    min_hours = Column(Float, nullable=False)
    active = Column(Boolean, nullable=False, default=True)
