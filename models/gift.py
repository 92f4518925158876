from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean, Numeric, Text

from app.database import Base, utcnow


class Gift(Base):
    __tablename__ = "gifts"

    id = Column(Integer, primary_key=True, index=True)
    streamer_id = Column(Integer, ForeignKey("streamer_profiles.id"), index=True, nullable=True)  # 为空即全局礼物
    name = Column(String, nullable=False)
    cost_coins = Column(Integer, nullable=False)
    points = Column(Integer, nullable=False, default=0)
    price_usd = Column(Numeric(10, 2), nullable=True)
    active = Column(Boolean, nullable=False, default=True)


class GiftSend(Base):
    # 每次成功送礼恰好一行，不再修改
    __tablename__ = "gift_sends"

    id = Column(Integer, primary_key=True, index=True)
    gift_id = Column(Integer, ForeignKey("gifts.id"), nullable=False)
    stream_id = Column(Integer, ForeignKey("streams.id"), index=True, nullable=False)
    sender_id = Column(Integer, ForeignKey("viewer_profiles.id"), index=True, nullable=False)
    streamer_id = Column(Integer, ForeignKey("streamer_profiles.id"), index=True, nullable=False)
    quantity = Column(Integer, nullable=False)
    coins_spent = Column(Integer, nullable=False)
    points_generated = Column(Integer, nullable=False)
    message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
