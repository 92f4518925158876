from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text

from app.database import Base, utcnow


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, index=True)
    stream_id = Column(Integer, ForeignKey("streams.id"), index=True, nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), index=True, nullable=False)
    kind = Column(String, nullable=False, default="text")  # text|gift
    content = Column(Text, nullable=True)
    gift_id = Column(Integer, ForeignKey("gifts.id"), nullable=True)
    gift_send_id = Column(Integer, ForeignKey("gift_sends.id"), nullable=True)
    sender_level = Column(Integer, nullable=False)  # 发言时的等级，不随之后升级变化
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
