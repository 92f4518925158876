from sqlalchemy import Column, Integer, String, DateTime

from app.database import Base, utcnow


class Account(Base):
    # 由外部认证服务维护，这里只读取展示字段
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    display_name = Column(String, default="")
    avatar_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
