from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean, Numeric

from app.database import Base, utcnow


class CoinPackage(Base):
    __tablename__ = "coin_packages"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    coins = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    currency = Column(String, nullable=False, default="USD")
    active = Column(Boolean, nullable=False, default=True)


class CoinOrder(Base):
    # 模拟充值，没有支付网关
    __tablename__ = "coin_orders"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), index=True, nullable=False)
    package_id = Column(Integer, ForeignKey("coin_packages.id"), nullable=False)
    coins_delivered = Column(Integer, nullable=False)
    price_paid = Column(Numeric(10, 2), nullable=False)
    status = Column(String, nullable=False, default="paid")
    created_at = Column(DateTime(timezone=True), default=utcnow)
