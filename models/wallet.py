from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, CheckConstraint

from app.database import Base, utcnow


class Wallet(Base):
    __tablename__ = "wallets"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_wallet_balance_nonneg"),
    )

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), unique=True, nullable=False)
    balance = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class Movement(Base):
    __tablename__ = "wallet_movements"

    id = Column(Integer, primary_key=True, index=True)
    wallet_id = Column(Integer, ForeignKey("wallets.id"), index=True, nullable=False)
    kind = Column(String, nullable=False)  # recharge|gift|daily_bonus|level_reward
    amount = Column(Integer, nullable=False)  # 有符号，扣款为负
    ref_type = Column(String, nullable=True)
    ref_id = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
