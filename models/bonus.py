from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, UniqueConstraint

from app.database import Base, utcnow


class DailyBonusClaim(Base):
    __tablename__ = "daily_bonus_claims"
    __table_args__ = (
        UniqueConstraint("viewer_id", "claim_date", name="uq_daily_bonus_claim"),
    )

    id = Column(Integer, primary_key=True, index=True)
    viewer_id = Column(Integer, ForeignKey("viewer_profiles.id"), index=True, nullable=False)
    claim_date = Column(Date, nullable=False)
    reward_kind = Column(String, nullable=False)  # coins|points
    reward_amount = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
