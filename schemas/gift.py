from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from datetime import datetime
from typing import Optional


class GiftResponse(BaseModel):
    id: int
    streamer_id: Optional[int] = None
    name: str
    cost_coins: int
    points: int
    price_usd: Optional[Decimal] = None

    class Config:
        from_attributes = True


class SendGiftRequest(BaseModel):
    sender_id: int
    quantity: int = Field(default=1, ge=1)
    message: Optional[str] = Field(default=None, max_length=500)

    @field_validator("message")
    @classmethod
    def _strip_message(cls, value):
        if value is None:
            return None
        return value.strip() or None


class SendGiftResult(BaseModel):
    event_id: int
    stream_id: int
    streamer_id: int
    viewer_id: int
    gift_id: int
    quantity: int
    coins_spent: int
    points_generated: int
    points_total: int
    new_balance: int
    leveled_up: bool
    new_level: int
    created_at: datetime
