from pydantic import BaseModel
from decimal import Decimal
from datetime import datetime
from typing import List, Optional


class MovementResponse(BaseModel):
    id: int
    kind: str
    amount: int
    ref_type: Optional[str] = None
    ref_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class WalletResponse(BaseModel):
    viewer_id: int
    account_id: int
    balance: int
    movements: List[MovementResponse]


class CoinPackageResponse(BaseModel):
    id: int
    name: str
    coins: int
    price: Decimal
    currency: str

    class Config:
        from_attributes = True


class PurchaseResult(BaseModel):
    order_id: int
    viewer_id: int
    account_id: int
    package_id: int
    coins_delivered: int
    price_paid: Decimal
    currency: str
    new_balance: int
    created_at: datetime
