from pydantic import BaseModel


class DailyBonusResult(BaseModel):
    claim_id: int
    viewer_id: int
    reward_kind: str
    reward_amount: int
    new_balance: int
    points_total: int
    leveled_up: bool
    new_level: int
