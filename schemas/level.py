from pydantic import BaseModel
from typing import Optional


class LevelProgressResponse(BaseModel):
    profile_id: int
    current_level: int
    score: float
    is_max_level: bool
    next_level: Optional[int] = None
    required: Optional[float] = None
    remaining: float = 0
    progress_pct: float
    reward_coins: Optional[int] = None
