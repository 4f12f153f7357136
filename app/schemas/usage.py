from pydantic import BaseModel
from typing import Optional, Dict


class FeatureUsage(BaseModel):
    used: int
    limit: Optional[int] = None  # None when unlimited
    remaining: Optional[int] = None
    unlimited: bool
    available: bool
    period: str
    used_today: Optional[int] = None

class UsageSummary(BaseModel):
    date: str
    tier: str
    features: Dict[str, FeatureUsage]
    near_limit: bool
    limit_reached: bool
