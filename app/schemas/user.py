from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from app.models.user import SubscriptionTier


class User(BaseModel):
    id: str
    auth_user_id: str
    email: str
    name: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    # Subscription fields
    subscription_tier: SubscriptionTier
    subscription_status: Optional[str] = None
    current_period_end: Optional[datetime] = None

    model_config = {"from_attributes": True}

class CurrentUser(User):
    is_demo: bool = False
