from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class SubscriptionInfo(BaseModel):
    tier: str
    status: Optional[str] = None
    current_period_end: Optional[datetime] = None
    has_stripe_subscription: bool
    is_premium: bool

class CheckoutSessionResponse(BaseModel):
    checkout_url: str

class PortalSessionResponse(BaseModel):
    portal_url: str
