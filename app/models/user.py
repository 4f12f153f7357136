from sqlalchemy import Column, String, DateTime, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.utils.id_utils import generate_id
import enum

class SubscriptionTier(str, enum.Enum):
    FREE = "free"
    PREMIUM = "premium"

class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=generate_id)
    auth_user_id = Column(String, unique=True, nullable=False, index=True)  # identity provider "sub"
    email = Column(String, unique=True, nullable=False, index=True)
    name = Column(String)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Subscription fields, written only by the Stripe webhook handlers
    subscription_tier = Column(Enum(SubscriptionTier), nullable=False, default=SubscriptionTier.FREE)
    stripe_customer_id = Column(String, nullable=True, index=True)
    stripe_subscription_id = Column(String, nullable=True, index=True)
    subscription_status = Column(String, nullable=True)  # active, canceled, past_due, etc.
    current_period_end = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    tone_analyses = relationship("ToneAnalysis", back_populates="user", cascade="all, delete-orphan")
    generated_scripts = relationship("GeneratedScript", back_populates="user", cascade="all, delete-orphan")
    script_categories = relationship("ScriptCategory", back_populates="user", cascade="all, delete-orphan")
    personal_scripts = relationship("PersonalScript", back_populates="user", cascade="all, delete-orphan")
