from sqlalchemy import Column, String, Integer, Date, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from app.core.database import Base
from app.utils.id_utils import generate_id
import enum

class FeatureKind(str, enum.Enum):
    TONE_ANALYSIS = "tone_analysis"
    SCRIPT_GENERATION = "script_generation"
    VOICE_SYNTHESIS = "voice_synthesis"

class UsagePeriod(str, enum.Enum):
    DAY = "day"
    MONTH = "month"

class DailyUsage(Base):
    """Per-user, per-day usage counters for metered features"""
    __tablename__ = "daily_usage"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_daily_usage_user_date"),
    )

    id = Column(String, primary_key=True, default=generate_id)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)  # UTC calendar day
    tone_analyses_count = Column(Integer, nullable=False, default=0, server_default="0")
    script_generations_count = Column(Integer, nullable=False, default=0, server_default="0")
    voice_syntheses_count = Column(Integer, nullable=False, default=0, server_default="0")
    # This day's contribution to the monthly voice total; summed over the
    # calendar month, never carried across rows.
    voice_syntheses_monthly = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
