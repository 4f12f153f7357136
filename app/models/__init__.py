from app.core.database import Base
from .user import User, SubscriptionTier
from .usage import DailyUsage, FeatureKind, UsagePeriod
from .tone_analysis import ToneAnalysis
from .generated_script import GeneratedScript
from .library import ScriptCategory, PersonalScript

__all__ = ["Base", "User", "SubscriptionTier", "DailyUsage", "FeatureKind", "UsagePeriod", "ToneAnalysis", "GeneratedScript",
           "ScriptCategory", "PersonalScript"]
