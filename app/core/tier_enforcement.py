import enum
import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import PermissionDeniedError, RateLimitError, ServiceUnavailableError
from app.models.usage import FeatureKind, UsagePeriod
from app.models.user import User, SubscriptionTier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeatureLimit:
    period: UsagePeriod
    ceiling: Optional[int]  # None: unlimited, 0: not part of the tier


class TierLimits:
    """Define limits for each subscription tier"""

    FREE_TIER_LIMITS = {
        FeatureKind.TONE_ANALYSIS: FeatureLimit(UsagePeriod.DAY, 5),
        FeatureKind.SCRIPT_GENERATION: FeatureLimit(UsagePeriod.DAY, 3),
        FeatureKind.VOICE_SYNTHESIS: FeatureLimit(UsagePeriod.MONTH, 0),
    }

    PREMIUM_TIER_LIMITS = {
        FeatureKind.TONE_ANALYSIS: FeatureLimit(UsagePeriod.DAY, None),
        FeatureKind.SCRIPT_GENERATION: FeatureLimit(UsagePeriod.DAY, None),
        FeatureKind.VOICE_SYNTHESIS: FeatureLimit(UsagePeriod.MONTH, 10),
    }

    @classmethod
    def for_tier(cls, tier: SubscriptionTier) -> Dict[FeatureKind, FeatureLimit]:
        if tier == SubscriptionTier.PREMIUM:
            return cls.PREMIUM_TIER_LIMITS
        return cls.FREE_TIER_LIMITS


FEATURE_LABELS = {
    FeatureKind.TONE_ANALYSIS: "tone analyses",
    FeatureKind.SCRIPT_GENERATION: "script generations",
    FeatureKind.VOICE_SYNTHESIS: "voice practice sessions",
}


class DenialKind(str, enum.Enum):
    RATE_LIMIT = "rate_limit"
    PREMIUM_REQUIRED = "premium_required"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class EntitlementDecision:
    allowed: bool
    reason: Optional[str] = None
    denial: Optional[DenialKind] = None
    tier: Optional[SubscriptionTier] = None
    period: Optional[UsagePeriod] = None
    ceiling: Optional[int] = None
    used: Optional[int] = None
    bypassed: bool = False

    def raise_for_denial(self, feature: FeatureKind) -> None:
        """Raise the error that matches this denial; no-op when allowed"""
        if self.allowed:
            return

        label = FEATURE_LABELS[feature]
        context = {"feature": feature.value, "used": self.used, "ceiling": self.ceiling}

        if self.denial == DenialKind.RATE_LIMIT:
            if self.period == UsagePeriod.MONTH:
                user_message = (
                    f"You have used all {self.ceiling} {label} for this month. "
                    "You can use this feature again on the first day of next month (UTC)."
                )
            else:
                user_message = (
                    f"You have used all {self.ceiling} free {label} for today. "
                    "You can use this feature again after midnight (UTC). "
                    "Premium accounts have no daily limit."
                )
            raise RateLimitError(self.reason, user_message=user_message, reason=self.reason, context=context)

        if self.denial == DenialKind.PREMIUM_REQUIRED:
            raise PermissionDeniedError(
                self.reason,
                user_message=(
                    f"{label.capitalize()} are only available with a Premium subscription. "
                    "Upgrade to Premium to use this feature."
                ),
                reason=self.reason,
                context=context,
            )

        raise ServiceUnavailableError(
            self.reason,
            user_message=(
                "The app could not check your account, so your request was stopped. "
                "Nothing was used from your limit. Try again in a few minutes."
            ),
            reason=self.reason,
            context=context,
        )


class TierEnforcement:
    """Entitlement checks run before any metered action. Read-only."""

    @staticmethod
    def get_user_limits(user: User) -> Dict[FeatureKind, FeatureLimit]:
        """Get the limits for a user based on their subscription tier"""
        return TierLimits.for_tier(user.subscription_tier)

    @staticmethod
    def is_demo_identity(user: User) -> bool:
        demo_email = settings.DEMO_USER_EMAIL
        return bool(demo_email) and user.email == demo_email

    @staticmethod
    def read_tier(user_id: str, db: Session) -> Optional[SubscriptionTier]:
        """Read the tier from the datastore; the loaded user object may be stale"""
        return db.query(User.subscription_tier).filter(User.id == user_id).scalar()

    @staticmethod
    def check_entitlement(
        user: User,
        feature: FeatureKind,
        db: Session,
        today: Optional[date] = None,
    ) -> EntitlementDecision:
        """Decide whether ``user`` may run ``feature`` now. Performs no writes."""
        # Import here to avoid circular imports
        from app.services.usage_ledger import UsageLedger

        if TierEnforcement.is_demo_identity(user):
            logger.info(f"Demo user {user.id} detected, bypassing usage check for {feature.value}")
            return EntitlementDecision(allowed=True, bypassed=True)

        try:
            tier = TierEnforcement.read_tier(user.id, db)
        except SQLAlchemyError as e:
            logger.error(f"Failed to read subscription tier for user {user.id}: {str(e)}")
            db.rollback()
            tier = None

        if tier is None:
            return EntitlementDecision(
                allowed=False,
                reason="Failed to verify user account",
                denial=DenialKind.UNAVAILABLE,
            )

        limit = TierLimits.for_tier(tier)[feature]

        if limit.ceiling is None:  # Unlimited
            return EntitlementDecision(allowed=True, tier=tier, period=limit.period)

        if limit.ceiling == 0:
            return EntitlementDecision(
                allowed=False,
                reason="Premium subscription required",
                denial=DenialKind.PREMIUM_REQUIRED,
                tier=tier,
                period=limit.period,
                ceiling=0,
            )

        try:
            used = UsageLedger.get_usage_count(user.id, feature, limit.period, db, today=today)
        except SQLAlchemyError as e:
            logger.error(f"Failed to read {feature.value} usage for user {user.id}: {str(e)}")
            db.rollback()
            return EntitlementDecision(
                allowed=False,
                reason="Failed to check usage limits",
                denial=DenialKind.UNAVAILABLE,
                tier=tier,
                period=limit.period,
                ceiling=limit.ceiling,
            )

        if used >= limit.ceiling:
            period_word = "Monthly" if limit.period == UsagePeriod.MONTH else "Daily"
            return EntitlementDecision(
                allowed=False,
                reason=f"{period_word} usage limit exceeded",
                denial=DenialKind.RATE_LIMIT,
                tier=tier,
                period=limit.period,
                ceiling=limit.ceiling,
                used=used,
            )

        return EntitlementDecision(
            allowed=True,
            tier=tier,
            period=limit.period,
            ceiling=limit.ceiling,
            used=used,
        )
