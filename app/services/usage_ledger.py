from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from datetime import date
from typing import Any, Dict, Optional
import logging

from app.models.user import User
from app.models.usage import DailyUsage, FeatureKind, UsagePeriod
from app.core.tier_enforcement import TierEnforcement
from app.utils.audit_logger import audit_logger
from app.utils.time_utils import usage_day, month_window

logger = logging.getLogger(__name__)

# Counters advanced together by one successful action
COUNTER_COLUMNS = {
    FeatureKind.TONE_ANALYSIS: ("tone_analyses_count",),
    FeatureKind.SCRIPT_GENERATION: ("script_generations_count",),
    FeatureKind.VOICE_SYNTHESIS: ("voice_syntheses_count", "voice_syntheses_monthly"),
}

ALL_COUNTERS = (
    "tone_analyses_count",
    "script_generations_count",
    "voice_syntheses_count",
    "voice_syntheses_monthly",
)

# Dialects with INSERT ... ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class UsageLedger:
    """Per-user, per-day usage counters. The only writer of daily_usage rows."""

    @staticmethod
    def counter_column(feature: FeatureKind, period: UsagePeriod) -> str:
        """Column that a limit for ``feature`` over ``period`` is checked against"""
        columns = COUNTER_COLUMNS[feature]
        if period == UsagePeriod.MONTH and len(columns) > 1:
            return columns[1]
        return columns[0]

    @staticmethod
    def build_increment_statement(user_id: str, feature: FeatureKind, day: date, dialect_name: str):
        """
        Single-statement upsert: insert the day's row with the feature's
        counters at 1, or add 1 to them if the row already exists.
        """
        insert = _UPSERT_INSERTS.get(dialect_name)
        if insert is None:
            raise ValueError(f"Atomic usage upsert is not supported on dialect '{dialect_name}'")

        table = DailyUsage.__table__
        columns = COUNTER_COLUMNS[feature]

        values = {"user_id": user_id, "date": day}
        for column in ALL_COUNTERS:
            values[column] = 1 if column in columns else 0

        increments = {column: table.c[column] + 1 for column in columns}
        increments["updated_at"] = func.now()

        return insert(table).values(**values).on_conflict_do_update(
            index_elements=[table.c.user_id, table.c.date],
            set_=increments,
        )

    @staticmethod
    def record_usage(user_id: str, feature: FeatureKind, db: Session, today: Optional[date] = None) -> bool:
        """
        Count one successful action. Call only after the result is persisted.

        A failure here is logged and reported as False. It must not undo the
        action the user already received.
        """
        day = today or usage_day()
        try:
            statement = UsageLedger.build_increment_statement(
                user_id, feature, day, db.get_bind().dialect.name
            )
            db.execute(statement)
            db.commit()
            logger.info(f"Recorded {feature.value} usage for user {user_id} on {day.isoformat()}")
            return True
        except (SQLAlchemyError, ValueError) as e:
            logger.error(f"Failed to record {feature.value} usage for user {user_id}: {str(e)}")
            db.rollback()
            audit_logger.log_usage_record_failed(user_id, feature.value, str(e))
            return False

    @staticmethod
    def get_usage_record(user_id: str, db: Session, today: Optional[date] = None) -> Optional[DailyUsage]:
        """One day's counters for the user, or None before their first use that day"""
        day = today or usage_day()
        return db.query(DailyUsage).filter(
            DailyUsage.user_id == user_id,
            DailyUsage.date == day
        ).first()

    @staticmethod
    def get_usage_count(
        user_id: str,
        feature: FeatureKind,
        period: UsagePeriod,
        db: Session,
        today: Optional[date] = None,
    ) -> int:
        """
        Usage of ``feature`` today, or over the calendar month to date.

        Monthly totals are summed from the rows inside the month, so they start
        from zero on the first day of every month. Raises SQLAlchemyError.
        """
        day = today or usage_day()
        column = getattr(DailyUsage, UsageLedger.counter_column(feature, period))

        if period == UsagePeriod.MONTH:
            month_start, next_month = month_window(day)
            statement = select(func.coalesce(func.sum(column), 0)).where(
                DailyUsage.user_id == user_id,
                DailyUsage.date >= month_start,
                DailyUsage.date < next_month,
            )
        else:
            statement = select(column).where(
                DailyUsage.user_id == user_id,
                DailyUsage.date == day,
            )

        return int(db.execute(statement).scalar() or 0)

    @staticmethod
    def get_usage_summary(user: User, db: Session, today: Optional[date] = None) -> Dict[str, Any]:
        """Get usage summary for a user"""
        day = today or usage_day()
        limits = TierEnforcement.get_user_limits(user)

        def _feature_summary(feature: FeatureKind) -> Dict[str, Any]:
            limit = limits[feature]
            used = UsageLedger.get_usage_count(user.id, feature, limit.period, db, today=day)
            remaining = None if limit.ceiling is None else max(0, limit.ceiling - used)
            return {
                'used': used,
                'limit': limit.ceiling,
                'remaining': remaining,
                'unlimited': limit.ceiling is None,
                'available': limit.ceiling != 0,
                'period': limit.period.value,
            }

        features = {feature.value: _feature_summary(feature) for feature in FeatureKind}

        record = UsageLedger.get_usage_record(user.id, db, today=day)
        for feature in FeatureKind:
            column = COUNTER_COLUMNS[feature][0]
            features[feature.value]['used_today'] = getattr(record, column) if record else 0

        capped = [f for f in features.values() if f['available'] and not f['unlimited']]
        return {
            'date': day.isoformat(),
            'tier': user.subscription_tier.value,
            'features': features,
            # One use left (or fewer) on any capped feature
            'near_limit': any(f['remaining'] <= 1 for f in capped),
            'limit_reached': any(f['remaining'] == 0 for f in capped),
        }
