import threading
from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from app.core.database import Base
from app.models.usage import DailyUsage, FeatureKind, UsagePeriod
from app.models.user import SubscriptionTier, User
from app.services.usage_ledger import UsageLedger

TODAY = date(2025, 3, 14)


def _row(db, user, day=TODAY):
    db.expire_all()
    return db.query(DailyUsage).filter(DailyUsage.user_id == user.id, DailyUsage.date == day).one()


def test_first_use_creates_the_days_row(db_session, make_user):
    user = make_user()
    assert UsageLedger.record_usage(user.id, FeatureKind.TONE_ANALYSIS, db_session, today=TODAY)

    row = _row(db_session, user)
    assert row.tone_analyses_count == 1
    assert row.script_generations_count == 0
    assert row.voice_syntheses_count == 0
    assert row.voice_syntheses_monthly == 0


def test_later_uses_increment_the_same_row(db_session, make_user):
    user = make_user()
    for _ in range(3):
        assert UsageLedger.record_usage(user.id, FeatureKind.SCRIPT_GENERATION, db_session, today=TODAY)
    UsageLedger.record_usage(user.id, FeatureKind.TONE_ANALYSIS, db_session, today=TODAY)

    assert db_session.query(DailyUsage).count() == 1
    row = _row(db_session, user)
    assert row.script_generations_count == 3
    assert row.tone_analyses_count == 1


def test_voice_advances_daily_and_monthly_counters(db_session, make_user):
    user = make_user(tier=SubscriptionTier.PREMIUM)
    UsageLedger.record_usage(user.id, FeatureKind.VOICE_SYNTHESIS, db_session, today=TODAY)
    UsageLedger.record_usage(user.id, FeatureKind.VOICE_SYNTHESIS, db_session, today=TODAY)

    row = _row(db_session, user)
    assert row.voice_syntheses_count == 2
    assert row.voice_syntheses_monthly == 2
    assert row.tone_analyses_count == 0


def test_new_day_gets_a_new_row(db_session, make_user):
    user = make_user()
    UsageLedger.record_usage(user.id, FeatureKind.TONE_ANALYSIS, db_session, today=date(2025, 3, 13))
    UsageLedger.record_usage(user.id, FeatureKind.TONE_ANALYSIS, db_session, today=TODAY)

    assert db_session.query(DailyUsage).count() == 2
    assert UsageLedger.get_usage_count(user.id, FeatureKind.TONE_ANALYSIS, UsagePeriod.DAY, db_session, today=TODAY) == 1


def test_monthly_count_respects_month_boundary(db_session, make_user):
    user = make_user(tier=SubscriptionTier.PREMIUM)
    UsageLedger.record_usage(user.id, FeatureKind.VOICE_SYNTHESIS, db_session, today=date(2025, 1, 31))
    UsageLedger.record_usage(user.id, FeatureKind.VOICE_SYNTHESIS, db_session, today=date(2025, 2, 1))
    UsageLedger.record_usage(user.id, FeatureKind.VOICE_SYNTHESIS, db_session, today=date(2025, 2, 20))

    def monthly(day):
        return UsageLedger.get_usage_count(user.id, FeatureKind.VOICE_SYNTHESIS, UsagePeriod.MONTH, db_session, today=day)

    assert monthly(date(2025, 1, 31)) == 1
    assert monthly(date(2025, 2, 28)) == 2
    assert monthly(date(2025, 3, 1)) == 0


def test_december_rolls_into_january(db_session, make_user):
    user = make_user(tier=SubscriptionTier.PREMIUM)
    UsageLedger.record_usage(user.id, FeatureKind.VOICE_SYNTHESIS, db_session, today=date(2024, 12, 31))
    assert UsageLedger.get_usage_count(
        user.id, FeatureKind.VOICE_SYNTHESIS, UsagePeriod.MONTH, db_session, today=date(2025, 1, 1)
    ) == 0


def test_counts_are_per_user(db_session, make_user):
    first, second = make_user(), make_user()
    UsageLedger.record_usage(first.id, FeatureKind.TONE_ANALYSIS, db_session, today=TODAY)
    assert UsageLedger.get_usage_count(second.id, FeatureKind.TONE_ANALYSIS, UsagePeriod.DAY, db_session, today=TODAY) == 0


def test_unsupported_dialect_is_refused():
    with pytest.raises(ValueError):
        UsageLedger.build_increment_statement("user", FeatureKind.TONE_ANALYSIS, TODAY, "mysql")


def test_record_failure_returns_false(db_session, make_user, monkeypatch):
    user = make_user()

    def _locked(*args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    monkeypatch.setattr(db_session, "execute", _locked)
    assert UsageLedger.record_usage(user.id, FeatureKind.TONE_ANALYSIS, db_session, today=TODAY) is False


def test_usage_summary(db_session, make_user):
    user = make_user()
    for _ in range(4):
        UsageLedger.record_usage(user.id, FeatureKind.TONE_ANALYSIS, db_session, today=TODAY)

    summary = UsageLedger.get_usage_summary(user, db_session, today=TODAY)
    tone = summary["features"]["tone_analysis"]
    assert (tone["used"], tone["limit"], tone["remaining"]) == (4, 5, 1)
    assert summary["features"]["voice_synthesis"]["available"] is False
    assert summary["near_limit"] is True
    assert summary["limit_reached"] is False
    assert summary["tier"] == "free"
    assert tone["used_today"] == 4
    assert summary["features"]["script_generation"]["used_today"] == 0


def test_summary_reports_only_todays_voice_use(db_session, make_user):
    user = make_user(tier=SubscriptionTier.PREMIUM)
    UsageLedger.record_usage(user.id, FeatureKind.VOICE_SYNTHESIS, db_session, today=date(2025, 3, 13))
    UsageLedger.record_usage(user.id, FeatureKind.VOICE_SYNTHESIS, db_session, today=TODAY)

    assert UsageLedger.get_usage_record(user.id, db_session, today=date(2025, 3, 12)) is None
    assert UsageLedger.get_usage_record(user.id, db_session, today=TODAY).voice_syntheses_count == 1

    voice = UsageLedger.get_usage_summary(user, db_session, today=TODAY)["features"]["voice_synthesis"]
    assert (voice["used"], voice["used_today"], voice["remaining"]) == (2, 1, 8)


def test_concurrent_increments_are_not_lost(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'usage.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine)

    with Session() as setup:
        user = User(auth_user_id="concurrent", email="concurrent@example.com", subscription_tier=SubscriptionTier.PREMIUM)
        setup.add(user)
        setup.commit()
        user_id = user.id

    threads_count, per_thread = 4, 25
    results = []
    start = threading.Barrier(threads_count)

    def worker():
        start.wait()
        with Session() as db:
            for _ in range(per_thread):
                results.append(UsageLedger.record_usage(user_id, FeatureKind.TONE_ANALYSIS, db, today=TODAY))

    threads = [threading.Thread(target=worker) for _ in range(threads_count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert all(results)
    with Session() as db:
        rows = db.query(DailyUsage).filter(DailyUsage.user_id == user_id).all()
        assert len(rows) == 1
        assert rows[0].tone_analyses_count == threads_count * per_thread

    engine.dispose()
