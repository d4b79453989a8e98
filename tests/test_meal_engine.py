"""
Tests for the meal-state rules: eaten / away transitions, the daily reset,
and the food-finished fan-out.
"""

from datetime import datetime, timedelta, timezone

import pytest

from core.exceptions import ForbiddenError, InvalidStateError, NotFoundError
from core.notifications import NotificationType
from meal_service.models import MealStateEngine, MealType, current_meal_type
from meal_service.models.engine import ALL_DONE_MESSAGE

from conftest import RecordingNotifier


def at_hour(hour: int) -> datetime:
    return datetime(2024, 3, 14, hour, 30, tzinfo=timezone.utc)


# =============================================================================
# MEAL TYPE
# =============================================================================


@pytest.mark.parametrize(
    "hour, expected",
    [
        (10, MealType.LUNCH),
        (20, MealType.DINNER),
        (6, MealType.DINNER),
        (7, MealType.LUNCH),
        (16, MealType.LUNCH),
        (17, MealType.DINNER),
        (0, MealType.DINNER),
    ],
)
def test_current_meal_type_by_hour(hour, expected):
    assert current_meal_type(at_hour(hour)) == expected


def test_meal_type_uses_configured_timezone(store, notifier):
    # 05:00 UTC is 14:00 in Tokyo
    engine = MealStateEngine(store, notifier, timezone="Asia/Tokyo", clock=lambda: at_hour(5))
    assert engine.current_meal_type() == MealType.LUNCH


# =============================================================================
# REGISTRATION
# =============================================================================


def test_register_is_idempotent(engine, store):
    first = engine.register_user("alice", "Alice", "alice@example.com")
    second = engine.register_user("alice", "Someone Else", "other@example.com")

    assert second.name == "Alice"
    assert second.email == first.email
    assert len(store.list_users()) == 1


def test_register_beyond_cap_is_forbidden(store, notifier, clock):
    engine = MealStateEngine(store, notifier, clock=clock, max_users=2)
    engine.register_user("alice", "Alice", "alice@example.com")
    engine.register_user("bob", "Bob", "bob@example.com")

    with pytest.raises(ForbiddenError):
        engine.register_user("carol", "Carol", "carol@example.com")

    # Existing members can still "re-register"
    assert engine.register_user("bob", "Bob", "bob@example.com").firebase_uid == "bob"


def test_set_device_token_requires_user(engine, add_user):
    with pytest.raises(NotFoundError):
        engine.set_device_token("ghost", "tok")

    add_user("alice")
    assert engine.set_device_token("alice", "tok-a").fcm_token == "tok-a"


# =============================================================================
# MARK EATEN / TOGGLE AWAY
# =============================================================================


def test_mark_eaten_sets_flag_and_timestamp(engine, add_user, clock):
    add_user("alice")
    user = engine.mark_eaten("alice")

    assert user.has_eaten is True
    assert user.last_eaten_at == clock.now


def test_mark_eaten_unknown_user(engine):
    with pytest.raises(NotFoundError):
        engine.mark_eaten("ghost")


def test_mark_eaten_while_away_fails_without_mutation(engine, add_user, store):
    add_user("alice", is_away=True)

    with pytest.raises(InvalidStateError):
        engine.mark_eaten("alice")

    stored = store.get_user("alice")
    assert stored.has_eaten is False
    assert stored.last_eaten_at is None


def test_going_away_clears_eaten_and_end_date(engine, add_user, clock):
    add_user("alice", has_eaten=True, away_end_date=clock.now - timedelta(days=3))
    user = engine.toggle_away("alice")

    assert user.is_away is True
    assert user.has_eaten is False
    assert user.away_start_date == clock.now
    assert user.away_end_date is None


def test_toggle_away_round_trip(engine, add_user, clock):
    add_user("alice")
    engine.toggle_away("alice")
    clock.now = clock.now + timedelta(days=2)
    user = engine.toggle_away("alice")

    assert user.is_away is False
    assert user.away_end_date == clock.now
    assert user.away_start_date == clock.now - timedelta(days=2)


def test_toggle_away_unknown_user(engine):
    with pytest.raises(NotFoundError):
        engine.toggle_away("ghost")


# =============================================================================
# DAILY RESET
# =============================================================================


def test_daily_reset_household_example(engine, add_user, store):
    add_user("a", has_eaten=False)
    add_user("b", has_eaten=True)
    add_user("c", has_eaten=False, is_away=True)

    summary = engine.daily_reset()

    a, b, c = store.get_user("a"), store.get_user("b"), store.get_user("c")
    assert a.missed_meals_count == 1
    assert a.has_eaten is False
    assert b.missed_meals_count == 0
    assert b.has_eaten is False
    assert c.missed_meals_count == 0
    assert c.meal_history == []
    assert c.last_reset_on is None
    assert summary.users_reset == 2
    assert summary.missed_recorded == 1


def test_daily_reset_appends_one_missed_record_per_pending_user(engine, add_user, store, clock):
    for uid in ("a", "b", "c"):
        add_user(uid, missed_meals_count=4)

    engine.daily_reset()

    for uid in ("a", "b", "c"):
        user = store.get_user(uid)
        assert user.missed_meals_count == 5
        assert len(user.meal_history) == 1
        record = user.meal_history[0]
        assert record.status == "missed"
        assert record.eaten is False
        assert record.meal_type == "Lunch"
        assert record.date == clock.now


def test_meal_history_is_append_only(engine, add_user, store, clock):
    add_user("a")
    engine.daily_reset()
    clock.now = clock.now + timedelta(days=1)
    engine.daily_reset()

    history = store.get_user("a").meal_history
    assert len(history) == 2
    assert history[0].date < history[1].date
    assert store.get_user("a").missed_meals_count == 2


def test_second_reset_same_day_does_not_double_count(engine, add_user, store, clock):
    add_user("a")
    add_user("b")
    engine.daily_reset()

    engine.mark_eaten("b")
    clock.now = clock.now + timedelta(hours=6)
    summary = engine.daily_reset()

    a, b = store.get_user("a"), store.get_user("b")
    assert a.missed_meals_count == 1
    assert len(a.meal_history) == 1
    assert b.has_eaten is False
    assert summary.missed_recorded == 0
    assert summary.already_counted == 1


def test_late_manual_reset_then_midnight_job_counts_once(engine, add_user, store, clock):
    add_user("a")
    clock.now = datetime(2024, 3, 14, 23, 30, tzinfo=timezone.utc)
    engine.daily_reset()

    clock.now = datetime(2024, 3, 15, 0, 0, tzinfo=timezone.utc)
    summary = engine.close_previous_day()

    user = store.get_user("a")
    assert user.missed_meals_count == 1
    assert len(user.meal_history) == 1
    assert user.last_reset_on == "2024-03-14"
    assert summary.already_counted == 1


def test_midnight_job_then_next_evening_counts_new_day(engine, add_user, store, clock):
    add_user("a")
    clock.now = datetime(2024, 3, 15, 0, 0, tzinfo=timezone.utc)
    engine.close_previous_day()

    clock.now = datetime(2024, 3, 15, 21, 0, tzinfo=timezone.utc)
    engine.daily_reset()

    user = store.get_user("a")
    assert user.missed_meals_count == 2
    assert user.last_reset_on == "2024-03-15"


def test_away_user_is_sticky_across_resets(engine, add_user, store, clock):
    add_user("a", is_away=True)
    for _ in range(3):
        engine.daily_reset()
        clock.now = clock.now + timedelta(days=1)

    user = store.get_user("a")
    assert user.is_away is True
    assert user.missed_meals_count == 0


# =============================================================================
# FOOD FINISHED FAN-OUT
# =============================================================================


@pytest.mark.asyncio
async def test_report_with_nobody_remaining_sends_nothing(engine, add_user, notifier):
    add_user("a", has_eaten=True, fcm_token="tok-a")
    add_user("b", has_eaten=True, fcm_token="tok-b")
    add_user("c", is_away=True, fcm_token="tok-c")

    report = await engine.report_food_finished("a")

    assert report.done is True
    assert report.message == ALL_DONE_MESSAGE
    assert notifier.attempts == []


@pytest.mark.asyncio
async def test_report_notifies_both_groups(engine, add_user, notifier):
    add_user("alice", name="Alice", has_eaten=True, fcm_token="tok-alice")
    add_user("bob", name="Bob", fcm_token="tok-bob")
    add_user("carol", name="Carol", fcm_token="tok-carol")

    report = await engine.report_food_finished("alice")

    assert report.done is False
    assert report.remaining_count == 2
    assert report.ate_count == 1
    assert report.sent_count == 3
    assert sorted(notifier.tokens_for(NotificationType.FOOD_FINISHED)) == ["tok-bob", "tok-carol"]
    assert notifier.tokens_for(NotificationType.STILL_NEED_TO_EAT) == ["tok-alice"]

    finished = next(n for t, n in notifier.sent if t == "tok-bob")
    assert finished.title == "Food Finished!"
    assert "Alice" in finished.body
    hungry = next(n for t, n in notifier.sent if t == "tok-alice")
    assert "Bob" in hungry.body and "Carol" in hungry.body
    assert "still need to eat" in hungry.body


@pytest.mark.asyncio
async def test_report_skips_away_users_and_missing_tokens(engine, add_user, notifier):
    add_user("alice", has_eaten=True, fcm_token="tok-alice")
    add_user("bob")  # no token
    add_user("carol", is_away=True, fcm_token="tok-carol")

    report = await engine.report_food_finished("alice")

    assert [t for t, _ in notifier.attempts] == ["tok-alice"]
    assert report.without_token_count == 1
    assert report.remaining_count == 1


@pytest.mark.asyncio
async def test_one_failing_recipient_does_not_block_others(store, add_user, clock):
    notifier = RecordingNotifier(raising_tokens={"tok-bob"}, failing_tokens={"tok-dave"})
    engine = MealStateEngine(store, notifier, clock=clock)
    add_user("alice", has_eaten=True, fcm_token="tok-alice")
    add_user("bob", fcm_token="tok-bob")
    add_user("carol", fcm_token="tok-carol")
    add_user("dave", fcm_token="tok-dave")

    report = await engine.report_food_finished("alice")

    assert len(notifier.attempts) == 4
    assert sorted(t for t, _ in notifier.sent) == ["tok-alice", "tok-carol"]
    assert report.sent_count == 2
    assert report.failed_count == 2


@pytest.mark.asyncio
async def test_report_requires_present_reporter(engine, add_user):
    add_user("alice", is_away=True)

    with pytest.raises(NotFoundError):
        await engine.report_food_finished("ghost")
    with pytest.raises(InvalidStateError):
        await engine.report_food_finished("alice")
