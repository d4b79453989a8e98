"""
MEALY Meal Service - Meal-State Engine

Eaten / away / missed rules for household members and the "food finished"
notification fan-out.

Per user the composite state is one of:
    Present·Pending  --mark_eaten-->   Present·Eaten
    Present·*        --toggle_away-->  Away
    Away             --toggle_away-->  Present·Pending
    Present·*        --daily_reset-->  Present·Pending (+1 missed if Pending)
Away users are never touched by the daily reset.
"""

import logging
from dataclasses import dataclass, asdict
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional
from zoneinfo import ZoneInfo

from pydantic.alias_generators import to_camel

from core.exceptions import ForbiddenError, InvalidStateError, NotFoundError
from core.notifications import NotificationType, PushNotification
from shared.utils import get_now

from .records import MealRecord, MealStatus, MealType, User
from .store import RecordStore

logger = logging.getLogger(__name__)

LUNCH_START_HOUR = 7
DINNER_START_HOUR = 17

ALL_DONE_MESSAGE = "No users left, great job for finishing food!"
NOTIFIED_MESSAGE = "Notifications sent successfully"


def current_meal_type(now: datetime) -> MealType:
    """Lunch between 07:00 and 16:59 local time, dinner otherwise."""
    if LUNCH_START_HOUR <= now.hour < DINNER_START_HOUR:
        return MealType.LUNCH
    return MealType.DINNER


@dataclass
class ResetSummary:
    users_reset: int = 0
    missed_recorded: int = 0
    already_counted: int = 0

    def to_dict(self) -> dict:
        return {to_camel(key): value for key, value in asdict(self).items()}


@dataclass
class FoodFinishedReport:
    message: str
    done: bool
    remaining_count: int = 0
    ate_count: int = 0
    sent_count: int = 0
    failed_count: int = 0
    without_token_count: int = 0

    def to_dict(self) -> dict:
        return {to_camel(key): value for key, value in asdict(self).items()}


class MealStateEngine:
    """
    Applies the household meal rules on top of a RecordStore.

    Args:
        store: user / schedule persistence
        notifier: object with ``async send_to_device(token, PushNotification)``
        timezone: IANA zone used for meal type and the reset date
        clock: returns the current aware datetime
        max_users: registration cap, 0 for unlimited
    """

    def __init__(
        self,
        store: RecordStore,
        notifier,
        timezone: str = "UTC",
        clock: Callable[[], datetime] = get_now,
        max_users: int = 0
    ):
        self.store = store
        self.notifier = notifier
        self.tz = ZoneInfo(timezone)
        self.clock = clock
        self.max_users = max_users

    def _local_now(self) -> datetime:
        return self.clock().astimezone(self.tz)

    def _require_user(self, uid: str) -> User:
        user = self.store.get_user(uid)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def current_meal_type(self) -> MealType:
        return current_meal_type(self._local_now())

    # ============================================
    # Membership
    # ============================================

    def register_user(self, uid: str, name: str, email: Optional[str]) -> User:
        """Create the user on first call; later calls return the stored record."""
        existing = self.store.get_user(uid)
        if existing is not None:
            return existing

        if self.max_users and self.store.count_users() >= self.max_users:
            logger.warning(f"🚫 Registration refused for {uid}: household is full ({self.max_users})")
            raise ForbiddenError("Household is full")

        user = User(firebase_uid=uid, name=name, email=email, created_at=self.clock())
        return self.store.insert_user(user)

    def set_device_token(self, uid: str, token: str) -> User:
        self._require_user(uid)
        return self.store.update_user(uid, {"fcm_token": token})

    def get_user(self, uid: str) -> User:
        return self._require_user(uid)

    def list_users(self) -> List[User]:
        return self.store.list_users()

    # ============================================
    # State transitions
    # ============================================

    def mark_eaten(self, uid: str) -> User:
        user = self._require_user(uid)
        if user.is_away:
            raise InvalidStateError("Cannot mark eaten while away")

        return self.store.update_user(uid, {
            "has_eaten": True,
            "last_eaten_at": self.clock(),
        })

    def toggle_away(self, uid: str) -> User:
        user = self._require_user(uid)
        now = self.clock()

        if user.is_away:
            fields = {"is_away": False, "away_end_date": now}
            logger.info(f"🏠 {uid} is back")
        else:
            fields = {
                "is_away": True,
                "away_start_date": now,
                "away_end_date": None,
                "has_eaten": False,
            }
            logger.info(f"🧳 {uid} is away")

        return self.store.update_user(uid, fields)

    def daily_reset(self, closing_day: Optional[date] = None) -> ResetSummary:
        """
        Close a day for every present user.

        Each reset is labelled with the local day it closes (today unless
        given). A user who has not eaten gets one missed meal at most once per
        closed day, so a late-evening manual reset followed by the midnight
        job does not double count.
        """
        local_now = self._local_now()
        closed_day = (closing_day or local_now.date()).isoformat()
        meal_type = current_meal_type(local_now)
        summary = ResetSummary()

        for user in self.store.find_users(is_away=False):
            fields = {"has_eaten": False, "last_reset_on": closed_day}

            if not user.has_eaten:
                if user.last_reset_on == closed_day:
                    summary.already_counted += 1
                else:
                    record = MealRecord(
                        date=self.clock(),
                        meal_type=meal_type,
                        eaten=False,
                        status=MealStatus.MISSED,
                    )
                    fields["missed_meals_count"] = user.missed_meals_count + 1
                    fields["meal_history"] = [
                        r.model_dump() for r in user.meal_history
                    ] + [record.model_dump()]
                    summary.missed_recorded += 1

            self.store.update_user(user.firebase_uid, fields)
            summary.users_reset += 1

        logger.info(
            f"🌙 Daily reset: {summary.users_reset} users reset, "
            f"{summary.missed_recorded} missed meals recorded, "
            f"{summary.already_counted} already counted for that day"
        )
        return summary

    def close_previous_day(self) -> ResetSummary:
        """Scheduled path: runs just after local midnight and closes yesterday."""
        return self.daily_reset(closing_day=self._local_now().date() - timedelta(days=1))

    # ============================================
    # Notification fan-out
    # ============================================

    async def _notify(self, user: User, notification: PushNotification, report: FoodFinishedReport):
        if not user.fcm_token:
            report.without_token_count += 1
            return

        try:
            message_id = await self.notifier.send_to_device(user.fcm_token, notification)
        except Exception as e:
            logger.error(f"Notification to {user.firebase_uid} failed: {e}")
            report.failed_count += 1
            return

        if message_id:
            report.sent_count += 1
        else:
            report.failed_count += 1

    async def report_food_finished(self, reporter_uid: str) -> FoodFinishedReport:
        reporter = self._require_user(reporter_uid)
        if reporter.is_away:
            raise InvalidStateError("Cannot report food finished while away")

        present = self.store.find_users(is_away=False)
        remaining = [u for u in present if not u.has_eaten]
        ate = [u for u in present if u.has_eaten]

        if not remaining:
            return FoodFinishedReport(message=ALL_DONE_MESSAGE, done=True, ate_count=len(ate))

        report = FoodFinishedReport(
            message=NOTIFIED_MESSAGE,
            done=False,
            remaining_count=len(remaining),
            ate_count=len(ate)
        )
        ate_names = ", ".join(u.name or "Someone" for u in ate) or "Nobody"
        remaining_names = ", ".join(u.name or "Someone" for u in remaining)

        finished = PushNotification(
            title="Food Finished!",
            body=f"Food is finished. {ate_names} have eaten.",
            notification_type=NotificationType.FOOD_FINISHED
        )
        for user in remaining:
            await self._notify(user, finished, report)

        still_hungry = PushNotification(
            title="Food Status",
            body=f"{remaining_names} still need to eat.",
            notification_type=NotificationType.STILL_NEED_TO_EAT
        )
        for user in ate:
            await self._notify(user, still_hungry, report)

        logger.info(
            f"🍽️ Food finished reported by {reporter_uid}: "
            f"{report.sent_count} sent, {report.failed_count} failed, "
            f"{report.without_token_count} without token"
        )
        return report


_engine: Optional[MealStateEngine] = None


def get_meal_engine() -> MealStateEngine:
    """Get or create the meal-state engine singleton."""
    global _engine
    if _engine is None:
        from core.config import settings
        from core.database import get_database
        from core.notifications import fcm_service

        _engine = MealStateEngine(
            store=RecordStore(get_database()),
            notifier=fcm_service,
            timezone=settings.TIMEZONE,
            max_users=settings.MAX_USERS
        )
    return _engine
