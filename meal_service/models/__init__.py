"""
MEALY Meal Service Models

Household records, the record store, meal-state rules, and the schedule.
"""

from .records import (
    MealType,
    MealStatus,
    MealRecord,
    User,
    UserProfile,
    UserRegister,
    DeviceTokenUpdate,
    Schedule,
    SchedulePatch,
)

from .store import RecordStore

from .engine import (
    MealStateEngine,
    ResetSummary,
    FoodFinishedReport,
    current_meal_type,
    get_meal_engine,
)

from .schedule import (
    ScheduleAccessor,
    get_schedule_accessor,
)

__all__ = [
    # Records
    "MealType",
    "MealStatus",
    "MealRecord",
    "User",
    "UserProfile",
    "UserRegister",
    "DeviceTokenUpdate",
    "Schedule",
    "SchedulePatch",
    # Store
    "RecordStore",
    # Engine
    "MealStateEngine",
    "ResetSummary",
    "FoodFinishedReport",
    "current_meal_type",
    "get_meal_engine",
    # Schedule
    "ScheduleAccessor",
    "get_schedule_accessor",
]
