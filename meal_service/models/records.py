"""
MEALY Meal Service - Records

User, meal history, and schedule documents. Fields are snake_case in the
store and camelCase on the wire.
"""

import re
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


# ═══════════════════════════════════════════════════════════════════════════════
# ENUMS
# ═══════════════════════════════════════════════════════════════════════════════

class MealType(str, Enum):
    """Meal of the day, derived from the local hour."""
    LUNCH = "Lunch"
    DINNER = "Dinner"


class MealStatus(str, Enum):
    EATEN = "eaten"
    MISSED = "missed"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ═══════════════════════════════════════════════════════════════════════════════
# USER
# ═══════════════════════════════════════════════════════════════════════════════

class MealRecord(CamelModel):
    model_config = ConfigDict(use_enum_values=True)

    date: datetime
    meal_type: MealType
    eaten: bool = False
    status: MealStatus


class UserProfile(CamelModel):
    """A household member as other members see them."""
    firebase_uid: str
    name: Optional[str] = None
    email: Optional[str] = None
    has_eaten: bool = False
    last_eaten_at: Optional[datetime] = None
    is_away: bool = False
    away_start_date: Optional[datetime] = None
    away_end_date: Optional[datetime] = None
    missed_meals_count: int = Field(default=0, ge=0)
    meal_history: List[MealRecord] = []
    last_reset_on: Optional[str] = None  # local ISO date of the last daily reset
    created_at: Optional[datetime] = None


class User(UserProfile):
    """Full user document, including the push device token."""
    fcm_token: Optional[str] = None

    def to_document(self) -> dict:
        return self.model_dump()

    def public(self) -> UserProfile:
        return UserProfile.model_validate(self.model_dump(exclude={"fcm_token"}))


class UserRegister(BaseModel):
    name: str
    email: EmailStr


class DeviceTokenUpdate(BaseModel):
    token: str


# ═══════════════════════════════════════════════════════════════════════════════
# SCHEDULE
# ═══════════════════════════════════════════════════════════════════════════════

DEFAULT_LUNCH_TIME = "12:00"
DEFAULT_DINNER_TIME = "19:00"

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def validate_time_of_day(value: str) -> str:
    """Accept "HH:MM" with hour 00-23 and minute 00-59."""
    if not _TIME_PATTERN.match(value):
        raise ValueError(f"'{value}' is not a valid HH:MM time")
    return value


class Schedule(CamelModel):
    lunch_time: str = DEFAULT_LUNCH_TIME
    dinner_time: str = DEFAULT_DINNER_TIME


class SchedulePatch(CamelModel):
    """Partial schedule update. Absent or empty fields keep their value."""
    lunch_time: Optional[str] = None
    dinner_time: Optional[str] = None

    @field_validator("lunch_time", "dinner_time")
    @classmethod
    def _check_time(cls, value: Optional[str]) -> Optional[str]:
        if value:
            return validate_time_of_day(value)
        return value

    def changes(self) -> dict:
        return {
            field: value
            for field, value in self.model_dump(exclude_unset=True).items()
            if value
        }
