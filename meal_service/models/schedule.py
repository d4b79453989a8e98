"""
MEALY Meal Service - Schedule Accessor

The household has exactly one schedule document. It lives under a fixed id
and is created with defaults the first time anybody reads it.
"""

import logging

from .records import Schedule, SchedulePatch
from .store import RecordStore

logger = logging.getLogger(__name__)

SCHEDULE_DOC_ID = "household"


class ScheduleAccessor:
    def __init__(self, store: RecordStore):
        self.store = store

    def get(self) -> Schedule:
        """Get the schedule, creating it with defaults if absent."""
        data = self.store.get_schedule(SCHEDULE_DOC_ID)
        if data is None:
            schedule = Schedule()
            self.store.save_schedule(SCHEDULE_DOC_ID, schedule.model_dump())
            logger.info("🗓️ Default schedule created")
            return schedule
        return Schedule.model_validate(data)

    def update(self, patch: SchedulePatch) -> Schedule:
        """Overwrite only the fields present in the patch."""
        schedule = self.get()
        changes = patch.changes()
        if changes:
            schedule = schedule.model_copy(update=changes)
            self.store.save_schedule(SCHEDULE_DOC_ID, schedule.model_dump())
            logger.info(f"🗓️ Schedule updated: {changes}")
        return schedule


_accessor = None


def get_schedule_accessor() -> ScheduleAccessor:
    """Get or create the schedule accessor singleton."""
    global _accessor
    if _accessor is None:
        from core.database import get_database

        _accessor = ScheduleAccessor(RecordStore(get_database()))
    return _accessor
