"""
MEALY Meal Service Router

Household schedule and the "food finished" broadcast.
"""

import logging

from fastapi import APIRouter, Depends, Response

from core.auth import verify_firebase_token, AuthenticatedUser

from .models import (
    MealStateEngine,
    Schedule,
    ScheduleAccessor,
    SchedulePatch,
    get_meal_engine,
    get_schedule_accessor,
)

logger = logging.getLogger("mealy.meals")

router = APIRouter()


@router.get("/schedule", response_model=Schedule)
async def get_schedule(
    response: Response,
    current_user: AuthenticatedUser = Depends(verify_firebase_token),
    accessor: ScheduleAccessor = Depends(get_schedule_accessor)
):
    response.headers["Cache-Control"] = "no-store"
    return accessor.get()


@router.put("/schedule", response_model=Schedule)
async def update_schedule(
    patch: SchedulePatch,
    current_user: AuthenticatedUser = Depends(verify_firebase_token),
    accessor: ScheduleAccessor = Depends(get_schedule_accessor)
):
    """Update lunch and/or dinner time. Omitted fields are left alone."""
    return accessor.update(patch)


@router.post("/report-food-finished")
async def report_food_finished(
    current_user: AuthenticatedUser = Depends(verify_firebase_token),
    engine: MealStateEngine = Depends(get_meal_engine)
):
    """
    Tell everyone the food is gone.

    Those who haven't eaten hear who did; those who ate hear who is
    still hungry. Individual delivery failures don't fail the request.
    """
    report = await engine.report_food_finished(current_user.uid)
    return report.to_dict()
