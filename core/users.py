"""
MEALY User Service

Registration, device tokens, and the eaten / away / reset actions.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Response

from core.auth import verify_firebase_token, AuthenticatedUser
from meal_service.models import (
    DeviceTokenUpdate,
    MealStateEngine,
    User,
    UserProfile,
    UserRegister,
    get_meal_engine,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def household(engine: MealStateEngine) -> List[UserProfile]:
    """All users with their device tokens stripped."""
    return [user.public() for user in engine.list_users()]


# ============================================
# Endpoints
# ============================================

@router.post("/register", response_model=User)
async def register_user(
    data: UserRegister,
    current_user: AuthenticatedUser = Depends(verify_firebase_token),
    engine: MealStateEngine = Depends(get_meal_engine)
):
    """
    Register the current user. Calling again returns the existing record.
    The UID comes from Firebase Auth.
    """
    return engine.register_user(current_user.uid, data.name, data.email)


@router.post("/fcm-token")
async def update_fcm_token(
    data: DeviceTokenUpdate,
    current_user: AuthenticatedUser = Depends(verify_firebase_token),
    engine: MealStateEngine = Depends(get_meal_engine)
):
    """Store the push notification device token for the current user."""
    user = engine.set_device_token(current_user.uid, data.token)
    return {"success": True, "user": user.model_dump(by_alias=True, mode="json")}


@router.get("", response_model=List[UserProfile])
async def list_users(
    response: Response,
    current_user: AuthenticatedUser = Depends(verify_firebase_token),
    engine: MealStateEngine = Depends(get_meal_engine)
):
    """Everybody in the household and whether they have eaten."""
    response.headers["Cache-Control"] = "no-store"
    return household(engine)


@router.get("/me", response_model=User)
async def get_current_user(
    current_user: AuthenticatedUser = Depends(verify_firebase_token),
    engine: MealStateEngine = Depends(get_meal_engine)
):
    """Get the current authenticated user's record."""
    return engine.get_user(current_user.uid)


@router.post("/toggle-away", response_model=List[UserProfile])
async def toggle_away(
    current_user: AuthenticatedUser = Depends(verify_firebase_token),
    engine: MealStateEngine = Depends(get_meal_engine)
):
    engine.toggle_away(current_user.uid)
    return household(engine)


@router.post("/mark-eaten", response_model=List[UserProfile])
async def mark_eaten(
    current_user: AuthenticatedUser = Depends(verify_firebase_token),
    engine: MealStateEngine = Depends(get_meal_engine)
):
    engine.mark_eaten(current_user.uid)
    return household(engine)


@router.post("/reset-eaten", response_model=List[UserProfile])
async def reset_eaten(
    current_user: AuthenticatedUser = Depends(verify_firebase_token),
    engine: MealStateEngine = Depends(get_meal_engine)
):
    """Run the daily reset now. Misses are still counted once per day."""
    logger.info(f"Manual reset requested by {current_user.uid}")
    engine.daily_reset()
    return household(engine)
