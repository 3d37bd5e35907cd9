"""
Progress Router - profile XP, level and level progress
"""
from fastapi import APIRouter, HTTPException, Depends
import logging

from dependencies import get_data_store
from models.progress import ProgressSummary
from models.user import Session
from services.xp_calculator import XPCalculator
from utils.http import handle_errors
from utils.jwt_handler import get_current_user

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/me", response_model=ProgressSummary)
def get_my_progress(
    session: Session = Depends(get_current_user),
    store=Depends(get_data_store)
):
    """XP, level and streak with the progress-bar figures for the next level"""
    with handle_errors("load progress"):
        profile = store.get_profile(session.user_id)
        if not profile:
            raise HTTPException(status_code=404, detail="Profile not found")

        if profile.level != XPCalculator.get_level_from_xp(profile.xp_points):
            logger.warning(f"Cached level {profile.level} disagrees with xp={profile.xp_points}")

        return ProgressSummary(
            user_id=profile.id,
            display_name=profile.display_name,
            xp_points=profile.xp_points,
            level=profile.level,
            streak_days=profile.streak_days,
            level_progress=XPCalculator.get_xp_to_next_level(profile.xp_points, profile.level)
        )
