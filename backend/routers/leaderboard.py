"""
Leaderboard Router - top learners by XP
"""
from fastapi import APIRouter, Depends
import logging

from dependencies import get_leaderboard_ranker
from models.progress import LeaderboardPage
from models.user import Session
from services.leaderboard import LeaderboardRanker
from utils.http import handle_errors
from utils.jwt_handler import get_current_user

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("", response_model=LeaderboardPage)
def get_leaderboard(
    session: Session = Depends(get_current_user),
    ranker: LeaderboardRanker = Depends(get_leaderboard_ranker)
):
    """Top learners plus the caller's own rank, even when outside the page"""
    with handle_errors("load leaderboard"):
        return ranker.page(viewer_id=session.user_id)
