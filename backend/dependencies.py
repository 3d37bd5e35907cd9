"""
Service wiring for the routers (overridable through app.dependency_overrides)
"""
from functools import lru_cache

from fastapi import Depends, HTTPException

from models.user import Session
from services.data_store import MySQLDataStore
from services.leaderboard import LeaderboardRanker
from services.lesson_completion import LessonCompletionService
from services.progress_store import ProgressStore
from services.quiz_scorer import QuizSessionRegistry
from services.role_service import RoleService
from services.xp_ledger import XPLedger
from utils.jwt_handler import get_current_user


@lru_cache()
def get_data_store() -> MySQLDataStore:
    return MySQLDataStore()


@lru_cache()
def get_progress_store() -> ProgressStore:
    return ProgressStore(get_data_store())


@lru_cache()
def get_xp_ledger() -> XPLedger:
    return XPLedger(get_data_store(), get_progress_store())


@lru_cache()
def get_completion_service() -> LessonCompletionService:
    return LessonCompletionService(get_xp_ledger())


@lru_cache()
def get_leaderboard_ranker() -> LeaderboardRanker:
    return LeaderboardRanker(get_data_store())


@lru_cache()
def get_role_service() -> RoleService:
    return RoleService(get_data_store())


@lru_cache()
def get_quiz_sessions() -> QuizSessionRegistry:
    return QuizSessionRegistry()


def get_admin_user(
    session: Session = Depends(get_current_user),
    roles: RoleService = Depends(get_role_service)
) -> Session:
    """FastAPI dependency: the caller's Session, only if the caller is an admin"""
    if not roles.is_admin(session.user_id):
        raise HTTPException(status_code=403, detail="Admin access required")
    return session
