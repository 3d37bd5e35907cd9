"""
Progress, XP Award and Leaderboard Models
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from enum import Enum


class AwardStrategy(str, Enum):
    ATOMIC = "atomic"
    MANUAL_VERIFIED = "manual_verified"


class CompletionStatus(str, Enum):
    COMPLETED = "completed"
    REPAIRED = "repaired"
    ALREADY_COMPLETED = "already_completed"
    PARTIAL = "partial"
    FAILED = "failed"
    REJECTED = "rejected"
    QUIZ_FAILED = "quiz_failed"


class LessonProgress(BaseModel):
    user_id: str
    lesson_id: str
    course_id: str
    completed: bool = False
    completed_at: Optional[datetime] = None
    score: Optional[int] = Field(None, ge=0)

    class Config:
        from_attributes = True


class AtomicAwardResponse(BaseModel):
    """Result row of the ``add_user_xp`` procedure"""
    success: bool
    new_xp: int = Field(0, alias="newXP", ge=0)
    new_level: int = Field(1, alias="newLevel", ge=1)
    error: Optional[str] = None

    class Config:
        populate_by_name = True

    @field_validator("new_xp", "new_level", mode="before")
    @classmethod
    def null_numbers(cls, value, info):
        if value is None:
            return 0 if info.field_name == "new_xp" else 1
        return value


class XPAwardResult(BaseModel):
    success: bool
    new_xp: Optional[int] = None
    new_level: Optional[int] = None
    last_known_xp: Optional[int] = None
    last_known_level: Optional[int] = None
    reason: Optional[str] = None
    strategy: Optional[AwardStrategy] = None

    @classmethod
    def ok(cls, new_xp: int, new_level: int, strategy: AwardStrategy) -> "XPAwardResult":
        return cls(success=True, new_xp=new_xp, new_level=new_level, strategy=strategy)

    @classmethod
    def failed(cls, reason: str, last_known_xp: Optional[int] = None,
               last_known_level: Optional[int] = None,
               strategy: Optional[AwardStrategy] = None) -> "XPAwardResult":
        return cls(
            success=False,
            last_known_xp=last_known_xp,
            last_known_level=last_known_level,
            reason=reason,
            strategy=strategy
        )


class GateDecision(BaseModel):
    passed: bool
    score: int
    total: int
    min_score: int
    percentage: int


class CompletionOutcome(BaseModel):
    status: CompletionStatus
    lesson_id: Optional[str] = None
    xp_reward: int = 0
    xp_awarded: int = 0
    progress_saved: bool = False
    level_up: bool = False
    award: Optional[XPAwardResult] = None
    gate: Optional[GateDecision] = None
    reason: Optional[str] = None
    title: str = ""
    message: str = ""
    severity: str = "info"  # success, info, warning, error


class LevelProgress(BaseModel):
    level: int
    xp_current: int
    xp_into_level: int
    xp_for_next: int
    xp_needed: int
    progress_percent: int


class ProgressSummary(BaseModel):
    user_id: str
    display_name: str
    xp_points: int
    level: int
    streak_days: int
    level_progress: LevelProgress


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: str
    display_name: str
    avatar_url: Optional[str] = None
    xp_points: int
    level: int
    streak_days: int


class LeaderboardPage(BaseModel):
    entries: List[LeaderboardEntry] = []
    limit: int
    viewer_rank: Optional[int] = None
    viewer_in_page: bool = False
