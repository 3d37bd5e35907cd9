"""
Kodein Models Package
"""
from .user import Role, Session, UserProfile, SessionInfo
from .lesson import Lesson, QuizQuestion, QuizPhase, QuizQuestionView, QuizState, Reveal
from .progress import (
    AwardStrategy, CompletionStatus, CompletionOutcome, GateDecision,
    LessonProgress, LevelProgress, LeaderboardEntry, LeaderboardPage, XPAwardResult
)
