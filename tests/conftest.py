import sys
import time
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
BACKEND = ROOT / "backend"
if str(BACKEND) not in sys.path:
    sys.path.insert(0, str(BACKEND))

from models.lesson import Lesson, QuizQuestion  # noqa: E402
from models.progress import AtomicAwardResponse, LessonProgress  # noqa: E402
from models.user import Session, UserProfile  # noqa: E402
from services.completion_gate import CompletionGate  # noqa: E402
from services.leaderboard import ranking_key  # noqa: E402
from services.lesson_completion import LessonCompletionService  # noqa: E402
from services.progress_store import ProgressStore  # noqa: E402
from services.xp_calculator import XPCalculator  # noqa: E402
from services.xp_ledger import XPLedger  # noqa: E402
from utils.errors import ProcedureUnavailable  # noqa: E402

EPOCH = datetime(2024, 1, 1, 8, 0, 0)


class InMemoryDataStore:
    """Dict-backed stand-in for MySQLDataStore with switchable failures.

    ``failures`` maps a method name to the exception it raises, ``delays`` to
    the seconds it sleeps before answering. ``after_update`` runs right after
    ``update_profile_xp`` so a test can play a concurrent writer.
    """

    def __init__(self, atomic: bool = True, completion_function: bool = True):
        self.atomic = atomic
        self.completion_function = completion_function
        self.profiles: Dict[str, UserProfile] = {}
        self.roles: Dict[str, Optional[str]] = {}
        self.lessons: Dict[str, Lesson] = {}
        self.quizzes: Dict[str, List[QuizQuestion]] = {}
        self.progress: Dict[tuple, LessonProgress] = {}
        self.failures: Dict[str, Exception] = {}
        self.delays: Dict[str, float] = {}
        self.after_update: Optional[Callable[[str], None]] = None
        self.calls: List[str] = []

    def _enter(self, name: str) -> None:
        self.calls.append(name)
        if name in self.delays:
            time.sleep(self.delays[name])
        if name in self.failures:
            raise self.failures[name]

    def count(self, name: str) -> int:
        return self.calls.count(name)

    # Seeding

    def add_profile(self, user_id: str, xp_points: int = 0, level: Optional[int] = None,
                    role: Optional[str] = "user", created_at: Optional[datetime] = EPOCH,
                    username: Optional[str] = None) -> UserProfile:
        profile = UserProfile(
            id=user_id,
            username=username or user_id,
            xp_points=xp_points,
            level=level or XPCalculator.get_level_from_xp(xp_points),
            role=role,
            created_at=created_at
        )
        self.profiles[user_id] = profile
        self.roles[user_id] = role
        return profile

    def add_lesson(self, lesson_id: str, xp_reward: int = 10, course_id: str = "c1",
                   questions: int = 0) -> Lesson:
        lesson = Lesson(id=lesson_id, course_id=course_id, title=f"Lesson {lesson_id}", xp_reward=xp_reward)
        self.lessons[lesson_id] = lesson
        self.quizzes[lesson_id] = make_questions(lesson_id, questions)
        return lesson

    def mark_completed(self, user_id: str, lesson_id: str) -> None:
        lesson = self.lessons[lesson_id]
        self.progress[(user_id, lesson_id)] = LessonProgress(
            user_id=user_id, lesson_id=lesson_id, course_id=lesson.course_id,
            completed=True, completed_at=EPOCH
        )

    # MySQLDataStore interface

    def procedure_available(self, name: str) -> bool:
        self._enter("procedure_available")
        return self.atomic

    def call_is_lesson_completed(self, user_id: str, lesson_id: str) -> bool:
        self._enter("call_is_lesson_completed")
        if not self.completion_function:
            raise ProcedureUnavailable("is_lesson_completed does not exist")
        return self._completed(user_id, lesson_id)

    def query_lesson_completed(self, user_id: str, lesson_id: str) -> bool:
        self._enter("query_lesson_completed")
        return self._completed(user_id, lesson_id)

    def _completed(self, user_id: str, lesson_id: str) -> bool:
        row = self.progress.get((user_id, lesson_id))
        return bool(row and row.completed)

    def upsert_progress(self, progress: LessonProgress) -> None:
        self._enter("upsert_progress")
        key = (progress.user_id, progress.lesson_id)
        existing = self.progress.get(key)
        if existing is not None:
            progress = progress.model_copy(update={
                "completed_at": existing.completed_at or progress.completed_at,
                "score": progress.score if progress.score is not None else existing.score,
            })
        self.progress[key] = progress

    def call_add_user_xp(self, user_id: str, xp_amount: int) -> AtomicAwardResponse:
        self._enter("call_add_user_xp")
        if not self.atomic:
            raise ProcedureUnavailable("add_user_xp does not exist")
        profile = self.profiles.get(user_id)
        if profile is None:
            return AtomicAwardResponse(success=False, error="Profile not found")
        new_xp = profile.xp_points + xp_amount
        new_level = XPCalculator.get_level_from_xp(new_xp)
        self.profiles[user_id] = profile.model_copy(update={"xp_points": new_xp, "level": new_level})
        return AtomicAwardResponse(success=True, new_xp=new_xp, new_level=new_level)

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        self._enter("get_profile")
        return self.profiles.get(user_id)

    def update_profile_xp(self, user_id: str, xp_points: int, level: int) -> None:
        self._enter("update_profile_xp")
        profile = self.profiles.get(user_id)
        if profile is not None:
            self.profiles[user_id] = profile.model_copy(update={"xp_points": xp_points, "level": level})
        if self.after_update is not None:
            self.after_update(user_id)

    def list_profiles_by_xp(self, limit: Optional[int] = None) -> List[UserProfile]:
        self._enter("list_profiles_by_xp")
        ordered = sorted(self.profiles.values(), key=ranking_key)
        return ordered if limit is None else ordered[:limit]

    def count_profiles_ahead(self, profile: UserProfile) -> int:
        self._enter("count_profiles_ahead")
        key = ranking_key(profile)
        return sum(1 for other in self.profiles.values() if ranking_key(other) < key)

    def get_role(self, user_id: str) -> Optional[str]:
        self._enter("get_role")
        return self.roles.get(user_id)

    def get_lesson(self, lesson_id: str) -> Optional[Lesson]:
        self._enter("get_lesson")
        return self.lessons.get(lesson_id)

    def list_quizzes(self, lesson_id: str) -> List[QuizQuestion]:
        self._enter("list_quizzes")
        return list(self.quizzes.get(lesson_id, []))


def make_questions(lesson_id: str, count: int, correct_answer: int = 1) -> List[QuizQuestion]:
    return [
        QuizQuestion(
            id=f"{lesson_id}-q{i}",
            lesson_id=lesson_id,
            question=f"Question {i}?",
            options=["a", "b", "c", "d"],
            correct_answer=correct_answer,
            explanation=f"Because of {i}"
        )
        for i in range(count)
    ]


def days_after_epoch(days: int) -> datetime:
    return EPOCH + timedelta(days=days)


@pytest.fixture
def store() -> InMemoryDataStore:
    data = InMemoryDataStore()
    data.add_profile("u1")
    data.add_lesson("l1", xp_reward=10, questions=4)
    data.add_lesson("l2", xp_reward=50)
    return data


@pytest.fixture
def fallback_store(store: InMemoryDataStore) -> InMemoryDataStore:
    store.atomic = False
    return store


@pytest.fixture
def progress_store(store: InMemoryDataStore) -> ProgressStore:
    return ProgressStore(store, timeout=None)


@pytest.fixture
def ledger(store: InMemoryDataStore) -> XPLedger:
    return XPLedger(store, timeout=None)


@pytest.fixture
def completion(ledger: XPLedger) -> LessonCompletionService:
    return LessonCompletionService(ledger, CompletionGate(0.7))


@pytest.fixture
def session() -> Session:
    return Session(user_id="u1", email="u1@example.com", locale="en")
