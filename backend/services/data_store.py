"""
Data Store - thin query/command interface over MySQL

Every row leaving this module has been validated into a model; a row with the
wrong shape raises MalformedRecord instead of leaking ambiguous values inward.
Driver errors are mapped to StoreError / ProcedureUnavailable.
"""
from contextlib import contextmanager
from typing import List, Optional
import logging

import mysql.connector
from mysql.connector import errorcode
from pydantic import ValidationError

from database import get_db_cursor, routine_exists
from models.lesson import Lesson, QuizQuestion
from models.progress import AtomicAwardResponse, LessonProgress
from models.user import UserProfile
from utils.errors import MalformedRecord, ProcedureUnavailable, StoreError

logger = logging.getLogger(__name__)

_MISSING_ROUTINE_ERRNOS = {errorcode.ER_SP_DOES_NOT_EXIST}

PROFILE_COLUMNS = "id, username, full_name, avatar_url, xp_points, level, streak_days, role, created_at"

# Same order as services.leaderboard.ranking_key: undated profiles after dated
# ones, ids compared by code point
RANKING_ORDER = "COALESCE(xp_points, 0) DESC, created_at IS NULL, created_at ASC, id COLLATE utf8mb4_bin ASC"


def _validate(model, row, what: str):
    try:
        return model.model_validate(row)
    except ValidationError as e:
        raise MalformedRecord(f"Malformed {what}: {e.errors()}") from e


@contextmanager
def _store_call(what: str):
    """Translate driver failures into the store error taxonomy"""
    try:
        yield
    except mysql.connector.Error as e:
        if e.errno in _MISSING_ROUTINE_ERRNOS:
            raise ProcedureUnavailable(f"{what}: {e.msg}") from e
        raise StoreError(f"{what} failed: {e.msg} (Code: {e.errno})") from e


class MySQLDataStore:
    """Query/command access to profiles, lessons, quizzes and user_progress"""

    # Capability probing

    def procedure_available(self, name: str) -> bool:
        with _store_call(f"probe {name}"), get_db_cursor() as cursor:
            return routine_exists(cursor, name)

    # Lesson completion

    def call_is_lesson_completed(self, user_id: str, lesson_id: str) -> bool:
        with _store_call("is_lesson_completed"), get_db_cursor() as cursor:
            cursor.execute(
                "SELECT is_lesson_completed(%s, %s) AS completed",
                (user_id, lesson_id)
            )
            row = cursor.fetchone()
        value = row["completed"] if row else None
        if value in (0, 1):
            return bool(value)
        raise MalformedRecord(f"is_lesson_completed returned {value!r}, expected a boolean")

    def query_lesson_completed(self, user_id: str, lesson_id: str) -> bool:
        with _store_call("user_progress lookup"), get_db_cursor() as cursor:
            cursor.execute(
                """SELECT completed FROM user_progress
                   WHERE user_id = %s AND lesson_id = %s""",
                (user_id, lesson_id)
            )
            row = cursor.fetchone()
        if row is None:
            return False
        if row["completed"] not in (0, 1):
            raise MalformedRecord(f"user_progress.completed is {row['completed']!r}")
        return bool(row["completed"])

    def upsert_progress(self, progress: LessonProgress) -> None:
        """Insert or confirm the (user, lesson) row; completed_at keeps its first value"""
        with _store_call("user_progress upsert"), get_db_cursor() as cursor:
            cursor.execute(
                """INSERT INTO user_progress
                   (user_id, lesson_id, course_id, completed, completed_at, score)
                   VALUES (%s, %s, %s, %s, %s, %s)
                   ON DUPLICATE KEY UPDATE
                       completed = VALUES(completed),
                       completed_at = COALESCE(completed_at, VALUES(completed_at)),
                       score = COALESCE(VALUES(score), score)""",
                (
                    progress.user_id,
                    progress.lesson_id,
                    progress.course_id,
                    progress.completed,
                    progress.completed_at,
                    progress.score
                )
            )

    # Profiles

    def call_add_user_xp(self, user_id: str, xp_amount: int) -> AtomicAwardResponse:
        with _store_call("add_user_xp"), get_db_cursor() as cursor:
            cursor.callproc("add_user_xp", (user_id, xp_amount))
            row = None
            for result in cursor.stored_results():
                fetched = result.fetchone()
                if fetched is not None and row is None:
                    row = fetched if isinstance(fetched, dict) else dict(zip(result.column_names, fetched))
        if row is None:
            raise MalformedRecord("add_user_xp returned no result row")
        return _validate(AtomicAwardResponse, row, "add_user_xp response")

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        with _store_call("profile lookup"), get_db_cursor() as cursor:
            cursor.execute(
                f"SELECT {PROFILE_COLUMNS} FROM profiles WHERE id = %s",
                (user_id,)
            )
            row = cursor.fetchone()
        return _validate(UserProfile, row, "profile") if row else None

    def update_profile_xp(self, user_id: str, xp_points: int, level: int) -> None:
        with _store_call("profile update"), get_db_cursor() as cursor:
            cursor.execute(
                "UPDATE profiles SET xp_points = %s, level = %s WHERE id = %s",
                (xp_points, level, user_id)
            )

    def list_profiles_by_xp(self, limit: Optional[int] = None) -> List[UserProfile]:
        """Profiles by xp_points descending; ties by created_at, then id"""
        query = (
            f"SELECT {PROFILE_COLUMNS} FROM profiles "
            f"ORDER BY {RANKING_ORDER}"
        )
        params = ()
        if limit is not None:
            query += " LIMIT %s"
            params = (limit,)
        with _store_call("leaderboard query"), get_db_cursor() as cursor:
            cursor.execute(query, params)
            rows = cursor.fetchall()
        return [_validate(UserProfile, row, "profile") for row in rows]

    def count_profiles_ahead(self, profile: UserProfile) -> int:
        """Number of profiles that sort ahead of ``profile`` in the ranking order"""
        if profile.created_at is not None:
            tie_break = (
                "(created_at IS NOT NULL AND created_at < %s) OR "
                "(created_at = %s AND id COLLATE utf8mb4_bin < %s)"
            )
            params = (profile.created_at, profile.created_at, profile.id)
        else:
            tie_break = "created_at IS NOT NULL OR id COLLATE utf8mb4_bin < %s"
            params = (profile.id,)

        with _store_call("leaderboard rank query"), get_db_cursor() as cursor:
            cursor.execute(
                "SELECT COUNT(*) AS ahead FROM profiles "
                "WHERE COALESCE(xp_points, 0) > %s "
                f"OR (COALESCE(xp_points, 0) = %s AND ({tie_break}))",
                (profile.xp_points, profile.xp_points) + params
            )
            row = cursor.fetchone()
        if row is None or not isinstance(row["ahead"], int):
            raise MalformedRecord(f"Rank count returned {row!r}")
        return row["ahead"]

    def get_role(self, user_id: str) -> Optional[str]:
        with _store_call("role lookup"), get_db_cursor() as cursor:
            cursor.execute("SELECT role FROM profiles WHERE id = %s", (user_id,))
            row = cursor.fetchone()
        return row["role"] if row else None

    # Lessons

    def get_lesson(self, lesson_id: str) -> Optional[Lesson]:
        with _store_call("lesson lookup"), get_db_cursor() as cursor:
            cursor.execute(
                """SELECT id, course_id, title, content, code_template, xp_reward, lesson_order
                   FROM lessons WHERE id = %s""",
                (lesson_id,)
            )
            row = cursor.fetchone()
        return _validate(Lesson, row, "lesson") if row else None

    def list_quizzes(self, lesson_id: str) -> List[QuizQuestion]:
        with _store_call("quiz lookup"), get_db_cursor() as cursor:
            cursor.execute(
                """SELECT id, lesson_id, question, options, correct_answer, explanation
                   FROM quizzes WHERE lesson_id = %s
                   ORDER BY sort_order ASC, id ASC""",
                (lesson_id,)
            )
            rows = cursor.fetchall()
        return [_validate(QuizQuestion, row, "quiz question") for row in rows]
