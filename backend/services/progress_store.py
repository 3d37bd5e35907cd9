"""
Progress Store Adapter - idempotent (user, lesson) completion records
"""
from datetime import datetime
from typing import Optional, Tuple
import logging

from config import settings
from models.progress import LessonProgress
from utils.errors import ContractViolation, StoreError
from utils.timeouts import call_with_timeout

logger = logging.getLogger(__name__)


class ProgressStore:
    """Completion existence checks and upserts keyed by (user_id, lesson_id)"""

    def __init__(self, store, timeout: Optional[float] = settings.REMOTE_CALL_TIMEOUT_SECONDS):
        self.store = store
        self.timeout = timeout

    def exists(self, user_id: str, lesson_id: str) -> bool:
        """
        Whether a completed row exists for (user, lesson).

        Prefers the ``is_lesson_completed`` procedure and falls back to a
        direct query. Any failure on both paths answers False: re-attempting a
        completion is preferred over blocking the learner.
        """
        try:
            completed = call_with_timeout(
                self.timeout, self.store.call_is_lesson_completed, user_id, lesson_id
            )
            logger.debug(f"Lesson completion check via procedure: {completed}")
            return completed
        except (StoreError, ContractViolation) as e:
            logger.warning(f"is_lesson_completed unavailable, querying user_progress: {e}")

        try:
            completed = call_with_timeout(
                self.timeout, self.store.query_lesson_completed, user_id, lesson_id
            )
            logger.debug(f"Lesson completion check via query: {completed}")
            return completed
        except (StoreError, ContractViolation) as e:
            logger.warning(f"Error checking lesson completion, assuming not completed: {e}")
            return False

    def upsert_completed(self, user_id: str, lesson_id: str, course_id: str,
                         score: Optional[int] = None) -> Tuple[bool, str]:
        """
        Mark (user, lesson) completed in a single round trip.

        Returns (saved, error). Safe to repeat: the
        conflict key is (user_id, lesson_id) and ``completed_at`` keeps the time
        of the first completion.
        """
        try:
            progress = LessonProgress(
                user_id=user_id,
                lesson_id=lesson_id,
                course_id=course_id,
                completed=True,
                completed_at=datetime.now(),
                score=score
            )
        except ValueError as e:
            return False, f"Invalid progress record: {e}"

        try:
            call_with_timeout(self.timeout, self.store.upsert_progress, progress)
        except StoreError as e:
            logger.error(f"Error saving progress for lesson_id={lesson_id}: {e}")
            return False, str(e)

        logger.info(f"Progress saved for user_id={user_id} lesson_id={lesson_id}")
        return True, ""
