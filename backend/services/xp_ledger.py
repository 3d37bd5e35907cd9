"""
XP Ledger - awards lesson experience at most once per first completion

Completion flow for (user, lesson):

1. Idempotency check through the progress store. A completed row with profile
   XP below the lesson reward is the "missing XP" signature of an earlier
   award that recorded completion but never granted experience: repair it.
   Otherwise a repeat invocation is a no-op.
2. Record completion (idempotent upsert). Failure aborts with XP untouched.
3. Award XP with the strategy chosen once by capability probing:
   ATOMIC           the ``add_user_xp`` procedure (increment + relevel in one
                    transaction on the server)
   MANUAL_VERIFIED  read, compute, write, then re-read and compare
   A failed award after a saved completion is a partial success; the repair
   branch of step 1 picks it up on the next visit.

There is no lock across steps 1 and 2: two sessions racing through step 1
before either reaches step 2 can both award on the MANUAL_VERIFIED path.
"""
from typing import Optional
import logging
import threading

from config import settings
from models.lesson import Lesson
from models.progress import AwardStrategy, CompletionOutcome, CompletionStatus, XPAwardResult
from services.progress_store import ProgressStore
from services.xp_calculator import XPCalculator
from utils.errors import (
    ContractViolation, MalformedRecord, ProcedureUnavailable, RemoteTimeout, StoreError
)
from utils.timeouts import call_with_timeout

logger = logging.getLogger(__name__)

ATOMIC_PROCEDURE = "add_user_xp"


class XPLedger:

    def __init__(self, store, progress_store: ProgressStore = None,
                 timeout: Optional[float] = settings.REMOTE_CALL_TIMEOUT_SECONDS,
                 strategy: Optional[AwardStrategy] = None):
        self.store = store
        self.timeout = timeout
        self.progress = progress_store or ProgressStore(store, timeout=timeout)
        self._strategy = strategy
        self._strategy_lock = threading.Lock()

    @property
    def strategy(self) -> AwardStrategy:
        if self._strategy is None:
            with self._strategy_lock:
                if self._strategy is None:
                    self._strategy = self.probe_strategy()
        return self._strategy

    def probe_strategy(self) -> AwardStrategy:
        """Pick the award strategy from what the backing store offers"""
        try:
            available = call_with_timeout(self.timeout, self.store.procedure_available, ATOMIC_PROCEDURE)
        except StoreError as e:
            logger.warning(f"Could not probe {ATOMIC_PROCEDURE}, using verified fallback: {e}")
            return AwardStrategy.MANUAL_VERIFIED

        strategy = AwardStrategy.ATOMIC if available else AwardStrategy.MANUAL_VERIFIED
        logger.info(f"XP ledger using {strategy.value} strategy")
        return strategy

    # Completion flow

    def complete_lesson(self, user_id: str, lesson: Optional[Lesson],
                        score: Optional[int] = None) -> CompletionOutcome:
        """Record the completion of ``lesson`` and award its XP once"""
        if not user_id or lesson is None:
            logger.error("Cannot complete lesson: missing user or lesson")
            return CompletionOutcome(
                status=CompletionStatus.REJECTED,
                lesson_id=lesson.id if lesson else None,
                reason="Missing user or lesson"
            )

        logger.info(f"Completing lesson_id={lesson.id} for user_id={user_id} (xp_reward={lesson.xp_reward})")
        repairing = False

        if self.progress.exists(user_id, lesson.id):
            try:
                profile = call_with_timeout(self.timeout, self.store.get_profile, user_id)
            except (StoreError, ContractViolation) as e:
                logger.warning(f"Lesson already completed, profile unreadable; skipping XP check: {e}")
                return CompletionOutcome(
                    status=CompletionStatus.ALREADY_COMPLETED,
                    lesson_id=lesson.id,
                    xp_reward=lesson.xp_reward,
                    progress_saved=True,
                    reason=f"Profile unavailable: {e}"
                )

            current_xp = profile.xp_points if profile else 0
            if profile is not None and current_xp >= lesson.xp_reward:
                logger.info("Lesson already completed, XP already given")
                return CompletionOutcome(
                    status=CompletionStatus.ALREADY_COMPLETED,
                    lesson_id=lesson.id,
                    xp_reward=lesson.xp_reward,
                    progress_saved=True
                )

            logger.warning(f"XP missing for completed lesson: xp={current_xp} < reward={lesson.xp_reward}")
            repairing = True
        else:
            saved, error = self.progress.upsert_completed(user_id, lesson.id, lesson.course_id, score)
            if not saved:
                return CompletionOutcome(
                    status=CompletionStatus.FAILED,
                    lesson_id=lesson.id,
                    xp_reward=lesson.xp_reward,
                    reason=error
                )

        award = self.award_xp(user_id, lesson.xp_reward)

        if not award.success:
            logger.error(f"Failed to add XP after saving progress: {award.reason}")
            return CompletionOutcome(
                status=CompletionStatus.PARTIAL,
                lesson_id=lesson.id,
                xp_reward=lesson.xp_reward,
                progress_saved=True,
                award=award,
                reason=award.reason
            )

        level_up, _, _ = XPCalculator.check_level_up(award.new_xp - lesson.xp_reward, award.new_xp)
        return CompletionOutcome(
            status=CompletionStatus.REPAIRED if repairing else CompletionStatus.COMPLETED,
            lesson_id=lesson.id,
            xp_reward=lesson.xp_reward,
            xp_awarded=lesson.xp_reward,
            progress_saved=True,
            level_up=level_up,
            award=award
        )

    # Awarding

    def award_xp(self, user_id: str, xp_amount: int) -> XPAwardResult:
        """Add ``xp_amount`` to the profile and relevel it; never raises"""
        if not user_id or xp_amount <= 0:
            return XPAwardResult.failed(f"Invalid award of {xp_amount} XP")

        if self.strategy is AwardStrategy.ATOMIC:
            try:
                response = call_with_timeout(self.timeout, self.store.call_add_user_xp, user_id, xp_amount)
            except ProcedureUnavailable as e:
                logger.warning(f"{ATOMIC_PROCEDURE} is missing, switching to verified fallback: {e}")
                self._strategy = AwardStrategy.MANUAL_VERIFIED
            except RemoteTimeout as e:
                # The procedure may still commit; falling back could award twice
                return XPAwardResult.failed(
                    f"XP award did not answer in time: {e}",
                    strategy=AwardStrategy.ATOMIC
                )
            except MalformedRecord as e:
                logger.error(f"Unexpected {ATOMIC_PROCEDURE} response: {e}")
                return XPAwardResult.failed(str(e), strategy=AwardStrategy.ATOMIC)
            except StoreError as e:
                logger.warning(f"Error calling {ATOMIC_PROCEDURE}, using verified fallback: {e}")
            else:
                if response.success:
                    logger.info(f"XP added successfully: xp={response.new_xp} level={response.new_level}")
                    return XPAwardResult.ok(response.new_xp, response.new_level, AwardStrategy.ATOMIC)
                logger.error(f"XP add failed: {response.error}")
                return XPAwardResult.failed(
                    response.error or "Failed to add XP",
                    last_known_xp=response.new_xp,
                    last_known_level=response.new_level,
                    strategy=AwardStrategy.ATOMIC
                )

        return self._award_verified(user_id, xp_amount)

    def _award_verified(self, user_id: str, xp_amount: int) -> XPAwardResult:
        strategy = AwardStrategy.MANUAL_VERIFIED
        try:
            profile = call_with_timeout(self.timeout, self.store.get_profile, user_id)
        except (StoreError, ContractViolation) as e:
            logger.error(f"Error fetching profile: {e}")
            return XPAwardResult.failed(f"Failed to fetch profile: {e}", strategy=strategy)
        if profile is None:
            return XPAwardResult.failed("Profile not found", strategy=strategy)

        current_xp, current_level = profile.xp_points, profile.level
        new_xp = current_xp + xp_amount
        new_level = XPCalculator.get_level_from_xp(new_xp)
        logger.debug(f"Calculated XP update: {current_xp} + {xp_amount} -> {new_xp}, level {current_level} -> {new_level}")

        try:
            call_with_timeout(self.timeout, self.store.update_profile_xp, user_id, new_xp, new_level)
        except StoreError as e:
            logger.error(f"Error updating XP: {e}")
            return XPAwardResult.failed(
                f"Failed to update XP: {e}", current_xp, current_level, strategy
            )

        return self._verify(user_id, new_xp, new_level, current_xp, current_level)

    def _verify(self, user_id: str, expected_xp: int, expected_level: int,
                previous_xp: int, previous_level: int) -> XPAwardResult:
        """Re-read the profile and accept the write only if it is what we stored"""
        strategy = AwardStrategy.MANUAL_VERIFIED
        try:
            stored = call_with_timeout(self.timeout, self.store.get_profile, user_id)
        except (StoreError, ContractViolation) as e:
            logger.error(f"Error verifying XP update: {e}")
            return XPAwardResult.failed(
                f"Update may have succeeded but verification failed: {e}",
                previous_xp, previous_level, strategy
            )
        if stored is None:
            return XPAwardResult.failed(
                "Profile not found during verification", previous_xp, previous_level, strategy
            )

        if stored.xp_points == expected_xp and stored.level == expected_level:
            logger.info(f"XP updated and verified: xp={expected_xp} level={expected_level}")
            return XPAwardResult.ok(expected_xp, expected_level, strategy)

        logger.warning(
            f"XP update mismatch: expected xp={expected_xp} level={expected_level}, "
            f"stored xp={stored.xp_points} level={stored.level}"
        )
        return XPAwardResult.failed(
            f"XP update verification failed: expected {expected_xp} XP / level {expected_level}, "
            f"stored {stored.xp_points} XP / level {stored.level}",
            stored.xp_points, stored.level, strategy
        )

    # Administrative correction

    def relevel(self, user_id: str) -> XPAwardResult:
        """Rewrite the cached level from xp_points without touching experience"""
        strategy = AwardStrategy.MANUAL_VERIFIED
        try:
            profile = call_with_timeout(self.timeout, self.store.get_profile, user_id)
        except (StoreError, ContractViolation) as e:
            return XPAwardResult.failed(f"Failed to fetch profile: {e}", strategy=strategy)
        if profile is None:
            return XPAwardResult.failed("Profile not found", strategy=strategy)

        level = XPCalculator.get_level_from_xp(profile.xp_points)
        if level == profile.level:
            return XPAwardResult.ok(profile.xp_points, level, strategy)

        logger.warning(f"Correcting cached level {profile.level} -> {level} for user_id={user_id}")
        try:
            call_with_timeout(self.timeout, self.store.update_profile_xp, user_id, profile.xp_points, level)
        except StoreError as e:
            return XPAwardResult.failed(
                f"Failed to update level: {e}", profile.xp_points, profile.level, strategy
            )
        return self._verify(user_id, profile.xp_points, level, profile.xp_points, profile.level)
