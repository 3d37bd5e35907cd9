from conftest import InMemoryDataStore
from models.progress import CompletionStatus
from models.user import Session
from services.lesson_completion import LessonCompletionService
from services.quiz_scorer import QuizScorer
from utils.errors import StoreError


def play(scorer: QuizScorer, options) -> int:
    final = None
    for option in options:
        scorer.select(option)
        scorer.reveal()
        final = scorer.advance()
    return final


def test_passing_quiz_completes_lesson(store: InMemoryDataStore, completion: LessonCompletionService,
                                       session: Session) -> None:
    scorer = QuizScorer(store.list_quizzes("l1"))
    score = play(scorer, [1, 1, 0, 1])
    outcome = completion.submit_quiz_score(session, store.lessons["l1"], score, scorer.total)

    assert outcome.status is CompletionStatus.COMPLETED
    assert outcome.gate.passed is True
    assert outcome.gate.percentage == 75
    assert outcome.severity == "success"
    assert outcome.title == "Lesson Complete! 🎉"
    assert outcome.message == "You earned 10 XP."
    assert store.profiles["u1"].xp_points == 10
    assert store.profiles["u1"].level == 1
    assert store.progress[("u1", "l1")].completed is True


def test_failing_quiz_changes_nothing(store: InMemoryDataStore, completion: LessonCompletionService,
                                     session: Session) -> None:
    scorer = QuizScorer(store.list_quizzes("l1"))
    score = play(scorer, [1, 0, 0, 1])
    outcome = completion.submit_quiz_score(session, store.lessons["l1"], score, scorer.total)

    assert outcome.status is CompletionStatus.QUIZ_FAILED
    assert outcome.severity == "warning"
    assert "2 of 4" in outcome.message
    assert "(50%)" in outcome.message
    assert "At least 3" in outcome.message
    assert store.progress == {}
    assert store.profiles["u1"].xp_points == 0


def test_level_up_message(store: InMemoryDataStore, completion: LessonCompletionService,
                          session: Session) -> None:
    store.add_profile("u1", xp_points=60)
    outcome = completion.complete_without_quiz(session, store.lessons["l2"])

    assert outcome.level_up is True
    assert outcome.message == "You earned 50 XP. Level Up! You are now Level 2! 🎉"


def test_messages_follow_session_locale(store: InMemoryDataStore, completion: LessonCompletionService) -> None:
    session = Session(user_id="u1", locale="id-ID")
    outcome = completion.complete_without_quiz(session, store.lessons["l2"])
    assert outcome.title == "Lesson Selesai! 🎉"
    assert outcome.message == "Kamu mendapatkan 50 XP."


def test_repeat_visit_is_informational(store: InMemoryDataStore, completion: LessonCompletionService,
                                       session: Session) -> None:
    completion.complete_without_quiz(session, store.lessons["l2"])
    outcome = completion.complete_without_quiz(session, store.lessons["l2"])
    assert outcome.status is CompletionStatus.ALREADY_COMPLETED
    assert outcome.severity == "info"


def test_partial_success_explains_retry(store: InMemoryDataStore, completion: LessonCompletionService,
                                        session: Session) -> None:
    store.atomic = False
    store.failures["update_profile_xp"] = StoreError("Lock wait timeout exceeded")
    outcome = completion.complete_without_quiz(session, store.lessons["l2"])

    assert outcome.status is CompletionStatus.PARTIAL
    assert outcome.severity == "warning"
    assert "Lock wait timeout exceeded" in outcome.message


def test_missing_session_is_rejected(store: InMemoryDataStore, completion: LessonCompletionService) -> None:
    outcome = completion.submit_quiz_score(None, store.lessons["l1"], 4, 4)
    assert outcome.status is CompletionStatus.REJECTED
    assert outcome.severity == "error"
    assert store.progress == {}
