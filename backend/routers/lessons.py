"""
Lessons Router - lesson view, quiz attempts and lesson completion
"""
from fastapi import APIRouter, HTTPException, Depends
import logging

from dependencies import (
    get_completion_service, get_data_store, get_progress_store, get_quiz_sessions
)
from models.lesson import LessonDetail, OptionSelection, QuizAdvanceResponse, QuizState, Reveal
from models.progress import CompletionOutcome, CompletionStatus
from models.user import Session
from services.lesson_completion import LessonCompletionService
from services.quiz_scorer import QuizSession, QuizSessionRegistry
from utils.http import handle_errors
from utils.jwt_handler import get_current_user

router = APIRouter()
logger = logging.getLogger(__name__)

# Outcomes that keep the finished attempt so /finish can resubmit its score
_RETRYABLE = {CompletionStatus.FAILED, CompletionStatus.PARTIAL}


def _load_lesson(store, lesson_id: str):
    lesson = store.get_lesson(lesson_id)
    if not lesson:
        raise HTTPException(status_code=404, detail="Lesson not found")
    return lesson


def _open_quiz(sessions: QuizSessionRegistry, session_id: str, session: Session) -> QuizSession:
    quiz = sessions.get(session_id, session.user_id)
    if quiz is None:
        raise HTTPException(status_code=404, detail="Quiz session not found")
    return quiz


def _submit_final_score(quiz: QuizSession, session: Session, store,
                        sessions: QuizSessionRegistry,
                        completion: LessonCompletionService) -> CompletionOutcome:
    lesson = _load_lesson(store, quiz.lesson_id)
    outcome = completion.submit_quiz_score(
        session, lesson, quiz.scorer.final_score, quiz.scorer.total
    )
    if outcome.status in _RETRYABLE:
        logger.warning(f"Completion {outcome.status.value}, keeping finished quiz for retry")
    else:
        sessions.discard(quiz.session_id)
    return outcome


@router.get("/{lesson_id}", response_model=LessonDetail)
def get_lesson(
    lesson_id: str,
    session: Session = Depends(get_current_user),
    store=Depends(get_data_store),
    progress=Depends(get_progress_store)
):
    """Lesson content with its quiz size and the caller's completion flag"""
    with handle_errors("load lesson"):
        lesson = _load_lesson(store, lesson_id)
        quizzes = store.list_quizzes(lesson_id)
        return LessonDetail(
            id=lesson.id,
            course_id=lesson.course_id,
            title=lesson.title,
            content=lesson.content,
            code_template=lesson.code_template,
            xp_reward=lesson.xp_reward,
            lesson_order=lesson.lesson_order,
            quiz_count=len(quizzes),
            completed=progress.exists(session.user_id, lesson_id)
        )


@router.post("/{lesson_id}/quiz", response_model=QuizState)
def start_quiz(
    lesson_id: str,
    session: Session = Depends(get_current_user),
    store=Depends(get_data_store),
    sessions: QuizSessionRegistry = Depends(get_quiz_sessions)
):
    """Start a fresh quiz attempt (replaces an unfinished one)"""
    with handle_errors("start quiz"):
        _load_lesson(store, lesson_id)
        questions = store.list_quizzes(lesson_id)
        if not questions:
            raise HTTPException(status_code=409, detail="Lesson has no quiz")
        quiz = sessions.start(session.user_id, questions)
        return quiz.scorer.state(quiz.session_id)


@router.post("/quiz/{session_id}/select", response_model=QuizState)
def select_option(
    session_id: str,
    selection: OptionSelection,
    session: Session = Depends(get_current_user),
    sessions: QuizSessionRegistry = Depends(get_quiz_sessions)
):
    with handle_errors("select option"):
        quiz = _open_quiz(sessions, session_id, session)
        quiz.scorer.select(selection.option)
        return quiz.scorer.state(session_id)


@router.post("/quiz/{session_id}/reveal", response_model=Reveal)
def reveal_answer(
    session_id: str,
    session: Session = Depends(get_current_user),
    sessions: QuizSessionRegistry = Depends(get_quiz_sessions)
):
    with handle_errors("check answer"):
        quiz = _open_quiz(sessions, session_id, session)
        return quiz.scorer.reveal()


@router.post("/quiz/{session_id}/advance", response_model=QuizAdvanceResponse)
def advance_quiz(
    session_id: str,
    session: Session = Depends(get_current_user),
    store=Depends(get_data_store),
    sessions: QuizSessionRegistry = Depends(get_quiz_sessions),
    completion: LessonCompletionService = Depends(get_completion_service)
):
    """
    Score the revealed question and move on. Advancing past the last question
    finishes the quiz and runs the lesson completion flow.
    """
    with handle_errors("advance quiz"):
        quiz = _open_quiz(sessions, session_id, session)
        final_score = quiz.scorer.advance()
        state = quiz.scorer.state(session_id)
        if final_score is None:
            return QuizAdvanceResponse(state=state)

        logger.info(f"Quiz completed: {final_score}/{quiz.scorer.total}")
        outcome = _submit_final_score(quiz, session, store, sessions, completion)
        return QuizAdvanceResponse(state=state, outcome=outcome)


@router.post("/quiz/{session_id}/finish", response_model=CompletionOutcome)
def finish_quiz(
    session_id: str,
    session: Session = Depends(get_current_user),
    store=Depends(get_data_store),
    sessions: QuizSessionRegistry = Depends(get_quiz_sessions),
    completion: LessonCompletionService = Depends(get_completion_service)
):
    """Resubmit the final score of a finished attempt whose completion did not go through"""
    with handle_errors("finish quiz"):
        quiz = _open_quiz(sessions, session_id, session)
        if not quiz.scorer.is_finished:
            raise HTTPException(status_code=409, detail="Quiz is not finished yet")
        return _submit_final_score(quiz, session, store, sessions, completion)


@router.delete("/quiz/{session_id}")
def abandon_quiz(
    session_id: str,
    session: Session = Depends(get_current_user),
    sessions: QuizSessionRegistry = Depends(get_quiz_sessions)
):
    quiz = _open_quiz(sessions, session_id, session)
    sessions.discard(quiz.session_id)
    return {"message": "Quiz abandoned"}


@router.post("/{lesson_id}/complete", response_model=CompletionOutcome)
def complete_lesson(
    lesson_id: str,
    session: Session = Depends(get_current_user),
    store=Depends(get_data_store),
    completion: LessonCompletionService = Depends(get_completion_service)
):
    """Mark a lesson without quiz as completed"""
    with handle_errors("complete lesson"):
        lesson = _load_lesson(store, lesson_id)
        if store.list_quizzes(lesson_id):
            raise HTTPException(status_code=409, detail="Finish the lesson quiz to complete this lesson")
        return completion.complete_without_quiz(session, lesson)
