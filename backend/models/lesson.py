"""
Lesson and Quiz Models
"""
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from enum import Enum
import json

from models.progress import CompletionOutcome


class Lesson(BaseModel):
    id: str
    course_id: str
    title: Optional[str] = None
    content: Optional[str] = None
    code_template: Optional[str] = None
    xp_reward: int = Field(..., gt=0)
    lesson_order: int = 0

    class Config:
        frozen = True
        from_attributes = True

    @field_validator("id", "course_id", mode="before")
    @classmethod
    def id_as_text(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class QuizQuestion(BaseModel):
    id: str
    lesson_id: str
    question: str
    options: List[str] = Field(..., min_length=1)
    correct_answer: int = Field(..., ge=0)
    explanation: Optional[str] = None

    class Config:
        frozen = True
        from_attributes = True

    @field_validator("id", "lesson_id", mode="before")
    @classmethod
    def id_as_text(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("options", mode="before")
    @classmethod
    def decode_options(cls, value):
        # JSON columns come back as encoded text from some drivers
        if isinstance(value, (bytes, bytearray)):
            value = value.decode("utf-8")
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError:
                raise ValueError("options is not a JSON-encoded list")
        return value

    @model_validator(mode="after")
    def answer_in_range(self):
        if self.correct_answer >= len(self.options):
            raise ValueError(
                f"correct_answer {self.correct_answer} is outside {len(self.options)} options"
            )
        return self

    def public_view(self, index: int, total: int) -> "QuizQuestionView":
        return QuizQuestionView(
            id=self.id,
            question=self.question,
            options=list(self.options),
            index=index,
            total=total
        )


class QuizPhase(str, Enum):
    ANSWERING = "answering"
    REVEALED = "revealed"
    FINISHED = "finished"


class QuizQuestionView(BaseModel):
    """Question as shown to the learner, never carrying the answer"""
    id: str
    question: str
    options: List[str]
    index: int
    total: int


class Reveal(BaseModel):
    question_id: str
    selected_option: int
    correct_answer: int
    is_correct: bool
    explanation: Optional[str] = None


class QuizState(BaseModel):
    session_id: Optional[str] = None
    lesson_id: str
    phase: QuizPhase
    current_index: int
    total_questions: int
    score: int
    selected_option: Optional[int] = None
    final_score: Optional[int] = None
    question: Optional[QuizQuestionView] = None


class OptionSelection(BaseModel):
    option: int = Field(..., ge=0)


class LessonDetail(BaseModel):
    id: str
    course_id: str
    title: Optional[str] = None
    content: Optional[str] = None
    code_template: Optional[str] = None
    xp_reward: int
    lesson_order: int
    quiz_count: int
    completed: bool


class QuizAdvanceResponse(BaseModel):
    state: QuizState
    outcome: Optional[CompletionOutcome] = None
