from datetime import datetime

from pydantic import field_validator, model_validator

from app.schemas.base import CamelModel


class GeneratedContentResponse(CamelModel):
    id: int
    material_id: int
    user_id: int
    type: str
    content: str  # JSON-encoded for questions and chat
    created_at: datetime | None = None


class QuizQuestion(CamelModel):
    """A single multiple-choice question as stored in a quiz payload."""
    question: str
    options: list[str]
    correct_answer: str

    @field_validator("question")
    @classmethod
    def question_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("question must not be empty")
        return v

    @field_validator("options")
    @classmethod
    def four_options(cls, v: list[str]) -> list[str]:
        if len(v) != 4:
            raise ValueError("each question must have exactly 4 options")
        return v

    @model_validator(mode="after")
    def answer_is_an_option(self):
        if self.correct_answer not in self.options:
            raise ValueError("correctAnswer must match one of the options")
        return self
