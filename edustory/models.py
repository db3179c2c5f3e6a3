"""Core domain models.

All pipeline stages operate on these types. Pydantic is used for validation
and serialisation at every data boundary. Stories are owned by the caller;
the pipeline only reads them and hands back new segments, outcomes and
quizzes for the caller to persist.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

AudienceTier = Literal[
    "primary_school",   # 6–10
    "middle_school",    # 11–14
    "high_school",      # 15–19
]

QuizType = Literal[
    "single_response",
    "multiple_response",
    "true_false",
]

Role = Literal["system", "user", "assistant"]


class ChatTurn(BaseModel):
    """One message of a reconstructed conversation. Never persisted."""

    role: Role
    content: str


class Choice(BaseModel):
    """One option at a decision point."""

    text: str
    number: int = Field(ge=1, le=4)
    impact: float = Field(ge=-1.0, le=1.0)


class Segment(BaseModel):
    """A story part: one narrative beat ending in a decision point."""

    text: str
    heading: str
    choices: list[Choice] = Field(min_length=1, max_length=4)
    chosen_number: int | None = None  # set by the caller once the audience decided
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def chosen(self) -> Choice | None:
        for choice in self.choices:
            if choice.number == self.chosen_number:
                return choice
        return None


class Outcome(BaseModel):
    """End-of-story analysis. Created once, at conclusion."""

    model_config = ConfigDict(frozen=True)

    text: str
    summary: str
    positive_choices: list[str] = Field(default_factory=list)
    negative_choices: list[str] = Field(default_factory=list)
    learnings: list[str] = Field(default_factory=list)
    discussion_questions: list[str] = Field(default_factory=list)


class Story(BaseModel):
    """A narrative and everything generated for it so far."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    topic: str
    audience: AudienceTier
    target_length: int = Field(ge=1)  # number of decision points
    temperature: float = 0.8
    top_p: float = 0.9
    title: str | None = None
    segments: list[Segment] = Field(default_factory=list)
    outcome: Outcome | None = None

    @computed_field
    @property
    def is_complete(self) -> bool:
        return len(self.segments) >= self.target_length


class QuizConfig(BaseModel):
    """What kind of quiz the caller asks for."""

    types: list[QuizType] = Field(min_length=1)
    question_count: int = Field(ge=1, le=20)

    @field_validator("types")
    @classmethod
    def _dedupe(cls, types: list[QuizType]) -> list[QuizType]:
        return list(dict.fromkeys(types))


class QuizChoice(BaseModel):
    number: int
    text: str
    is_correct: bool


class QuizQuestion(BaseModel):
    number: int
    text: str
    choices: list[QuizChoice]

    @computed_field
    @property
    def is_multiple_response(self) -> bool:
        # Derived from the choices, never taken from the generated payload.
        return sum(1 for c in self.choices if c.is_correct) > 1


class Quiz(BaseModel):
    title: str
    question_count: int
    questions: list[QuizQuestion]
