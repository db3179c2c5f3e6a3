"""Generated JSON payloads → domain objects.

Everything here treats the generator's output as untrusted: shape, impact
balance and quiz flags are checked or recomputed, never taken at face value.
Any violation raises ContentError, which the orchestrator treats as a
transient failure and retries.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from edustory.models import Choice, Outcome, Quiz, QuizChoice, QuizQuestion, Segment

logger = logging.getLogger(__name__)

IMPACT_TOLERANCE = 1e-4
OPTIONS_PER_SEGMENT = 4


class ContentError(ValueError):
    """Raised when generated content does not match the expected payload."""


# ---------------------------------------------------------------------------
# Wire shapes of the generated payloads
# ---------------------------------------------------------------------------

class _Option(BaseModel):
    impact: float
    text: str


class _StoryContent(BaseModel):
    title: str = ""
    heading: str
    body: str
    # checked per option, only when the section has real choices
    options: list[Any] = Field(default_factory=list)


class _AnalysisContent(BaseModel):
    summary: str
    positive_choices: list[str] = Field(default_factory=list)
    negative_choices: list[str] = Field(default_factory=list)
    learnings: list[str] = Field(default_factory=list)
    discussion_questions: list[str] = Field(default_factory=list)


class _QuestionContent(BaseModel):
    number: int
    text: str
    choices: list[QuizChoice] = Field(min_length=2)


class _QuizContent(BaseModel):
    title: str
    question_count: int
    questions: list[_QuestionContent] = Field(min_length=1)


def _load_object(text: str) -> dict[str, Any]:
    """Parse a JSON object from generated text, stripping markdown fences."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [l for l in lines[1:] if not l.strip().startswith("```")]
        cleaned = "\n".join(lines)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ContentError(f"Generated content is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ContentError(f"Generated content must be a JSON object, got {type(data).__name__}")
    return data


def _validate(model: type[BaseModel], data: dict[str, Any]) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ContentError(f"Generated {model.__name__.strip('_')} is malformed: {e}") from e


# ---------------------------------------------------------------------------
# Segments
# ---------------------------------------------------------------------------

def neutral_choices() -> list[Choice]:
    """Placeholder options of a closing segment: empty text, zero impact."""
    return [Choice(text="", number=n, impact=0.0) for n in range(1, OPTIONS_PER_SEGMENT + 1)]


def parse_segment(
    text: str, *, terminal: bool = False, require_title: bool = False
) -> tuple[Segment, str]:
    """Return (segment, story title) from a generated story section.

    A closing section always gets neutral placeholder options, whatever the
    generator put there. Every other section must carry four options, each
    with an impact and a non-blank text, whose impacts add up to zero.
    With *require_title* a missing or blank title is rejected too.
    """
    content: _StoryContent = _validate(_StoryContent, _load_object(text))
    if not content.body.strip():
        raise ContentError("Generated section has an empty body")
    if require_title and not content.title.strip():
        raise ContentError("Generated section has no story title")

    if terminal:
        choices = neutral_choices()
    else:
        if len(content.options) != OPTIONS_PER_SEGMENT:
            raise ContentError(
                f"Expected {OPTIONS_PER_SEGMENT} options, got {len(content.options)}"
            )
        options: list[_Option] = [_validate(_Option, o) for o in content.options]
        if any(not o.text.strip() for o in options):
            raise ContentError("Option text must not be empty")
        try:
            choices = [
                Choice(text=o.text, number=i, impact=o.impact)
                for i, o in enumerate(options, start=1)
            ]
        except ValidationError as e:
            raise ContentError(f"Option impact out of range: {e}") from e
        total = sum(c.impact for c in choices)
        if abs(total) > IMPACT_TOLERANCE:
            raise ContentError(f"Option impacts must add up to 0, got {total:.4f}")

    segment = Segment(text=content.body, heading=content.heading, choices=choices)
    return segment, content.title


def serialize_segment(segment: Segment, title: str) -> str:
    """Canonical JSON form of a segment, as the generator would have sent it."""
    return json.dumps(
        {
            "title": title,
            "heading": segment.heading,
            "body": segment.text,
            "options": [{"impact": c.impact, "text": c.text} for c in segment.choices],
        },
        ensure_ascii=False,
    )


# ---------------------------------------------------------------------------
# Outcome
# ---------------------------------------------------------------------------

def parse_outcome(text: str, ending: str) -> Outcome:
    content: _AnalysisContent = _validate(_AnalysisContent, _load_object(text))
    return Outcome(text=ending, **content.model_dump())


def serialize_outcome(outcome: Outcome) -> str:
    return json.dumps(outcome.model_dump(exclude={"text"}), ensure_ascii=False)


# ---------------------------------------------------------------------------
# Quiz
# ---------------------------------------------------------------------------

def parse_quiz(text: str) -> Quiz:
    """Build a Quiz; each question's multiple-response flag is recomputed."""
    content: _QuizContent = _validate(_QuizContent, _load_object(text))
    if content.question_count != len(content.questions):
        logger.warning("Quiz declares %d questions but contains %d",
                       content.question_count, len(content.questions))
    return Quiz(
        title=content.title,
        question_count=content.question_count,
        questions=[
            QuizQuestion(number=q.number, text=q.text, choices=q.choices)
            for q in content.questions
        ],
    )
