"""Shared test helpers: StubGenerator and story/payload builders."""

from __future__ import annotations

import json
from dataclasses import dataclass

from edustory.models import ChatTurn, Choice, Outcome, Segment, Story

BALANCED_IMPACTS = [0.6, 0.2, -0.2, -0.6]


def words(n: int, word: str = "tree") -> str:
    return " ".join([word] * n)


# ---------------------------------------------------------------------------
# Generated payloads
# ---------------------------------------------------------------------------

def segment_json(
    body: str | None = None,
    *,
    title: str = "The Green Valley",
    heading: str = "A new morning",
    impacts: list[float] | None = None,
    n_words: int = 80,
) -> str:
    impacts = BALANCED_IMPACTS if impacts is None else impacts
    return json.dumps({
        "title": title,
        "heading": heading,
        "body": body if body is not None else words(n_words),
        "options": [
            {"impact": impact, "text": f"Option {i}"}
            for i, impact in enumerate(impacts, start=1)
        ],
    })


def analysis_json(**overrides: object) -> str:
    data = {
        "summary": "The village learned to share water.",
        "positive_choices": ["Building the rain barrels"],
        "negative_choices": [],
        "learnings": ["Water is a shared resource"],
        "discussion_questions": ["How do you save water at home?"],
    }
    data.update(overrides)
    return json.dumps(data)


def quiz_json(questions: list[dict] | None = None, **overrides: object) -> str:
    if questions is None:
        questions = [
            {
                "number": 1,
                "text": "Why did the village build rain barrels?",
                "is_multiple_response": True,
                "choices": [
                    {"number": 1, "text": "To save water", "is_correct": True},
                    {"number": 2, "text": "To water the road", "is_correct": False},
                    {"number": 3, "text": "For decoration", "is_correct": False},
                    {"number": 4, "text": "To sell them", "is_correct": False},
                ],
            },
        ]
    data = {"title": "Water Quiz", "question_count": len(questions), "questions": questions}
    data.update(overrides)
    return json.dumps(data)


# ---------------------------------------------------------------------------
# Stories
# ---------------------------------------------------------------------------

def make_segment(chosen: int | None = 1, *, text: str | None = None) -> Segment:
    return Segment(
        text=text if text is not None else words(80),
        heading="At the river",
        chosen_number=chosen,
        choices=[
            Choice(text=f"Choice {i}", number=i, impact=impact)
            for i, impact in enumerate(BALANCED_IMPACTS, start=1)
        ],
    )


def make_story(
    n_segments: int = 0,
    *,
    target_length: int = 3,
    audience: str = "primary_school",
    outcome: Outcome | None = None,
    **fields: object,
) -> Story:
    return Story(
        id="story-1",
        topic="Water scarcity",
        audience=audience,
        target_length=target_length,
        title="The Green Valley" if n_segments else None,
        segments=[make_segment() for _ in range(n_segments)],
        outcome=outcome,
        **fields,
    )


def make_outcome() -> Outcome:
    return Outcome(
        text="And so the valley stayed green.",
        summary="The village learned to share water.",
        positive_choices=["Building the rain barrels"],
        negative_choices=["Ignoring the leak"],
        learnings=["Water is a shared resource"],
        discussion_questions=["How do you save water at home?"],
    )


# ---------------------------------------------------------------------------
# StubGenerator: dispatches by stage name, independent queue per stage
# ---------------------------------------------------------------------------

@dataclass
class Call:
    stage: str
    turns: list[ChatTurn]
    temperature: float
    top_p: float
    structured: bool


class StubGenerator:
    """Deterministic generator stand-in for tests.

    Provide a dict mapping stage name → list of responses (in call order).
    A response that is an exception instance is raised instead of returned.
    Raises if a stage is called more times than responses were provided.
    """

    def __init__(self, responses: dict[str, list[str | Exception]]) -> None:
        self._queues: dict[str, list[str | Exception]] = {
            k: list(v) for k, v in responses.items()
        }
        self.calls: list[Call] = []

    async def generate(
        self,
        stage: str,
        turns: list[ChatTurn],
        *,
        temperature: float,
        top_p: float,
        structured: bool = True,
    ) -> str:
        self.calls.append(Call(stage, list(turns), temperature, top_p, structured))
        queue = self._queues.get(stage)
        if not queue:
            raise AssertionError(
                f"StubGenerator: unexpected call to stage={stage!r} "
                f"(no responses queued). calls so far: {[c.stage for c in self.calls]}"
            )
        response = queue.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def stage_calls(self, stage: str) -> list[Call]:
        return [c for c in self.calls if c.stage == stage]

    def assert_exhausted(self) -> None:
        """Assert every queued response was consumed, to catch missing calls."""
        leftover = {k: v for k, v in self._queues.items() if v}
        if leftover:
            raise AssertionError(f"StubGenerator: unused responses remain: {leftover}")
