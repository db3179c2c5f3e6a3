"""Quiz generation for a concluded story.

The quiz conversation is the full story conversation, the analysis step with
the stored outcome replayed, and a quiz-author system turn on top. Sampling
is fixed for quizzes and independent of the story's own settings.
"""

from __future__ import annotations

import asyncio
import logging

from edustory.llm import Generator, check_request
from edustory.models import Quiz, QuizConfig, Story
from edustory.parsing import parse_quiz
from edustory.reconstruct import build_full_quiz_turns

from .retry import run_with_retries

logger = logging.getLogger(__name__)

QUIZ_TEMPERATURE = 0.8
QUIZ_TOP_P = 0.9


async def generate_quiz(
    generator: Generator,
    story: Story,
    config: QuizConfig,
    *,
    timeout: float | None = None,
) -> Quiz:
    """Generate a quiz about *story*.

    Raises StoryStateError when the story has no outcome yet, and
    PipelineError when every attempt failed.
    """
    turns = build_full_quiz_turns(story, config)
    check_request(turns, QUIZ_TEMPERATURE, QUIZ_TOP_P)
    logger.info("Generating %d-question quiz for story %s", config.question_count, story.id)

    async def attempt() -> Quiz:
        text = await generator.generate(
            "quiz", turns, temperature=QUIZ_TEMPERATURE, top_p=QUIZ_TOP_P,
        )
        return parse_quiz(text)

    async with asyncio.timeout(timeout):
        quiz = await run_with_retries("generate quiz", attempt, story_id=story.id)
    logger.info("Generated quiz %r for story %s", quiz.title, story.id)
    return quiz
