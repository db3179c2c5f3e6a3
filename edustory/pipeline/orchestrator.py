"""Story orchestrator — start, continue and conclude a story.

Operation flow (each one is stateless; the story is only read):
  1. Check the operation's preconditions on the story (StoryStateError).
  2. Reconstruct the conversation once (reconstruct.py).
  3. Check the request parameters (ValueError).
  4. Up to MAX_ATTEMPTS times, with the identical turn list:
       generate → parse → length check → at most one repair round
  5. Return the new domain object, or raise PipelineError.

Steps 1 and 3 fail fast; only step 4 is retried. Concluding runs step 4
twice: once for the closing section, once for the analysis.

Every operation takes an optional ``timeout`` in seconds covering all of its
attempts. On expiry TimeoutError is raised; cancelling the calling task
stops the operation at once.
"""

from __future__ import annotations

import asyncio
import logging

from edustory.llm import Generator, check_request
from edustory.models import ChatTurn, Outcome, Quiz, QuizConfig, Segment, Story
from edustory.parsing import parse_outcome, parse_segment, serialize_segment
from edustory.reconstruct import StoryStateError, build_result_turns, build_story_turns
from edustory.validation import check_length, word_count

from .quiz import generate_quiz
from .retry import run_with_retries

logger = logging.getLogger(__name__)

REPAIR_TEMPERATURE = 0.7
REPAIR_TOP_P = 0.7


class StoryPipeline:
    """Runs generation operations against an injected generator."""

    def __init__(self, generator: Generator) -> None:
        self._generator = generator

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def start_story(
        self, story: Story, *, timeout: float | None = None
    ) -> tuple[Segment, str]:
        """Generate the first segment. Returns (segment, story title)."""
        if story.segments:
            raise StoryStateError(f"Story {story.id} has already started")

        logger.info("Starting story %s", story.id)
        turns = build_story_turns(story)
        check_request(turns, story.temperature, story.top_p)

        async with asyncio.timeout(timeout):
            segment, title = await run_with_retries(
                "start story",
                lambda: self._generate_segment(
                    story, turns, terminal=False, require_title=True,
                ),
                story_id=story.id,
            )
        logger.info("Started story %s titled %r", story.id, title)
        return segment, title

    async def next_segment(self, story: Story, *, timeout: float | None = None) -> Segment:
        """Generate the segment that follows the last decision."""
        if not story.segments:
            raise StoryStateError(f"Story {story.id} has not started yet")
        if story.is_complete:
            raise StoryStateError(f"Story {story.id} has no decision points left; conclude it")

        logger.info("Generating segment %d of story %s", len(story.segments) + 1, story.id)
        turns = build_story_turns(story)
        check_request(turns, story.temperature, story.top_p)

        async with asyncio.timeout(timeout):
            segment, _ = await run_with_retries(
                "generate next segment",
                lambda: self._generate_segment(story, turns, terminal=False),
                story_id=story.id,
            )
        return segment

    async def conclude_story(self, story: Story, *, timeout: float | None = None) -> Outcome:
        """Generate the closing section and its analysis."""
        if story.outcome is not None:
            raise StoryStateError(f"Story {story.id} is already concluded")
        if not story.is_complete:
            raise StoryStateError(
                f"Story {story.id} still has decision points left "
                f"({len(story.segments)}/{story.target_length})"
            )

        logger.info("Concluding story %s", story.id)
        turns = build_story_turns(story)
        check_request(turns, story.temperature, story.top_p)

        async with asyncio.timeout(timeout):
            ending, _ = await run_with_retries(
                "generate story ending",
                lambda: self._generate_segment(story, turns, terminal=True),
                story_id=story.id,
            )
            result_turns = build_result_turns(story, turns, ending.text)
            outcome = await run_with_retries(
                "generate story result",
                lambda: self._generate_outcome(story, result_turns, ending.text),
                story_id=story.id,
            )
        logger.info("Concluded story %s", story.id)
        return outcome

    async def generate_quiz(
        self, story: Story, config: QuizConfig, *, timeout: float | None = None
    ) -> Quiz:
        return await generate_quiz(self._generator, story, config, timeout=timeout)

    # ------------------------------------------------------------------
    # Single attempts
    # ------------------------------------------------------------------

    async def _generate_segment(
        self,
        story: Story,
        turns: list[ChatTurn],
        *,
        terminal: bool,
        require_title: bool = False,
    ) -> tuple[Segment, str]:
        stage = "ending" if terminal else "story"
        text = await self._generator.generate(
            stage, turns, temperature=story.temperature, top_p=story.top_p,
        )
        segment, title = parse_segment(
            text, terminal=terminal, require_title=require_title,
        )

        correction = check_length(segment.text, story.audience)
        if correction is None:
            return segment, title

        logger.warning("Segment for story %s (%s) has invalid word count: %d",
                       story.id, story.audience, word_count(segment.text))
        repair_turns = [
            *turns,
            ChatTurn(role="assistant", content=serialize_segment(segment, title)),
            ChatTurn(role="user", content=correction),
        ]
        fixed = await self._generator.generate(
            "repair", repair_turns, temperature=REPAIR_TEMPERATURE, top_p=REPAIR_TOP_P,
        )
        # The repaired section is accepted without a second length check;
        # a blank title there falls back to the one from this attempt.
        repaired, repaired_title = parse_segment(fixed, terminal=terminal)
        segment.text = repaired.text
        segment.heading = repaired.heading
        segment.choices = repaired.choices
        return segment, repaired_title if repaired_title.strip() else title

    async def _generate_outcome(
        self, story: Story, turns: list[ChatTurn], ending: str
    ) -> Outcome:
        text = await self._generator.generate(
            "analysis", turns, temperature=story.temperature, top_p=story.top_p,
        )
        return parse_outcome(text, ending)
