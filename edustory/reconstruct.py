"""Conversation reconstruction — rebuild the chat a live session would have had.

No transcript is ever stored. Instead the full message history is rebuilt
from the persisted story on every operation:

  system     storyteller persona, topic, audience, length rule, JSON schema
  user       "begin", with the number of decision points
  for each segment, in creation order:
    assistant  the segment re-serialised exactly as the generator returns it
    user       the chosen option + "continue" (or "conclude" after the last
               decision point)

So a story with N segments always yields 2 + 2N turns. The result and quiz
builders extend that list for the analysis and quiz steps. Every builder
returns a new list and leaves its input untouched.
"""

from __future__ import annotations

from edustory.audience import get_profile
from edustory.models import ChatTurn, QuizConfig, Story
from edustory.parsing import serialize_outcome, serialize_segment
from edustory.prompts import (
    ANALYSIS_SCHEMA,
    ANALYSIS_SYSTEM,
    ANALYSIS_USER,
    ENDING_SCHEMA,
    QUIZ_SCHEMA,
    QUIZ_SYSTEM,
    QUIZ_TYPE_DESCRIPTIONS,
    QUIZ_USER,
    STORY_CONCLUDE,
    STORY_CONTINUE,
    STORY_SCHEMA,
    STORY_START,
    STORY_SYSTEM,
    audience_context,
    render_prompt,
)


class StoryStateError(ValueError):
    """Raised when persisted story state is inconsistent. Never retried."""


def build_story_turns(story: Story) -> list[ChatTurn]:
    """Rebuild the storytelling conversation for *story*.

    Raises StoryStateError when a segment has no valid chosen option, when
    segments exist without a story title, or when there are more segments
    than decision points.
    """
    profile = get_profile(story.audience)
    audience = audience_context(profile)

    if len(story.segments) > story.target_length:
        raise StoryStateError(
            f"Story {story.id} has {len(story.segments)} segments "
            f"but only {story.target_length} decision points"
        )
    if story.segments and not story.title:
        raise StoryStateError(f"Story {story.id} has segments but no title")

    turns = [
        ChatTurn(role="system", content=render_prompt(STORY_SYSTEM, {
            "topic": story.topic,
            "audience": audience,
            "schema": STORY_SCHEMA,
        })),
        ChatTurn(role="user", content=render_prompt(STORY_START, {
            "length": str(story.target_length),
            "schema": STORY_SCHEMA,
        })),
    ]

    for position, segment in enumerate(story.segments, start=1):
        turns.append(ChatTurn(
            role="assistant", content=serialize_segment(segment, story.title or ""),
        ))

        number = segment.chosen_number
        if number is None or not 1 <= number <= 4:
            raise StoryStateError(
                f"Segment {position} of story {story.id} has invalid chosen number {number!r}"
            )
        choice = segment.chosen()
        if choice is None:
            raise StoryStateError(
                f"Segment {position} of story {story.id} has no option {number}"
            )

        if position == story.target_length:
            template, schema = STORY_CONCLUDE, ENDING_SCHEMA
        else:
            template, schema = STORY_CONTINUE, STORY_SCHEMA
        turns.append(ChatTurn(role="user", content=render_prompt(template, {
            "number": str(number),
            "choice": choice.text,
            "schema": schema,
        })))

    return turns


def build_result_turns(story: Story, turns: list[ChatTurn], ending: str) -> list[ChatTurn]:
    """Extend *turns* with the reflective analysis step.

    *ending* is the closing text of the story. When the story already has an
    outcome, its analysis is replayed as the final assistant turn so the quiz
    step can build on it.
    """
    if not turns:
        raise ValueError("No messages to extend")
    if not ending:
        raise StoryStateError(f"Story {story.id} has no ending text")

    audience = audience_context(get_profile(story.audience))
    result = [
        *turns,
        ChatTurn(role="assistant", content=ending),
        ChatTurn(role="system", content=render_prompt(ANALYSIS_SYSTEM, {
            "audience": audience,
            "schema": ANALYSIS_SCHEMA,
        })),
        ChatTurn(role="user", content=render_prompt(ANALYSIS_USER, {})),
    ]
    if story.outcome is not None:
        result.append(ChatTurn(role="assistant", content=serialize_outcome(story.outcome)))
    return result


def build_quiz_turns(story: Story, config: QuizConfig, turns: list[ChatTurn]) -> list[ChatTurn]:
    """Extend a concluded story's conversation with the quiz request."""
    audience = audience_context(get_profile(story.audience))
    return [
        *turns,
        ChatTurn(role="system", content=render_prompt(QUIZ_SYSTEM, {
            "topic": story.topic,
            "audience": audience,
            "types": [QUIZ_TYPE_DESCRIPTIONS[t] for t in config.types],
            "question_count": str(config.question_count),
            "schema": QUIZ_SCHEMA,
        })),
        ChatTurn(role="user", content=render_prompt(QUIZ_USER, {"topic": story.topic})),
    ]


def build_full_quiz_turns(story: Story, config: QuizConfig) -> list[ChatTurn]:
    """Story + result + quiz turns for a concluded story."""
    if story.outcome is None:
        raise StoryStateError(f"Story {story.id} has no outcome yet; conclude it first")
    turns = build_story_turns(story)
    turns = build_result_turns(story, turns, story.outcome.text)
    return build_quiz_turns(story, config, turns)
