"""Handlebars prompt templates for every generated conversation turn.

Each builder in reconstruct.py renders one of the templates below with a
small context dict. Free text (topic, option text, schemas) is always
inserted with triple braces so Handlebars does not HTML-escape it.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pybars

from edustory.audience import AudienceProfile
from edustory.models import QuizType


_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


def audience_context(profile: AudienceProfile) -> dict[str, str]:
    """Flatten a profile into template variables (numbers as strings)."""
    return {
        "label": profile.label,
        "min_words": str(profile.min_words),
        "max_words": str(profile.max_words),
        "story_style": profile.story_style,
        "length_style": profile.length_style,
        "analysis_style": profile.analysis_style,
        "quiz_style": profile.quiz_style,
    }


# ── Output schemas ───────────────────────────────────────

STORY_SCHEMA = """{
  "title": "Title of the story",
  "heading": "Heading of this section",
  "body": "Text of the current section.",
  "options": [
    { "impact": value between -1 and 1, "text": "Description of option 1" },
    { "impact": value between -1 and 1, "text": "Description of option 2" },
    { "impact": value between -1 and 1, "text": "Description of option 3" },
    { "impact": value between -1 and 1, "text": "Description of option 4" }
  ]
}"""

ENDING_SCHEMA = """{
  "title": "Title of the story",
  "heading": "Heading of the closing section",
  "body": "Closing text of the story that brings all storylines together.",
  "options": [
    { "impact": 0, "text": "" },
    { "impact": 0, "text": "" },
    { "impact": 0, "text": "" },
    { "impact": 0, "text": "" }
  ]
}"""

ANALYSIS_SCHEMA = """{
  "summary": "Summary and analysis of the story as continuous text",
  "positive_choices": ["Description of positive decision 1", "more as needed"],
  "negative_choices": ["Description of negative decision 1", "more as needed"],
  "learnings": ["Learning 1", "more as needed"],
  "discussion_questions": ["Question 1", "more as needed"]
}"""

QUIZ_SCHEMA = """{
  "title": "Title of the whole quiz",
  "question_count": number of questions,
  "questions": [
    {
      "number": number of the question,
      "text": "The question",
      "choices": [
        { "number": number of the choice, "text": "Text of the choice", "is_correct": true or false }
      ]
    }
  ]
}"""


# ── Story ────────────────────────────────────────────────

STORY_SYSTEM = """You are a storyteller who creates interactive, text-based stories about sustainability. Follow these rules:
[Topic]
{{{topic}}}
[Audience]
The story is written for {{{audience.label}}}. Adapt style, vocabulary and content precisely to this age group: {{{audience.story_style}}}
[Interactivity]
The story is divided into several sections and every decision point offers four options. Note:
- Every option has an impact value between -1 (strong negative impact) and 1 (strong positive impact).
- The impact values of the four options must always add up to 0.
- At every decision point present the four options and wait for the participants' choice.
- When the last decision point is reached, write the conclusion of the story.
[Length and depth]
Every section must contain at least {{audience.min_words}} and at most {{audience.max_words}} words. {{{audience.length_style}}}
[Format]
Answer exclusively in the following JSON format:
{{{schema}}}
Make sure the JSON can be parsed without errors.
[Context and continuation]
Take all previous decisions and their consequences into account. Every section continues seamlessly from the previous one and moves the story forward."""

STORY_START = """All participants are ready. Please begin with the first section of your story about sustainability. The story has {{length}} decision points in total.
Please note:
- Use the language style given for the audience.
- Write the first section including a decision point with four options (each with an impact value between -1 and 1, adding up to 0).
- The answer must use exactly this JSON format:
{{{schema}}}
Please begin with the first section now."""

STORY_CONTINUE = """Option {{number}} "{{{choice}}}" was chosen. Please continue with the next section of the story. Make sure to:
- Weave the previous context and the consequences of the decisions in seamlessly.
- Include a new decision point with four options again (impact values adding up to exactly 0).
- Output the new section in the given JSON format:
{{{schema}}}
Please continue the story now."""

STORY_CONCLUDE = """Option {{number}} "{{{choice}}}" was chosen. You have now reached the last decision point. Please write the closing part of the story.
Make sure to:
- Bring the story to a consistent, rounded end that takes all previous events into account.
- There is no further decision point in the last section, so the options must appear as empty but valid entries.
- The answer must still use exactly this JSON format:
{{{schema}}}
Please finish the story now."""

LENGTH_TOO_SHORT = """This section is too short for {{{audience.label}}}. Please revise it so that it contains at least {{audience.min_words}} words. Keep the JSON format."""

LENGTH_TOO_LONG = """This section is too long for {{{audience.label}}}. Please revise it so that it contains at most {{audience.max_words}} words. Keep the JSON format."""


# ── Analysis ─────────────────────────────────────────────

ANALYSIS_SYSTEM = """You now take on the role of a teacher who reflects on the story the participants have just lived through. Adapt your language, examples and discussion questions to the audience, {{{audience.label}}}: {{{audience.analysis_style}}}
Your task is to analyse the thematic context and the decisions that were made, factually and understandably. Follow these steps:
[Summary and analysis]
- Summarise the story in a short, concise text. Present the course and the central events clearly.
- Analyse how the decisions and actions of the characters shaped the story.
[Positive and negative decisions]
- List the positive decisions made in the story. Explain for each why it had a positive effect and which concrete benefits resulted.
- List the negative decisions if any were made, otherwise leave the list empty. Describe their negative consequences and how they shaped the story.
[Practical lessons]
- Draw concrete lessons from the story and transfer them to the real world.
[Discussion questions]
- Write targeted questions that encourage an open and respectful discussion, with a complexity that suits the audience.
Important: the analysis must reflect the sustainability context of the story.
Answer exclusively in valid JSON using this format:
{{{schema}}}"""

ANALYSIS_USER = """The story has just ended. You can now write the analysis of the story. Remember to adapt your language, examples and discussion questions to the audience, and follow the instructions and the JSON format exactly."""


# ── Quiz ─────────────────────────────────────────────────

QUIZ_TYPE_DESCRIPTIONS: dict[QuizType, str] = {
    "single_response": (
        "Single response - several choices, exactly one of the four is correct."
    ),
    "multiple_response": (
        "Multiple response - several choices of which more than one is correct; "
        "make sure at least 2 of the 2-4 choices are correct."
    ),
    "true_false": (
        "True/False - two choices (True and False), exactly one is correct."
    ),
}

QUIZ_SYSTEM = """From now on you are a professional quiz author with particular expertise in sustainability, specifically in {{{topic}}}.
Your task is to create a quiz based on the story generated before. The questions must focus only on the sustainability aspects covered in the story and follow the path the participants chose.
Output the whole quiz, questions and answers, in a single response.
The participants are {{{audience.label}}}. {{{audience.quiz_style}}}
The quiz consists only of the following question types:
{{#each types}}- {{{this}}}
{{/each}}The quiz has exactly {{question_count}} question(s).
Answer exclusively in valid JSON using this format:
{{{schema}}}"""

QUIZ_USER = """All questions must fit the topic {{{topic}}}. Generate the quiz based on the story the participants lived through."""
