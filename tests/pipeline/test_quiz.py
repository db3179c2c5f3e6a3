"""Tests for quiz generation on top of a concluded story."""

import json

import pytest

from edustory.models import QuizConfig
from edustory.pipeline import MAX_ATTEMPTS, PipelineError, StoryPipeline, generate_quiz
from edustory.pipeline.quiz import QUIZ_TEMPERATURE, QUIZ_TOP_P
from edustory.reconstruct import StoryStateError
from helpers import StubGenerator, make_outcome, make_story, quiz_json


CONFIG = QuizConfig(types=["single_response", "multiple_response"], question_count=2)


def _concluded_story(**fields):
    return make_story(3, outcome=make_outcome(), **fields)


def _two_questions() -> list[dict]:
    return [
        {
            "number": 1,
            "text": "What did the village build?",
            "is_multiple_response": True,
            "choices": [
                {"number": 1, "text": "Rain barrels", "is_correct": True},
                {"number": 2, "text": "A dam", "is_correct": False},
                {"number": 3, "text": "A pool", "is_correct": False},
                {"number": 4, "text": "Nothing", "is_correct": False},
            ],
        },
        {
            "number": 2,
            "text": "Which actions save water?",
            "choices": [
                {"number": 1, "text": "Fixing leaks", "is_correct": True},
                {"number": 2, "text": "Collecting rain", "is_correct": True},
                {"number": 3, "text": "Washing the car daily", "is_correct": False},
            ],
        },
    ]


async def test_happy_path() -> None:
    stub = StubGenerator({"quiz": [quiz_json(_two_questions())]})
    quiz = await generate_quiz(stub, _concluded_story(), CONFIG)

    assert quiz.title == "Water Quiz"
    assert quiz.question_count == 2
    assert [q.number for q in quiz.questions] == [1, 2]
    stub.assert_exhausted()


async def test_multiple_response_flag_derived_from_choices() -> None:
    stub = StubGenerator({"quiz": [quiz_json(_two_questions())]})
    quiz = await generate_quiz(stub, _concluded_story(), CONFIG)

    # declared True on question 1 but only one correct answer
    assert quiz.questions[0].is_multiple_response is False
    assert quiz.questions[1].is_multiple_response is True
    dumped = quiz.model_dump()
    assert dumped["questions"][1]["is_multiple_response"] is True


async def test_fixed_sampling_ignores_story_settings() -> None:
    stub = StubGenerator({"quiz": [quiz_json()]})
    await generate_quiz(stub, _concluded_story(temperature=0.2, top_p=0.3), CONFIG)

    call = stub.calls[0]
    assert (call.temperature, call.top_p) == (QUIZ_TEMPERATURE, QUIZ_TOP_P)
    assert (call.temperature, call.top_p) == (0.8, 0.9)


async def test_turns_chain_story_result_and_quiz() -> None:
    stub = StubGenerator({"quiz": [quiz_json()]})
    await generate_quiz(stub, _concluded_story(), CONFIG)

    turns = stub.calls[0].turns
    assert len(turns) == 8 + 4 + 2
    replay = json.loads(turns[11].content)
    assert replay["learnings"] == ["Water is a shared resource"]
    assert turns[-2].role == "system"
    assert "exactly 2 question(s)" in turns[-2].content
    assert turns[-1].role == "user"


async def test_missing_outcome_is_precondition_error() -> None:
    stub = StubGenerator({})
    with pytest.raises(StoryStateError, match="no outcome"):
        await generate_quiz(stub, make_story(3), CONFIG)
    assert stub.calls == []


async def test_broken_story_state_not_retried() -> None:
    story = _concluded_story()
    story.segments[2].chosen_number = 7
    stub = StubGenerator({})
    with pytest.raises(StoryStateError):
        await generate_quiz(stub, story, CONFIG)
    assert stub.calls == []


async def test_malformed_quiz_retried_with_same_turns() -> None:
    stub = StubGenerator({"quiz": ['{"title": "x"}', quiz_json()]})
    quiz = await generate_quiz(stub, _concluded_story(), CONFIG)

    assert quiz.title == "Water Quiz"
    first, second = stub.calls
    assert first.turns == second.turns


async def test_exhaustion() -> None:
    stub = StubGenerator({"quiz": ["nope", "nope", quiz_json()]})
    with pytest.raises(PipelineError) as exc_info:
        await generate_quiz(stub, _concluded_story(), CONFIG)
    assert exc_info.value.operation == "generate quiz"
    assert len(stub.calls) == MAX_ATTEMPTS


async def test_pipeline_delegates_to_quiz_generation() -> None:
    stub = StubGenerator({"quiz": [quiz_json()]})
    quiz = await StoryPipeline(stub).generate_quiz(_concluded_story(), CONFIG)
    assert quiz.questions[0].text == "Why did the village build rain barrels?"
