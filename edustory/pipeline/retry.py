"""Bounded retry for one logical generation step."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 2

T = TypeVar("T")


class PipelineError(RuntimeError):
    """Terminal failure after every attempt of an operation failed.

    The last underlying failure is chained as ``__cause__``.
    """

    def __init__(self, operation: str, attempts: int) -> None:
        super().__init__(f"{operation} failed after {attempts} attempts")
        self.operation = operation
        self.attempts = attempts


async def run_with_retries(
    operation: str,
    attempt: Callable[[], Awaitable[T]],
    *,
    story_id: str,
    max_attempts: int = MAX_ATTEMPTS,
) -> T:
    """Await *attempt* until it succeeds, at most *max_attempts* times.

    Every attempt gets the same input; retries only differ by the generator's
    own sampling. Cancellation is not an Exception and passes straight
    through.
    """
    last_error: Exception | None = None
    for number in range(1, max_attempts + 1):
        try:
            result = await attempt()
        except Exception as e:
            last_error = e
            logger.warning("%s failed for story %s on attempt %d/%d: %s",
                           operation, story_id, number, max_attempts, e)
            continue
        if number > 1:
            logger.info("%s succeeded for story %s on attempt %d", operation, story_id, number)
        return result

    logger.error("%s for story %s reached maximum retry attempts", operation, story_id)
    raise PipelineError(operation, max_attempts) from last_error
