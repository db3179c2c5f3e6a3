"""Generation pipeline.

Operations (all async, all stateless between calls):
  start_story     — first segment + story title
  next_segment    — segment after the latest decision
  conclude_story  — closing section + reflective analysis → Outcome
  generate_quiz   — quiz built on top of a concluded story

Each operation rebuilds the conversation from the story, generates, checks
and (once) repairs the result, and retries the whole step up to
MAX_ATTEMPTS times before raising PipelineError.
"""

from .orchestrator import StoryPipeline  # noqa: F401
from .quiz import generate_quiz  # noqa: F401
from .retry import MAX_ATTEMPTS, PipelineError, run_with_retries  # noqa: F401
