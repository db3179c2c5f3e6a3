"""Word-count checks for generated story segments."""

from __future__ import annotations

from edustory.audience import get_profile
from edustory.models import AudienceTier
from edustory.prompts import (
    LENGTH_TOO_LONG,
    LENGTH_TOO_SHORT,
    audience_context,
    render_prompt,
)


def word_count(text: str) -> int:
    return len(text.split())


def check_length(text: str, tier: AudienceTier) -> str | None:
    """Return a correction prompt when *text* is out of bounds for *tier*.

    Only counts below the tier's soft threshold or above its maximum are
    rejected; a segment between the soft threshold and the hard minimum is
    accepted as is.
    """
    profile = get_profile(tier)
    count = word_count(text)
    if count < profile.soft_min_threshold:
        template = LENGTH_TOO_SHORT
    elif count > profile.max_words:
        template = LENGTH_TOO_LONG
    else:
        return None
    return render_prompt(template, {"audience": audience_context(profile)})
