"""Audience profiles — one entry per reader-age tier.

Every prompt fragment and word-count rule that differs between tiers lives
here, so callers look a tier up instead of branching on it.

Each tier has its own soft multiplier: a segment is only sent back for
repair when it falls below ``min_words * soft_multiplier`` (or exceeds
``max_words``).
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from edustory.models import AudienceTier


class AudienceProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    tier: AudienceTier
    label: str
    min_words: int
    max_words: int
    soft_multiplier: float

    story_style: str
    length_style: str
    analysis_style: str
    quiz_style: str

    @property
    def soft_min_threshold(self) -> float:
        """Word counts below this value are sent back for repair."""
        return self.min_words * self.soft_multiplier


PROFILES: dict[AudienceTier, AudienceProfile] = {
    "primary_school": AudienceProfile(
        tier="primary_school",
        label="primary school pupils (ages 6-10)",
        min_words=70,
        max_words=90,
        soft_multiplier=0.8,
        story_style=(
            "Use simple language and short sentences, and explain difficult "
            "terms with everyday examples."
        ),
        length_style=(
            "Use simple sentences and short paragraphs so the text stays easy "
            "to understand."
        ),
        analysis_style=(
            "Use simple, vivid language, short sentences and examples taken "
            "from the children's everyday lives."
        ),
        quiz_style=(
            "Use simple language with short and clear sentences."
        ),
    ),
    "middle_school": AudienceProfile(
        tier="middle_school",
        label="lower secondary pupils (ages 11-14)",
        min_words=120,
        max_words=140,
        soft_multiplier=0.7,
        story_style=(
            "Use lively, understandable language and include moral conflicts "
            "the readers can relate to."
        ),
        length_style=(
            "Use clear language and illustrate explanations with examples."
        ),
        analysis_style=(
            "Use a lively, understandable style with age-appropriate "
            "explanations, and include moral conflicts this age group can "
            "follow."
        ),
        quiz_style=(
            "Use a suitably demanding vocabulary and sentence structure."
        ),
    ),
    "high_school": AudienceProfile(
        tier="high_school",
        label="upper secondary pupils (ages 15-19)",
        min_words=170,
        max_words=190,
        soft_multiplier=0.6,
        story_style=(
            "Use more complex sentence structures and technical terms, and "
            "shed light on the global context of sustainability."
        ),
        length_style=(
            "Use detailed descriptions, complex sentence structures and "
            "in-depth explanations."
        ),
        analysis_style=(
            "Use a demanding style with complex sentence structures and "
            "technical terms where useful, to highlight deeper connections "
            "and global perspectives."
        ),
        quiz_style=(
            "Use demanding language with complex sentence structures and "
            "technical terms."
        ),
    ),
}


def get_profile(tier: AudienceTier) -> AudienceProfile:
    try:
        return PROFILES[tier]
    except KeyError:
        raise ValueError(f"Unknown audience tier: {tier!r}") from None
