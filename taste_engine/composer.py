"""Combine dimension aggregates into the final taste profile."""
from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from . import config, models, utils
from .aggregator import DimensionAggregates, MoodAggregate
from .models import ConfidenceLevel


def compose_overall_confidence(
    audio_physics: ConfidenceLevel,
    genre: ConfidenceLevel,
    mood: ConfidenceLevel,
    language: ConfidenceLevel,
) -> ConfidenceLevel:
    """Weighted blend of the per-dimension levels with safety caps.

    Audio physics carries the most weight; a low audio-physics level, or two
    or more low levels among genre/mood/language, caps the result at medium.
    """

    weights = config.OVERALL_CONFIDENCE_WEIGHTS
    score = (
        weights["audio_physics"] * audio_physics.ordinal
        + weights["genre"] * genre.ordinal
        + weights["mood"] * mood.ordinal
        + weights["language"] * language.ordinal
    )

    medium_cap = float(ConfidenceLevel.MEDIUM.ordinal)
    low_signals = sum(1 for level in (genre, mood, language) if level is ConfidenceLevel.LOW)
    if audio_physics is ConfidenceLevel.LOW or low_signals >= config.LOW_SIGNAL_CAP_COUNT:
        score = min(score, medium_cap)

    if score >= config.OVERALL_HIGH_THRESHOLD:
        return ConfidenceLevel.HIGH
    if score >= config.OVERALL_MEDIUM_THRESHOLD:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def _mood_profile(aggregate: MoodAggregate) -> models.MoodProfile:
    return models.MoodProfile(
        primary=aggregate.primary,
        secondary=aggregate.secondary,
        distribution=utils.round_distribution(aggregate.distribution),
        confidence=aggregate.confidence,
    )


def compose_profile(
    aggregates: DimensionAggregates,
    intents: Sequence[models.Intent] = (),
    *,
    logger: Optional[Any] = None,
) -> models.TasteProfile:
    physics = aggregates.audio_physics
    genres = aggregates.genres
    moods: Dict[str, MoodAggregate] = aggregates.moods

    overall = compose_overall_confidence(
        audio_physics=physics.confidence,
        genre=genres.confidence,
        mood=moods["emotional"].confidence,
        language=aggregates.language.confidence,
    )

    profile = models.TasteProfile(
        language_profile=models.LanguageProfile(
            distribution=dict(aggregates.language.distribution),
            confidence=aggregates.language.confidence,
        ),
        audio_physics_profile=models.AudioPhysicsProfile(
            energy_bias=physics.biases["energy_level"],
            tempo_bias=physics.biases["tempo_feel"],
            danceability_bias=physics.biases["danceability_hint"],
            vocals_bias=physics.biases["vocals_type"],
            texture_bias=physics.biases["texture_type"],
            energy_distribution=dict(physics.energy_distribution),
            confidence=physics.confidence,
        ),
        genre_profile=models.GenreProfile(
            profile_type=genres.profile_type,
            dominant_genres=genres.dominant,
            primary_genres=genres.primary,
            secondary_genres=genres.secondary,
            distribution=utils.round_distribution(genres.shares),
            confidence=genres.confidence,
        ),
        emotional_mood_profile=_mood_profile(moods["emotional"]),
        cognitive_mood_profile=_mood_profile(moods["cognitive"]),
        somatic_mood_profile=_mood_profile(moods["somatic"]),
        dominant_moods=aggregates.dominant_moods,
        overall_mood_category=aggregates.overall_mood.category,
        overall_mood_confidence=aggregates.overall_mood.confidence,
        overall_profile_confidence=overall,
        intents_ranked=tuple(intents),
        artist_examples=aggregates.artists.examples,
        track_count=aggregates.track_count,
    )

    if logger:
        logger.debug(
            "profile_composed",
            extra={
                "overall_confidence": overall.value,
                "intents": [intent.name for intent in profile.intents_ranked],
            },
        )
    return profile
