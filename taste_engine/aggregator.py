"""Fold normalized annotations into per-dimension distributions."""
from __future__ import annotations

import math
from concurrent.futures import Executor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from . import config, models, utils
from .models import ConfidenceLevel


@dataclass(frozen=True)
class ArtistAggregate:
    scores: Dict[str, float] = field(default_factory=dict)
    examples: Tuple[str, ...] = ()


@dataclass(frozen=True)
class GenreAggregate:
    scores: Dict[str, float] = field(default_factory=dict)
    total: float = 0.0
    profile_type: str = "diverse"
    dominant: Tuple[str, ...] = ()
    primary: Tuple[str, ...] = ()
    secondary: Tuple[str, ...] = ()
    shares: Dict[str, float] = field(default_factory=dict)
    confidence: ConfidenceLevel = ConfidenceLevel.LOW


@dataclass(frozen=True)
class PhysicsAggregate:
    biases: Dict[str, str] = field(
        default_factory=lambda: dict(config.AUDIO_PHYSICS_DEFAULTS)
    )
    ratios: Dict[str, float] = field(default_factory=dict)
    energy_distribution: Dict[str, float] = field(
        default_factory=lambda: {bucket: 0.0 for bucket in config.ENERGY_DISTRIBUTION_BUCKETS}
    )
    confidence: ConfidenceLevel = ConfidenceLevel.LOW


@dataclass(frozen=True)
class MoodAggregate:
    """Weighted tag counts for one mood axis.

    ``distribution`` keeps full precision; the intent eligibility gate reads
    it directly.
    """

    axis: str
    scores: Dict[str, float] = field(default_factory=dict)
    total: float = 0.0
    distribution: Dict[str, float] = field(default_factory=dict)
    primary: Optional[str] = None
    secondary: Tuple[str, ...] = ()
    confidence: ConfidenceLevel = ConfidenceLevel.LOW

    def weight_of(self, tag: str) -> float:
        return self.distribution.get(tag, 0.0)


@dataclass(frozen=True)
class LanguageAggregate:
    distribution: Dict[str, float] = field(default_factory=dict)
    confidence: ConfidenceLevel = ConfidenceLevel.LOW


@dataclass(frozen=True)
class OverallMoodAggregate:
    """Mood category stated by the first analyzed playlist, if any."""

    category: str = config.DEFAULT_MOOD_CATEGORY
    confidence: float = config.DEFAULT_MOOD_CONFIDENCE


@dataclass(frozen=True)
class DimensionAggregates:
    artists: ArtistAggregate
    genres: GenreAggregate
    audio_physics: PhysicsAggregate
    moods: Dict[str, MoodAggregate]
    language: LanguageAggregate
    track_count: int = 0
    dominant_moods: Tuple[str, ...] = ()
    overall_mood: OverallMoodAggregate = field(default_factory=OverallMoodAggregate)


def aggregate_dimensions(
    tracks: Sequence[models.NormalizedTrackAnnotation],
    playlists: Sequence[models.PlaylistContext] = (),
    *,
    executor: Optional[Executor] = None,
    logger: Optional[Any] = None,
) -> DimensionAggregates:
    """Run the independent dimension folds over a normalized corpus.

    Each fold only reads ``tracks``; when an ``executor`` is supplied the folds
    are submitted to it and the result is identical to the serial run.
    """

    folds: Dict[str, Callable[[], Any]] = {
        "artists": lambda: aggregate_artists(tracks),
        "genres": lambda: aggregate_genres(tracks),
        "audio_physics": lambda: aggregate_audio_physics(tracks),
        "language": lambda: aggregate_language(tracks, playlists),
        "dominant_moods": lambda: aggregate_dominant_moods(tracks),
        "overall_mood": lambda: aggregate_overall_mood(playlists),
    }
    for axis in config.MOOD_AXES:
        folds[axis] = lambda axis=axis: aggregate_mood_axis(tracks, axis)

    if executor is not None:
        futures = {name: executor.submit(fold) for name, fold in folds.items()}
        results = {name: future.result() for name, future in futures.items()}
    else:
        results = {name: fold() for name, fold in folds.items()}

    aggregates = DimensionAggregates(
        artists=results["artists"],
        genres=results["genres"],
        audio_physics=results["audio_physics"],
        moods={axis: results[axis] for axis in config.MOOD_AXES},
        language=results["language"],
        track_count=len(tracks),
        dominant_moods=results["dominant_moods"],
        overall_mood=results["overall_mood"],
    )

    if logger:
        logger.debug(
            "dimension_aggregation_complete",
            extra={
                "tracks": len(tracks),
                "genres": len(aggregates.genres.scores),
                "profile_type": aggregates.genres.profile_type,
                "languages": len(aggregates.language.distribution),
            },
        )
    return aggregates


def aggregate_artists(tracks: Sequence[models.NormalizedTrackAnnotation]) -> ArtistAggregate:
    """Score artists with at most ``MAX_TRACKS_PER_ARTIST`` tracks each.

    The heaviest tracks are the ones kept, which keeps the cap independent of
    corpus order.
    """

    display_names: Dict[str, str] = {}
    weights: Dict[str, List[float]] = {}
    for track in tracks:
        key = utils.normalize_name(track.artist_name)
        if key == config.UNKNOWN_ARTIST:
            continue
        display_names.setdefault(key, track.artist_name)
        weights.setdefault(key, []).append(_artist_weight(track))

    scores = {
        display_names[key]: math.fsum(
            sorted(values, reverse=True)[: config.MAX_TRACKS_PER_ARTIST]
        )
        for key, values in weights.items()
    }
    examples = tuple(name for name, _ in utils.rank(scores)[: config.TOP_ARTIST_COUNT])
    return ArtistAggregate(scores=scores, examples=examples)


def _artist_weight(track: models.NormalizedTrackAnnotation) -> float:
    level = track.audio_physics.profile_confidence
    if level is None:
        return config.FLAT_ARTIST_WEIGHT
    return level.weight


def aggregate_genres(tracks: Sequence[models.NormalizedTrackAnnotation]) -> GenreAggregate:
    contributions: List[Tuple[str, float]] = []
    for track in tracks:
        tags = track.semantic_tags
        if tags.primary_genre.observed:
            contributions.append(
                (
                    tags.primary_genre.value,
                    config.PRIMARY_GENRE_FACTOR * tags.primary_genre.confidence.weight,
                )
            )
        secondary_weight = config.SECONDARY_GENRE_FACTOR * tags.secondary_genres.confidence.weight
        for genre in tags.secondary_genres.tags:
            contributions.append((genre, secondary_weight))

    scores = utils.tally(contributions)
    total = utils.total_of(contributions)
    if not scores or total <= 0:
        return GenreAggregate(scores=scores, total=total)

    ranked = utils.rank(scores)
    shares = utils.distribution(scores, total)
    top_share = shares[ranked[0][0]]

    if top_share >= config.FOCUSED_TOP_SHARE:
        profile_type = "focused"
        dominant = [genre for genre, _ in ranked if shares[genre] >= config.FOCUSED_KEEP_SHARE]
    else:
        profile_type = "diverse"
        dominant = [genre for genre, _ in ranked[: config.DIVERSE_KEEP_COUNT]]

    if not dominant:
        dominant = [genre for genre, _ in ranked[: config.FALLBACK_GENRE_COUNT]]

    primary = tuple(dominant[: config.PRIMARY_GENRE_COUNT])
    secondary = tuple(
        genre for genre, _ in ranked if genre not in primary
    )[: config.SECONDARY_GENRE_COUNT]

    return GenreAggregate(
        scores=scores,
        total=total,
        profile_type=profile_type,
        dominant=tuple(dominant),
        primary=primary,
        secondary=secondary,
        shares=shares,
        confidence=utils.ratio_to_confidence(top_share),
    )


def physics_bucket(attribute: str, value: Any) -> str:
    """Plain-string bucket used when voting; energy collapses to three levels."""

    text = value.value if isinstance(value, Enum) else str(value)
    if attribute == "energy_level":
        return config.ENERGY_COLLAPSE.get(text, text)
    return text


def physics_votes(
    tracks: Sequence[models.NormalizedTrackAnnotation], attribute: str
) -> List[Tuple[str, float]]:
    votes: List[Tuple[str, float]] = []
    for track in tracks:
        value = track.audio_physics.attribute(attribute)
        if value.observed:
            votes.append((physics_bucket(attribute, value.value), value.confidence.weight))
    return votes


def aggregate_audio_physics(
    tracks: Sequence[models.NormalizedTrackAnnotation],
) -> PhysicsAggregate:
    biases: Dict[str, str] = {}
    ratios: Dict[str, float] = {}
    for attribute in models.AUDIO_PHYSICS_FIELDS:
        winner, ratio = utils.weighted_vote(physics_votes(tracks, attribute))
        if winner is None:
            biases[attribute] = config.AUDIO_PHYSICS_DEFAULTS[attribute]
            continue
        biases[attribute] = winner
        ratios[attribute] = ratio

    energy_votes = physics_votes(tracks, "energy_level")
    energy_scores = utils.tally(energy_votes)
    energy_total = utils.total_of(energy_votes)
    energy_distribution = utils.round_distribution(
        utils.distribution(
            {bucket: energy_scores.get(bucket, 0.0) for bucket in config.ENERGY_DISTRIBUTION_BUCKETS},
            energy_total,
        )
    )

    if ratios:
        confidence = utils.ratio_to_confidence(math.fsum(ratios.values()) / len(ratios))
    else:
        confidence = ConfidenceLevel.LOW

    return PhysicsAggregate(
        biases=biases,
        ratios=ratios,
        energy_distribution=energy_distribution,
        confidence=confidence,
    )


def aggregate_mood_axis(
    tracks: Sequence[models.NormalizedTrackAnnotation], axis: str
) -> MoodAggregate:
    contributions: List[Tuple[str, float]] = []
    for track in tracks:
        tag_list = track.semantic_tags.mood_axis(axis)
        for tag in tag_list.tags:
            contributions.append((tag, tag_list.confidence.weight))

    scores = utils.tally(contributions)
    total = utils.total_of(contributions)
    if not scores or total <= 0:
        return MoodAggregate(axis=axis, scores=scores, total=total)

    ranked = utils.rank(scores)
    distribution = utils.distribution(scores, total)
    primary = ranked[0][0]
    return MoodAggregate(
        axis=axis,
        scores=scores,
        total=total,
        distribution=distribution,
        primary=primary,
        secondary=tuple(tag for tag, _ in ranked[1 : 1 + config.SECONDARY_MOOD_COUNT]),
        confidence=utils.ratio_to_confidence(distribution[primary]),
    )


def aggregate_language(
    tracks: Sequence[models.NormalizedTrackAnnotation],
    playlists: Sequence[models.PlaylistContext] = (),
) -> LanguageAggregate:
    contributions: List[Tuple[str, float]] = []
    for track in tracks:
        language = track.semantic_tags.language_code
        if language.observed:
            contributions.append((language.value, language.confidence.weight))
    for playlist in playlists:
        for language, percentage in playlist.language_distribution:
            if not math.isfinite(percentage):
                continue
            share = utils.clamp(percentage)
            if share > 0:
                contributions.append((language, share * playlist.confidence.weight))

    scores = utils.tally(contributions)
    total = utils.total_of(contributions)
    if not scores or total <= 0:
        return LanguageAggregate()

    shares = utils.distribution(scores, total)
    top_share = shares[utils.rank(scores)[0][0]]
    return LanguageAggregate(
        distribution=utils.round_distribution(shares),
        confidence=utils.ratio_to_confidence(top_share),
    )


def aggregate_dominant_moods(
    tracks: Sequence[models.NormalizedTrackAnnotation],
) -> Tuple[str, ...]:
    """Top mood tags with all three axes pooled into one weighted count."""

    contributions: List[Tuple[str, float]] = []
    for track in tracks:
        for axis in config.MOOD_AXES:
            tag_list = track.semantic_tags.mood_axis(axis)
            for tag in tag_list.tags:
                contributions.append((tag, tag_list.confidence.weight))
    ranked = utils.rank(utils.tally(contributions))
    return tuple(tag for tag, _ in ranked[: config.DOMINANT_MOOD_COUNT])


def aggregate_overall_mood(
    playlists: Sequence[models.PlaylistContext] = (),
) -> OverallMoodAggregate:
    if not playlists or not playlists[0].emotional_direction:
        return OverallMoodAggregate()
    first = playlists[0]
    return OverallMoodAggregate(
        category=first.emotional_direction,
        confidence=first.confidence.weight,
    )
