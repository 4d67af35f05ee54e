"""Entry point of the taste aggregation engine."""
from __future__ import annotations

from concurrent.futures import Executor
from typing import Any, Iterable, Optional, Sequence

from . import models
from .aggregator import aggregate_dimensions
from .composer import compose_profile
from .intents import DEFAULT_INTENT_RULES, IntentRule, derive_intents
from .normalizer import normalize


def build_taste_profile(
    corpus: Sequence[Any],
    *,
    playlists: Iterable[Any] = (),
    rules: Optional[Sequence[IntentRule]] = None,
    executor: Optional[Executor] = None,
    logger: Optional[Any] = None,
) -> models.TasteProfile:
    """Aggregate a corpus of annotated tracks into a taste profile.

    ``corpus`` items may be ``RawTrackAnnotation`` instances or decoded JSON
    objects. Malformed items are defaulted, never rejected; an empty corpus
    yields the default profile. A missing corpus or one that is not a list of
    tracks is a caller bug and raises TypeError.
    """

    _require_sequence(corpus, "corpus")
    if playlists is None:
        playlists = ()
    _require_sequence(playlists, "playlists")

    tracks = [normalize(item) for item in corpus]
    playlist_contexts = [
        item if isinstance(item, models.PlaylistContext) else models.PlaylistContext.from_dict(item)
        for item in playlists
    ]

    aggregates = aggregate_dimensions(
        tracks,
        playlist_contexts,
        executor=executor,
        logger=logger,
    )
    intents = derive_intents(
        aggregates.moods,
        tracks,
        DEFAULT_INTENT_RULES if rules is None else rules,
        logger=logger,
    )
    return compose_profile(aggregates, intents, logger=logger)


def _require_sequence(value: Any, name: str) -> None:
    if value is None:
        raise TypeError(f"{name} must be a list, got None")
    if not isinstance(value, (list, tuple)):
        raise TypeError(f"{name} must be a list or tuple, got {type(value).__name__}")
