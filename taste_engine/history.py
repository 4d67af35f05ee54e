"""Turn a user's listening history into a taste profile."""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

from . import cache, config, models, utils
from .engine import build_taste_profile
from .intents import IntentRule


class AnnotationClientProtocol(Protocol):
    """Black-box annotator: "song by artist" labels in, raw annotations out."""

    def annotate_tracks(self, track_labels: Sequence[str]) -> List[Dict[str, Any]]:
        ...


class HistoryClientProtocol(Protocol):
    """Source of the user's most played tracks."""

    def get_top_tracks(
        self,
        limit: int = config.TRACK_HISTORY_LIMIT,
        time_range: str = config.TRACK_HISTORY_TIME_RANGE,
    ) -> List[Dict[str, Any]]:
        ...


def collect_taste_profile(
    history_client: HistoryClientProtocol,
    annotation_client: AnnotationClientProtocol,
    cache_client: Optional[cache.InMemoryCache] = None,
    *,
    track_limit: int = config.TRACK_HISTORY_LIMIT,
    time_range: str = config.TRACK_HISTORY_TIME_RANGE,
    batch_size: int = config.ANNOTATION_BATCH_SIZE,
    playlists: Sequence[Any] = (),
    rules: Optional[Sequence[IntentRule]] = None,
    logger: Optional[Any] = None,
) -> models.ProfileGenerationResult:
    """Fetch top tracks, annotate the ones not cached yet, and aggregate."""

    top_tracks = history_client.get_top_tracks(limit=track_limit, time_range=time_range)
    labels = track_labels(top_tracks)
    namespace = config.CACHE_NAMESPACES["annotations"]

    annotations: Dict[str, Dict[str, Any]] = {}
    pending: List[str] = []
    for label in labels:
        cached = cache_client.get(namespace, cache.build_cache_key(label)) if cache_client else None
        if cached is not None:
            annotations[label] = cached
        else:
            pending.append(label)
    cache_hits = len(annotations)

    batches = 0
    for batch in _batched(pending, batch_size):
        batches += 1
        results = annotation_client.annotate_tracks(batch)
        for label, payload in match_annotations(batch, results).items():
            annotations[label] = payload
            if cache_client:
                cache_client.set(namespace, cache.build_cache_key(label), payload)

    ordered = [annotations[label] for label in labels if label in annotations]
    profile = build_taste_profile(ordered, playlists=list(playlists), rules=rules, logger=logger)

    diagnostics: Dict[str, Any] = {
        "history_tracks": len(top_tracks),
        "unique_tracks": len(labels),
        "cache_hits": cache_hits,
        "annotation_batches": batches,
        "annotated_tracks": len(ordered),
        "unannotated": [label for label in labels if label not in annotations],
    }

    if logger:
        logger.debug("history_profile_complete", extra=diagnostics)

    return models.ProfileGenerationResult(
        profile=profile,
        annotations=[models.RawTrackAnnotation.from_dict(payload) for payload in ordered],
        diagnostics=diagnostics,
    )


def track_label(song_name: str, artist_name: str) -> str:
    return f"{song_name.strip()} by {artist_name.strip()}"


def track_labels(items: Iterable[Dict[str, Any]]) -> List[str]:
    """Unique "song by artist" labels from Spotify-style track objects."""

    labels: List[str] = []
    seen = set()
    for item in items:
        name = str(item.get("name") or "").strip()
        artists = [
            str(artist.get("name") or "").strip()
            for artist in item.get("artists") or []
            if isinstance(artist, dict)
        ]
        artist_names = ", ".join(artist for artist in artists if artist)
        if not name or not artist_names:
            continue
        label = track_label(name, artist_names)
        if utils.normalize_name(label) in seen:
            continue
        seen.add(utils.normalize_name(label))
        labels.append(label)
    return labels


def match_annotations(
    batch: Sequence[str], results: Sequence[Any]
) -> Dict[str, Dict[str, Any]]:
    """Pair annotator output with the labels that were sent.

    Results are matched by song and artist name; when the annotator renamed a
    track but returned one result per label, position decides.
    """

    by_key = {utils.normalize_name(label): label for label in batch}
    positional = len(results) == len(batch)
    matched: Dict[str, Dict[str, Any]] = {}
    for index, payload in enumerate(results):
        if not isinstance(payload, dict):
            continue
        key = utils.normalize_name(
            track_label(str(payload.get("song_name") or ""), str(payload.get("artist_name") or ""))
        )
        label = by_key.get(key)
        if label is None and positional:
            label = batch[index]
        if label is not None and label not in matched:
            matched[label] = payload
    return matched


def _batched(items: Sequence[str], size: int) -> Iterable[List[str]]:
    size = max(size, 1)
    for start in range(0, len(items), size):
        yield list(items[start : start + size])
