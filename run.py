#!/usr/bin/env python3
"""Build a taste profile from annotated tracks or live listening history."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from taste_engine import services
from taste_engine.engine import build_taste_profile
from taste_engine.history import collect_taste_profile
from taste_engine.intents import IntentRule, load_intent_rules
from taste_engine.models import TasteProfile


def parse_args(argv: Iterable[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Aggregate per-track annotations into a taste profile.",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--annotations",
        type=Path,
        help="JSON file with a list of annotated tracks (or {analyzed_tracks: [...]}).",
    )
    source.add_argument(
        "--live",
        action="store_true",
        help="Fetch top tracks from Spotify and annotate them with Claude.",
    )
    parser.add_argument(
        "--rules",
        type=Path,
        help="Optional JSON file with a list of intent rules replacing the defaults.",
    )
    parser.add_argument(
        "--json",
        type=Path,
        help="Optional path to write the full taste profile as JSON.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log pipeline stage diagnostics to stderr.",
    )
    return parser.parse_args(list(argv))


def load_annotations(path: Path) -> Tuple[List[Any], List[Any]]:
    """Return (tracks, playlist contexts) from an annotations file."""

    data = json.loads(path.read_text())
    if isinstance(data, list):
        return data, []
    if isinstance(data, dict):
        tracks = data.get("analyzed_tracks", data.get("analyzed_50_top_tracks"))
        if isinstance(tracks, list):
            playlists = data.get("analyzed_playlist_context") or []
            return tracks, playlists if isinstance(playlists, list) else []
    raise ValueError("Annotations file must hold a list of tracks or an 'analyzed_tracks' list")


def load_rules(path: Optional[Path]) -> Optional[Sequence[IntentRule]]:
    if not path:
        return None
    data = json.loads(path.read_text())
    if not isinstance(data, list):
        raise ValueError("Rules file must hold a list of rule objects")
    return load_intent_rules(data)


def print_summary(profile: TasteProfile) -> None:
    genre = profile.genre_profile
    physics = profile.audio_physics_profile
    print(f"Tracks analyzed: {profile.track_count}")
    print(f"Overall confidence: {profile.overall_profile_confidence.value}")
    print(
        f"Genres ({genre.profile_type}, {genre.confidence.value}): "
        f"primary={', '.join(genre.primary_genres) or '-'} "
        f"secondary={', '.join(genre.secondary_genres) or '-'}"
    )
    print(
        f"Audio physics ({physics.confidence.value}): energy={physics.energy_bias} "
        f"tempo={physics.tempo_bias} vocals={physics.vocals_bias} "
        f"texture={physics.texture_bias} danceability={physics.danceability_bias}"
    )
    for axis in ("emotional", "cognitive", "somatic"):
        mood = profile.mood_profile(axis)
        print(
            f"{axis.capitalize()} mood ({mood.confidence.value}): "
            f"{mood.primary or '-'}"
            + (f" (+{', '.join(mood.secondary)})" if mood.secondary else "")
        )
    print(
        f"Overall mood: {profile.overall_mood_category} "
        f"({profile.overall_mood_confidence:.2f}) dominant={', '.join(profile.dominant_moods) or '-'}"
    )
    languages = ", ".join(
        f"{code}={share:.2f}" for code, share in profile.language_profile.distribution.items()
    )
    print(f"Languages ({profile.language_profile.confidence.value}): {languages or '-'}")
    if profile.artist_examples:
        print(f"Artists: {', '.join(profile.artist_examples)}")

    print("\nIntents:")
    if not profile.intents_ranked:
        print(" - none")
    for intent in profile.intents_ranked:
        examples = "; ".join(ref.label for ref in intent.example_tracks)
        print(
            f" - {intent.name:12s} weight={intent.intent_weight:5.2f} "
            f"confidence={intent.confidence.value:6s} examples={examples}"
        )


def main(argv: Iterable[str]) -> int:
    args = parse_args(argv)
    logger: Optional[logging.Logger] = None
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s %(message)s")
        logger = logging.getLogger("taste_engine")

    try:
        rules = load_rules(args.rules)
    except (OSError, ValueError) as exc:
        print(f"Failed to load intent rules: {exc}", file=sys.stderr)
        return 1

    diagnostics: Dict[str, Any] = {}
    if args.annotations:
        try:
            tracks, playlists = load_annotations(args.annotations)
        except (OSError, ValueError) as exc:
            print(f"Failed to load annotations: {exc}", file=sys.stderr)
            return 1
        print(f"[1/2] Aggregating {len(tracks)} annotated tracks...", flush=True)
        profile = build_taste_profile(tracks, playlists=playlists, rules=rules, logger=logger)
    else:
        print("[1/2] Loading environment configuration...", flush=True)
        try:
            clients = services.build_live_clients()
        except RuntimeError as exc:
            print(f"Environment not configured correctly: {exc}", file=sys.stderr)
            return 1
        print("[1/2] Fetching and annotating listening history...", flush=True)
        try:
            result = collect_taste_profile(
                clients["history_client"],
                clients["annotation_client"],
                clients["cache_client"],
                rules=rules,
                logger=logger,
            )
        except Exception as exc:
            print(f"Profile generation failed: {exc}", file=sys.stderr)
            return 1
        profile = result.profile
        diagnostics = result.diagnostics
        if diagnostics.get("unannotated"):
            print(
                f"[1/2] {len(diagnostics['unannotated'])} tracks came back without annotations.",
                flush=True,
            )

    print("[2/2] Taste profile:\n", flush=True)
    print_summary(profile)

    if args.json:
        payload = profile.to_dict()
        if diagnostics:
            payload["diagnostics"] = diagnostics
        args.json.write_text(json.dumps(payload, indent=2))
        print(f"\nWrote full profile to {args.json}")

    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
