"""Test configuration ensuring repository modules are discoverable."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: marks tests as slow and optional")


def _annotation(
    song="Song",
    artist="Artist",
    *,
    genre=None,
    genre_conf=None,
    secondary=None,
    secondary_conf=None,
    emotional=None,
    emotional_conf=None,
    cognitive=None,
    cognitive_conf=None,
    somatic=None,
    somatic_conf=None,
    language=None,
    language_conf=None,
    physics_conf=None,
    tags_conf=None,
    **physics,
):
    """Annotator-shaped payload; only the arguments given become keys.

    Audio physics go in as ``energy_level=("high", "medium")`` pairs.
    """

    audio_physics = {}
    for attribute, (value, confidence) in physics.items():
        audio_physics[attribute] = value
        if confidence is not None:
            audio_physics[f"{attribute}_confidence"] = confidence
    if physics_conf is not None:
        audio_physics["audio_physics_profile_confidence"] = physics_conf

    semantic_tags = {}
    for key, value, confidence in (
        ("primary_genre", genre, genre_conf),
        ("secondary_genres", secondary, secondary_conf),
        ("emotional_tags", emotional, emotional_conf),
        ("cognitive_tags", cognitive, cognitive_conf),
        ("somatic_tags", somatic, somatic_conf),
        ("language_code", language, language_conf),
    ):
        if value is not None:
            semantic_tags[key] = value
        if confidence is not None:
            semantic_tags[f"{key}_confidence"] = confidence
    if tags_conf is not None:
        semantic_tags["semantic_tags_profile_confidence"] = tags_conf

    return {
        "song_name": song,
        "artist_name": artist,
        "audio_physics": audio_physics,
        "semantic_tags": semantic_tags,
    }


@pytest.fixture
def make_track():
    return _annotation


@pytest.fixture
def scenario_corpus(make_track):
    """Three tracks: two pop tracks with physics and moods, one bare jazz track."""

    return [
        make_track(
            "Track A",
            "Artist A",
            genre="pop",
            genre_conf="high",
            energy_level=("high", "high"),
            emotional=["energized"],
            emotional_conf="high",
            cognitive=["focused"],
            cognitive_conf="medium",
        ),
        make_track(
            "Track B",
            "Artist B",
            genre="pop",
            genre_conf="medium",
            energy_level=("medium", "medium"),
            emotional=["calm"],
            emotional_conf="low",
        ),
        make_track("Track C", "Artist C", genre="jazz", genre_conf="low"),
    ]
