import pytest

from taste_engine import config, models
from taste_engine.models import ConfidenceLevel, RawTrackAnnotation
from taste_engine.normalizer import (
    clean_confidence,
    normalize,
    normalize_physics_value,
    normalize_tags,
)


@pytest.mark.parametrize(
    "attribute, raw, expected",
    [
        ("energy_level", "High", "high"),
        ("energy_level", "Medium-High", "medium_high"),
        ("energy_level", "low medium", "low_medium"),
        ("energy_level", "mellow", "low"),
        ("energy_level", "very calm", "low"),
        ("energy_level", "explosive and loud", "high"),
        ("energy_level", "laid-back", "low_medium"),
        ("tempo_feel", "upbeat", "fast"),
        ("tempo_feel", "dance-y", "fast"),
        ("tempo_feel", "downtempo", "slow"),
        ("tempo_feel", "moderate", "mid"),
        ("vocals_type", "no vocals", "instrumental"),
        ("vocals_type", "Lead Vocal", "lead_vocal"),
        ("vocals_type", "gospel choir", "choral"),
        ("vocals_type", "backing vocals", "background_vocal"),
        ("texture_type", "digital", "synthetic"),
        ("texture_type", "programmed beats", "synthetic"),
        ("texture_type", "atmospheric pads", "ambient"),
        ("texture_type", "unplugged", "acoustic"),
        ("danceability_hint", "not danceable", "low"),
        ("danceability_hint", "very danceable", "high"),
        ("danceability_hint", "somewhat", "medium"),
    ],
)
def test_physics_synonyms_map_to_enumeration(attribute, raw, expected):
    value, observed = normalize_physics_value(attribute, raw)
    assert value == expected
    assert observed is True


@pytest.mark.parametrize("attribute", models.AUDIO_PHYSICS_FIELDS)
def test_unmatched_physics_text_takes_default(attribute):
    value, observed = normalize_physics_value(attribute, "zzz-unknown")
    assert value == config.AUDIO_PHYSICS_DEFAULTS[attribute]
    assert observed is True


@pytest.mark.parametrize("raw", [None, "", "   ", 12, ["high"]])
def test_missing_physics_value_is_default_and_unobserved(raw):
    value, observed = normalize_physics_value("energy_level", raw)
    assert value == "medium"
    assert observed is False


def test_clean_confidence_validates_labels():
    assert clean_confidence(" HIGH ") is ConfidenceLevel.HIGH
    assert clean_confidence("low") is ConfidenceLevel.LOW
    assert clean_confidence("certain") is ConfidenceLevel.MEDIUM
    assert clean_confidence(None) is ConfidenceLevel.MEDIUM
    assert clean_confidence(5) is ConfidenceLevel.MEDIUM
    assert clean_confidence(None, ConfidenceLevel.LOW) is ConfidenceLevel.LOW
    assert clean_confidence("high", ConfidenceLevel.LOW) is ConfidenceLevel.HIGH


def test_normalize_tags_cleans_and_deduplicates():
    assert normalize_tags([" Dream Pop ", "dream pop", "", 3, "Shoegaze"]) == (
        "dream pop",
        "shoegaze",
    )
    assert normalize_tags("Calm") == ("calm",)
    assert normalize_tags(None) == ()
    assert normalize_tags({"calm": 1}) == ()


def test_normalize_full_annotation(make_track):
    raw = make_track(
        "  Midnight City ",
        "M83",
        genre=" Synthpop ",
        genre_conf="HIGH",
        secondary=["Electronic", "electronic", "Dream Pop"],
        secondary_conf="medium",
        emotional=["Euphoric"],
        emotional_conf="high",
        language=" EN ",
        language_conf="high",
        energy_level=("medium-high", "high"),
        texture_type=("digital", None),
        physics_conf="low",
    )

    track = normalize(raw)

    assert track.song_name == "Midnight City"
    assert track.artist_name == "M83"
    physics = track.audio_physics
    assert physics.energy_level.value == "medium_high"
    assert physics.energy_level.confidence is ConfidenceLevel.HIGH
    # attribute without its own label falls back to the bucket confidence
    assert physics.texture_type.value == "synthetic"
    assert physics.texture_type.confidence is ConfidenceLevel.LOW
    assert physics.tempo_feel.observed is False
    assert physics.profile_confidence is ConfidenceLevel.LOW

    tags = track.semantic_tags
    assert tags.primary_genre.value == "synthpop"
    assert tags.primary_genre.confidence is ConfidenceLevel.HIGH
    assert tags.secondary_genres.tags == ("electronic", "dream pop")
    assert tags.emotional_tags.tags == ("euphoric",)
    assert tags.cognitive_tags.tags == ()
    assert tags.language_code.value == "en"


def test_semantic_bucket_confidence_is_the_fallback(make_track):
    raw = make_track(genre="pop", emotional=["calm"], tags_conf="high")
    tags = normalize(raw).semantic_tags
    assert tags.primary_genre.confidence is ConfidenceLevel.HIGH
    assert tags.emotional_tags.confidence is ConfidenceLevel.HIGH


def test_alias_keys_are_accepted():
    raw = {
        "song_name": "Despacito",
        "artist_name": "Luis Fonsi",
        "audio_physics": {"energy_level": "high", "energy_confidence": "low"},
        "semantic_tags": {
            "language_iso_639_1": "ES",
            "language_confidence": "high",
            "emotional_tags": ["Joyful"],
            "emotional_confidence": "low",
        },
    }
    track = normalize(raw)
    assert track.audio_physics.energy_level.confidence is ConfidenceLevel.LOW
    assert track.semantic_tags.language_code.value == "es"
    assert track.semantic_tags.language_code.confidence is ConfidenceLevel.HIGH
    assert track.semantic_tags.emotional_tags.confidence is ConfidenceLevel.LOW


@pytest.mark.parametrize(
    "raw",
    [
        "garbage",
        None,
        42,
        {},
        {"audio_physics": "oops", "semantic_tags": ["not", "a", "mapping"]},
        {"song_name": 7, "artist_name": "   "},
    ],
)
def test_malformed_annotations_are_defaulted(raw):
    track = normalize(raw)
    assert track.song_name == config.UNKNOWN_SONG
    assert track.artist_name == config.UNKNOWN_ARTIST
    for attribute in models.AUDIO_PHYSICS_FIELDS:
        scalar = track.audio_physics.attribute(attribute)
        assert scalar.value == config.AUDIO_PHYSICS_DEFAULTS[attribute]
        assert scalar.observed is False
        assert scalar.confidence is ConfidenceLevel.MEDIUM
    assert track.semantic_tags.primary_genre.observed is False
    assert track.semantic_tags.language_code.observed is False
    assert track.semantic_tags.somatic_tags.tags == ()


def test_normalize_accepts_raw_dataclass():
    raw = RawTrackAnnotation(
        song_name="Song",
        artist_name="Artist",
        audio_physics=models.RawAudioPhysics(
            tempo_feel=models.RawAttribute("Up-Tempo", "high"),
        ),
    )
    track = normalize(raw)
    assert track.audio_physics.tempo_feel.value == "fast"
    assert track.audio_physics.tempo_feel.confidence is ConfidenceLevel.HIGH


def test_normalized_values_are_canonical(make_track):
    raw = make_track(
        vocals_type=("Harmonies", "medium"),
        danceability_hint=("club banger", "high"),
    )
    physics = normalize(raw).audio_physics
    assert isinstance(physics.vocals_type.value, models.VocalsType)
    assert physics.vocals_type.value is models.VocalsType.HARMONIES
    assert physics.danceability_hint.value is models.Danceability.HIGH


def test_playlist_context_from_dict():
    context = models.PlaylistContext.from_dict(
        {
            "playlist_language_distribution": [
                {"language": "EN", "percentage": 0.7},
                {"language": "es", "percentage": "0.3"},
                {"language": "", "percentage": 0.5},
                {"language": "fr", "percentage": "lots"},
                "junk",
            ],
            "confidence": "high",
        }
    )
    assert context.language_distribution == (("en", 0.7), ("es", 0.3))
    assert context.confidence is ConfidenceLevel.HIGH
    assert models.PlaylistContext.from_dict(None) == models.PlaylistContext()


def test_playlist_context_skips_non_finite_percentages():
    context = models.PlaylistContext.from_dict(
        {
            "playlist_language_distribution": [
                {"language": "en", "percentage": float("inf")},
                {"language": "es", "percentage": "nan"},
                {"language": "pt", "percentage": "-inf"},
                {"language": "fr", "percentage": 0.4},
            ],
        }
    )
    assert context.language_distribution == (("fr", 0.4),)
    assert context.confidence is ConfidenceLevel.MEDIUM


def test_playlist_context_reads_emotional_direction():
    context = models.PlaylistContext.from_dict(
        {"playlist_emotional_direction": "  Late Night Calm ", "confidence": "low"}
    )
    assert context.emotional_direction == "Late Night Calm"
    assert context.confidence is ConfidenceLevel.LOW
    assert models.PlaylistContext.from_dict({"playlist_emotional_direction": 7}).emotional_direction == ""
