"""Configuration constants for the taste aggregation pipeline."""
from __future__ import annotations

# Confidence weights (one table, applied everywhere)
CONFIDENCE_WEIGHTS = {
    "low": 0.30,
    "medium": 0.60,
    "high": 1.00,
}
DEFAULT_CONFIDENCE: str = "medium"

# Ratio -> semantic level thresholds, taken from the same table as the weights
HIGH_RATIO_THRESHOLD: float = 0.67
MEDIUM_RATIO_THRESHOLD: float = 0.30

# Artist aggregation
MAX_TRACKS_PER_ARTIST: int = 2
TOP_ARTIST_COUNT: int = 5
FLAT_ARTIST_WEIGHT: float = 1.0
UNKNOWN_ARTIST: str = "unknown artist"
UNKNOWN_SONG: str = "unknown song"

# Genre aggregation
PRIMARY_GENRE_FACTOR: float = 1.0
SECONDARY_GENRE_FACTOR: float = 0.5
FOCUSED_TOP_SHARE: float = 0.20  # top genre share at or above this -> focused
FOCUSED_KEEP_SHARE: float = 0.10
DIVERSE_KEEP_COUNT: int = 5
FALLBACK_GENRE_COUNT: int = 3
PRIMARY_GENRE_COUNT: int = 3
SECONDARY_GENRE_COUNT: int = 5

# Mood aggregation
MOOD_AXES = ("emotional", "cognitive", "somatic")
SECONDARY_MOOD_COUNT: int = 2
DOMINANT_MOOD_COUNT: int = 3  # across all three axes combined
DEFAULT_MOOD_CATEGORY: str = "Mixed Moods"
DEFAULT_MOOD_CONFIDENCE: float = 0.5

# Output rounding
DISTRIBUTION_DECIMALS: int = 2
DISTRIBUTION_TOLERANCE: float = 0.01

# Audio physics defaults (used when nothing matches or nothing was voted)
AUDIO_PHYSICS_DEFAULTS = {
    "energy_level": "medium",
    "tempo_feel": "mid",
    "vocals_type": "lead_vocal",
    "texture_type": "hybrid",
    "danceability_hint": "medium",
}

# Energy buckets collapse to three levels when voting
ENERGY_COLLAPSE = {
    "low_medium": "low",
    "medium_high": "high",
}
ENERGY_DISTRIBUTION_BUCKETS = ("low", "medium", "high")

# Overall confidence composition
CONFIDENCE_ORDINALS = {
    "low": 0,
    "medium": 1,
    "high": 2,
}
OVERALL_CONFIDENCE_WEIGHTS = {
    "audio_physics": 0.40,
    "genre": 0.25,
    "mood": 0.25,
    "language": 0.10,
}
OVERALL_HIGH_THRESHOLD: float = 1.5
OVERALL_MEDIUM_THRESHOLD: float = 0.5
LOW_SIGNAL_CAP_COUNT: int = 2  # low genre/mood/language inputs before capping

# Intent derivation
INTENT_ELIGIBILITY_THRESHOLD: float = 0.15
INTENT_MIN_WEIGHT: float = 0.15
INTENT_MIN_MATCHED_AXES: int = 2
INTENT_TOP_TAGS: int = 3
INTENT_TAG_EXAMPLES: int = 2
INTENT_GENRE_HINTS: int = 3
INTENT_EXAMPLE_TRACKS: int = 3

# Orchestration
TRACK_HISTORY_LIMIT: int = 50
TRACK_HISTORY_TIME_RANGE: str = "medium_term"
ANNOTATION_BATCH_SIZE: int = 25
CLAUDE_ANNOTATION_MODEL: str = "claude-3-5-sonnet-20241022"
CLAUDE_MAX_TOKENS: int = 8192
CLAUDE_MAX_RETRIES: int = 3

# Cache namespaces
CACHE_NAMESPACES = {
    "annotations": "annotations",
    "top_tracks": "top_tracks",
}

CACHE_DEFAULT_TTL_SECONDS: int = 60 * 60  # one hour
