"""Domain models for the taste aggregation engine."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from . import config


class ConfidenceLevel(str, Enum):
    """Categorical certainty attached to an inferred attribute."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, value: Any) -> Optional["ConfidenceLevel"]:
        """Return the level named by ``value`` or None when it names none."""

        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        cleaned = value.strip().lower()
        for level in cls:
            if level.value == cleaned:
                return level
        return None

    @property
    def weight(self) -> float:
        return config.CONFIDENCE_WEIGHTS[self.value]

    @property
    def ordinal(self) -> int:
        return config.CONFIDENCE_ORDINALS[self.value]


class EnergyLevel(str, Enum):
    LOW = "low"
    LOW_MEDIUM = "low_medium"
    MEDIUM = "medium"
    MEDIUM_HIGH = "medium_high"
    HIGH = "high"


class TempoFeel(str, Enum):
    SLOW = "slow"
    MID = "mid"
    FAST = "fast"


class VocalsType(str, Enum):
    INSTRUMENTAL = "instrumental"
    SPARSE = "sparse"
    LEAD_VOCAL = "lead_vocal"
    HARMONIES = "harmonies"
    CHORAL = "choral"
    BACKGROUND_VOCAL = "background_vocal"


class TextureType(str, Enum):
    ORGANIC = "organic"
    ACOUSTIC = "acoustic"
    ELECTRIC = "electric"
    SYNTHETIC = "synthetic"
    HYBRID = "hybrid"
    AMBIENT = "ambient"


class Danceability(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


AUDIO_PHYSICS_FIELDS = (
    "energy_level",
    "tempo_feel",
    "vocals_type",
    "texture_type",
    "danceability_hint",
)

# Confidence keys accepted for each raw attribute, most specific first.
_CONFIDENCE_KEYS = {
    "energy_level": ("energy_level_confidence", "energy_confidence"),
    "tempo_feel": ("tempo_feel_confidence", "tempo_confidence"),
    "vocals_type": ("vocals_type_confidence", "vocals_confidence"),
    "texture_type": ("texture_type_confidence", "texture_confidence"),
    "danceability_hint": ("danceability_hint_confidence", "danceability_confidence"),
    "primary_genre": ("primary_genre_confidence",),
    "secondary_genres": ("secondary_genres_confidence",),
    "emotional_tags": ("emotional_tags_confidence", "emotional_confidence"),
    "cognitive_tags": ("cognitive_tags_confidence", "cognitive_confidence"),
    "somatic_tags": ("somatic_tags_confidence", "somatic_confidence"),
    "language_code": ("language_code_confidence", "language_confidence"),
}


@dataclass
class RawAttribute:
    """A raw annotated value and the confidence label the annotator gave it."""

    value: Any = None
    confidence: Any = None


@dataclass
class RawAudioPhysics:
    energy_level: RawAttribute = field(default_factory=RawAttribute)
    tempo_feel: RawAttribute = field(default_factory=RawAttribute)
    vocals_type: RawAttribute = field(default_factory=RawAttribute)
    texture_type: RawAttribute = field(default_factory=RawAttribute)
    danceability_hint: RawAttribute = field(default_factory=RawAttribute)
    profile_confidence: Any = None


@dataclass
class RawSemanticTags:
    primary_genre: RawAttribute = field(default_factory=RawAttribute)
    secondary_genres: RawAttribute = field(default_factory=RawAttribute)
    emotional_tags: RawAttribute = field(default_factory=RawAttribute)
    cognitive_tags: RawAttribute = field(default_factory=RawAttribute)
    somatic_tags: RawAttribute = field(default_factory=RawAttribute)
    language_code: RawAttribute = field(default_factory=RawAttribute)
    profile_confidence: Any = None


@dataclass
class RawTrackAnnotation:
    """One analyzed song exactly as the annotation service returned it."""

    song_name: Any = None
    artist_name: Any = None
    audio_physics: RawAudioPhysics = field(default_factory=RawAudioPhysics)
    semantic_tags: RawSemanticTags = field(default_factory=RawSemanticTags)

    @classmethod
    def from_dict(cls, payload: Any) -> "RawTrackAnnotation":
        """Build a raw annotation from a decoded JSON object.

        Never raises: anything that is not a mapping yields an empty
        annotation, and unknown keys are ignored.
        """

        if not isinstance(payload, Mapping):
            return cls()

        physics = payload.get("audio_physics")
        physics = physics if isinstance(physics, Mapping) else {}
        tags = payload.get("semantic_tags")
        tags = tags if isinstance(tags, Mapping) else {}

        language_value = tags.get("language_code")
        if language_value is None:
            language_value = tags.get("language_iso_639_1")

        return cls(
            song_name=payload.get("song_name"),
            artist_name=payload.get("artist_name"),
            audio_physics=RawAudioPhysics(
                energy_level=_attribute(physics, "energy_level"),
                tempo_feel=_attribute(physics, "tempo_feel"),
                vocals_type=_attribute(physics, "vocals_type"),
                texture_type=_attribute(physics, "texture_type"),
                danceability_hint=_attribute(physics, "danceability_hint"),
                profile_confidence=physics.get("audio_physics_profile_confidence"),
            ),
            semantic_tags=RawSemanticTags(
                primary_genre=_attribute(tags, "primary_genre"),
                secondary_genres=_attribute(tags, "secondary_genres"),
                emotional_tags=_attribute(tags, "emotional_tags"),
                cognitive_tags=_attribute(tags, "cognitive_tags"),
                somatic_tags=_attribute(tags, "somatic_tags"),
                language_code=RawAttribute(
                    value=language_value,
                    confidence=_first_present(tags, _CONFIDENCE_KEYS["language_code"]),
                ),
                profile_confidence=tags.get("semantic_tags_profile_confidence"),
            ),
        )


def _attribute(source: Mapping[str, Any], key: str) -> RawAttribute:
    return RawAttribute(
        value=source.get(key),
        confidence=_first_present(source, _CONFIDENCE_KEYS[key]),
    )


def _first_present(source: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        value = source.get(key)
        if value is not None:
            return value
    return None


def _display_text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


@dataclass(frozen=True)
class PlaylistContext:
    """Language and mood signal from an analyzed playlist."""

    language_distribution: Tuple[Tuple[str, float], ...] = ()
    emotional_direction: str = ""
    confidence: ConfidenceLevel = ConfidenceLevel.MEDIUM

    @classmethod
    def from_dict(cls, payload: Any) -> "PlaylistContext":
        if not isinstance(payload, Mapping):
            return cls()
        entries: List[Tuple[str, float]] = []
        raw_entries = payload.get("playlist_language_distribution")
        if isinstance(raw_entries, list):
            for entry in raw_entries:
                if not isinstance(entry, Mapping):
                    continue
                language = str(entry.get("language") or "").strip().lower()
                try:
                    percentage = float(entry.get("percentage", 0.0))
                except (TypeError, ValueError):
                    continue
                if language and math.isfinite(percentage) and percentage > 0:
                    entries.append((language, percentage))
        return cls(
            language_distribution=tuple(entries),
            emotional_direction=_display_text(payload.get("playlist_emotional_direction")),
            confidence=ConfidenceLevel.parse(payload.get("confidence")) or ConfidenceLevel.MEDIUM,
        )


# Normalized annotations ------------------------------------------------------


@dataclass(frozen=True)
class ScalarAttribute:
    """A cleaned single-valued attribute.

    ``observed`` is False when the annotation carried no value and ``value``
    holds the documented default; unobserved attributes never vote.
    """

    value: str
    confidence: ConfidenceLevel = ConfidenceLevel.MEDIUM
    observed: bool = True


@dataclass(frozen=True)
class TagList:
    tags: Tuple[str, ...] = ()
    confidence: ConfidenceLevel = ConfidenceLevel.MEDIUM


@dataclass(frozen=True)
class NormalizedAudioPhysics:
    energy_level: ScalarAttribute
    tempo_feel: ScalarAttribute
    vocals_type: ScalarAttribute
    texture_type: ScalarAttribute
    danceability_hint: ScalarAttribute
    profile_confidence: Optional[ConfidenceLevel] = None

    def attribute(self, name: str) -> ScalarAttribute:
        return getattr(self, name)


@dataclass(frozen=True)
class NormalizedSemanticTags:
    primary_genre: ScalarAttribute
    secondary_genres: TagList
    emotional_tags: TagList
    cognitive_tags: TagList
    somatic_tags: TagList
    language_code: ScalarAttribute

    def mood_axis(self, axis: str) -> TagList:
        return getattr(self, f"{axis}_tags")


@dataclass(frozen=True)
class TrackRef:
    """Display reference to a track used in evidence lists."""

    song_name: str
    artist_name: str

    @property
    def label(self) -> str:
        return f"{self.song_name} by {self.artist_name}"

    def dedup_key(self) -> Tuple[str, str]:
        return (self.song_name.casefold(), self.artist_name.casefold())


@dataclass(frozen=True)
class NormalizedTrackAnnotation:
    song_name: str
    artist_name: str
    audio_physics: NormalizedAudioPhysics
    semantic_tags: NormalizedSemanticTags

    @property
    def ref(self) -> TrackRef:
        return TrackRef(self.song_name, self.artist_name)


# Taste profile ----------------------------------------------------------------


@dataclass(frozen=True)
class LanguageProfile:
    distribution: Dict[str, float] = field(default_factory=dict)
    confidence: ConfidenceLevel = ConfidenceLevel.LOW


@dataclass(frozen=True)
class AudioPhysicsProfile:
    energy_bias: str = config.AUDIO_PHYSICS_DEFAULTS["energy_level"]
    tempo_bias: str = config.AUDIO_PHYSICS_DEFAULTS["tempo_feel"]
    danceability_bias: str = config.AUDIO_PHYSICS_DEFAULTS["danceability_hint"]
    vocals_bias: str = config.AUDIO_PHYSICS_DEFAULTS["vocals_type"]
    texture_bias: str = config.AUDIO_PHYSICS_DEFAULTS["texture_type"]
    energy_distribution: Dict[str, float] = field(
        default_factory=lambda: {bucket: 0.0 for bucket in config.ENERGY_DISTRIBUTION_BUCKETS}
    )
    confidence: ConfidenceLevel = ConfidenceLevel.LOW


@dataclass(frozen=True)
class GenreProfile:
    profile_type: str = "diverse"
    dominant_genres: Tuple[str, ...] = ()
    primary_genres: Tuple[str, ...] = ()
    secondary_genres: Tuple[str, ...] = ()
    distribution: Dict[str, float] = field(default_factory=dict)
    confidence: ConfidenceLevel = ConfidenceLevel.LOW


@dataclass(frozen=True)
class MoodProfile:
    primary: Optional[str] = None
    secondary: Tuple[str, ...] = ()
    distribution: Dict[str, float] = field(default_factory=dict)
    confidence: ConfidenceLevel = ConfidenceLevel.LOW


@dataclass(frozen=True)
class TagEvidence:
    tag: str
    weight: float
    example_tracks: Tuple[TrackRef, ...] = ()


@dataclass(frozen=True)
class Intent:
    """A ranked listening purpose with the evidence that produced it."""

    name: str
    intent_score: float
    intent_weight: float
    confidence: ConfidenceLevel
    axis_evidence: Dict[str, Tuple[TagEvidence, ...]] = field(default_factory=dict)
    genre_hints: Tuple[str, ...] = ()
    physics_constraints: Dict[str, str] = field(default_factory=dict)
    example_tracks: Tuple[TrackRef, ...] = ()
    contributing_tracks: int = 0


@dataclass(frozen=True)
class TasteProfile:
    """Aggregated listening preferences for one corpus of annotated tracks."""

    language_profile: LanguageProfile = field(default_factory=LanguageProfile)
    audio_physics_profile: AudioPhysicsProfile = field(default_factory=AudioPhysicsProfile)
    genre_profile: GenreProfile = field(default_factory=GenreProfile)
    emotional_mood_profile: MoodProfile = field(default_factory=MoodProfile)
    cognitive_mood_profile: MoodProfile = field(default_factory=MoodProfile)
    somatic_mood_profile: MoodProfile = field(default_factory=MoodProfile)
    dominant_moods: Tuple[str, ...] = ()
    overall_mood_category: str = config.DEFAULT_MOOD_CATEGORY
    overall_mood_confidence: float = config.DEFAULT_MOOD_CONFIDENCE
    overall_profile_confidence: ConfidenceLevel = ConfidenceLevel.LOW
    intents_ranked: Tuple[Intent, ...] = ()
    artist_examples: Tuple[str, ...] = ()
    track_count: int = 0

    def mood_profile(self, axis: str) -> MoodProfile:
        return getattr(self, f"{axis}_mood_profile")

    def to_dict(self) -> Dict[str, Any]:
        """JSON-compatible representation for persistence or display."""

        def _mood(profile: MoodProfile) -> Dict[str, Any]:
            return {
                "primary": profile.primary,
                "secondary": list(profile.secondary),
                "distribution": dict(profile.distribution),
                "confidence": profile.confidence.value,
            }

        physics = self.audio_physics_profile
        genre = self.genre_profile
        return {
            "language_profile": {
                "distribution": dict(self.language_profile.distribution),
                "confidence": self.language_profile.confidence.value,
            },
            "audio_physics_profile": {
                "energy_bias": physics.energy_bias,
                "tempo_bias": physics.tempo_bias,
                "danceability_bias": physics.danceability_bias,
                "vocals_bias": physics.vocals_bias,
                "texture_bias": physics.texture_bias,
                "energy_distribution": dict(physics.energy_distribution),
                "confidence": physics.confidence.value,
            },
            "genre_profile": {
                "profile_type": genre.profile_type,
                "dominant_genres": list(genre.dominant_genres),
                "primary_genres": list(genre.primary_genres),
                "secondary_genres": list(genre.secondary_genres),
                "distribution": dict(genre.distribution),
                "confidence": genre.confidence.value,
            },
            "emotional_mood_profile": _mood(self.emotional_mood_profile),
            "cognitive_mood_profile": _mood(self.cognitive_mood_profile),
            "somatic_mood_profile": _mood(self.somatic_mood_profile),
            "dominant_moods": list(self.dominant_moods),
            "overall_mood_category": self.overall_mood_category,
            "overall_mood_confidence": self.overall_mood_confidence,
            "overall_profile_confidence": self.overall_profile_confidence.value,
            "intents_ranked": [
                {
                    "name": intent.name,
                    "intent_score": intent.intent_score,
                    "intent_weight": intent.intent_weight,
                    "confidence": intent.confidence.value,
                    "axis_evidence": {
                        axis: [
                            {
                                "tag": evidence.tag,
                                "weight": evidence.weight,
                                "example_tracks": [ref.label for ref in evidence.example_tracks],
                            }
                            for evidence in items
                        ]
                        for axis, items in intent.axis_evidence.items()
                    },
                    "genre_hints": list(intent.genre_hints),
                    "physics_constraints": dict(intent.physics_constraints),
                    "example_tracks": [ref.label for ref in intent.example_tracks],
                    "contributing_tracks": intent.contributing_tracks,
                }
                for intent in self.intents_ranked
            ],
            "artist_examples": list(self.artist_examples),
            "track_count": self.track_count,
        }


@dataclass
class ProfileGenerationResult:
    """Output from the listening-history orchestration."""

    profile: TasteProfile
    annotations: List[RawTrackAnnotation]
    diagnostics: Dict[str, Any] = field(default_factory=dict)
