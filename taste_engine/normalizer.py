"""Clean raw per-track annotations into canonical values."""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Type

from . import config, models
from .models import ConfidenceLevel
from .utils import clean_token

# Substring synonym rules per audio-physics attribute. Checked in order, so
# more specific phrases come before the words they contain.
SYNONYM_RULES: Dict[str, Sequence[Tuple[str, str]]] = {
    "energy_level": (
        ("medium-high", "medium_high"),
        ("moderately high", "medium_high"),
        ("driving", "medium_high"),
        ("lively", "medium_high"),
        ("medium-low", "low_medium"),
        ("moderately low", "low_medium"),
        ("laid back", "low_medium"),
        ("laid-back", "low_medium"),
        ("relaxed", "low_medium"),
        ("explosive", "high"),
        ("intense", "high"),
        ("energetic", "high"),
        ("aggressive", "high"),
        ("powerful", "high"),
        ("hype", "high"),
        ("mellow", "low"),
        ("calm", "low"),
        ("chill", "low"),
        ("soft", "low"),
        ("gentle", "low"),
        ("quiet", "low"),
        ("sleepy", "low"),
        ("moderate", "medium"),
        ("balanced", "medium"),
        ("steady", "medium"),
        ("high", "high"),
        ("low", "low"),
        ("medium", "medium"),
    ),
    "tempo_feel": (
        ("downtempo", "slow"),
        ("down-tempo", "slow"),
        ("ballad", "slow"),
        ("slow", "slow"),
        ("languid", "slow"),
        ("upbeat", "fast"),
        ("uptempo", "fast"),
        ("up-tempo", "fast"),
        ("dance", "fast"),
        ("fast", "fast"),
        ("quick", "fast"),
        ("rapid", "fast"),
        ("moderate", "mid"),
        ("medium", "mid"),
        ("groove", "mid"),
        ("steady", "mid"),
    ),
    "vocals_type": (
        ("no vocal", "instrumental"),
        ("without vocal", "instrumental"),
        ("instrumental", "instrumental"),
        ("choir", "choral"),
        ("choral", "choral"),
        ("background", "background_vocal"),
        ("backing", "background_vocal"),
        ("harmon", "harmonies"),
        ("duet", "harmonies"),
        ("group vocal", "harmonies"),
        ("sparse", "sparse"),
        ("minimal", "sparse"),
        ("spoken", "sparse"),
        ("lead", "lead_vocal"),
        ("singer", "lead_vocal"),
        ("vocal", "lead_vocal"),
        ("rap", "lead_vocal"),
    ),
    "texture_type": (
        ("hybrid", "hybrid"),
        ("mixed", "hybrid"),
        ("blend", "hybrid"),
        ("ambient", "ambient"),
        ("atmospheric", "ambient"),
        ("ethereal", "ambient"),
        ("drone", "ambient"),
        ("acoustic", "acoustic"),
        ("unplugged", "acoustic"),
        ("digital", "synthetic"),
        ("programmed", "synthetic"),
        ("electronic", "synthetic"),
        ("synth", "synthetic"),
        ("electric", "electric"),
        ("distorted", "electric"),
        ("guitar", "electric"),
        ("organic", "organic"),
        ("natural", "organic"),
        ("live", "organic"),
    ),
    "danceability_hint": (
        ("not danceable", "low"),
        ("non-danceable", "low"),
        ("undanceable", "low"),
        ("somewhat", "medium"),
        ("moderate", "medium"),
        ("very danceable", "high"),
        ("danceable", "high"),
        ("groovy", "high"),
        ("club", "high"),
        ("high", "high"),
        ("low", "low"),
        ("medium", "medium"),
    ),
}

ENUM_TYPES: Dict[str, Type[Enum]] = {
    "energy_level": models.EnergyLevel,
    "tempo_feel": models.TempoFeel,
    "vocals_type": models.VocalsType,
    "texture_type": models.TextureType,
    "danceability_hint": models.Danceability,
}


def clean_confidence(
    value: Any, fallback: Optional[ConfidenceLevel] = None
) -> ConfidenceLevel:
    """Validate a confidence label; unparsable labels become ``fallback`` or medium."""

    parsed = ConfidenceLevel.parse(value)
    if parsed is not None:
        return parsed
    if fallback is not None:
        return fallback
    return ConfidenceLevel(config.DEFAULT_CONFIDENCE)


def normalize_physics_value(attribute: str, value: Any) -> Tuple[Enum, bool]:
    """Map free text onto the closed enumeration for ``attribute``.

    Returns the enum member and whether a value was present at all. Text that
    matches nothing still counts as present and takes the default member.
    """

    enum_type = ENUM_TYPES[attribute]
    default = enum_type(config.AUDIO_PHYSICS_DEFAULTS[attribute])
    text = clean_token(value)
    if not text:
        return default, False

    folded = text.replace("-", "_").replace(" ", "_")
    for member in enum_type:
        if member.value == folded:
            return member, True

    for needle, target in SYNONYM_RULES[attribute]:
        if needle in text:
            return enum_type(target), True
    return default, True


def normalize_tags(values: Any) -> Tuple[str, ...]:
    """Lower-case and trim tags, dropping empties and repeats."""

    if isinstance(values, str):
        values = [values]
    if not isinstance(values, (list, tuple)):
        return ()
    cleaned: List[str] = []
    for value in values:
        tag = clean_token(value)
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return tuple(cleaned)


def _display_name(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def normalize(raw: models.RawTrackAnnotation) -> models.NormalizedTrackAnnotation:
    """Clean one raw annotation. Total: malformed fields take defaults."""

    if isinstance(raw, Mapping):
        raw = models.RawTrackAnnotation.from_dict(raw)
    elif not isinstance(raw, models.RawTrackAnnotation):
        raw = models.RawTrackAnnotation()

    physics_raw = raw.audio_physics
    if not isinstance(physics_raw, models.RawAudioPhysics):
        physics_raw = models.RawAudioPhysics()
    tags_raw = raw.semantic_tags
    if not isinstance(tags_raw, models.RawSemanticTags):
        tags_raw = models.RawSemanticTags()

    physics_bucket = ConfidenceLevel.parse(physics_raw.profile_confidence)
    tags_bucket = ConfidenceLevel.parse(tags_raw.profile_confidence)

    physics_values: Dict[str, models.ScalarAttribute] = {}
    for attribute in models.AUDIO_PHYSICS_FIELDS:
        raw_attribute = _raw_attribute(getattr(physics_raw, attribute, None))
        value, observed = normalize_physics_value(attribute, raw_attribute.value)
        physics_values[attribute] = models.ScalarAttribute(
            value=value,
            confidence=clean_confidence(raw_attribute.confidence, physics_bucket),
            observed=observed,
        )

    primary_raw = _raw_attribute(tags_raw.primary_genre)
    primary_genre = clean_token(primary_raw.value)
    language_raw = _raw_attribute(tags_raw.language_code)
    language_code = clean_token(language_raw.value)

    def _tag_list(raw_attribute: Any) -> models.TagList:
        raw_attribute = _raw_attribute(raw_attribute)
        return models.TagList(
            tags=normalize_tags(raw_attribute.value),
            confidence=clean_confidence(raw_attribute.confidence, tags_bucket),
        )

    return models.NormalizedTrackAnnotation(
        song_name=_display_name(raw.song_name, config.UNKNOWN_SONG),
        artist_name=_display_name(raw.artist_name, config.UNKNOWN_ARTIST),
        audio_physics=models.NormalizedAudioPhysics(
            profile_confidence=physics_bucket,
            **physics_values,
        ),
        semantic_tags=models.NormalizedSemanticTags(
            primary_genre=models.ScalarAttribute(
                value=primary_genre,
                confidence=clean_confidence(primary_raw.confidence, tags_bucket),
                observed=bool(primary_genre),
            ),
            secondary_genres=_tag_list(tags_raw.secondary_genres),
            emotional_tags=_tag_list(tags_raw.emotional_tags),
            cognitive_tags=_tag_list(tags_raw.cognitive_tags),
            somatic_tags=_tag_list(tags_raw.somatic_tags),
            language_code=models.ScalarAttribute(
                value=language_code,
                confidence=clean_confidence(language_raw.confidence, tags_bucket),
                observed=bool(language_code),
            ),
        ),
    )


def _raw_attribute(value: Any) -> models.RawAttribute:
    if isinstance(value, models.RawAttribute):
        return value
    # Bare values without a confidence label
    return models.RawAttribute(value=value)
