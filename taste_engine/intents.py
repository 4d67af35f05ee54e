"""Rule-based derivation of listening intents from aggregated mood axes."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from . import config, models, utils
from .aggregator import MoodAggregate, physics_votes
from .normalizer import normalize_tags


@dataclass(frozen=True)
class IntentRule:
    """Mood-tag combination that signals a listening purpose.

    The emotional axis is mandatory; cognitive and somatic tags are optional
    and only referenced when non-empty.
    """

    name: str
    emotional: Tuple[str, ...]
    cognitive: Tuple[str, ...] = ()
    somatic: Tuple[str, ...] = ()

    def axes(self) -> Dict[str, Tuple[str, ...]]:
        return {
            axis: tags
            for axis, tags in (
                ("emotional", self.emotional),
                ("cognitive", self.cognitive),
                ("somatic", self.somatic),
            )
            if tags
        }


DEFAULT_INTENT_RULES: Tuple[IntentRule, ...] = (
    IntentRule("comfort", emotional=("sad", "melancholic"), somatic=("tender",)),
    IntentRule("reflect", emotional=("melancholic",), cognitive=("reflective",)),
    IntentRule("decompress", emotional=("calm",), somatic=("grounded",)),
    IntentRule("focus", emotional=("energized",), cognitive=("focused",)),
    IntentRule(
        "meditate",
        emotional=("calm", "peaceful"),
        cognitive=("meditative",),
        somatic=("relaxing",),
    ),
    IntentRule("uplift", emotional=("joyful", "uplifting"), somatic=("energizing",)),
    IntentRule("romance", emotional=("romantic",), somatic=("tender", "sensual")),
    IntentRule("release", emotional=("angry", "aggressive"), somatic=("tense", "energizing")),
)


def load_intent_rules(payload: Iterable[Mapping[str, Any]]) -> Tuple[IntentRule, ...]:
    """Build a rule table from plain mappings (for example a decoded JSON file).

    Raises ValueError on entries without a name or emotional tags, since a
    broken rule table is a configuration error rather than bad annotation data.
    """

    rules: List[IntentRule] = []
    for index, entry in enumerate(payload):
        if not isinstance(entry, Mapping):
            raise ValueError(f"Intent rule #{index} must be an object")
        name = str(entry.get("name") or "").strip()
        emotional = normalize_tags(entry.get("emotional"))
        if not name or not emotional:
            raise ValueError(f"Intent rule #{index} needs a name and emotional tags")
        rules.append(
            IntentRule(
                name=name,
                emotional=emotional,
                cognitive=normalize_tags(entry.get("cognitive")),
                somatic=normalize_tags(entry.get("somatic")),
            )
        )
    return tuple(rules)


@dataclass(frozen=True)
class TrackMatch:
    index: int
    track: models.NormalizedTrackAnnotation
    matched: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    axis_weights: Dict[str, float] = field(default_factory=dict)
    score: float = 0.0


def eligible_tags(
    rule: IntentRule, moods: Mapping[str, MoodAggregate]
) -> Optional[Dict[str, FrozenSet[str]]]:
    """Rule tags whose corpus-wide weight clears the eligibility threshold.

    None when any referenced axis has no eligible tag: the rule cannot fire.
    """

    eligible: Dict[str, FrozenSet[str]] = {}
    for axis, tags in rule.axes().items():
        aggregate = moods.get(axis)
        if aggregate is None:
            return None
        passing = frozenset(
            tag for tag in tags if aggregate.weight_of(tag) >= config.INTENT_ELIGIBILITY_THRESHOLD
        )
        if not passing:
            return None
        eligible[axis] = passing
    return eligible


def match_track(
    index: int,
    track: models.NormalizedTrackAnnotation,
    eligible: Mapping[str, FrozenSet[str]],
) -> Optional[TrackMatch]:
    matched: Dict[str, Tuple[str, ...]] = {}
    for axis, allowed in eligible.items():
        hits = tuple(tag for tag in track.semantic_tags.mood_axis(axis).tags if tag in allowed)
        if hits:
            matched[axis] = hits

    if "emotional" not in matched:
        return None
    if len(matched) < min(config.INTENT_MIN_MATCHED_AXES, len(eligible)):
        return None

    axis_weights = {
        axis: track.semantic_tags.mood_axis(axis).confidence.weight for axis in matched
    }
    return TrackMatch(
        index=index,
        track=track,
        matched=matched,
        axis_weights=axis_weights,
        score=math.fsum(axis_weights.values()) / len(axis_weights),
    )


def derive_intents(
    moods: Mapping[str, MoodAggregate],
    tracks: Sequence[models.NormalizedTrackAnnotation],
    rules: Sequence[IntentRule] = DEFAULT_INTENT_RULES,
    *,
    logger: Optional[Any] = None,
) -> Tuple[models.Intent, ...]:
    """Score every rule against the corpus and return the surviving intents.

    Weights are normalized over all intents that fired; intents below
    ``INTENT_MIN_WEIGHT`` are dropped without renormalizing the rest.
    """

    matches_by_rule: List[Tuple[IntentRule, List[TrackMatch]]] = []
    for rule in rules:
        eligible = eligible_tags(rule, moods)
        if eligible is None:
            continue
        matches = [
            match
            for match in (match_track(index, track, eligible) for index, track in enumerate(tracks))
            if match is not None
        ]
        if matches:
            matches_by_rule.append((rule, matches))

    scores = [math.fsum(match.score for match in matches) for _, matches in matches_by_rule]
    total = math.fsum(scores)
    if total <= 0:
        return ()

    candidates = []
    for (rule, matches), score in zip(matches_by_rule, scores):
        weight = score / total
        if weight < config.INTENT_MIN_WEIGHT:
            continue
        candidates.append((rule, matches, score, weight))
    candidates.sort(key=lambda item: item[3], reverse=True)

    intents = tuple(
        _build_intent(rule, matches, score, weight)
        for rule, matches, score, weight in candidates
    )

    if logger:
        logger.debug(
            "intent_derivation_complete",
            extra={
                "fired": [rule.name for rule, _ in matches_by_rule],
                "kept": [intent.name for intent in intents],
            },
        )
    return intents


def _build_intent(
    rule: IntentRule,
    matches: Sequence[TrackMatch],
    score: float,
    weight: float,
) -> models.Intent:
    ranked = sorted(matches, key=lambda match: (-match.score, match.index))

    axis_evidence: Dict[str, Tuple[models.TagEvidence, ...]] = {}
    for axis in rule.axes():
        contributions = [
            (tag, match.axis_weights[axis])
            for match in matches
            for tag in match.matched.get(axis, ())
        ]
        tag_scores = utils.tally(contributions)
        axis_total = utils.total_of(contributions)
        if not tag_scores or axis_total <= 0:
            continue
        axis_evidence[axis] = tuple(
            models.TagEvidence(
                tag=tag,
                weight=round(tag_score / axis_total, config.DISTRIBUTION_DECIMALS),
                example_tracks=_unique_refs(
                    (match for match in ranked if tag in match.matched.get(axis, ())),
                    config.INTENT_TAG_EXAMPLES,
                ),
            )
            for tag, tag_score in utils.rank(tag_scores)[: config.INTENT_TOP_TAGS]
        )

    genre_counts = utils.tally(
        (match.track.semantic_tags.primary_genre.value, 1.0)
        for match in matches
        if match.track.semantic_tags.primary_genre.observed
    )
    genre_hints = tuple(genre for genre, _ in utils.rank(genre_counts)[: config.INTENT_GENRE_HINTS])

    contributing = [match.track for match in matches]
    physics_constraints: Dict[str, str] = {}
    for attribute in models.AUDIO_PHYSICS_FIELDS:
        winner, _ = utils.weighted_vote(physics_votes(contributing, attribute))
        if winner is not None:
            physics_constraints[attribute] = winner

    return models.Intent(
        name=rule.name,
        intent_score=score,
        intent_weight=weight,
        confidence=utils.ratio_to_confidence(weight),
        axis_evidence=axis_evidence,
        genre_hints=genre_hints,
        physics_constraints=physics_constraints,
        example_tracks=_unique_refs(ranked, config.INTENT_EXAMPLE_TRACKS),
        contributing_tracks=len(matches),
    )


def _unique_refs(matches: Iterable[TrackMatch], limit: int) -> Tuple[models.TrackRef, ...]:
    seen = set()
    refs: List[models.TrackRef] = []
    for match in matches:
        ref = match.track.ref
        if ref.dedup_key() in seen:
            continue
        seen.add(ref.dedup_key())
        refs.append(ref)
        if len(refs) >= limit:
            break
    return tuple(refs)
