"""Live clients for Claude track annotation and Spotify listening history."""
from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import requests
from anthropic import Anthropic
from anthropic._exceptions import APIStatusError

from . import cache, config, env
from .history import AnnotationClientProtocol, HistoryClientProtocol

ANNOTATION_SYSTEM_PROMPT = """You are a music attribute inference engine.
For every "song by artist" string you receive, infer its audio physics,
genres, language and three mood axes. Tracks may be in any language; do not
privilege English. Give every attribute its own confidence: high for widely
recognized characteristics, medium for reasonable inference, low when guessing.

Respond with raw JSON only:
{"analyzed_tracks": [{
  "song_name": "<string>",
  "artist_name": "<string>",
  "audio_physics": {
    "energy_level": "low|low_medium|medium|medium_high|high", "energy_confidence": "low|medium|high",
    "tempo_feel": "slow|mid|fast", "tempo_confidence": "low|medium|high",
    "vocals_type": "instrumental|sparse|lead_vocal|harmonies|choral|background_vocal", "vocals_confidence": "low|medium|high",
    "texture_type": "organic|acoustic|electric|synthetic|hybrid|ambient", "texture_confidence": "low|medium|high",
    "danceability_hint": "low|medium|high", "danceability_confidence": "low|medium|high",
    "audio_physics_profile_confidence": "low|medium|high"
  },
  "semantic_tags": {
    "primary_genre": "<string>", "primary_genre_confidence": "low|medium|high",
    "secondary_genres": ["<string>"], "secondary_genres_confidence": "low|medium|high",
    "emotional_tags": ["<string>"], "emotional_confidence": "low|medium|high",
    "cognitive_tags": ["<string>"], "cognitive_confidence": "low|medium|high",
    "somatic_tags": ["<string>"], "somatic_confidence": "low|medium|high",
    "language_iso_639_1": "<string>", "language_confidence": "low|medium|high",
    "semantic_tags_profile_confidence": "low|medium|high"
  }
}]}
Use lowercase for genres and tags, 1-3 tags per mood axis, at most 3
secondary genres. If the language is unknown use "und" with low confidence."""


@dataclass
class ClaudeAnnotationClient(AnnotationClientProtocol):
    """Annotation client backed by Claude's Messages API."""

    api_key: str
    model: str = config.CLAUDE_ANNOTATION_MODEL
    max_retries: int = config.CLAUDE_MAX_RETRIES
    max_tokens: int = config.CLAUDE_MAX_TOKENS

    def __post_init__(self) -> None:
        self._client = Anthropic(api_key=self.api_key)

    def annotate_tracks(self, track_labels: Sequence[str]) -> List[Dict[str, Any]]:
        if not track_labels:
            return []
        response = self._call_claude(json.dumps({"tracks": list(track_labels)}))
        tracks = response.get("analyzed_tracks", []) if isinstance(response, dict) else response
        if not isinstance(tracks, list):
            raise RuntimeError("Claude response did not contain an 'analyzed_tracks' list")
        return [item for item in tracks if isinstance(item, dict)]

    def _call_claude(self, user_content: str) -> Any:
        last_error: Optional[Exception] = None
        for attempt in range(self.max_retries):
            try:
                response = self._client.messages.create(
                    model=self.model,
                    system=ANNOTATION_SYSTEM_PROMPT,
                    messages=[{"role": "user", "content": user_content}],
                    max_tokens=self.max_tokens,
                )
                text = "".join(
                    block.text
                    for block in response.content or []
                    if getattr(block, "type", "") == "text" and getattr(block, "text", None)
                ).strip()
                if not text:
                    raise RuntimeError("Claude response contained no text content")
                return _safe_json_loads(text)
            except APIStatusError as error:
                last_error = error
                if error.status_code in {429, 500, 503} and attempt + 1 < self.max_retries:
                    time.sleep(1.5 * (attempt + 1))
                    continue
                break
            except (RuntimeError, json.JSONDecodeError) as error:
                last_error = error
                time.sleep(1.5 * (attempt + 1))
        raise RuntimeError(f"Claude annotation failed after {self.max_retries} attempts: {last_error}")


class SpotifyHistoryClient(HistoryClientProtocol):
    """Reads the signed-in user's top tracks from the Spotify Web API.

    The OAuth access token is obtained elsewhere and passed in as-is.
    """

    api_base = "https://api.spotify.com/v1"

    def __init__(
        self,
        access_token: str,
        *,
        session: Optional[requests.Session] = None,
        cache_client: Optional[cache.InMemoryCache] = None,
        timeout: float = 10.0,
    ) -> None:
        self.access_token = access_token
        self.session = session or requests.Session()
        self.cache_client = cache_client
        self.timeout = timeout

    def get_top_tracks(
        self,
        limit: int = config.TRACK_HISTORY_LIMIT,
        time_range: str = config.TRACK_HISTORY_TIME_RANGE,
    ) -> List[Dict[str, Any]]:
        namespace = config.CACHE_NAMESPACES["top_tracks"]
        cache_key = cache.build_cache_key(self.access_token[-12:], limit, time_range)
        if self.cache_client:
            cached = self.cache_client.get(namespace, cache_key)
            if cached is not None:
                return cached

        data = self._request(
            "GET",
            "/me/top/tracks",
            params={"limit": min(limit, config.TRACK_HISTORY_LIMIT), "time_range": time_range},
        )
        items = [item for item in data.get("items", []) if isinstance(item, dict)]
        if self.cache_client:
            self.cache_client.set(namespace, cache_key, items)
        return items

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        response = self.session.request(
            method,
            f"{self.api_base}{path}",
            headers={"Authorization": f"Bearer {self.access_token}"},
            params=params,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()


def build_live_clients(
    *,
    cache_client: Optional[cache.InMemoryCache] = None,
    annotation_model: str = config.CLAUDE_ANNOTATION_MODEL,
) -> Dict[str, Any]:
    """Wire the Claude and Spotify clients from ``.env`` / environment keys."""

    env.load_env()
    keys = env.require(["CLAUDE_API_KEY", "SPOTIFY_ACCESS_TOKEN"])
    cache_client = cache_client or cache.InMemoryCache()

    return {
        "annotation_client": ClaudeAnnotationClient(
            api_key=keys["CLAUDE_API_KEY"],
            model=annotation_model,
        ),
        "history_client": SpotifyHistoryClient(
            keys["SPOTIFY_ACCESS_TOKEN"],
            cache_client=cache_client,
        ),
        "cache_client": cache_client,
    }


def _safe_json_loads(payload: str) -> Any:
    """Parse model output, tolerating code fences or prose around the object."""

    cleaned = payload.replace("```json", "").replace("```", "").strip()
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        start = cleaned.find("{")
        end = cleaned.rfind("}")
        if start != -1 and end > start:
            return json.loads(cleaned[start : end + 1])
        raise
