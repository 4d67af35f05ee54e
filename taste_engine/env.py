"""Load API credentials from a .env file and the process environment."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Iterable, Optional

# Friendly spellings people put in .env files, mapped to the variables we read.
KEY_ALIASES = {
    "claude": "CLAUDE_API_KEY",
    "claude api key": "CLAUDE_API_KEY",
    "anthropic": "CLAUDE_API_KEY",
    "anthropic api key": "CLAUDE_API_KEY",
    "anthropic_api_key": "CLAUDE_API_KEY",
    "spotify token": "SPOTIFY_ACCESS_TOKEN",
    "spotify access token": "SPOTIFY_ACCESS_TOKEN",
    "access token": "SPOTIFY_ACCESS_TOKEN",
}


def load_env(path: Optional[Path] = None) -> Dict[str, str]:
    """Read KEY=VALUE lines from ``path`` (default: repository ``.env``).

    Values already present in ``os.environ`` win; file values are exported
    with ``setdefault`` so later lookups see them. Returns what the file held.
    """

    env_path = Path(path) if path else Path(__file__).resolve().parent.parent / ".env"
    if not env_path.exists():
        return {}

    values: Dict[str, str] = {}
    for line in env_path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        if line.startswith("export "):
            line = line[len("export "):]
        raw_key, raw_value = line.split("=", 1)
        key = canonical_key(raw_key)
        if not key:
            continue
        value = raw_value.strip().strip('"').strip("'")
        values[key] = value
        os.environ.setdefault(key, value)
    return values


def require(names: Iterable[str]) -> Dict[str, str]:
    """Return the named variables, raising RuntimeError if any is unset."""

    names = list(names)
    missing = [name for name in names if not os.environ.get(name)]
    if missing:
        raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}")
    return {name: os.environ[name] for name in names}


def canonical_key(key: str) -> Optional[str]:
    lowered = key.strip().lower()
    if not lowered:
        return None
    return KEY_ALIASES.get(lowered, lowered.replace(" ", "_").upper())
