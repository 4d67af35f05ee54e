import itertools
import math

import pytest

from taste_engine import cache, env, utils
from taste_engine.models import ConfidenceLevel


def test_normalize_name_strips_and_casefolds():
    assert utils.normalize_name("  The Comet  ") == "the comet"


def test_clean_token_rejects_non_strings():
    assert utils.clean_token("  Dream Pop ") == "dream pop"
    assert utils.clean_token(42) == ""
    assert utils.clean_token(None) == ""


def test_tally_is_independent_of_contribution_order():
    contributions = [("pop", 0.1), ("rock", 0.3), ("pop", 0.2), ("pop", 0.6), ("rock", 0.7)]
    expected = utils.tally(contributions)
    for ordering in itertools.permutations(contributions):
        assert utils.tally(ordering) == expected
    assert list(expected) == ["pop", "rock"]


def test_rank_keeps_first_seen_order_on_ties():
    ranked = utils.rank({"b": 1.0, "a": 1.0, "c": 2.0})
    assert [key for key, _ in ranked] == ["c", "b", "a"]


@pytest.mark.parametrize(
    "ratio, expected",
    [
        (1.0, ConfidenceLevel.HIGH),
        (0.67, ConfidenceLevel.HIGH),
        (0.669, ConfidenceLevel.MEDIUM),
        (0.30, ConfidenceLevel.MEDIUM),
        (0.299, ConfidenceLevel.LOW),
        (0.0, ConfidenceLevel.LOW),
    ],
)
def test_ratio_to_confidence_thresholds(ratio, expected):
    assert utils.ratio_to_confidence(ratio) is expected


def test_weighted_vote_returns_winner_and_share():
    winner, ratio = utils.weighted_vote([("high", 1.0), ("medium", 0.6), ("high", 0.3)])
    assert winner == "high"
    assert ratio == pytest.approx(1.3 / 1.9)


def test_weighted_vote_with_no_votes():
    assert utils.weighted_vote([]) == (None, 0.0)


def test_distribution_handles_zero_total():
    assert utils.distribution({"a": 0.0}, 0.0) == {"a": 0.0}


def test_round_distribution_sums_to_one():
    shares = {"a": 1 / 3, "b": 1 / 3, "c": 1 / 3}
    rounded = utils.round_distribution(shares)
    assert math.fsum(rounded.values()) == pytest.approx(1.0)
    # equal remainders go to the alphabetically first key
    assert rounded == {"a": 0.34, "b": 0.33, "c": 0.33}


def test_round_distribution_ignores_insertion_order():
    shares = {"c": 1 / 3, "a": 1 / 3, "b": 1 / 3}
    assert utils.round_distribution(shares) == {"c": 0.33, "a": 0.34, "b": 0.33}


def test_round_distribution_keeps_many_small_shares_summing_to_one():
    shares = {f"genre{i}": 1 / 7 for i in range(7)}
    rounded = utils.round_distribution(shares)
    assert math.fsum(rounded.values()) == pytest.approx(1.0)
    assert all(value in (0.14, 0.15) for value in rounded.values())


def test_clamp_bounds_values():
    assert utils.clamp(1.5) == 1.0
    assert utils.clamp(-0.2) == 0.0
    assert utils.clamp(0.42) == 0.42


def test_cache_entries_expire(monkeypatch):
    store = cache.InMemoryCache()
    clock = [100.0]
    monkeypatch.setattr(cache, "monotonic", lambda: clock[0])

    store.set("annotations", "key", "value", ttl_seconds=10)
    assert store.get("annotations", "key") == "value"
    clock[0] = 111.0
    assert store.get("annotations", "key") is None


def test_cache_namespaces_are_separate():
    store = cache.InMemoryCache()
    store.set("annotations", "key", "a")
    assert store.get("top_tracks", "key") is None
    store.clear()
    assert store.get("annotations", "key") is None


def test_build_cache_key_casefolds_parts():
    assert cache.build_cache_key(" Song by Artist ", 50) == cache.build_cache_key("song BY artist", "50")


def test_load_env_reads_aliases_without_overriding(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# credentials\n"
        "anthropic = 'sk-test'\n"
        "export SPOTIFY_ACCESS_TOKEN=\"token-from-file\"\n"
        "not a pair\n"
    )
    # set then delete so monkeypatch restores whatever load_env exports
    monkeypatch.setenv("CLAUDE_API_KEY", "placeholder")
    monkeypatch.delenv("CLAUDE_API_KEY")
    monkeypatch.setenv("SPOTIFY_ACCESS_TOKEN", "token-from-env")

    values = env.load_env(env_file)

    assert values == {"CLAUDE_API_KEY": "sk-test", "SPOTIFY_ACCESS_TOKEN": "token-from-file"}
    assert env.require(["CLAUDE_API_KEY", "SPOTIFY_ACCESS_TOKEN"]) == {
        "CLAUDE_API_KEY": "sk-test",
        "SPOTIFY_ACCESS_TOKEN": "token-from-env",
    }


def test_load_env_missing_file_returns_empty(tmp_path):
    assert env.load_env(tmp_path / "absent.env") == {}


def test_require_reports_missing_names(monkeypatch):
    monkeypatch.delenv("CLAUDE_API_KEY", raising=False)
    with pytest.raises(RuntimeError, match="CLAUDE_API_KEY"):
        env.require(["CLAUDE_API_KEY"])
