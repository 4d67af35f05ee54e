from taste_engine import cache, config
from taste_engine.history import (
    collect_taste_profile,
    match_annotations,
    track_labels,
)


def _spotify_track(name, *artists):
    return {"name": name, "artists": [{"name": artist} for artist in artists]}


class FakeHistoryClient:
    def __init__(self, tracks):
        self.tracks = tracks
        self.calls = []

    def get_top_tracks(self, limit=config.TRACK_HISTORY_LIMIT, time_range=config.TRACK_HISTORY_TIME_RANGE):
        self.calls.append((limit, time_range))
        return list(self.tracks[:limit])


class FakeAnnotationClient:
    def __init__(self, annotations, drop=()):
        self.annotations = annotations
        self.drop = set(drop)
        self.batches = []

    def annotate_tracks(self, track_labels):
        self.batches.append(list(track_labels))
        return [
            self.annotations[label]
            for label in track_labels
            if label in self.annotations and label not in self.drop
        ]


def _annotations(make_track):
    return {
        "Track A by Artist A": make_track(
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
        "Track B by Artist B": make_track(
            "Track B",
            "Artist B",
            genre="pop",
            genre_conf="medium",
            energy_level=("medium", "medium"),
            emotional=["calm"],
            emotional_conf="low",
        ),
        "Track C by Artist C, Guest": make_track(
            "Track C", "Artist C, Guest", genre="jazz", genre_conf="low"
        ),
    }


HISTORY = [
    _spotify_track("Track A", "Artist A"),
    _spotify_track("Track B", "Artist B"),
    _spotify_track("track a", "artist a"),
    _spotify_track("Track C", "Artist C", "Guest"),
    _spotify_track("", "Nobody"),
    {"name": "No Artists", "artists": []},
]


def test_track_labels_deduplicate_and_join_artists():
    assert track_labels(HISTORY) == [
        "Track A by Artist A",
        "Track B by Artist B",
        "Track C by Artist C, Guest",
    ]


def test_collect_taste_profile_end_to_end(make_track):
    history = FakeHistoryClient(HISTORY)
    annotator = FakeAnnotationClient(_annotations(make_track))

    result = collect_taste_profile(history, annotator, batch_size=2)

    assert history.calls == [(config.TRACK_HISTORY_LIMIT, config.TRACK_HISTORY_TIME_RANGE)]
    assert annotator.batches == [
        ["Track A by Artist A", "Track B by Artist B"],
        ["Track C by Artist C, Guest"],
    ]
    profile = result.profile
    assert profile.track_count == 3
    assert profile.genre_profile.primary_genres == ("pop", "jazz")
    assert [intent.name for intent in profile.intents_ranked] == ["focus"]
    assert [raw.song_name for raw in result.annotations] == ["Track A", "Track B", "Track C"]
    assert result.diagnostics == {
        "history_tracks": 6,
        "unique_tracks": 3,
        "cache_hits": 0,
        "annotation_batches": 2,
        "annotated_tracks": 3,
        "unannotated": [],
    }


def test_cached_annotations_skip_the_annotator(make_track):
    store = cache.InMemoryCache()
    annotator = FakeAnnotationClient(_annotations(make_track))

    first = collect_taste_profile(FakeHistoryClient(HISTORY), annotator, store)
    second = collect_taste_profile(FakeHistoryClient(HISTORY), annotator, store)

    assert len(annotator.batches) == 1
    assert second.diagnostics["cache_hits"] == 3
    assert second.diagnostics["annotation_batches"] == 0
    assert second.profile == first.profile


def test_missing_annotations_are_reported(make_track):
    annotator = FakeAnnotationClient(_annotations(make_track), drop={"Track B by Artist B"})

    result = collect_taste_profile(FakeHistoryClient(HISTORY), annotator)

    assert result.diagnostics["unannotated"] == ["Track B by Artist B"]
    assert result.diagnostics["annotated_tracks"] == 2
    assert result.profile.track_count == 2


def test_empty_history_gives_default_profile():
    result = collect_taste_profile(FakeHistoryClient([]), FakeAnnotationClient({}))

    assert result.profile.track_count == 0
    assert result.profile.intents_ranked == ()
    assert result.diagnostics["annotation_batches"] == 0


def test_collect_logs_diagnostics():
    class RecordingLogger:
        def __init__(self):
            self.events = []

        def debug(self, event, extra=None):
            self.events.append(event)

    logger = RecordingLogger()
    collect_taste_profile(FakeHistoryClient([]), FakeAnnotationClient({}), logger=logger)

    assert logger.events[-1] == "history_profile_complete"
    assert "profile_composed" in logger.events


def test_match_annotations_by_name_then_position():
    batch = ["Song One by Band", "Song Two by Band"]

    by_name = match_annotations(
        batch,
        [
            {"song_name": "song two", "artist_name": "BAND"},
            {"song_name": "Song One", "artist_name": "Band"},
        ],
    )
    assert by_name["Song One by Band"]["song_name"] == "Song One"
    assert by_name["Song Two by Band"]["song_name"] == "song two"

    renamed = match_annotations(
        batch,
        [
            {"song_name": "Song 1", "artist_name": "The Band"},
            {"song_name": "Song 2", "artist_name": "The Band"},
        ],
    )
    assert renamed["Song One by Band"]["song_name"] == "Song 1"
    assert renamed["Song Two by Band"]["song_name"] == "Song 2"


def test_match_annotations_ignores_unknown_results_when_counts_differ():
    matched = match_annotations(
        ["Song One by Band", "Song Two by Band"],
        [{"song_name": "Elsewhere", "artist_name": "Other"}],
    )
    assert matched == {}
