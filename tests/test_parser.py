"""Tests for provider parser."""

import pytest
from listening_profile.errors import MalformedInputError
from listening_profile.models import Artist
from listening_profile.parser import (
    build_inputs,
    load_collection,
    parse_artist,
    parse_audio_features,
    parse_play_history,
    parse_track,
)


class TestParseRecords:
    def test_artist(self):
        artist = parse_artist({"id": "a1", "name": "X", "genres": ["grime"], "popularity": 61})
        assert artist.genres == ("grime",)
        assert artist.popularity == 61.0

    def test_artist_null_popularity(self):
        artist = parse_artist({"id": "a1", "genres": ["dub"], "popularity": None})
        assert artist.popularity == 0.0
        assert artist.genres == ("dub",)

    def test_artist_without_id(self):
        with pytest.raises(MalformedInputError):
            parse_artist({"name": "X"})

    def test_track_resolves_full_artist(self):
        full = Artist(id="a1", name="X", genres=("grime",), popularity=61)
        track = parse_track(
            {"id": "t1", "artists": [{"id": "a1", "name": "X"}, {"id": "a2", "name": "Y"}]},
            {"a1": full},
        )
        assert track.primary_artist is full
        assert track.artists[1].genres == ()

    def test_track_without_id(self):
        with pytest.raises(MalformedInputError):
            parse_track({"name": "No Id"})

    def test_audio_features_passthrough(self):
        sample = parse_audio_features(
            {"id": "t1", "valence": 0.4, "energy": 0.6, "tempo": 97.5, "key": 5, "mode": 1}
        )
        assert sample.track_id == "t1"
        assert sample.key == 5
        assert sample.liveness is None

    @pytest.mark.parametrize("raw", [
        {"id": "t1", "valence": 1.5, "energy": 0.5, "tempo": 120},
        {"id": "t1", "valence": 0.5, "energy": 0.5},
        {"id": "t1", "valence": 0.5, "energy": 0.5, "tempo": 0},
        {"valence": 0.5, "energy": 0.5, "tempo": 120},
    ])
    def test_audio_features_rejected(self, raw):
        with pytest.raises(MalformedInputError):
            parse_audio_features(raw)


class TestPlayHistory:
    def test_sorted_oldest_first(self):
        items = [
            {"played_at": "2024-01-02T10:00:00Z", "track": {"id": "t2"}},
            {"played_at": "2024-01-01T10:00:00Z", "track": {"id": "t1"}},
        ]
        events = parse_play_history(items)
        assert [e.track_id for e in events] == ["t1", "t2"]

    def test_bad_items_skipped(self, capsys):
        items = [
            {"played_at": "never", "track": {"id": "t1"}},
            {"played_at": "2024-01-01T10:00:00Z"},
            {"played_at": "2024-01-01T11:00:00Z", "track": {"id": "t3"}},
        ]
        events = parse_play_history(items)
        assert [e.track_id for e in events] == ["t3"]
        assert capsys.readouterr().out.count("Warning: Skipping play event") == 2


class TestLoadCollection:
    def test_missing_file(self, tmp_path):
        assert load_collection(str(tmp_path / "nope.json")) is None

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        assert load_collection(str(path)) is None

    def test_fixture_loads(self, collection_path):
        collection = load_collection(str(collection_path))
        assert "windows" in collection


class TestBuildInputs:
    def test_fixture(self, collection_path):
        data, windows = build_inputs(load_collection(str(collection_path)))

        assert [a.id for a in data.top_artists] == ["ar1", "ar2"]
        assert [t.id for t in data.top_tracks] == ["tr1", "tr2", "tr3"]
        assert sorted(data.audio_features) == ["tr1", "tr2", "tr3"]
        assert [p.track_id for p in data.recently_played] == ["tr1", "tr1", "tr2"]
        assert data.claimed_genres == ("jazz",)

        assert [t.id for t in windows.medium_term] == ["tr1", "tr2", "tr3"]
        assert windows.long_term[0].primary_artist.genres == ("jazz",)

    def test_empty_collection(self):
        data, windows = build_inputs({})
        assert data.top_artists == ()
        assert data.recently_played == ()
        assert len(data.audio_features) == 0
        assert windows.short_term == ()
