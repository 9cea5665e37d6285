"""Tests for profile builder."""

from datetime import datetime, timedelta, timezone

import pytest
from listening_profile.models import (
    AcousticSample,
    Artist,
    ListeningData,
    PlayEvent,
    RankedTrackWindows,
    Track,
)
from listening_profile.parser import build_inputs, load_collection
from listening_profile.profile_builder import ListeningProfileBuilder, build_listening_profile


def _make_track(track_id, genres=(), artist_id=None):
    artist = Artist(id=artist_id or f"artist-{track_id}", genres=tuple(genres), popularity=50)
    return Track(id=track_id, name=f"Track {track_id}", artists=(artist,), duration_ms=200000)


def _make_sample(track_id, valence=0.5, energy=0.5, tempo=120.0):
    return AcousticSample(track_id=track_id, valence=valence, energy=energy, tempo=tempo)


def _make_plays(tracks, start=None):
    start = start or datetime(2024, 6, 1, 12, tzinfo=timezone.utc)
    return tuple(
        PlayEvent(track=track, played_at=start + timedelta(minutes=5 * i))
        for i, track in enumerate(tracks)
    )


class TestEmptyInputs:
    def test_defaults_without_exceptions(self):
        profile = build_listening_profile(ListeningData())

        assert profile.identity.actual_top_genres == ()
        assert profile.emotional.average_valence == 0.5
        assert profile.emotional.average_energy == 0.5
        assert profile.emotional.coping_indicators == ()
        assert profile.behavioral.circadian.night_ratio == 0.0
        assert profile.behavioral.circadian.average_night_valence == 0.5
        assert profile.behavioral.comfort_zone.bpm_range == (60.0, 180.0)
        assert profile.behavioral.comfort_zone.bpm_std == 0.0
        assert profile.temporal.total_listening_time == 0
        assert profile.temporal.phase_transitions == ()
        assert profile.temporal.drift == "consistent"
        assert profile.temporal.overall_stability == 1.0
        assert [w.period for w in profile.temporal.quarterly_breakdown] == [
            "Full Year", "Mid-Year", "Recent"
        ]

    def test_obsession_loops_always_empty(self):
        assert build_listening_profile(ListeningData()).behavioral.obsession_loops == ()


class TestAlignment:
    def test_plays_without_samples_only_count_as_ids(self):
        sad = _make_track("sad")
        unknown = _make_track("unknown")
        plays = _make_plays([sad, unknown, sad, unknown, sad, sad, sad])
        data = ListeningData(
            recently_played=plays,
            audio_features={"sad": _make_sample("sad", valence=0.2)},
        )
        emotional = ListeningProfileBuilder(data).build_emotional()

        assert len(emotional.energy_arc) == 5
        assert emotional.coping_indicators[0].kind == "repeat_loop"
        assert emotional.coping_indicators[0].severity == pytest.approx(0.5)

    def test_arc_dates_follow_plays(self):
        tracks = [_make_track("a"), _make_track("b")]
        plays = _make_plays(tracks)
        data = ListeningData(
            recently_played=plays,
            audio_features=[_make_sample("a"), _make_sample("b")],
        )
        emotional = ListeningProfileBuilder(data).build_emotional()
        assert [p.date for p in emotional.energy_arc] == [
            plays[0].played_at.isoformat(), plays[1].played_at.isoformat()
        ]


class TestComfortZone:
    def test_bpm_stats_from_top_tracks(self):
        tracks = (_make_track("a", ["dub"]), _make_track("b", ["dub"]))
        data = ListeningData(
            top_tracks=tracks,
            audio_features=[_make_sample("a", tempo=100.0), _make_sample("b", tempo=140.0)],
        )
        builder = ListeningProfileBuilder(data)
        comfort = builder.build_comfort_zone(builder.build_identity())

        assert comfort.bpm_std == pytest.approx(20.0)
        assert comfort.bpm_range == (100.0, 140.0)
        assert comfort.artist_loyalty == pytest.approx(0.0)


class TestBuild:
    def test_repeat_builds_are_equal(self, collection_path):
        data, windows = build_inputs(load_collection(str(collection_path)))
        first = build_listening_profile(data, windows)
        second = build_listening_profile(data, windows)
        assert first == second

    def test_phase_shifts_stay_empty(self):
        windows = RankedTrackWindows(
            long_term=[_make_track("l", ["jazz"])],
            medium_term=[_make_track("m", ["rock"])],
            short_term=[_make_track("s", ["pop"])],
        )
        profile = build_listening_profile(ListeningData(), windows)

        assert len(profile.temporal.phase_transitions) == 2
        assert profile.behavioral.phase_shifts == ()

    def test_collection_profile(self, collection_path):
        data, windows = build_inputs(load_collection(str(collection_path)))
        profile = build_listening_profile(data, windows)

        assert profile.identity.summary == "mismatch"
        assert profile.identity.claimed_genres == ("jazz",)
        assert profile.behavioral.circadian.night_ratio == pytest.approx(2 / 3)
        assert profile.behavioral.circadian.confrontation == "nocturnal_sadness"
        assert profile.behavioral.comfort_zone.bpm_range == (90.0, 128.0)
        assert profile.temporal.total_listening_time == 11
        assert profile.temporal.active_days == 3
        assert profile.temporal.peak_listening_hour == 3
        assert profile.temporal.drift == "multi_phase"
        assert len(profile.temporal.phase_transitions) == 2

    def test_claimed_genres_override(self, collection_path):
        data, windows = build_inputs(load_collection(str(collection_path)))
        profile = build_listening_profile(data, windows, claimed_genres=["shoegaze"])
        assert profile.identity.claimed_genres == ("shoegaze",)
        assert profile.identity.summary != "mismatch"

    def test_windows_default_to_empty(self):
        data = ListeningData(top_tracks=(_make_track("a", ["dub"]),))
        profile = ListeningProfileBuilder(data).build()
        assert all(w.top_genres == () for w in profile.temporal.quarterly_breakdown)

    def test_to_dict_is_plain(self):
        profile = build_listening_profile(ListeningData())
        result = profile.to_dict()
        assert set(result) == {"identity", "emotional", "behavioral", "temporal"}
        assert result["behavioral"]["comfort_zone"]["bpm_range"] == [60.0, 180.0]
