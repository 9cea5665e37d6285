"""Tests for temporal aggregator."""

from datetime import datetime, timezone

import pytest
from listening_profile.analyzers.temporal_aggregator import (
    build_quarterly_proxy,
    build_quarterly_window,
    classify_drift,
    compute_overall_stability,
    detect_phase_transitions,
    identify_shift_trigger,
    interpret_shift,
    is_significant_shift,
    summarize_play_history,
)
from listening_profile.models import (
    AcousticSample,
    Artist,
    GenreWeight,
    PlayEvent,
    QuarterlyWindow,
    RankedTrackWindows,
    Track,
)


def _make_window(period, genres, mainstream=0.0, valence=0.5, energy=0.5):
    shares = tuple(
        GenreWeight(name=g, weight=1.0, percentage=1 / len(genres)) for g in genres
    )
    return QuarterlyWindow(
        period=period,
        top_genres=shares,
        mainstream_percentage=mainstream,
        average_valence=valence,
        average_energy=energy,
    )


def _make_track(track_id, genres, artist_id=None, duration_ms=180000):
    artist = Artist(id=artist_id or f"artist-{track_id}", genres=tuple(genres))
    return Track(id=track_id, name=f"Track {track_id}", artists=(artist,), duration_ms=duration_ms)


def _make_play(track, hour, day=1):
    return PlayEvent(track=track, played_at=datetime(2024, 2, day, hour, tzinfo=timezone.utc))


class TestQuarterlyWindow:
    def test_defaults_without_samples(self):
        window = build_quarterly_window([_make_track("t1", ["dub"])], "Recent", {})
        assert window.average_valence == 0.5
        assert window.average_energy == 0.5
        assert window.top_genres[0].name == "dub"

    def test_unique_artists_weighted_equally(self):
        tracks = [
            _make_track("t1", ["grime"], artist_id="same"),
            _make_track("t2", ["grime"], artist_id="same"),
            _make_track("t3", ["jungle"]),
        ]
        window = build_quarterly_window(tracks, "Recent", {})
        assert [g.weight for g in window.top_genres] == [1.0, 1.0]
        assert window.genre_entropy == pytest.approx(1.0)

    def test_exemplars_capped(self):
        tracks = [_make_track(f"t{i}", ["ambient"]) for i in range(8)]
        window = build_quarterly_window(tracks, "Mid-Year", {})
        assert [t.id for t in window.top_tracks] == ["t0", "t1", "t2", "t3", "t4"]

    def test_sample_means(self):
        store = {
            "t1": AcousticSample(track_id="t1", valence=0.2, energy=0.9, tempo=140.0),
            "t2": AcousticSample(track_id="t2", valence=0.4, energy=0.7, tempo=120.0),
        }
        tracks = [_make_track("t1", ["a"]), _make_track("t2", ["b"]), _make_track("t3", ["c"])]
        window = build_quarterly_window(tracks, "Recent", store)
        assert window.average_valence == pytest.approx(0.3)
        assert window.average_energy == pytest.approx(0.8)


class TestQuarterlyProxy:
    def test_fixed_order_and_labels(self):
        windows = RankedTrackWindows(
            short_term=[_make_track("s", ["pop"])],
            medium_term=[_make_track("m", ["rock"])],
            long_term=[_make_track("l", ["jazz"])],
        )
        proxy = build_quarterly_proxy(windows, {})
        assert [w.period for w in proxy] == ["Full Year", "Mid-Year", "Recent"]
        assert [w.top_genres[0].name for w in proxy] == ["jazz", "rock", "pop"]

    def test_empty_windows(self):
        proxy = build_quarterly_proxy(RankedTrackWindows(), {})
        assert len(proxy) == 3
        assert all(w.top_genres == () for w in proxy)


class TestSignificance:
    def test_exact_boundary_is_not_significant(self):
        assert is_significant_shift(1.0, 0.5, "a", "a") is False

    def test_entropy_jump(self):
        assert is_significant_shift(1.0, 0.4, "a", "a") is True

    def test_top_genre_change(self):
        assert is_significant_shift(1.0, 1.0, "a", "b") is True


class TestPhaseTransitions:
    def test_single_transition_from_narrowing(self):
        windows = [
            _make_window("Full Year", ["a", "b"]),
            _make_window("Mid-Year", ["a"]),
            _make_window("Recent", ["a"]),
        ]
        transitions = detect_phase_transitions(windows)

        assert len(transitions) == 1
        assert transitions[0].period_before == "Full Year"
        assert transitions[0].period_after == "Mid-Year"
        assert transitions[0].entropy_before == pytest.approx(1.0)
        assert transitions[0].entropy_after == 0.0
        assert classify_drift(transitions) == "single_shift"

    def test_half_bit_change_with_same_top_genre(self):
        # 1.5 bits -> 1.0 bits, "a" on top in both
        wide = QuarterlyWindow(
            period="Full Year",
            top_genres=(
                GenreWeight(name="a", weight=2.0, percentage=0.5),
                GenreWeight(name="b", weight=1.0, percentage=0.25),
                GenreWeight(name="c", weight=1.0, percentage=0.25),
            ),
            mainstream_percentage=0.0,
            average_valence=0.5,
            average_energy=0.5,
        )
        narrow = _make_window("Mid-Year", ["a", "b"])

        assert detect_phase_transitions([wide, narrow, narrow]) == ()

    def test_no_windows(self):
        assert detect_phase_transitions([]) == ()
        assert detect_phase_transitions([_make_window("Recent", ["a"])]) == ()

    def test_multi_phase(self):
        windows = [
            _make_window("Full Year", ["a"]),
            _make_window("Mid-Year", ["b"]),
            _make_window("Recent", ["c"]),
        ]
        transitions = detect_phase_transitions(windows)
        assert len(transitions) == 2
        assert classify_drift(transitions) == "multi_phase"

    def test_consistent(self):
        assert classify_drift(()) == "consistent"


class TestTriggers:
    @pytest.mark.parametrize("after_kwargs,expected", [
        ({"mainstream": 0.5}, "comfort_seeking"),
        ({"mainstream": 0.0, "valence": 0.5, "energy": 0.5}, "natural_evolution"),
        ({"mainstream": 0.2, "valence": 0.3, "energy": 0.3}, "emotional_shift"),
        ({"mainstream": 0.2, "valence": 0.7, "energy": 0.7}, "positive_change"),
    ])
    def test_trigger(self, after_kwargs, expected):
        before = _make_window("Full Year", ["a"], mainstream=0.2)
        after = _make_window("Mid-Year", ["b"], **after_kwargs)
        assert identify_shift_trigger(before, after) == expected

    def test_exploration(self):
        before = _make_window("Full Year", ["a"], mainstream=0.8)
        after = _make_window("Mid-Year", ["b"], mainstream=0.1)
        assert identify_shift_trigger(before, after) == "exploration"


class TestReadings:
    def test_retreat_to_comfort(self):
        before = _make_window("Full Year", ["a", "b"], mainstream=0.2)
        after = _make_window("Mid-Year", ["a"], mainstream=0.5)
        assert interpret_shift(before, after) == "retreat_to_comfort"

    def test_exploratory_escape(self):
        before = _make_window("Full Year", ["a"])
        after = _make_window("Mid-Year", ["b", "c", "d", "e"])
        assert interpret_shift(before, after) == "exploratory_escape"

    def test_emotional_processing(self):
        before = _make_window("Full Year", ["a"], valence=0.6, energy=0.7)
        after = _make_window("Mid-Year", ["b"], valence=0.3, energy=0.4)
        assert interpret_shift(before, after) == "emotional_processing"

    def test_genuine_evolution(self):
        before = _make_window("Full Year", ["a"])
        after = _make_window("Mid-Year", ["b"])
        assert interpret_shift(before, after) == "genuine_evolution"


class TestStability:
    def test_fewer_than_two_windows(self):
        assert compute_overall_stability([]) == 1.0
        assert compute_overall_stability([_make_window("Recent", ["a", "b"])]) == 1.0

    def test_mean_entropy_step(self):
        windows = [
            _make_window("Full Year", ["a", "b"]),
            _make_window("Mid-Year", ["a"]),
            _make_window("Recent", ["a"]),
        ]
        assert compute_overall_stability(windows) == pytest.approx(0.5)

    def test_clamped_at_zero(self):
        windows = [
            _make_window("Full Year", ["a"]),
            _make_window("Mid-Year", [f"g{i}" for i in range(8)]),
        ]
        assert compute_overall_stability(windows) == 0.0


class TestSummarizePlayHistory:
    def test_empty(self):
        summary = summarize_play_history([])
        assert summary["total_listening_time"] == 0
        assert summary["active_days"] == 0
        assert summary["peak_listening_hour"] == 0

    def test_minutes_days_and_peak(self):
        track = _make_track("t1", ["a"], duration_ms=180000)
        plays = [
            _make_play(track, 21, day=1),
            _make_play(track, 21, day=2),
            _make_play(track, 8, day=2),
        ]
        summary = summarize_play_history(plays)
        assert summary["total_listening_time"] == 9
        assert summary["active_days"] == 2
        assert summary["peak_listening_hour"] == 21
        assert set(summary) == {"total_listening_time", "active_days", "peak_listening_hour"}

    def test_peak_tie_goes_to_first_seen(self):
        track = _make_track("t1", ["a"])
        plays = [_make_play(track, 14), _make_play(track, 3), _make_play(track, 14, day=2),
                 _make_play(track, 3, day=2)]
        assert summarize_play_history(plays)["peak_listening_hour"] == 14
