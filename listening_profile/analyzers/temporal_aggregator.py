"""
Temporal Aggregator - Quarterly proxy windows and taste phase shifts.

Two different data sources feed this module and must not be mixed up:

- The three ranked "top tracks" windows (long/medium/short horizon) carry
  rank but no timestamps. They stand in for quarters: long -> "Full Year",
  medium -> "Mid-Year", short -> "Recent".
- The recent play history carries real timestamps but only covers the last
  few days. Listening time, active days and peak hour come from it alone.
"""

import statistics
from datetime import tzinfo
from typing import Mapping, Optional, Sequence

from ..models import (
    AcousticSample,
    PhaseTransition,
    PlayEvent,
    QuarterlyWindow,
    RankedTrackWindows,
    Track,
)
from .circadian_analyzer import hour_histogram, local_datetime
from .diversity import genre_entropy, mainstream_percentage
from .genre_aggregator import aggregate_genres, top_genre_name


WINDOW_PERIODS = (
    ("long_term", "Full Year"),
    ("medium_term", "Mid-Year"),
    ("short_term", "Recent"),
)
EXEMPLAR_TRACKS = 5
SIGNIFICANT_ENTROPY_CHANGE = 0.5
DEFAULT_MEAN = 0.5


def build_quarterly_window(
    tracks: Sequence[Track],
    period: str,
    sample_store: Mapping[str, AcousticSample],
) -> QuarterlyWindow:
    """
    Summarize one ranked window.

    Tracks inside a window are not individually ranked, so every unique
    artist counts the same when aggregating genres.

    Args:
        tracks: Window tracks
        period: Period label
        sample_store: One sample per track id

    Returns:
        QuarterlyWindow (mean valence/energy default to 0.5 without samples)
    """
    unique_artists = {}
    for track in tracks:
        for artist in track.artists:
            unique_artists.setdefault(artist.id, artist)

    genres = aggregate_genres(list(unique_artists.values()), ranked=False)

    samples = [sample_store[t.id] for t in tracks if t.id in sample_store]

    return QuarterlyWindow(
        period=period,
        top_genres=genres,
        mainstream_percentage=mainstream_percentage(genres),
        average_valence=statistics.fmean(s.valence for s in samples) if samples else DEFAULT_MEAN,
        average_energy=statistics.fmean(s.energy for s in samples) if samples else DEFAULT_MEAN,
        top_tracks=tuple(tracks[:EXEMPLAR_TRACKS]),
        genre_entropy=genre_entropy(genres),
    )


def build_quarterly_proxy(
    windows: RankedTrackWindows,
    sample_store: Mapping[str, AcousticSample],
) -> tuple[QuarterlyWindow, ...]:
    """Build the three proxy quarters in fixed order: Full Year, Mid-Year, Recent."""
    return tuple(
        build_quarterly_window(getattr(windows, attr), period, sample_store)
        for attr, period in WINDOW_PERIODS
    )


def summarize_play_history(
    play_history: Sequence[PlayEvent],
    local_tz: Optional[tzinfo] = None,
) -> dict:
    """
    Listening volume and timing from the timestamped play history.

    Args:
        play_history: Chronological play events
        local_tz: Optional zone to read hours and dates in

    Returns:
        Dictionary with total_listening_time (minutes), active_days,
        and peak_listening_hour. The 24-hour histogram itself is reported
        once, by the circadian analyzer.
    """
    hour_distribution = hour_histogram(play_history, local_tz)
    peak_count = max(hour_distribution)
    active_dates = set()
    total_ms = 0
    peak_hour = None

    for play in play_history:
        local = local_datetime(play.played_at, local_tz)
        active_dates.add(local.date())
        total_ms += play.track.duration_ms
        # Ties go to the hour seen first
        if peak_hour is None and hour_distribution[local.hour] == peak_count:
            peak_hour = local.hour

    return {
        "total_listening_time": round(total_ms / 60000),
        "active_days": len(active_dates),
        "peak_listening_hour": peak_hour if peak_hour is not None else 0,
    }


def is_significant_shift(
    entropy_before: float,
    entropy_after: float,
    top_genre_before: str,
    top_genre_after: str,
) -> bool:
    """
    A shift counts when entropy moves by more than 0.5 bits or the top
    genre changes. The comparison is strict: a change of exactly 0.5 with
    the same top genre is not a shift.
    """
    return (
        abs(entropy_after - entropy_before) > SIGNIFICANT_ENTROPY_CHANGE
        or top_genre_before != top_genre_after
    )


def identify_shift_trigger(before: QuarterlyWindow, after: QuarterlyWindow) -> str:
    """
    What moved between two windows.

    Returns:
        One of "comfort_seeking", "exploration", "emotional_shift",
        "positive_change", "natural_evolution"
    """
    valence_change = after.average_valence - before.average_valence
    energy_change = after.average_energy - before.average_energy
    mainstream_change = after.mainstream_percentage - before.mainstream_percentage

    if mainstream_change > 0.2:
        return "comfort_seeking"
    elif mainstream_change < -0.2:
        return "exploration"
    elif valence_change < -0.15 and energy_change < -0.15:
        return "emotional_shift"
    elif valence_change > 0.15 and energy_change > 0.15:
        return "positive_change"
    return "natural_evolution"


def interpret_shift(before: QuarterlyWindow, after: QuarterlyWindow) -> str:
    """
    Psychological reading of a shift.

    Returns:
        One of "retreat_to_comfort", "exploratory_escape",
        "emotional_processing", "genuine_evolution"
    """
    entropy_before = genre_entropy(before.top_genres)
    entropy_after = genre_entropy(after.top_genres)

    if (entropy_after < entropy_before
            and after.mainstream_percentage > before.mainstream_percentage + 0.1):
        return "retreat_to_comfort"
    elif (entropy_after > entropy_before + 0.3
            and top_genre_name(after.top_genres) != top_genre_name(before.top_genres)):
        return "exploratory_escape"
    elif (after.average_valence < before.average_valence - 0.1
            and after.average_energy < before.average_energy - 0.1):
        return "emotional_processing"
    return "genuine_evolution"


def detect_phase_transitions(windows: Sequence[QuarterlyWindow]) -> tuple[PhaseTransition, ...]:
    """
    Walk consecutive windows and keep the significant shifts.

    Args:
        windows: Windows in chronological order

    Returns:
        Tuple of PhaseTransition, one per significant pair
    """
    transitions = []

    for previous, current in zip(windows, windows[1:]):
        entropy_before = genre_entropy(previous.top_genres)
        entropy_after = genre_entropy(current.top_genres)
        top_before = top_genre_name(previous.top_genres)
        top_after = top_genre_name(current.top_genres)

        if not is_significant_shift(entropy_before, entropy_after, top_before, top_after):
            continue

        transitions.append(PhaseTransition(
            period_before=previous.period,
            period_after=current.period,
            entropy_before=entropy_before,
            entropy_after=entropy_after,
            top_genre_before=top_before,
            top_genre_after=top_after,
            trigger=identify_shift_trigger(previous, current),
            psychological_reading=interpret_shift(previous, current),
        ))

    return tuple(transitions)


def compute_overall_stability(windows: Sequence[QuarterlyWindow]) -> float:
    """1 - min(mean absolute entropy step between consecutive windows, 1)."""
    entropies = [genre_entropy(window.top_genres) for window in windows]
    if len(entropies) < 2:
        return 1.0

    steps = [abs(after - before) for before, after in zip(entropies, entropies[1:])]
    return 1 - min(statistics.fmean(steps), 1.0)


def classify_drift(transitions: Sequence[PhaseTransition]) -> str:
    if not transitions:
        return "consistent"
    elif len(transitions) == 1:
        return "single_shift"
    return "multi_phase"
