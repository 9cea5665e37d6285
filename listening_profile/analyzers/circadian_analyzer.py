"""
Circadian Analyzer - Night listening, repeat loops and insomnia patterns.

Pure stdlib implementation. Hours are read from each timestamp's own UTC
offset, or after converting to local_tz when one is given.
"""

import statistics
from datetime import datetime, tzinfo
from typing import Mapping, Optional, Sequence

from ..models import AcousticSample, CircadianProfile, PlayEvent, RepeatLoop


NIGHT_HOURS = range(0, 6)        # 00:00-05:59
LATE_NIGHT_HOURS = range(2, 6)   # 02:00-05:59
INSOMNIA_MIN_DAYS = 3
SAD_LOOP_MAX_VALENCE = 0.4
DEFAULT_VALENCE = 0.5


def local_datetime(dt: datetime, local_tz: Optional[tzinfo] = None) -> datetime:
    """Convert to local_tz if given, otherwise keep the timestamp's own offset."""
    return dt.astimezone(local_tz) if local_tz is not None else dt


def is_night(dt: datetime, local_tz: Optional[tzinfo] = None) -> bool:
    return local_datetime(dt, local_tz).hour in NIGHT_HOURS


def hour_histogram(
    play_history: Sequence[PlayEvent],
    local_tz: Optional[tzinfo] = None,
) -> list[int]:
    """Play counts per local hour of day (24 slots)."""
    hour_distribution = [0] * 24
    for play in play_history:
        hour_distribution[local_datetime(play.played_at, local_tz).hour] += 1
    return hour_distribution


def detect_repeat_loops(
    play_history: Sequence[PlayEvent],
    sample_store: Mapping[str, AcousticSample],
) -> tuple[RepeatLoop, ...]:
    """
    Group every play by track and keep tracks played at least twice.

    Args:
        play_history: Chronological play events
        sample_store: One sample per track id

    Returns:
        RepeatLoops sorted by play count, highest first (ties keep first-seen
        order). Mean valence is 0.5 when the track has no sample.
    """
    groups: dict[str, dict] = {}

    for play in play_history:
        group = groups.setdefault(play.track_id, {
            "name": play.track.name,
            "timestamps": [],
            "valences": [],
        })
        group["timestamps"].append(play.played_at)

        sample = sample_store.get(play.track_id)
        if sample is not None:
            group["valences"].append(sample.valence)

    loops = []
    for track_id, group in groups.items():
        count = len(group["timestamps"])
        if count < 2:
            continue

        valences = group["valences"]
        loops.append(RepeatLoop(
            track_id=track_id,
            track_name=group["name"] or "Unknown Track",
            count=count,
            average_valence=statistics.fmean(valences) if valences else DEFAULT_VALENCE,
            timestamps=tuple(group["timestamps"]),
        ))

    loops.sort(key=lambda loop: -loop.count)
    return tuple(loops)


def detect_insomnia_pattern(
    play_history: Sequence[PlayEvent],
    local_tz: Optional[tzinfo] = None,
) -> dict:
    """
    Count distinct dates with listening between 02:00 and 05:59.

    Args:
        play_history: Chronological play events
        local_tz: Zone used for hours and calendar dates

    Returns:
        Dictionary with has_insomnia_pattern, late_night_days and
        average_session_length (late-night plays per late-night day)
    """
    plays_by_date: dict = {}

    for play in play_history:
        local = local_datetime(play.played_at, local_tz)
        if local.hour in LATE_NIGHT_HOURS:
            day = local.date()
            plays_by_date[day] = plays_by_date.get(day, 0) + 1

    late_night_days = len(plays_by_date)
    total_plays = sum(plays_by_date.values())

    return {
        "has_insomnia_pattern": late_night_days >= INSOMNIA_MIN_DAYS,
        "late_night_days": late_night_days,
        "average_session_length": total_plays / late_night_days if late_night_days else 0.0,
    }


def classify_night_pattern(
    night_ratio: float,
    night_valence: float,
    has_insomnia_pattern: bool,
) -> str:
    """
    Pick the confrontation bucket for the nocturnal chapter.

    Returns:
        One of "nocturnal_sadness", "insomnia", "night_owl",
        "night_leaning", "regular_hours"
    """
    if night_ratio > 0.2 and night_valence < 0.35:
        return "nocturnal_sadness"
    elif has_insomnia_pattern:
        return "insomnia"
    elif night_ratio > 0.25:
        return "night_owl"
    elif night_ratio > 0.1:
        return "night_leaning"
    return "regular_hours"


def analyze_circadian(
    play_history: Sequence[PlayEvent],
    sample_store: Mapping[str, AcousticSample],
    local_tz: Optional[tzinfo] = None,
) -> CircadianProfile:
    """
    Analyze when and how the listener plays music at night.

    Args:
        play_history: Chronological play events with absolute timestamps
        sample_store: One sample per track id (missing entries allowed)
        local_tz: Optional zone to read hours in

    Returns:
        CircadianProfile
    """
    hour_distribution = hour_histogram(play_history, local_tz)
    night_plays = [play for play in play_history if is_night(play.played_at, local_tz)]

    night_ratio = len(night_plays) / len(play_history) if play_history else 0.0

    night_valences = [
        sample_store[play.track_id].valence
        for play in night_plays
        if play.track_id in sample_store
    ]
    night_valence = statistics.fmean(night_valences) if night_valences else DEFAULT_VALENCE

    repeat_loops = detect_repeat_loops(play_history, sample_store)
    night_loops = tuple(
        loop for loop in repeat_loops
        if any(is_night(ts, local_tz) for ts in loop.timestamps)
    )
    sadness_loops = tuple(
        loop for loop in night_loops if loop.average_valence < SAD_LOOP_MAX_VALENCE
    )

    insomnia = detect_insomnia_pattern(play_history, local_tz)

    return CircadianProfile(
        night_ratio=night_ratio,
        average_night_valence=night_valence,
        has_insomnia_pattern=insomnia["has_insomnia_pattern"],
        late_night_days=insomnia["late_night_days"],
        average_session_length=insomnia["average_session_length"],
        hour_distribution=tuple(hour_distribution),
        repeat_loops=repeat_loops,
        night_loops=night_loops,
        sadness_loops=sadness_loops,
        confrontation=classify_night_pattern(
            night_ratio, night_valence, insomnia["has_insomnia_pattern"]
        ),
    )
