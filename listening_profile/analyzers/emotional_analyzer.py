"""
Emotional Analyzer - Valence/energy dynamics over a chronological play sequence.

Pure stdlib implementation. Works on the samples of tracks in the order they
were actually played (repeats included), alongside the deduplicated sample
store for signals that must not double count.
"""

import statistics
from collections import Counter
from datetime import datetime
from typing import Mapping, Optional, Sequence

from ..errors import MalformedInputError
from ..models import (
    AcousticSample,
    ArcPoint,
    CopingSignal,
    EmotionalProfile,
    MelancholyRun,
    index_samples,
    parse_timestamp,
)


LOW_VALENCE_THRESHOLD = 0.35
MIN_RUN_LENGTH = 3
REPEAT_LOOP_MIN_COUNT = 3  # strictly more plays than this
REPEAT_LOOP_MAX_VALENCE = 0.4
ENERGY_CRASH_STD = 0.25
DEFAULT_MEAN = 0.5


def _pstdev(values: Sequence[float]) -> float:
    return statistics.pstdev(values) if values else 0.0


def compute_oscillation_score(samples: Sequence[AcousticSample]) -> float:
    """
    Rate of high/low/high swings across consecutive samples.

    Each interior sample i can score twice: once for an energy sandwich
    (energy > 0.7 either side, valence < 0.4 in the middle) and once for a
    valence sandwich (valence > 0.7 either side, < 0.3 in the middle).

    Args:
        samples: Chronological samples

    Returns:
        Oscillation count divided by sample count, 0.0 below 3 samples
    """
    if len(samples) < 3:
        return 0.0

    oscillations = 0
    for i in range(1, len(samples) - 1):
        prev, curr, nxt = samples[i - 1], samples[i], samples[i + 1]
        if prev.energy > 0.7 and curr.valence < 0.4 and nxt.energy > 0.7:
            oscillations += 1
        if prev.valence > 0.7 and curr.valence < 0.3 and nxt.valence > 0.7:
            oscillations += 1

    return oscillations / len(samples)


def find_melancholy_runs(
    samples: Sequence[AcousticSample],
    timestamps: Sequence[datetime],
) -> tuple[MelancholyRun, ...]:
    """
    Find runs of consecutive low-valence samples in one pass.

    Args:
        samples: Chronological samples
        timestamps: Play time of each sample

    Returns:
        Non-overlapping runs with valence < 0.35 and at least 3 samples
    """
    runs = []
    current_valences: list[float] = []
    current_times: list[datetime] = []

    def flush():
        if len(current_valences) >= MIN_RUN_LENGTH:
            runs.append(MelancholyRun(
                start=current_times[0],
                end=current_times[-1],
                average_valence=statistics.fmean(current_valences),
                length=len(current_valences),
            ))
        current_valences.clear()
        current_times.clear()

    for sample, played_at in zip(samples, timestamps):
        if sample.valence < LOW_VALENCE_THRESHOLD:
            current_valences.append(sample.valence)
            current_times.append(played_at)
        else:
            flush()

    # Trailing run
    flush()
    return tuple(runs)


def detect_coping_signals(
    raw_track_ids: Sequence[str],
    sample_store: Mapping[str, AcousticSample],
    melancholy_runs: Sequence[MelancholyRun],
) -> tuple[CopingSignal, ...]:
    """
    Detect coping patterns.

    - repeat_loop: a low-valence track (< 0.4) played more than 3 times in
      the raw play sequence; the most played one is reported.
    - energy_crash: energy std over the deduplicated store above 0.25.
    - night_sadness: at least one melancholy run.

    genre_retreat is a known kind with no detector.

    Args:
        raw_track_ids: Track ids as played, repeats included
        sample_store: One sample per track id
        melancholy_runs: Output of find_melancholy_runs()

    Returns:
        Tuple of CopingSignal
    """
    signals = []

    repeat_counts = Counter(raw_track_ids)
    # Counter keeps first-seen order, so most_common() ties stay stable
    candidates = [
        (track_id, count)
        for track_id, count in repeat_counts.most_common()
        if count > REPEAT_LOOP_MIN_COUNT
        and track_id in sample_store
        and sample_store[track_id].valence < REPEAT_LOOP_MAX_VALENCE
    ]
    if candidates:
        track_id, count = candidates[0]
        signals.append(CopingSignal(
            kind="repeat_loop",
            severity=min(count / 10, 1.0),
            evidence=(
                f"track_id={track_id}",
                f"valence={sample_store[track_id].valence:.3f}",
                f"repeat_count={count}",
            ),
        ))

    energy_std = _pstdev([sample.energy for sample in sample_store.values()])
    if energy_std > ENERGY_CRASH_STD:
        signals.append(CopingSignal(
            kind="energy_crash",
            severity=min(energy_std * 2, 1.0),
            evidence=(f"energy_std={energy_std:.3f}",),
        ))

    if melancholy_runs:
        total_length = sum(run.length for run in melancholy_runs)
        signals.append(CopingSignal(
            kind="night_sadness",
            severity=min(total_length / 50, 1.0),
            evidence=tuple(
                f"run_length={run.length} average_valence={run.average_valence:.3f}"
                for run in melancholy_runs
            ),
        ))

    return tuple(signals)


def infer_psychological_state(
    valence_std: float,
    oscillation_score: float,
    signals: Sequence[CopingSignal],
) -> str:
    severity = statistics.fmean(s.severity for s in signals) if signals else 0.0

    if severity > 0.7:
        return "intense_processing"
    elif severity > 0.4:
        return "active_coping"
    elif valence_std > 0.25:
        return "emotional_exploration"
    elif oscillation_score > 0.1:
        return "emotional_oscillation"
    return "emotional_stability"


def classify_emotional_pattern(
    valence_volatility: float,
    oscillation_score: float,
    melancholy_runs: Sequence[MelancholyRun],
    signals: Sequence[CopingSignal],
) -> str:
    """
    Pick the confrontation bucket for the emotional chapter.

    Returns:
        One of "looped_sadness", "heartbeat", "mood_swings",
        "maintenance_ritual", "steady"
    """
    if len(melancholy_runs) >= 3 and any(s.kind == "repeat_loop" for s in signals):
        return "looped_sadness"
    elif oscillation_score > 0.15:
        return "heartbeat"
    elif valence_volatility > 0.3:
        return "mood_swings"
    elif len(signals) > 2:
        return "maintenance_ritual"
    return "steady"


def analyze_emotional_profile(
    samples: Sequence[AcousticSample],
    timestamps: Sequence[datetime],
    raw_track_ids: Optional[Sequence[str]] = None,
    sample_store: Optional[Mapping[str, AcousticSample]] = None,
) -> EmotionalProfile:
    """
    Build the emotional profile from a chronological sample sequence.

    Args:
        samples: Samples of played tracks, in play order, repeats included
        timestamps: Play time of each sample (datetimes or ISO strings,
            same length as samples)
        raw_track_ids: Every played track id, with or without a sample;
            defaults to the ids of samples
        sample_store: Deduplicated samples; defaults to samples indexed by id

    Returns:
        EmotionalProfile

    Raises:
        MalformedInputError: If samples and timestamps differ in length
    """
    if len(samples) != len(timestamps):
        raise MalformedInputError(
            "Samples and timestamps must be aligned",
            {"samples": len(samples), "timestamps": len(timestamps)},
        )

    timestamps = [parse_timestamp(value) for value in timestamps]
    if raw_track_ids is None:
        raw_track_ids = [sample.track_id for sample in samples]
    if sample_store is None:
        sample_store = index_samples(samples)

    valences = [sample.valence for sample in samples]
    energies = [sample.energy for sample in samples]

    valence_std = _pstdev(valences)
    energy_std = _pstdev(energies)

    oscillation_score = compute_oscillation_score(samples)
    melancholy_runs = find_melancholy_runs(samples, timestamps)
    signals = detect_coping_signals(raw_track_ids, sample_store, melancholy_runs)

    stability_score = 1 - min((valence_std + energy_std) / 2, 1.0)

    energy_arc = tuple(
        ArcPoint(
            date=played_at.isoformat(),
            valence=sample.valence,
            energy=sample.energy,
            tempo=sample.tempo,
            in_melancholy_run=any(run.start <= played_at <= run.end for run in melancholy_runs),
        )
        for sample, played_at in zip(samples, timestamps)
    )

    return EmotionalProfile(
        valence_volatility=valence_std,
        oscillation_score=oscillation_score,
        stability_score=stability_score,
        average_valence=statistics.fmean(valences) if valences else DEFAULT_MEAN,
        average_energy=statistics.fmean(energies) if energies else DEFAULT_MEAN,
        psychological_state=infer_psychological_state(valence_std, oscillation_score, signals),
        melancholy_clusters=melancholy_runs,
        coping_indicators=signals,
        energy_arc=energy_arc,
        confrontation=classify_emotional_pattern(
            valence_std, oscillation_score, melancholy_runs, signals
        ),
    )
