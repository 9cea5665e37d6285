"""Analyzers for listening profile dimensions."""

from .circadian_analyzer import analyze_circadian, detect_repeat_loops, hour_histogram
from .diversity import (
    MAINSTREAM_GENRES,
    genre_entropy,
    is_mainstream,
    mainstream_percentage,
)
from .emotional_analyzer import analyze_emotional_profile
from .genre_aggregator import aggregate_genres
from .identity_analyzer import analyze_identity
from .temporal_aggregator import (
    build_quarterly_proxy,
    compute_overall_stability,
    detect_phase_transitions,
    summarize_play_history,
)

__all__ = [
    "MAINSTREAM_GENRES",
    "aggregate_genres",
    "analyze_circadian",
    "analyze_emotional_profile",
    "analyze_identity",
    "build_quarterly_proxy",
    "compute_overall_stability",
    "detect_phase_transitions",
    "detect_repeat_loops",
    "genre_entropy",
    "hour_histogram",
    "is_mainstream",
    "mainstream_percentage",
    "summarize_play_history",
]
