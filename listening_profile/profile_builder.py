"""
Profile Builder - Run every analyzer and assemble one ListeningProfile.

Pure orchestration: no network access, no randomness, no clock reads and no
state shared between builds. The same inputs always give an equal profile.
"""

import statistics
from dataclasses import replace
from datetime import tzinfo
from typing import Optional, Sequence

from .analyzers.circadian_analyzer import analyze_circadian
from .analyzers.diversity import genre_entropy
from .analyzers.emotional_analyzer import analyze_emotional_profile
from .analyzers.identity_analyzer import analyze_identity
from .analyzers.temporal_aggregator import (
    build_quarterly_proxy,
    classify_drift,
    compute_overall_stability,
    detect_phase_transitions,
    summarize_play_history,
)
from .models import (
    BehavioralProfile,
    CircadianProfile,
    ComfortZoneMetrics,
    EmotionalProfile,
    IdentityProfile,
    ListeningData,
    ListeningProfile,
    RankedTrackWindows,
    TemporalProfile,
)


FALLBACK_BPM_RANGE = (60.0, 180.0)


class ListeningProfileBuilder:
    """Build a ListeningProfile from already-fetched listening data."""

    def __init__(
        self,
        data: ListeningData,
        windows: Optional[RankedTrackWindows] = None,
        local_tz: Optional[tzinfo] = None,
    ):
        self.data = data
        self.windows = windows or RankedTrackWindows()
        self.local_tz = local_tz

    def build_identity(self) -> IdentityProfile:
        return analyze_identity(
            self.data.top_artists,
            self.data.top_tracks,
            self.data.claimed_genres,
        )

    def build_emotional(self) -> EmotionalProfile:
        """
        Emotional profile over the recent play history.

        Samples and timestamps are taken together from plays that have a
        sample, so they stay aligned. The raw id sequence keeps every play,
        repeats included.
        """
        store = self.data.audio_features
        matched = [
            (store[play.track_id], play.played_at)
            for play in self.data.recently_played
            if play.track_id in store
        ]
        samples = [sample for sample, _ in matched]
        timestamps = [played_at for _, played_at in matched]
        raw_track_ids = [play.track_id for play in self.data.recently_played]

        return analyze_emotional_profile(samples, timestamps, raw_track_ids, store)

    def build_circadian(self) -> CircadianProfile:
        return analyze_circadian(
            self.data.recently_played,
            self.data.audio_features,
            self.local_tz,
        )

    def build_comfort_zone(self, identity: IdentityProfile) -> ComfortZoneMetrics:
        """
        Tempo spread over the top tracks plus genre entropy and loyalty.

        Args:
            identity: Output of build_identity()

        Returns:
            ComfortZoneMetrics (BPM range falls back to 60-180 without samples)
        """
        store = self.data.audio_features
        bpms = [store[t.id].tempo for t in self.data.top_tracks if t.id in store]

        return ComfortZoneMetrics(
            bpm_std=statistics.pstdev(bpms) if bpms else 0.0,
            genre_entropy=genre_entropy(identity.actual_top_genres),
            artist_loyalty=1 - identity.artist_diversity,
            bpm_range=(min(bpms), max(bpms)) if bpms else FALLBACK_BPM_RANGE,
        )

    def build_temporal(self) -> TemporalProfile:
        """
        Quarterly proxy from the ranked windows; volume and timing from the
        timestamped play history.
        """
        quarters = build_quarterly_proxy(self.windows, self.data.audio_features)
        transitions = detect_phase_transitions(quarters)
        history = summarize_play_history(self.data.recently_played, self.local_tz)

        return TemporalProfile(
            total_listening_time=history["total_listening_time"],
            active_days=history["active_days"],
            peak_listening_hour=history["peak_listening_hour"],
            quarterly_breakdown=quarters,
            phase_transitions=transitions,
            overall_stability=compute_overall_stability(quarters),
            drift=classify_drift(transitions),
        )

    def build(self) -> ListeningProfile:
        """Run all analyzers and assemble the profile."""
        identity = self.build_identity()
        emotional = self.build_emotional()
        circadian = self.build_circadian()
        temporal = self.build_temporal()

        behavioral = BehavioralProfile(
            circadian=circadian,
            comfort_zone=self.build_comfort_zone(identity),
        )

        return ListeningProfile(
            identity=identity,
            emotional=emotional,
            behavioral=behavioral,
            temporal=temporal,
        )


def build_listening_profile(
    data: ListeningData,
    windows: Optional[RankedTrackWindows] = None,
    claimed_genres: Sequence[str] = (),
    local_tz: Optional[tzinfo] = None,
) -> ListeningProfile:
    """
    Master function: generate a complete listening profile.

    Args:
        data: Top artists/tracks, recent plays and acoustic samples
        windows: Ranked short/medium/long windows for the quarterly proxy
        claimed_genres: Overrides data.claimed_genres when non-empty
        local_tz: Optional zone for hour-of-day analysis

    Returns:
        ListeningProfile
    """
    if claimed_genres:
        data = replace(data, claimed_genres=tuple(claimed_genres))

    return ListeningProfileBuilder(data, windows, local_tz).build()
