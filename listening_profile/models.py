"""
Data model for listening profile analysis.

Provider records (artists, tracks, acoustic samples, play events) are
validated here, at the boundary, so the analyzers only ever see finite,
in-range values. Every record is a frozen dataclass holding tuples, which
makes a built ListeningProfile a snapshot that cannot change after the fact.
"""

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

from .errors import MalformedInputError


COPING_KINDS = ("repeat_loop", "night_sadness", "energy_crash", "genre_retreat")


def parse_timestamp(value) -> datetime:
    """
    Parse an ISO-8601 timestamp into a timezone-aware datetime.

    Naive timestamps keep their wall-clock time and are tagged as UTC so
    that every parsed value can be compared with every other one.

    Args:
        value: ISO-8601 string (trailing "Z" allowed) or datetime

    Returns:
        Timezone-aware datetime

    Raises:
        MalformedInputError: If the value is not a parseable timestamp
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise MalformedInputError(
                f"Invalid timestamp: {value!r}", {"value": value}
            ) from None
    else:
        raise MalformedInputError(
            f"Invalid timestamp type: {type(value).__name__}", {"value": repr(value)}
        )

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _check_finite(name: str, value, owner: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedInputError(
            f"{name} for {owner} must be a number, got {value!r}",
            {"field": name, "id": owner},
        )
    if not math.isfinite(value):
        raise MalformedInputError(
            f"{name} for {owner} is not finite: {value!r}",
            {"field": name, "id": owner},
        )
    return float(value)


def _check_range(name: str, value, owner: str, low: float, high: float) -> float:
    number = _check_finite(name, value, owner)
    if not low <= number <= high:
        raise MalformedInputError(
            f"{name} for {owner} outside [{low}, {high}]: {number}",
            {"field": name, "id": owner},
        )
    return number


def _to_json_value(value):
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (tuple, list)):
        return [_to_json_value(v) for v in value]
    return value


def _json_dict_factory(items) -> dict:
    return {key: _to_json_value(value) for key, value in items}


class _Record:
    """Mixin giving frozen dataclasses a JSON-ready dict form."""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self, dict_factory=_json_dict_factory)


# ---------------------------------------------------------------------------
# Provider records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Artist(_Record):
    """Artist with genre tags and a 0-100 popularity score."""
    id: str
    name: str = ""
    genres: tuple[str, ...] = ()
    popularity: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "genres", tuple(self.genres))
        object.__setattr__(
            self, "popularity", _check_range("popularity", self.popularity, self.id, 0, 100)
        )


@dataclass(frozen=True)
class Track(_Record):
    """Track with its ordered artists (first = primary)."""
    id: str
    name: str = ""
    artists: tuple[Artist, ...] = ()
    duration_ms: int = 0

    def __post_init__(self):
        object.__setattr__(self, "artists", tuple(self.artists))

    @property
    def primary_artist(self) -> Optional[Artist]:
        return self.artists[0] if self.artists else None


@dataclass(frozen=True)
class AcousticSample(_Record):
    """
    Acoustic measurements for one track.

    valence and energy must lie in [0, 1] and tempo must be a positive BPM;
    the remaining fields are carried through unchanged.
    """
    track_id: str
    valence: float
    energy: float
    tempo: float
    danceability: Optional[float] = None
    acousticness: Optional[float] = None
    instrumentalness: Optional[float] = None
    liveness: Optional[float] = None
    speechiness: Optional[float] = None
    loudness: Optional[float] = None
    key: Optional[int] = None
    mode: Optional[int] = None
    time_signature: Optional[int] = None
    duration_ms: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(
            self, "valence", _check_range("valence", self.valence, self.track_id, 0.0, 1.0)
        )
        object.__setattr__(
            self, "energy", _check_range("energy", self.energy, self.track_id, 0.0, 1.0)
        )
        tempo = _check_finite("tempo", self.tempo, self.track_id)
        if tempo <= 0:
            raise MalformedInputError(
                f"tempo for {self.track_id} must be positive, got {tempo}",
                {"field": "tempo", "id": self.track_id},
            )
        object.__setattr__(self, "tempo", tempo)


@dataclass(frozen=True)
class PlayEvent(_Record):
    """One play of a track at an absolute point in time."""
    track: Track
    played_at: datetime

    def __post_init__(self):
        object.__setattr__(self, "played_at", parse_timestamp(self.played_at))

    @property
    def track_id(self) -> str:
        return self.track.id


def index_samples(samples: Iterable[AcousticSample]) -> dict[str, AcousticSample]:
    """
    Build the deduplicated sample store keyed by track id.

    Args:
        samples: Acoustic samples, possibly repeating track ids

    Returns:
        Dictionary with at most one sample per track id (first one wins)
    """
    store = {}
    for sample in samples:
        if sample.track_id not in store:
            store[sample.track_id] = sample
    return store


@dataclass(frozen=True)
class RankedTrackWindows:
    """
    Three independently ranked "top tracks" windows.

    These carry rank only, no timestamps, and feed the quarterly proxy.
    True chronology lives in ListeningData.recently_played.
    """
    short_term: tuple[Track, ...] = ()
    medium_term: tuple[Track, ...] = ()
    long_term: tuple[Track, ...] = ()

    def __post_init__(self):
        for name in ("short_term", "medium_term", "long_term"):
            object.__setattr__(self, name, tuple(getattr(self, name)))


@dataclass(frozen=True)
class ListeningData:
    """Already-fetched provider data handed to the profile builder."""
    top_artists: tuple[Artist, ...] = ()
    top_tracks: tuple[Track, ...] = ()
    recently_played: tuple[PlayEvent, ...] = ()
    audio_features: Mapping[str, AcousticSample] = field(default_factory=dict)
    claimed_genres: tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "top_artists", tuple(self.top_artists))
        object.__setattr__(self, "top_tracks", tuple(self.top_tracks))
        object.__setattr__(self, "recently_played", tuple(self.recently_played))
        object.__setattr__(self, "claimed_genres", tuple(self.claimed_genres))
        features = self.audio_features
        if not isinstance(features, Mapping):
            features = index_samples(features)
        object.__setattr__(self, "audio_features", MappingProxyType(dict(features)))


# ---------------------------------------------------------------------------
# Analysis records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GenreWeight(_Record):
    name: str
    weight: float
    percentage: float


@dataclass(frozen=True)
class RepeatLoop(_Record):
    """A track played at least twice in the play history."""
    track_id: str
    track_name: str
    count: int
    average_valence: float
    timestamps: tuple[datetime, ...] = ()


@dataclass(frozen=True)
class MelancholyRun(_Record):
    """Run of >= 3 consecutive low-valence samples."""
    start: datetime
    end: datetime
    average_valence: float
    length: int


@dataclass(frozen=True)
class CopingSignal(_Record):
    """Detected coping pattern with a [0, 1] severity and raw-number evidence."""
    kind: str
    severity: float
    evidence: tuple[str, ...] = ()

    def __post_init__(self):
        if self.kind not in COPING_KINDS:
            raise MalformedInputError(
                f"Unknown coping signal kind: {self.kind!r}",
                {"field": "kind", "value": self.kind},
            )
        object.__setattr__(self, "evidence", tuple(self.evidence))


@dataclass(frozen=True)
class ArcPoint(_Record):
    date: str
    valence: float
    energy: float
    tempo: float
    in_melancholy_run: bool = False


@dataclass(frozen=True)
class QuarterlyWindow(_Record):
    period: str
    top_genres: tuple[GenreWeight, ...]
    mainstream_percentage: float
    average_valence: float
    average_energy: float
    top_tracks: tuple[Track, ...] = ()
    genre_entropy: float = 0.0


@dataclass(frozen=True)
class PhaseTransition(_Record):
    period_before: str
    period_after: str
    entropy_before: float
    entropy_after: float
    top_genre_before: str
    top_genre_after: str
    trigger: str
    psychological_reading: str


@dataclass(frozen=True)
class IdentityProfile(_Record):
    claimed_genres: tuple[str, ...]
    actual_top_genres: tuple[GenreWeight, ...]
    mainstream_percentage: float
    hipster_score: float
    artist_diversity: float
    top_artists: tuple[Artist, ...] = ()
    summary: str = "default"


@dataclass(frozen=True)
class EmotionalProfile(_Record):
    valence_volatility: float
    oscillation_score: float
    stability_score: float
    average_valence: float
    average_energy: float
    psychological_state: str
    melancholy_clusters: tuple[MelancholyRun, ...] = ()
    coping_indicators: tuple[CopingSignal, ...] = ()
    energy_arc: tuple[ArcPoint, ...] = ()
    confrontation: str = "steady"


@dataclass(frozen=True)
class CircadianProfile(_Record):
    night_ratio: float
    average_night_valence: float
    has_insomnia_pattern: bool
    late_night_days: int
    average_session_length: float
    hour_distribution: tuple[int, ...] = (0,) * 24
    repeat_loops: tuple[RepeatLoop, ...] = ()
    night_loops: tuple[RepeatLoop, ...] = ()
    sadness_loops: tuple[RepeatLoop, ...] = ()
    confrontation: str = "regular_hours"


@dataclass(frozen=True)
class ComfortZoneMetrics(_Record):
    bpm_std: float
    genre_entropy: float
    artist_loyalty: float
    bpm_range: tuple[float, float] = (60.0, 180.0)


@dataclass(frozen=True)
class BehavioralProfile(_Record):
    circadian: CircadianProfile
    comfort_zone: ComfortZoneMetrics
    # No detectors defined; both stay empty. Phase shifts live in
    # TemporalProfile.phase_transitions.
    phase_shifts: tuple[PhaseTransition, ...] = ()
    obsession_loops: tuple[RepeatLoop, ...] = ()


@dataclass(frozen=True)
class TemporalProfile(_Record):
    total_listening_time: int
    active_days: int
    peak_listening_hour: int
    quarterly_breakdown: tuple[QuarterlyWindow, ...] = ()
    phase_transitions: tuple[PhaseTransition, ...] = ()
    overall_stability: float = 1.0
    drift: str = "consistent"


@dataclass(frozen=True)
class ListeningProfile(_Record):
    identity: IdentityProfile
    emotional: EmotionalProfile
    behavioral: BehavioralProfile
    temporal: TemporalProfile
