"""
Identity Analyzer - Mainstream exposure, obscurity and artist variety.

Combines ranked artists (genres + popularity) with top tracks (artist
variety) into an IdentityProfile. The summary is a category tag; turning it
into words is left to the presentation layer.
"""

import statistics
from typing import Sequence

from ..models import Artist, GenreWeight, IdentityProfile, Track
from .diversity import mainstream_percentage
from .genre_aggregator import aggregate_genres


DEFAULT_POPULARITY = 50.0


def compute_hipster_score(artists: Sequence[Artist], mainstream_pct: float) -> float:
    """
    Obscurity index in [0, 1].

    0.6 * (1 - mean popularity / 100) + 0.4 * (1 - mainstream share).
    An empty artist list counts as mean popularity 50.

    Args:
        artists: Ranked artists
        mainstream_pct: Output of mainstream_percentage()

    Returns:
        Hipster score
    """
    if artists:
        avg_popularity = statistics.fmean(artist.popularity for artist in artists)
    else:
        avg_popularity = DEFAULT_POPULARITY

    popularity_component = 1 - (avg_popularity / 100)
    mainstream_component = 1 - mainstream_pct
    return popularity_component * 0.6 + mainstream_component * 0.4


def compute_artist_diversity(tracks: Sequence[Track]) -> float:
    """Unique primary artists divided by track count (0.0 without tracks)."""
    if not tracks:
        return 0.0

    primary_ids = {
        track.primary_artist.id if track.primary_artist else None
        for track in tracks
    }
    return len(primary_ids) / len(tracks)


def _claims_mismatch(claimed_genres: Sequence[str], actual: Sequence[GenreWeight]) -> bool:
    if not claimed_genres:
        return False

    claimed = {genre.lower() for genre in claimed_genres}
    top_actual = {share.name.lower() for share in actual[:3]}

    # Overlap means either name contains the other
    return not any(
        c in a or a in c
        for c in claimed
        for a in top_actual
    )


def classify_identity(
    claimed_genres: Sequence[str],
    actual_top_genres: Sequence[GenreWeight],
    mainstream_pct: float,
    hipster_score: float,
    artist_diversity: float,
) -> str:
    """
    Pick the identity summary tag, first matching rule wins.

    Returns:
        One of "mismatch", "mainstream", "hipster", "diverse", "loyal",
        "default"
    """
    if _claims_mismatch(claimed_genres, actual_top_genres):
        return "mismatch"
    elif mainstream_pct > 0.6:
        return "mainstream"
    elif hipster_score > 0.7:
        return "hipster"
    elif artist_diversity > 0.5:
        return "diverse"
    elif artist_diversity < 0.2:
        return "loyal"
    return "default"


def analyze_identity(
    top_artists: Sequence[Artist],
    top_tracks: Sequence[Track],
    claimed_genres: Sequence[str] = (),
) -> IdentityProfile:
    """
    Build the identity profile.

    Args:
        top_artists: Artists ordered by rank
        top_tracks: Top tracks, used for artist variety
        claimed_genres: Genres the listener says they like (optional)

    Returns:
        IdentityProfile
    """
    actual_top_genres = aggregate_genres(top_artists, ranked=True)
    mainstream_pct = mainstream_percentage(actual_top_genres)
    hipster_score = compute_hipster_score(top_artists, mainstream_pct)
    artist_diversity = compute_artist_diversity(top_tracks)

    summary = classify_identity(
        claimed_genres, actual_top_genres, mainstream_pct, hipster_score, artist_diversity
    )

    return IdentityProfile(
        claimed_genres=tuple(claimed_genres),
        actual_top_genres=actual_top_genres,
        mainstream_percentage=mainstream_pct,
        hipster_score=hipster_score,
        artist_diversity=artist_diversity,
        top_artists=tuple(top_artists),
        summary=summary,
    )
