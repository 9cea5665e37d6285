"""
Genre Aggregator - Turn a list of artists into weighted genre shares.

Pure stdlib implementation. Ranked input weights artists by position,
unranked input weights every artist equally.
"""

from typing import Sequence

from ..models import Artist, GenreWeight


TOP_GENRE_LIMIT = 10


def aggregate_genres(
    artists: Sequence[Artist],
    ranked: bool = True,
    limit: int = TOP_GENRE_LIMIT,
) -> tuple[GenreWeight, ...]:
    """
    Accumulate genre weights across artists and keep the strongest genres.

    With ranked=True the artist at index i adds 1/(i+1) to every genre it
    carries; with ranked=False each artist adds 1. Ties keep the order in
    which genres were first seen.

    Args:
        artists: Artists ordered by rank (index 0 = most important)
        ranked: Apply position decay
        limit: Number of genres to keep

    Returns:
        Tuple of GenreWeight, heaviest first. Percentages are relative to
        the kept genres and sum to 1; empty input gives an empty tuple.
    """
    genre_weights: dict[str, float] = {}

    for index, artist in enumerate(artists):
        position_weight = 1 / (index + 1) if ranked else 1.0
        for genre in artist.genres:
            genre_weights[genre] = genre_weights.get(genre, 0.0) + position_weight

    # sorted() is stable, so equal weights stay in first-seen order
    top = sorted(genre_weights.items(), key=lambda item: -item[1])[:limit]

    total_weight = sum(weight for _, weight in top)
    if total_weight <= 0:
        return ()

    return tuple(
        GenreWeight(name=name, weight=weight, percentage=weight / total_weight)
        for name, weight in top
    )


def top_genre_name(shares: Sequence[GenreWeight], default: str = "unknown") -> str:
    """Name of the heaviest genre, or default for an empty list."""
    return shares[0].name if shares else default
