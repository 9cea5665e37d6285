"""
Diversity Metrics - Entropy and mainstream classification over genre shares.
"""

import math
from typing import Sequence

from ..models import GenreWeight


# Broadly popular genre keywords, matched as case-insensitive substrings
MAINSTREAM_GENRES = (
    "pop", "dance pop", "electropop", "synthpop", "indie pop",
    "hip hop", "rap", "trap", "pop rap",
    "rock", "alternative rock", "indie rock", "pop rock",
    "edm", "electronic", "house", "techno",
    "r&b", "contemporary r&b", "soul",
    "country", "pop country",
)


def genre_entropy(shares: Sequence[GenreWeight]) -> float:
    """
    Shannon entropy (bits) of a genre-share list.

    Weights are renormalized by their total, so k equal shares give
    exactly log2(k).

    Args:
        shares: GenreWeight list

    Returns:
        Entropy in bits, 0.0 for an empty list
    """
    total_weight = sum(share.weight for share in shares)
    if not shares or total_weight <= 0:
        return 0.0

    entropy = 0.0
    for share in shares:
        p = share.weight / total_weight
        if p > 0:
            entropy -= p * math.log2(p)
    return entropy


def is_mainstream(genre: str) -> bool:
    normalized = genre.lower()
    return any(keyword in normalized for keyword in MAINSTREAM_GENRES)


def mainstream_percentage(shares: Sequence[GenreWeight]) -> float:
    """
    Fraction of total genre weight carried by mainstream genres.

    Args:
        shares: GenreWeight list

    Returns:
        Value in [0, 1]; 0.0 for an empty list
    """
    total_weight = sum(share.weight for share in shares)
    if total_weight <= 0:
        return 0.0

    mainstream_weight = sum(share.weight for share in shares if is_mainstream(share.name))
    return mainstream_weight / total_weight
