"""Listening Profile - Derive a behavioral profile from music listening history."""

from .errors import ListeningProfileError, MalformedInputError
from .models import (
    AcousticSample,
    Artist,
    ListeningData,
    ListeningProfile,
    PlayEvent,
    RankedTrackWindows,
    Track,
)
from .profile_builder import ListeningProfileBuilder, build_listening_profile

__version__ = "0.1.0"

__all__ = [
    "AcousticSample",
    "Artist",
    "ListeningData",
    "ListeningProfile",
    "ListeningProfileBuilder",
    "ListeningProfileError",
    "MalformedInputError",
    "PlayEvent",
    "RankedTrackWindows",
    "Track",
    "build_listening_profile",
]
