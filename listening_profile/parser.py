"""
Provider Parser - Turn cached Spotify Web API payloads into typed records.

Reads the collection written by SpotifyCollector and builds the inputs of
the profile builder. Malformed records are rejected here, at the boundary,
and skipped with a warning; they never reach the analyzers.
"""

import json
from pathlib import Path
from typing import Iterable, Optional

from .errors import MalformedInputError
from .models import (
    AcousticSample,
    Artist,
    ListeningData,
    PlayEvent,
    RankedTrackWindows,
    Track,
    index_samples,
)


PASSTHROUGH_FEATURES = (
    "danceability",
    "acousticness",
    "instrumentalness",
    "liveness",
    "speechiness",
    "loudness",
    "key",
    "mode",
    "time_signature",
    "duration_ms",
)


def parse_artist(raw: dict) -> Artist:
    """
    Build an Artist from a full Spotify artist object.

    Raises:
        MalformedInputError: If the id is missing or popularity is invalid
    """
    if not raw.get("id"):
        raise MalformedInputError("Artist without id", {"record": raw})

    return Artist(
        id=raw["id"],
        name=raw.get("name", ""),
        genres=tuple(raw.get("genres") or ()),
        popularity=raw.get("popularity") or 0,
    )


def parse_track(raw: dict, artist_lookup: Optional[dict] = None) -> Track:
    """
    Build a Track from a Spotify track object.

    Track payloads only embed simplified artists (no genres, no popularity);
    when artist_lookup holds the full artist it is used instead.

    Args:
        raw: Spotify track object
        artist_lookup: Full Artist records keyed by id

    Returns:
        Track

    Raises:
        MalformedInputError: If the track id is missing
    """
    if not raw.get("id"):
        raise MalformedInputError("Track without id", {"record": raw})

    artist_lookup = artist_lookup or {}
    artists = []
    for raw_artist in raw.get("artists") or []:
        artist_id = raw_artist.get("id")
        if not artist_id:
            continue
        artists.append(
            artist_lookup.get(artist_id)
            or Artist(id=artist_id, name=raw_artist.get("name", ""))
        )

    return Track(
        id=raw["id"],
        name=raw.get("name", ""),
        artists=tuple(artists),
        duration_ms=raw.get("duration_ms") or 0,
    )


def parse_audio_features(raw: dict) -> AcousticSample:
    """
    Build an AcousticSample from a Spotify audio-features object.

    Raises:
        MalformedInputError: If valence, energy or tempo is missing,
            non-finite or out of range
    """
    track_id = raw.get("id")
    if not track_id:
        raise MalformedInputError("Audio features without track id", {"record": raw})

    passthrough = {name: raw.get(name) for name in PASSTHROUGH_FEATURES}
    return AcousticSample(
        track_id=track_id,
        valence=raw.get("valence"),
        energy=raw.get("energy"),
        tempo=raw.get("tempo"),
        **passthrough,
    )


def parse_play_history(items: Iterable[dict], artist_lookup: Optional[dict] = None) -> list[PlayEvent]:
    """
    Build chronological PlayEvents from recently-played items.

    Spotify returns newest first; the result is sorted oldest first.
    Malformed items are skipped with a warning.

    Args:
        items: Items of /me/player/recently-played ({"track", "played_at"})
        artist_lookup: Full Artist records keyed by id

    Returns:
        List of PlayEvent in chronological order
    """
    events = []
    for item in items:
        try:
            track = parse_track(item.get("track") or {}, artist_lookup)
            events.append(PlayEvent(track=track, played_at=item.get("played_at")))
        except MalformedInputError as e:
            print(f"Warning: Skipping play event: {e}")

    events.sort(key=lambda event: event.played_at)
    return events


def _parse_many(items: Iterable[dict], parse, label: str, *args) -> list:
    records = []
    for raw in items:
        if raw is None:
            continue
        try:
            records.append(parse(raw, *args))
        except MalformedInputError as e:
            print(f"Warning: Skipping {label}: {e}")
    return records


def load_collection(collection_path: str) -> Optional[dict]:
    """
    Load the cached collection JSON written by SpotifyCollector.

    Gracefully handles a missing file or malformed JSON by returning None.
    """
    path = Path(collection_path)

    if not path.exists():
        print(f"Warning: collection not found at {collection_path}")
        return None

    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        print(f"Warning: Failed to load collection: {e}")
        return None


def build_inputs(collection: dict) -> tuple[ListeningData, RankedTrackWindows]:
    """
    Build profile builder inputs from a collection dict.

    Args:
        collection: Output of SpotifyCollector.collect_full_profile()

    Returns:
        Tuple of (ListeningData, RankedTrackWindows)
    """
    top_artists = _parse_many(collection.get("top_artists", []), parse_artist, "artist")
    extra_artists = _parse_many(collection.get("artists", []), parse_artist, "artist")

    artist_lookup = {}
    for artist in top_artists + extra_artists:
        artist_lookup.setdefault(artist.id, artist)

    top_tracks = _parse_many(collection.get("top_tracks", []), parse_track, "track", artist_lookup)
    features = _parse_many(
        collection.get("audio_features", []), parse_audio_features, "audio features"
    )
    plays = parse_play_history(collection.get("recently_played", []), artist_lookup)

    raw_windows = collection.get("windows", {})
    windows = RankedTrackWindows(**{
        name: tuple(_parse_many(raw_windows.get(name, []), parse_track, "track", artist_lookup))
        for name in ("short_term", "medium_term", "long_term")
    })

    data = ListeningData(
        top_artists=tuple(top_artists),
        top_tracks=tuple(top_tracks),
        recently_played=tuple(plays),
        audio_features=index_samples(features),
        claimed_genres=tuple(collection.get("claimed_genres", [])),
    )
    return data, windows
