"""Collect listening data and audio features from the Spotify Web API."""

import json
import time
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

import requests


TIME_RANGES = ("short_term", "medium_term", "long_term")
COLLECTION_FILE = "spotify_collection.json"


class SpotifyCollector:
    """
    Fetch the raw payloads a listening profile is built from.

    The access token is resolved by the caller; this class never stores or
    refreshes credentials.
    """

    BASE_URL = "https://api.spotify.com/v1"

    def __init__(self, access_token: str, cache_dir: str = "data/cache"):
        """
        Initialize Spotify collector.

        Args:
            access_token: Valid OAuth bearer token
            cache_dir: Directory for the cached collection JSON
        """
        self.access_token = access_token
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self._rate_limit_delay = 1.0  # seconds between requests
        self._last_request_time = 0.0

    def _request(self, endpoint: str, params: dict = None) -> dict:
        """
        Make authenticated GET request with rate limiting and retry on 429.

        Args:
            endpoint: API endpoint path (e.g., "/me/player/recently-played")
            params: Query parameters

        Returns:
            JSON response data

        Raises:
            requests.HTTPError: If request fails after retries
        """
        url = f"{self.BASE_URL}{endpoint}"
        headers = {"Authorization": f"Bearer {self.access_token}"}
        max_retries = 3
        retry_count = 0

        while retry_count <= max_retries:
            # Rate limiting: ensure minimum delay between requests
            elapsed = time.time() - self._last_request_time
            if elapsed < self._rate_limit_delay:
                time.sleep(self._rate_limit_delay - elapsed)

            self._last_request_time = time.time()
            response = requests.get(url, headers=headers, params=params, timeout=30)

            if response.status_code == 429:
                retry_count += 1
                if retry_count > max_retries:
                    response.raise_for_status()

                # Exponential backoff with Retry-After header
                retry_after = int(response.headers.get("Retry-After", 1))
                wait_time = retry_after * (2 ** (retry_count - 1))
                print(f"Rate limited. Waiting {wait_time} seconds before retry {retry_count}/{max_retries}...")
                time.sleep(wait_time)
                continue

            response.raise_for_status()
            return response.json()

        raise RuntimeError("Max retries exceeded")

    def get_recently_played(self, limit: int = 50) -> list[dict]:
        """
        Fetch recently played items (max 50), each {"track", "played_at"}.

        This is the only source with real timestamps.
        """
        print("Fetching recently played tracks...")
        data = self._request("/me/player/recently-played", {"limit": min(limit, 50)})
        items = data.get("items", [])
        print(f"Fetched {len(items)} recently played tracks")
        return items

    def get_top_tracks(self, time_range: str = "medium_term", limit: int = 50) -> list[dict]:
        """
        Fetch ranked top tracks for a time range.

        Args:
            time_range: One of "short_term" (4 weeks), "medium_term" (6 months),
                       "long_term" (about a year)
            limit: Number of tracks to fetch (max 50)

        Returns:
            List of Spotify track objects, rank order
        """
        print(f"Fetching top tracks ({time_range})...")
        params = {"time_range": time_range, "limit": min(limit, 50)}
        tracks = self._request("/me/top/tracks", params).get("items", [])
        print(f"Fetched {len(tracks)} top tracks ({time_range})")
        return tracks

    def get_top_artists(self, time_range: str = "medium_term", limit: int = 50) -> list[dict]:
        """Fetch ranked top artists (with genres and popularity)."""
        print(f"Fetching top artists ({time_range})...")
        params = {"time_range": time_range, "limit": min(limit, 50)}
        artists = self._request("/me/top/artists", params).get("items", [])
        print(f"Fetched {len(artists)} top artists ({time_range})")
        return artists

    def get_artists(self, artist_ids: list[str]) -> list[dict]:
        """
        Batch fetch full artist objects (up to 50 per request).

        Track payloads only carry simplified artists, so genres for window
        tracks have to be looked up here.
        """
        if not artist_ids:
            return []

        print(f"Fetching {len(artist_ids)} artists...")
        artists = []
        batch_size = 50

        for i in range(0, len(artist_ids), batch_size):
            batch = artist_ids[i:i + batch_size]
            data = self._request("/artists", {"ids": ",".join(batch)})
            artists.extend(a for a in data.get("artists", []) if a is not None)

        return artists

    def get_audio_features(self, track_ids: list[str]) -> list[dict]:
        """
        Batch fetch audio features for multiple tracks.

        Args:
            track_ids: List of Spotify track IDs (up to 100 per request)

        Returns:
            List of audio-feature objects; tracks without features are left out
        """
        if not track_ids:
            return []

        print(f"Fetching audio features for {len(track_ids)} tracks...")
        features = []
        batch_size = 100

        for i in range(0, len(track_ids), batch_size):
            batch = track_ids[i:i + batch_size]
            data = self._request("/audio-features", {"ids": ",".join(batch)})

            # Some tracks may not have audio features
            features.extend(f for f in data.get("audio_features", []) if f is not None)

            if len(track_ids) > batch_size:
                print(f"Progress: {min(i + batch_size, len(track_ids))}/{len(track_ids)} tracks processed")

        print(f"Retrieved audio features for {len(features)} tracks")
        return features

    def _fetch_source(self, name: str, fetch, sources_count: dict) -> list:
        try:
            items = fetch()
        except (requests.RequestException, RuntimeError) as e:
            print(f"Error fetching {name}: {e}")
            items = []
        sources_count[name] = len(items)
        return items

    def collect_full_profile(self) -> dict:
        """
        End-to-end collection of everything the profile builder needs.

        This method:
        1. Fetches top artists (medium term)
        2. Fetches top tracks for short/medium/long term
        3. Fetches recently played tracks (50, timestamped)
        4. Fetches full artist objects for window-track artists
        5. Batch fetches audio features for all unique tracks
        6. Saves to <cache_dir>/spotify_collection.json

        Returns:
            Collection dictionary (input of parser.build_inputs)
        """
        print("=" * 60)
        print("Starting full Spotify profile collection...")
        print("=" * 60)

        sources_count = {}

        top_artists = self._fetch_source("top_artists", self.get_top_artists, sources_count)

        windows = {}
        for time_range in TIME_RANGES:
            windows[time_range] = self._fetch_source(
                f"top_{time_range}",
                lambda tr=time_range: self.get_top_tracks(time_range=tr),
                sources_count,
            )

        recently_played = self._fetch_source(
            "recently_played", self.get_recently_played, sources_count
        )

        all_tracks = [t for tracks in windows.values() for t in tracks]
        all_tracks.extend(item["track"] for item in recently_played if item.get("track"))

        # Artists we still need full records for
        known_artist_ids = {a.get("id") for a in top_artists}
        missing_artist_ids = []
        for track in all_tracks:
            for artist in track.get("artists", []):
                artist_id = artist.get("id")
                if artist_id and artist_id not in known_artist_ids:
                    known_artist_ids.add(artist_id)
                    missing_artist_ids.append(artist_id)

        artists = self._fetch_source(
            "artists", lambda: self.get_artists(missing_artist_ids), sources_count
        )

        print("\n" + "=" * 60)
        # Deduplicate by track id, keeping first occurrence
        track_ids = list(dict.fromkeys(t["id"] for t in all_tracks if t.get("id")))
        print(f"Unique tracks: {len(track_ids)}")

        audio_features = self._fetch_source(
            "audio_features", lambda: self.get_audio_features(track_ids), sources_count
        )

        collection = {
            "collected_at": datetime.now().isoformat(),
            "sources": sources_count,
            "top_artists": top_artists,
            "top_tracks": windows["medium_term"],
            "windows": windows,
            "recently_played": recently_played,
            "artists": artists,
            "audio_features": audio_features,
        }

        self._save_cache(collection, COLLECTION_FILE)

        print("\n" + "=" * 60)
        print("Collection complete!")
        print(f"Unique tracks: {len(track_ids)}")
        print(f"Tracks with audio features: {len(audio_features)}")
        print(f"Saved to: {self.cache_dir / COLLECTION_FILE}")
        print("=" * 60)

        return collection

    def load_cached_collection(self, max_age_days: int = 7) -> Optional[dict]:
        """Return the last collection if it is younger than max_age_days."""
        return self._load_cache(COLLECTION_FILE, max_age_days)

    def _save_cache(self, data: dict, filename: str):
        """
        Save data to cache directory as JSON.

        Args:
            data: Dictionary to save
            filename: Output filename
        """
        output_path = self.cache_dir / filename
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    def _load_cache(self, filename: str, max_age_days: int = 7) -> Optional[dict]:
        """
        Load data from cache if exists and not expired.

        Args:
            filename: Cache filename
            max_age_days: Maximum age in days for cache to be valid

        Returns:
            Cached data dictionary or None if not found/expired
        """
        cache_path = self.cache_dir / filename

        if not cache_path.exists():
            return None

        file_mtime = datetime.fromtimestamp(cache_path.stat().st_mtime)
        age = datetime.now() - file_mtime

        if age > timedelta(days=max_age_days):
            print(f"Cache expired (age: {age.days} days)")
            return None

        try:
            with open(cache_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            print(f"Loaded from cache: {cache_path} (age: {age.days} days)")
            return data
        except (json.JSONDecodeError, IOError) as e:
            print(f"Error loading cache: {e}")
            return None
