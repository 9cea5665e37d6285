"""Fetch layer: raw provider payloads, before any analysis."""

from .spotify_collector import SpotifyCollector

__all__ = ["SpotifyCollector"]
