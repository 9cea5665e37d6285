"""Listening Profile -- CLI entry point."""

import argparse
import os
import sys
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv

load_dotenv(project_root / ".env")

CACHE_DIR = project_root / "data" / "cache"


def _local_tz():
    """Zone from LISTENING_TZ, or None to keep each timestamp's own offset."""
    name = os.environ.get("LISTENING_TZ", "")
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError:
        print(f"Warning: Unknown LISTENING_TZ {name!r}, using timestamp offsets.")
        return None


def cmd_collect(args):
    """Collect Spotify listening data."""
    from listening_profile.collectors.spotify_collector import SpotifyCollector

    token = os.environ.get("SPOTIFY_ACCESS_TOKEN", "")
    if not token:
        print("ERROR: SPOTIFY_ACCESS_TOKEN not set in .env file.")
        print("Obtain a user token with the user-top-read and")
        print("user-read-recently-played scopes, then add it to your .env file.")
        sys.exit(1)

    collector = SpotifyCollector(token, cache_dir=str(CACHE_DIR))

    collection = None
    if args.max_age is not None:
        collection = collector.load_cached_collection(max_age_days=args.max_age)
    if collection is None:
        collection = collector.collect_full_profile()

    print(f"\nCollection complete:")
    print(f"  Sources: {collection.get('sources', {})}")
    print(f"  Cached to: {CACHE_DIR / 'spotify_collection.json'}")


def cmd_analyze(args):
    """Build the listening profile and write the report."""
    from listening_profile.parser import build_inputs, load_collection
    from listening_profile.profile_builder import build_listening_profile
    from listening_profile.reporter import export_profile_json, generate_report

    collection = load_collection(str(CACHE_DIR / "spotify_collection.json"))
    if collection is None:
        print("ERROR: No Spotify data found. Run 'collect' first.")
        sys.exit(1)

    data, windows = build_inputs(collection)
    print(
        f"Loaded {len(data.top_artists)} artists, {len(data.top_tracks)} top tracks, "
        f"{len(data.recently_played)} plays, {len(data.audio_features)} audio samples."
    )

    claimed = [g.strip() for g in (args.claimed or "").split(",") if g.strip()]

    print("Building listening profile...")
    profile = build_listening_profile(data, windows, claimed_genres=claimed, local_tz=_local_tz())
    print(f"  Identity: {profile.identity.summary}")
    print(f"  Emotional state: {profile.emotional.psychological_state}")
    print(f"  Night pattern: {profile.behavioral.circadian.confrontation}")
    print(f"  Phase shifts: {len(profile.temporal.phase_transitions)}")

    print(f"\nGenerating report...")
    generate_report(profile, args.out)

    if args.json_out:
        export_profile_json(profile, args.json_out)
    else:
        export_profile_json(profile)

    print("\nDone!")


def cmd_full(args):
    """End-to-end: collect + analyze + report."""
    print("=== STEP 1: Collecting Spotify data ===\n")
    cmd_collect(args)

    print("\n=== STEP 2: Analyzing + generating report ===\n")
    cmd_analyze(args)


def main():
    parser = argparse.ArgumentParser(
        description="Listening Profile -- what your Spotify history says about how you listen"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # collect
    collect_p = subparsers.add_parser("collect", help="Collect Spotify listening data")
    collect_p.add_argument("--max-age", type=int, default=None,
                           help="Reuse the cached collection if younger than this many days")

    # analyze
    analyze_p = subparsers.add_parser("analyze", help="Build profile and generate report")
    analyze_p.add_argument("--claimed", help="Comma-separated genres you say you listen to")
    analyze_p.add_argument("--out", default="reports/listening_profile.md",
                           help="Output report path")
    analyze_p.add_argument("--json-out", default=None,
                           help="JSON export path (default: data/profiles/listening_profile.json)")

    # full
    full_p = subparsers.add_parser("full", help="Collect + Analyze + Report (end-to-end)")
    full_p.add_argument("--max-age", type=int, default=None,
                        help="Reuse the cached collection if younger than this many days")
    full_p.add_argument("--claimed", help="Comma-separated genres you say you listen to")
    full_p.add_argument("--out", default="reports/listening_profile.md",
                        help="Output report path")
    full_p.add_argument("--json-out", default=None,
                        help="JSON export path (default: data/profiles/listening_profile.json)")

    args = parser.parse_args()

    if args.command == "collect":
        cmd_collect(args)
    elif args.command == "analyze":
        cmd_analyze(args)
    elif args.command == "full":
        cmd_full(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
