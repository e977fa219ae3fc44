#!/usr/bin/env python3
"""
AudioMuse Mix
Main CLI entry point for building instant mixes from the AudioMuse similarity
backend and refreshing users' sonic fingerprint playlists.
"""

import sys
import json
import asyncio
import argparse
import logging
import os
import subprocess

from config.settings import Settings
from audiomuse_mix.api.base_client import APIError
from audiomuse_mix.models.playlist import SyncState
from audiomuse_mix.services.engine import MixEngine

STATE_ICONS = {
    SyncState.DONE: "✅",
    SyncState.SKIPPED: "⏭️ ",
    SyncState.FAILED: "❌",
    SyncState.CANCELLED: "🛑",
}

def run_tests():
    """Run the test suite."""
    print("🧪 Running AudioMuse Mix Test Suite...")
    print("=" * 60)

    try:
        import pytest
    except ImportError:
        print("❌ pytest not found. Installing...")
        subprocess.check_call([sys.executable, "-m", "pip", "install", "pytest", "pytest-asyncio"])
        import pytest

    test_args = [
        "-v",  # Verbose output
        "--tb=short",  # Short traceback format
        "tests/",  # Test directory
    ]

    exit_code = pytest.main(test_args)
    if exit_code == 0:
        print("\n✅ All tests passed!")
        print("\nNext steps:")
        print("1. Set AUDIOMUSE_URL, JELLYFIN_URL and JELLYFIN_TOKEN in your .env file")
        print("2. Run: python main.py mix <item-id> --limit 20")
    else:
        print(f"\n❌ Some tests failed (exit code: {exit_code})")
    return exit_code

def display_mix_summary(mix):
    """Display a formatted mix summary."""
    print("\n" + "=" * 60)
    print(f"🎵 Instant Mix: {mix['root_name']}")
    print("=" * 60)
    print(f"Total Tracks: {mix['TotalRecordCount']}")
    print(f"Seeds Queried: {mix['seed_count']}")
    if mix['fallback_used']:
        print("Library Filler: yes")

    print(f"\nTracks:")
    print("-" * 60)
    for i, item in enumerate(mix['Items'][:20], 1):
        artist = ", ".join(item['artists']) or "Unknown Artist"
        print(f"{i:2d}. {item['name']} - {artist}")
        print(f"    Key: {item['key']} | Matched by: {item['resolution_method']}")

    if len(mix['Items']) > 20:
        print(f"    ... and {len(mix['Items']) - 20} more tracks")
    print("-" * 60)

def display_sweep_summary(sweep):
    """Display per-user outcomes of a fingerprint sweep."""
    if sweep.skipped:
        print("⏭️  Another sync is already running, nothing was changed")
        return
    if sweep.aborted:
        print("🛑 Sweep cancelled before any user was processed")
        return

    print("\n" + "=" * 60)
    print("🔄 Fingerprint Playlist Sync")
    print("=" * 60)
    for outcome in sweep.outcomes:
        icon = STATE_ICONS.get(outcome.state, "•")
        line = f"{icon} {outcome.playlist_name or outcome.owner_id}: {outcome.state.value}"
        if outcome.succeeded:
            line += f" ({outcome.item_count} tracks{', created' if outcome.created else ''})"
        elif outcome.reason:
            line += f" ({outcome.reason})"
        print(line)
    print("-" * 60)
    print(f"Synced: {len(sweep.succeeded)} | Failed: {len(sweep.failed)} | Total: {len(sweep.outcomes)}")

async def build_mix(args):
    """Build an instant mix for the given item."""
    settings = Settings()
    try:
        settings.validate()
    except ValueError as e:
        print(f"❌ {e}")
        return 1

    try:
        async with MixEngine(settings) as engine:
            print(f"Building mix for item {args.item_id}...")
            result = await engine.instant_mix(args.item_id, user_id=args.user, limit=args.limit)
    except APIError as e:
        print(f"Error building mix: {e}")
        return 1

    if not result.root_found:
        print(f"❌ Item {args.item_id} not found in the library")
        return 1

    mix = result.to_dict()
    display_mix_summary(mix)

    if args.output:
        output_dir = os.path.dirname(args.output)
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)
        with open(args.output, 'w') as f:
            json.dump(mix, f, indent=2)
        print(f"\n💾 Mix saved to: {os.path.abspath(args.output)}")
    return 0

async def sync_fingerprints(args):
    """Refresh fingerprint playlists."""
    settings = Settings()
    try:
        settings.validate()
    except ValueError as e:
        print(f"❌ {e}")
        return 1

    def report(percent):
        print(f"  ... {percent:.0f}%")

    try:
        async with MixEngine(settings) as engine:
            sweep = await engine.sync_fingerprints(users=args.users, progress=report)
    except APIError as e:
        print(f"Error syncing fingerprint playlists: {e}")
        return 1

    display_sweep_summary(sweep)
    return 1 if sweep.failed else 0

def main():
    """Main entry point with command line argument parsing."""
    settings = Settings()
    logging.basicConfig(level=settings.log_level, format=settings.log_format)

    parser = argparse.ArgumentParser(description='AudioMuse instant mixes and fingerprint playlists')
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Instant mix command
    mix_parser = subparsers.add_parser('mix', help='Build an instant mix for a track, album, artist or playlist')
    mix_parser.add_argument('item_id', type=str, help='Library item id')
    mix_parser.add_argument('--user', type=str, help='User id or name for visibility filtering')
    mix_parser.add_argument('--limit', type=int, default=None, help='Maximum tracks (default: MIX_DEFAULT_LIMIT)')
    mix_parser.add_argument('--output', type=str, help='Write the mix as JSON to this file')

    # Fingerprint sync command
    sync_parser = subparsers.add_parser('sync-fingerprints', help='Refresh sonic fingerprint playlists')
    sync_parser.add_argument('--user', dest='users', action='append', help='Only this user (repeatable)')

    # Test command
    subparsers.add_parser('test', help='Run the test suite')

    args = parser.parse_args()

    if args.command == 'mix':
        sys.exit(asyncio.run(build_mix(args)))
    elif args.command == 'sync-fingerprints':
        sys.exit(asyncio.run(sync_fingerprints(args)))
    elif args.command == 'test':
        sys.exit(run_tests())
    else:
        parser.print_help()

if __name__ == "__main__":
    main()
