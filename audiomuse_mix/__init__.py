"""Instant mixes and fingerprint playlists on top of the AudioMuse similarity backend."""

__version__ = "1.0.0"
