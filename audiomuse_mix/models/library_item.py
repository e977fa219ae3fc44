"""
Library item data model representing media server entities.
Tracks, albums, artists and playlist-like containers share one shape; the kind tag drives seed derivation.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, Optional, List


class ItemKind(str, Enum):
    """Kinds of library items the mix engine distinguishes."""
    TRACK = "track"
    ALBUM = "album"
    ARTIST = "artist"
    PLAYLIST = "playlist"
    FOLDER = "folder"
    OTHER = "other"

    @property
    def is_container(self) -> bool:
        return self in (ItemKind.ALBUM, ItemKind.ARTIST, ItemKind.PLAYLIST, ItemKind.FOLDER)

    @classmethod
    def from_jellyfin_type(cls, item_type: Optional[str]) -> 'ItemKind':
        """Map a Jellyfin/Emby ``Type`` string to an item kind."""
        mapping = {
            "Audio": cls.TRACK,
            "MusicAlbum": cls.ALBUM,
            "MusicArtist": cls.ARTIST,
            "Playlist": cls.PLAYLIST,
            "Folder": cls.FOLDER,
            "CollectionFolder": cls.FOLDER,
            "ManualPlaylistsFolder": cls.FOLDER,
        }
        return mapping.get(item_type or "", cls.OTHER)


@dataclass
class User:
    """A media server account; owner of playlists and context for visibility."""
    id: str
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass
class LibraryItem:
    """Represents a concrete library item referenced by its opaque key."""
    key: str                                  # Opaque library key
    name: str                                 # Display title
    kind: ItemKind = ItemKind.TRACK
    artists: List[str] = field(default_factory=list)
    album: Optional[str] = None
    parent_key: Optional[str] = None          # Album key for tracks
    duration_ms: int = 0

    @property
    def artist(self) -> str:
        """Get primary artist name."""
        return self.artists[0] if self.artists else ""

    @property
    def display_name(self) -> str:
        """Get display name for the item."""
        if self.artist:
            return f"{self.name} - {self.artist}"
        return self.name

    def to_dict(self) -> Dict[str, Any]:
        """Convert item to dictionary representation."""
        return {
            "key": self.key,
            "name": self.name,
            "kind": self.kind.value,
            "artists": self.artists,
            "album": self.album,
            "parent_key": self.parent_key,
            "duration_ms": self.duration_ms,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LibraryItem':
        """Create LibraryItem from dictionary representation."""
        return cls(
            key=data["key"],
            name=data.get("name", ""),
            kind=ItemKind(data.get("kind", ItemKind.TRACK.value)),
            artists=list(data.get("artists") or []),
            album=data.get("album"),
            parent_key=data.get("parent_key"),
            duration_ms=data.get("duration_ms", 0),
        )

    @classmethod
    def from_jellyfin_data(cls, item: Dict[str, Any]) -> 'LibraryItem':
        """Create LibraryItem from a Jellyfin ``BaseItemDto`` payload."""
        artists = item.get("Artists") or []
        if not artists and item.get("AlbumArtist"):
            artists = [item["AlbumArtist"]]

        ticks = item.get("RunTimeTicks") or 0
        return cls(
            key=item["Id"],
            name=item.get("Name", ""),
            kind=ItemKind.from_jellyfin_type(item.get("Type")),
            artists=list(artists),
            album=item.get("Album"),
            parent_key=item.get("AlbumId") or item.get("ParentId"),
            duration_ms=int(ticks) // 10_000,
        )
