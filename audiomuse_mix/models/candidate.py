"""
Seed, candidate and resolved-item data models.
Candidates are the transient records returned by the similarity backend; they are
consumed immediately by the library resolver and never persisted.
"""

from dataclasses import dataclass
from typing import Dict, Any, Optional

from .library_item import LibraryItem


@dataclass(frozen=True)
class SeedItem:
    """A library track chosen as the basis for one similarity query."""
    identity: str                        # Library key sent to the backend
    display_title: str
    display_artist: str = ""

    @classmethod
    def from_item(cls, item: LibraryItem) -> 'SeedItem':
        return cls(identity=item.key, display_title=item.name, display_artist=item.artist)

    @property
    def display_name(self) -> str:
        if self.display_artist:
            return f"{self.display_title} - {self.display_artist}"
        return self.display_title


@dataclass(frozen=True)
class CandidateRecord:
    """An unresolved record returned by the backend for one query."""
    external_id: str
    title: Optional[str] = None
    artist: Optional[str] = None
    distance: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional['CandidateRecord']:
        """
        Build a candidate from a backend JSON object.

        The backend is not consistent about field names, so several spellings
        are accepted. Returns None when the record carries no identifier.
        """
        if not isinstance(data, dict):
            return None

        external_id = _first_string(data, "item_id", "Id", "id")
        if not external_id:
            return None

        title = _first_string(data, "title", "name", "Name")
        artist = _first_string(data, "artist", "Artist", "author")
        if not artist:
            artist = _first_artist(data.get("Artists"))

        distance = data.get("distance")
        try:
            distance = float(distance) if distance is not None else None
        except (TypeError, ValueError):
            distance = None

        return cls(
            external_id=external_id,
            title=title or None,
            artist=artist or None,
            distance=distance,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item_id": self.external_id,
            "title": self.title,
            "artist": self.artist,
            "distance": self.distance,
        }


@dataclass(frozen=True)
class ResolvedItem:
    """A candidate successfully mapped to a concrete library item."""
    item: LibraryItem
    method: str                          # native_id, raw_id, metadata_search, anchor, fallback

    @property
    def key(self) -> str:
        return self.item.key

    def to_dict(self) -> Dict[str, Any]:
        data = self.item.to_dict()
        data["resolution_method"] = self.method
        return data


def _first_string(data: Dict[str, Any], *names: str) -> Optional[str]:
    for name in names:
        value = data.get(name)
        if isinstance(value, str) and value:
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            # Some backends return numeric internal ids
            return str(value)
    return None


def _first_artist(artists: Any) -> Optional[str]:
    if not isinstance(artists, list):
        return None
    for entry in artists:
        if isinstance(entry, str) and entry:
            return entry
        if isinstance(entry, dict) and entry.get("Name"):
            return entry["Name"]
    return None
