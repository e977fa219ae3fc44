"""
Playlist and sync-state data models.
SyncTarget is built fresh per sync invocation and discarded afterwards.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, Optional, List


@dataclass
class Playlist:
    """A playlist as stored on the media server."""
    id: str
    name: str
    owner_id: Optional[str] = None

    def matches_name(self, name: str) -> bool:
        """Exact, case-insensitive name comparison."""
        return self.name.casefold() == name.casefold()

    @classmethod
    def from_jellyfin_data(cls, data: Dict[str, Any], owner_id: Optional[str] = None) -> 'Playlist':
        return cls(id=data["Id"], name=data.get("Name", ""), owner_id=owner_id)


@dataclass(frozen=True)
class PlaylistEntry:
    """One manageable playlist entry: removal handle plus the referenced item."""
    entry_id: str
    item_key: str


@dataclass
class SyncTarget:
    """Desired state of one owner's named playlist."""
    owner_id: str
    playlist_name: str
    desired_items: List[str] = field(default_factory=list)
    owner_name: Optional[str] = None

    @property
    def owner_label(self) -> str:
        return self.owner_name or self.owner_id


class SyncState(str, Enum):
    """Terminal states of one owner's sync."""
    DONE = "done"
    SKIPPED = "skipped"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class SyncOutcome:
    """Per-owner result of a sync."""
    owner_id: str
    playlist_name: Optional[str]
    state: SyncState
    created: bool = False
    item_count: int = 0
    clear_attempts: int = 0
    reason: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state == SyncState.DONE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner_id": self.owner_id,
            "playlist_name": self.playlist_name,
            "state": self.state.value,
            "created": self.created,
            "item_count": self.item_count,
            "clear_attempts": self.clear_attempts,
            "reason": self.reason,
        }


@dataclass
class SweepResult:
    """Result of one sync sweep across owners."""
    outcomes: List[SyncOutcome] = field(default_factory=list)
    skipped: bool = False                # Another sweep was already running
    aborted: bool = False                # Cancelled before any owner was processed

    @property
    def succeeded(self) -> List[SyncOutcome]:
        return [o for o in self.outcomes if o.state == SyncState.DONE]

    @property
    def failed(self) -> List[SyncOutcome]:
        return [o for o in self.outcomes if o.state == SyncState.FAILED]

    def outcome_for(self, owner_id: str) -> Optional[SyncOutcome]:
        for outcome in self.outcomes:
            if outcome.owner_id == owner_id:
                return outcome
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "skipped": self.skipped,
            "aborted": self.aborted,
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            "outcomes": [o.to_dict() for o in self.outcomes],
        }
