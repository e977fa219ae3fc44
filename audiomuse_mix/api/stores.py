"""
Interfaces for the media library and playlist collaborators.
The engine consumes these; JellyfinClient is the shipped implementation.
"""

import uuid
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from audiomuse_mix.models.library_item import LibraryItem, ItemKind, User
from audiomuse_mix.models.playlist import Playlist, PlaylistEntry


class LibraryStore(ABC):
    """Read access to the media library."""

    def native_key(self, raw: str) -> Optional[str]:
        """
        Parse ``raw`` as the library's native key format.

        Native keys are UUIDs rendered as 32 lowercase hex digits. Returns None
        when ``raw`` is not a UUID in any common spelling.
        """
        if not raw:
            return None
        try:
            return uuid.UUID(raw.strip()).hex
        except (ValueError, AttributeError):
            return None

    @abstractmethod
    async def get_by_id(self, key: str) -> Optional[LibraryItem]:
        """Look up one item by key; None when it does not exist."""
        pass

    @abstractmethod
    async def search(self, text: str, kind: ItemKind, limit: int,
                     user: Optional[User] = None) -> List[LibraryItem]:
        """Search items of ``kind`` by text, best match first."""
        pass

    @abstractmethod
    async def list_children(self, container: LibraryItem, recursive: bool = True,
                            user: Optional[User] = None) -> List[LibraryItem]:
        """Playable tracks under an album, artist, playlist or folder."""
        pass

    @abstractmethod
    async def list_items(self, kind: ItemKind, limit: int,
                         user: Optional[User] = None) -> List[LibraryItem]:
        """A random sample of up to ``limit`` items of ``kind``."""
        pass

    @abstractmethod
    async def is_visible(self, item: LibraryItem, user: User) -> bool:
        pass

    @abstractmethod
    async def list_users(self) -> List[User]:
        pass

    async def get_user(self, user_id: str) -> Optional[User]:
        for user in await self.list_users():
            if user.id == user_id or user.name == user_id:
                return user
        return None


class PlaylistStore(ABC):
    """Playlist persistence. Mutations are not assumed to be immediately consistent."""

    @abstractmethod
    async def list_playlists(self, owner_id: str) -> List[Playlist]:
        pass

    @abstractmethod
    async def create_playlist(self, name: str, owner_id: str, item_keys: Sequence[str]) -> Playlist:
        pass

    @abstractmethod
    async def get_manageable_items(self, playlist: Playlist) -> List[PlaylistEntry]:
        pass

    @abstractmethod
    async def remove_items(self, playlist_id: str, entry_ids: Sequence[str]) -> None:
        pass

    @abstractmethod
    async def add_items(self, playlist_id: str, item_keys: Sequence[str], owner_id: str) -> None:
        pass
