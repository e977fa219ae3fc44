"""
Jellyfin REST API client implementing the library and playlist stores.
"""

import logging
from typing import Dict, Any, List, Optional, Sequence

from audiomuse_mix.api.base_client import BaseAPIClient, StoreError
from audiomuse_mix.api.stores import LibraryStore, PlaylistStore
from audiomuse_mix.models.library_item import LibraryItem, ItemKind, User
from audiomuse_mix.models.playlist import Playlist, PlaylistEntry

logger = logging.getLogger(__name__)

ITEM_TYPES = {
    ItemKind.TRACK: "Audio",
    ItemKind.ALBUM: "MusicAlbum",
    ItemKind.ARTIST: "MusicArtist",
    ItemKind.PLAYLIST: "Playlist",
}

ITEM_FIELDS = "ParentId,Path"

class JellyfinClient(BaseAPIClient, LibraryStore, PlaylistStore):
    """Library and playlist access through the Jellyfin HTTP API."""

    # Ids per playlist mutation request; keeps query strings short
    batch_size = 100

    def __init__(self, base_url: str, token: str, timeout: int = 30, max_retries: int = 3):
        """
        Initialize Jellyfin client.

        Args:
            base_url: Server root URL, e.g. http://localhost:8096
            token: API key sent as X-Emby-Token
        """
        super().__init__(base_url, timeout=timeout, max_retries=max_retries)
        self.token = token

    @classmethod
    def from_settings(cls, settings) -> 'JellyfinClient':
        return cls(
            base_url=settings.jellyfin.base_url,
            token=settings.JELLYFIN_TOKEN or "",
            timeout=settings.jellyfin.timeout,
            max_retries=settings.jellyfin.max_retries
        )

    def _get_auth_headers(self) -> Dict[str, str]:
        return {"X-Emby-Token": self.token}

    @staticmethod
    def _user_params(user: Optional[User]) -> Dict[str, Any]:
        return {"userId": user.id} if user else {}

    async def _query_items(self, params: Dict[str, Any]) -> List[LibraryItem]:
        params.setdefault("Fields", ITEM_FIELDS)
        data = await self._request_json("GET", "/Items", params=params) or {}
        return [LibraryItem.from_jellyfin_data(item) for item in data.get("Items", [])]

    # Library store

    async def get_by_id(self, key: str) -> Optional[LibraryItem]:
        try:
            items = await self._query_items({"Ids": key})
        except StoreError as e:
            # Malformed ids are rejected with 400 rather than an empty result
            if e.status in (400, 404):
                logger.debug(f"Item lookup for {key!r} returned {e.status}")
                return None
            raise
        return items[0] if items else None

    async def search(self, text: str, kind: ItemKind, limit: int,
                     user: Optional[User] = None) -> List[LibraryItem]:
        params = {
            "SearchTerm": text,
            "IncludeItemTypes": ITEM_TYPES.get(kind, "Audio"),
            "Recursive": "true",
            "Limit": limit,
        }
        params.update(self._user_params(user))
        return await self._query_items(params)

    async def list_children(self, container: LibraryItem, recursive: bool = True,
                            user: Optional[User] = None) -> List[LibraryItem]:
        params: Dict[str, Any] = {
            "IncludeItemTypes": "Audio",
            "Recursive": "true" if recursive else "false",
        }
        if container.kind == ItemKind.ARTIST:
            params["ArtistIds"] = container.key
        else:
            params["ParentId"] = container.key
        params.update(self._user_params(user))

        items = await self._query_items(params)
        return [item for item in items if item.kind == ItemKind.TRACK]

    async def list_items(self, kind: ItemKind, limit: int,
                         user: Optional[User] = None) -> List[LibraryItem]:
        params = {
            "IncludeItemTypes": ITEM_TYPES.get(kind, "Audio"),
            "Recursive": "true",
            "SortBy": "Random",
            "Limit": limit,
        }
        params.update(self._user_params(user))
        return await self._query_items(params)

    async def is_visible(self, item: LibraryItem, user: User) -> bool:
        response = await self._send("GET", f"/Users/{user.id}/Items/{item.key}")
        if response.ok:
            return True
        if response.status in (400, 403, 404):
            return False
        raise StoreError(response.status, response.body)

    async def list_users(self) -> List[User]:
        data = await self._request_json("GET", "/Users") or []
        return [User(id=entry["Id"], name=entry.get("Name", "")) for entry in data]

    # Playlist store

    async def list_playlists(self, owner_id: str) -> List[Playlist]:
        params = {
            "userId": owner_id,
            "IncludeItemTypes": "Playlist",
            "Recursive": "true",
        }
        data = await self._request_json("GET", "/Items", params=params) or {}
        return [Playlist.from_jellyfin_data(entry, owner_id=owner_id) for entry in data.get("Items", [])]

    async def create_playlist(self, name: str, owner_id: str, item_keys: Sequence[str]) -> Playlist:
        payload = {
            "Name": name,
            "Ids": list(item_keys),
            "UserId": owner_id,
            "MediaType": "Audio",
        }
        data = await self._request_json("POST", "/Playlists", data=payload) or {}
        if not data.get("Id"):
            raise StoreError(200, str(data), f"Playlist '{name}' was created without an id")
        logger.info(f"Created playlist '{name}' ({data['Id']}) with {len(item_keys)} items")
        return Playlist(id=data["Id"], name=name, owner_id=owner_id)

    async def get_manageable_items(self, playlist: Playlist) -> List[PlaylistEntry]:
        params = {"userId": playlist.owner_id} if playlist.owner_id else None
        data = await self._request_json("GET", f"/Playlists/{playlist.id}/Items", params=params) or {}
        entries = []
        for entry in data.get("Items", []):
            entry_id = entry.get("PlaylistItemId")
            if entry_id and entry.get("Id"):
                entries.append(PlaylistEntry(entry_id=entry_id, item_key=entry["Id"]))
        return entries

    async def remove_items(self, playlist_id: str, entry_ids: Sequence[str]) -> None:
        for start in range(0, len(entry_ids), self.batch_size):
            batch = entry_ids[start:start + self.batch_size]
            await self._request_json(
                "DELETE", f"/Playlists/{playlist_id}/Items", params={"EntryIds": ",".join(batch)}
            )

    async def add_items(self, playlist_id: str, item_keys: Sequence[str], owner_id: str) -> None:
        for start in range(0, len(item_keys), self.batch_size):
            batch = item_keys[start:start + self.batch_size]
            await self._request_json(
                "POST", f"/Playlists/{playlist_id}/Items",
                params={"ids": ",".join(batch), "userId": owner_id}
            )
