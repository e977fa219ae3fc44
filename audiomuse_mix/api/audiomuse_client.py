"""
AudioMuse similarity backend client.
Issues similarity and fingerprint queries and returns raw responses or parsed candidate records.
"""

import logging
from typing import Dict, Any, List, Optional

from audiomuse_mix.api.base_client import BaseAPIClient, BackendResponse, BackendRequestError
from audiomuse_mix.models.candidate import CandidateRecord, SeedItem
from audiomuse_mix.utils.cache import ResponseCache

logger = logging.getLogger(__name__)

def _flag(value: Optional[bool]) -> Optional[str]:
    if value is None:
        return None
    return "true" if value else "false"

class AudioMuseClient(BaseAPIClient):
    """HTTP client for the AudioMuse AI backend."""

    def __init__(
        self,
        base_url: str,
        timeout: int = 30,
        max_retries: int = 3,
        cache: Optional[ResponseCache] = None,
        similar_tracks_ttl: int = 0
    ):
        """
        Initialize AudioMuse client.

        Args:
            base_url: Backend root URL, e.g. http://127.0.0.1:8000
            timeout: Total request timeout in seconds
            max_retries: Attempts for transport failures
            cache: Optional response cache for similarity queries
            similar_tracks_ttl: Cache TTL for similar-track responses (0 disables)
        """
        super().__init__(base_url, timeout=timeout, max_retries=max_retries, cache=cache)
        self.similar_tracks_ttl = similar_tracks_ttl

    @classmethod
    def from_settings(cls, settings, cache: Optional[ResponseCache] = None) -> 'AudioMuseClient':
        return cls(
            base_url=settings.audiomuse.base_url,
            timeout=settings.audiomuse.timeout,
            max_retries=settings.audiomuse.max_retries,
            cache=cache,
            similar_tracks_ttl=settings.cache.similar_tracks_ttl
        )

    async def health_check(self) -> BackendResponse:
        return await self._send("GET", "/")

    async def get_similar_tracks(
        self,
        item_id: Optional[str] = None,
        title: Optional[str] = None,
        artist: Optional[str] = None,
        n: int = 10,
        eliminate_duplicates: Optional[str] = None
    ) -> BackendResponse:
        """
        Query tracks similar to one seed.

        The seed is identified by ``item_id`` when given, otherwise by title and
        artist together; one without the other is ignored.
        """
        params: Dict[str, Any] = {"n": n}
        if item_id and item_id.strip():
            params["item_id"] = item_id
        elif title and title.strip() and artist and artist.strip():
            params["title"] = title
            params["artist"] = artist

        if eliminate_duplicates and eliminate_duplicates.strip():
            params["eliminate_duplicates"] = eliminate_duplicates.lower()

        if self.cache is not None and self.similar_tracks_ttl > 0:
            cache_key = self.cache.make_key(
                "similar_tracks", params.get("item_id"), params.get("title"),
                params.get("artist"), n, params.get("eliminate_duplicates")
            )
            return await self._cached_send(
                cache_key, "GET", "/api/similar_tracks", ttl=self.similar_tracks_ttl, params=params
            )

        return await self._send("GET", "/api/similar_tracks", params=params)

    async def generate_sonic_fingerprint(
        self,
        user_identifier: str,
        token: Optional[str] = None,
        n: Optional[int] = None
    ) -> BackendResponse:
        params: Dict[str, Any] = {"jellyfin_user_identifier": user_identifier}
        if token and token.strip():
            params["jellyfin_token"] = token
        if n is not None:
            params["n"] = n
        return await self._send("GET", "/api/sonic_fingerprint/generate", params=params)

    async def query_similar(
        self,
        seed: SeedItem,
        quota: int,
        dedupe: Optional[bool] = None
    ) -> List[CandidateRecord]:
        """
        Similar tracks for one seed as candidate records, in backend relevance order.

        Raises:
            BackendRequestError: The backend answered with a non-2xx status
            TransportError: The backend could not be reached
        """
        response = await self.get_similar_tracks(
            item_id=seed.identity,
            title=seed.display_title,
            artist=seed.display_artist,
            n=quota,
            eliminate_duplicates=_flag(dedupe)
        )
        return self._parse_candidates(response)

    async def query_fingerprint(self, user_identifier: str, quota: Optional[int] = None) -> List[CandidateRecord]:
        """Sonic fingerprint tracks for one user as candidate records."""
        response = await self.generate_sonic_fingerprint(user_identifier, n=quota)
        return self._parse_candidates(response)

    @staticmethod
    def _parse_candidates(response: BackendResponse) -> List[CandidateRecord]:
        if not response.ok:
            raise BackendRequestError(response.status, response.body)

        try:
            payload = response.json()
        except ValueError as e:
            raise BackendRequestError(response.status, response.body, f"Backend returned invalid JSON: {e}") from e

        if not isinstance(payload, list):
            logger.warning(f"Expected a JSON array from backend, got {type(payload).__name__}")
            return []

        candidates = []
        for entry in payload:
            candidate = CandidateRecord.from_dict(entry)
            if candidate is not None:
                candidates.append(candidate)
        return candidates
