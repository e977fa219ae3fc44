"""
Base API client providing common functionality for the backend and media server clients.
Includes async HTTP session handling, transport retries, caching and error mapping.
"""

import asyncio
import json
import logging
from abc import ABC
from dataclasses import dataclass
from typing import Dict, Any, Optional
import aiohttp
import backoff
from audiomuse_mix.utils.cache import ResponseCache

logger = logging.getLogger(__name__)

class APIError(Exception):
    """Base exception for API errors."""
    pass

class TransportError(APIError):
    """Raised when a request cannot be delivered (connection failure, timeout)."""
    pass

class AuthenticationError(APIError):
    """Exception raised when authentication fails."""
    pass

class StatusError(APIError):
    """A request reached the server but came back with a non-2xx status."""

    def __init__(self, status: int, body: str, message: Optional[str] = None):
        self.status = status
        self.body = body
        super().__init__(message or f"Request failed with status {status}: {body[:200]}")

class StoreError(StatusError):
    """Non-2xx response from the media server."""
    pass

class BackendRequestError(StatusError):
    """Non-2xx response from the similarity backend."""
    pass

@dataclass
class BackendResponse:
    """Status and raw body of one HTTP exchange. Non-2xx is a value, not an exception."""
    status: int
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        """Decode the body; an empty body decodes to None."""
        if not self.body or not self.body.strip():
            return None
        return json.loads(self.body)

class BaseAPIClient(ABC):
    """Base class for all HTTP clients."""

    def __init__(
        self,
        base_url: str,
        timeout: int = 30,
        max_retries: int = 3,
        cache: Optional[ResponseCache] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.cache = cache
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        """Async context manager entry."""
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def _ensure_session(self):
        """Ensure HTTP session is created."""
        if self.session is None or self.session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            self.session = aiohttp.ClientSession(timeout=timeout)

    async def close(self):
        """Close the HTTP session."""
        if self.session and not self.session.closed:
            await self.session.close()

    def _get_auth_headers(self) -> Dict[str, str]:
        """Get authentication headers. Override in subclasses."""
        return {}

    async def _send_once(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]],
        data: Optional[Any],
        headers: Dict[str, str]
    ) -> BackendResponse:
        async with self.session.request(
            method, url, params=params, json=data, headers=headers
        ) as response:
            body = await response.text()
            return BackendResponse(status=response.status, body=body)

    async def _send(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> BackendResponse:
        """
        Make an HTTP request, retrying transport failures with exponential backoff.

        Returns the response whatever its status; raises TransportError only when
        no response could be obtained.
        """
        await self._ensure_session()

        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        request_headers = self._get_auth_headers()
        if headers:
            request_headers.update(headers)

        send = backoff.on_exception(
            backoff.expo,
            (aiohttp.ClientError, asyncio.TimeoutError),
            max_tries=self.max_retries,
            max_time=60
        )(self._send_once)

        try:
            return await send(method, url, params, data, request_headers)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"HTTP {method} {url} failed: {e!r}")
            raise TransportError(f"Request failed: {e!r}") from e

    async def _request_json(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Any] = None
    ) -> Any:
        """Make a request that must succeed and decode its JSON body."""
        response = await self._send(method, endpoint, params=params, data=data)

        if response.status == 401:
            raise AuthenticationError(f"Authentication failed for {endpoint}")
        if not response.ok:
            raise StoreError(response.status, response.body)

        try:
            return response.json()
        except ValueError as e:
            raise StoreError(response.status, response.body, f"Invalid JSON from {endpoint}: {e}") from e

    async def _cached_send(
        self,
        cache_key: str,
        method: str,
        endpoint: str,
        ttl: int = 3600,
        **kwargs
    ) -> BackendResponse:
        """Send with caching of successful responses."""
        if self.cache is not None:
            cached = await self.cache.get(cache_key)
            if cached is not None:
                return BackendResponse(status=cached["status"], body=cached["body"])

        response = await self._send(method, endpoint, **kwargs)

        if self.cache is not None and response.ok:
            await self.cache.set(cache_key, {"status": response.status, "body": response.body}, ttl)

        return response
