"""API clients for the similarity backend and the media server."""

from .base_client import (
    BaseAPIClient,
    BackendResponse,
    APIError,
    TransportError,
    AuthenticationError,
    StatusError,
    StoreError,
    BackendRequestError
)
from .stores import LibraryStore, PlaylistStore
from .audiomuse_client import AudioMuseClient
from .jellyfin_client import JellyfinClient

__all__ = [
    'BaseAPIClient',
    'BackendResponse',
    'APIError',
    'TransportError',
    'AuthenticationError',
    'StatusError',
    'StoreError',
    'BackendRequestError',
    'LibraryStore',
    'PlaylistStore',
    'AudioMuseClient',
    'JellyfinClient'
]
