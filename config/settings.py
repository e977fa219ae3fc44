"""
Application settings and configuration management.
Handles environment variables, backend and media server endpoints, and engine defaults.
"""

import os
from typing import Dict, Any, Optional
from urllib.parse import urlparse
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()

@dataclass
class APIConfig:
    """Configuration for external API services."""
    base_url: str
    timeout: int = 30
    max_retries: int = 3

@dataclass
class CacheConfig:
    """Configuration for caching system."""
    redis_url: Optional[str] = None
    similar_tracks_ttl: int = 3600  # 1 hour
    key_prefix: str = "audiomuse"

def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {value!r}")

def normalize_backend_url(url: str) -> str:
    """Strip trailing slashes and check the URL is absolute http(s)."""
    url = (url or "").strip().rstrip("/")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(
            f"Backend URL is invalid ({url!r}). Configure a valid absolute URL, e.g. http://127.0.0.1:8000"
        )
    return url

class Settings:
    """Main application settings."""

    def __init__(self):
        # AudioMuse similarity backend
        self.AUDIOMUSE_URL = normalize_backend_url(os.getenv("AUDIOMUSE_URL", "http://127.0.0.1:8000"))
        self.audiomuse = APIConfig(
            base_url=self.AUDIOMUSE_URL,
            timeout=_env_int("AUDIOMUSE_TIMEOUT", 30)
        )

        # Jellyfin media server (library + playlists)
        self.JELLYFIN_URL = normalize_backend_url(os.getenv("JELLYFIN_URL", "http://localhost:8096"))
        self.JELLYFIN_TOKEN = os.getenv("JELLYFIN_TOKEN")
        self.jellyfin = APIConfig(
            base_url=self.JELLYFIN_URL,
            timeout=_env_int("JELLYFIN_TIMEOUT", 30)
        )

        # Cache Configuration
        self.REDIS_URL = os.getenv("REDIS_URL")
        self.cache = CacheConfig(
            redis_url=self.REDIS_URL,
            similar_tracks_ttl=_env_int("CACHE_SIMILAR_TRACKS_TTL", 3600)
        )

        # Instant mix settings
        self.mix = {
            "default_limit": _env_int("MIX_DEFAULT_LIMIT", 200),
            "seed_cap": _env_int("MIX_SEED_CAP", 20),
            "min_viable_results": _env_int("MIX_MIN_VIABLE_RESULTS", 5),
            "search_limit": _env_int("MIX_SEARCH_LIMIT", 5),
            "fallback_mode": os.getenv("MIX_FALLBACK_MODE", "min_viable"),
            "seed_failure_policy": os.getenv("MIX_SEED_FAILURE_POLICY", "skip_seed")
        }

        # Playlist sync settings
        self.sync = {
            "max_clear_attempts": _env_int("SYNC_MAX_CLEAR_ATTEMPTS", 3),
            "retry_delay_seconds": _env_int("SYNC_RETRY_DELAY_MS", 200) / 1000.0,
            "playlist_name_template": os.getenv("SYNC_PLAYLIST_NAME_TEMPLATE", "{username}-fingerprint"),
            "fingerprint_size": _env_int("SYNC_FINGERPRINT_SIZE", 0) or None
        }

        # Logging Configuration
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    def validate(self) -> bool:
        """Validate that required configuration is present."""
        required_vars = []

        if not self.JELLYFIN_TOKEN:
            required_vars.append("JELLYFIN_TOKEN")

        if required_vars:
            raise ValueError(f"Missing required environment variables: {', '.join(required_vars)}")

        return True

    def get_service_config(self, service: str) -> APIConfig:
        """Get configuration for a specific external service."""
        service_configs = {
            "audiomuse": self.audiomuse,
            "jellyfin": self.jellyfin
        }

        if service not in service_configs:
            raise ValueError(f"Unknown service: {service}")

        return service_configs[service]

    def to_dict(self) -> Dict[str, Any]:
        """Non-secret view of the effective configuration."""
        return {
            "audiomuse_url": self.AUDIOMUSE_URL,
            "jellyfin_url": self.JELLYFIN_URL,
            "cache_enabled": bool(self.REDIS_URL),
            "mix": dict(self.mix),
            "sync": dict(self.sync),
            "log_level": self.log_level
        }
