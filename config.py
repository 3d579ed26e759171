"""Application configuration."""
import os
from dataclasses import dataclass
from typing import Optional


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    """Read an integer environment variable, empty means default."""
    value = os.getenv(name, "").strip()
    if not value:
        return default
    return int(value)


@dataclass
class CacheConfig:
    """Schema cache configuration."""

    max_size: int = 100
    ttl_seconds: Optional[float] = None  # None disables expiry

    @classmethod
    def from_env(cls) -> "CacheConfig":
        """Load config from environment variables."""
        return cls(
            max_size=_env_int("DATAFLOW_CACHE_MAX_SIZE", 100),
            ttl_seconds=_env_int("DATAFLOW_CACHE_TTL", None),
        )


@dataclass
class IntrospectionConfig:
    """Platform introspection API configuration."""

    base_url: str = "http://localhost:3000"
    api_key: str = ""
    timeout: int = 30

    @classmethod
    def from_env(cls) -> "IntrospectionConfig":
        """Load config from environment variables."""
        return cls(
            base_url=os.getenv("DATAFLOW_API_URL", "http://localhost:3000"),
            api_key=os.getenv("DATAFLOW_API_KEY", ""),
            timeout=_env_int("DATAFLOW_API_TIMEOUT", 30),
        )


@dataclass
class AppConfig:
    """Application configuration."""

    catalog_path: Optional[str] = None  # None uses the packaged catalog
    output_dir: str = "./output"
    cache: CacheConfig = None
    introspection: IntrospectionConfig = None

    def __post_init__(self):
        """Fill nested sections."""
        if self.cache is None:
            self.cache = CacheConfig.from_env()
        if self.introspection is None:
            self.introspection = IntrospectionConfig.from_env()

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Load config from environment variables."""
        return cls(
            catalog_path=os.getenv("DATAFLOW_CATALOG_PATH") or None,
            output_dir=os.getenv("DATAFLOW_OUTPUT_DIR", "./output"),
            cache=CacheConfig.from_env(),
            introspection=IntrospectionConfig.from_env(),
        )


# Global instance
app_config = AppConfig.from_env()
