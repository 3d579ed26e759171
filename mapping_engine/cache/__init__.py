"""Bounded cache for introspected table schemas."""

from .lru_cache import CacheEntry, SchemaCache

__all__ = ["CacheEntry", "SchemaCache"]
