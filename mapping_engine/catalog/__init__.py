"""Transformation vocabulary and global pattern rules."""

from .registry import DEFAULT_CATALOG_PATH, RuleCatalog, default_catalog

__all__ = ["DEFAULT_CATALOG_PATH", "RuleCatalog", "default_catalog"]
