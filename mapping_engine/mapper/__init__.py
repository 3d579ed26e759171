"""
Mapping Module

Per-table column mapping lists:
- Default derivation and single-field edits
- Bulk select/transform/delete/duplicate
- Global rule application (first match wins)
"""

from .rules import GlobalRuleMatcher
from .store import MappingStore

__all__ = ["GlobalRuleMatcher", "MappingStore"]
