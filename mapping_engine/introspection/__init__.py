"""
Introspection Module

Supplies column lists to the mapping engine:
- Platform introspection API client
- Offline CREATE TABLE reader
- Cache-backed resolver with selection/connection invalidation
"""

from .column_resolver import ColumnResolver
from .ddl_reader import DdlReader
from .schema_client import SchemaClient

__all__ = [
    "ColumnResolver",
    "DdlReader",
    "SchemaClient",
]
