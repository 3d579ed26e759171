"""Cache-backed column lookup for selected tables."""
import logging
from typing import Any, Dict, Iterable, List, Optional

from mapping_engine.cache.lru_cache import SchemaCache
from mapping_engine.introspection.schema_client import SchemaClient
from mapping_engine.schema.models import ColumnInfo, make_table_key

logger = logging.getLogger(__name__)


class ColumnResolver:
    """
    Resolve the columns of a ``schema.table`` key.

    Lookup order: cache, columns carried by the selected object, remote
    introspection. Anything found outside the cache is stored in it.
    """

    def __init__(
        self,
        cache: SchemaCache,
        client: Optional[SchemaClient] = None,
        connection_id: Optional[str] = None,
    ):
        self.cache = cache
        self.client = client
        self.connection_id = connection_id

    def resolve(
        self,
        table_key: str,
        selected_objects: Optional[Iterable[Dict[str, Any]]] = None,
    ) -> List[ColumnInfo]:
        """
        Get columns for a table.

        Args:
            table_key: ``schema.table`` key
            selected_objects: Selected ``{schema, table, columns}`` records

        Returns:
            Columns in source order, empty if nothing is known
        """
        cached = self.cache.get(table_key)
        if cached:
            logger.debug(f"Column cache hit: {table_key}")
            return cached

        selected = self._find_selected(table_key, selected_objects or [])
        raw_columns = selected.get("columns") if selected else None
        if isinstance(raw_columns, list) and raw_columns:
            columns = [
                ColumnInfo.from_raw(col, order=idx)
                for idx, col in enumerate(raw_columns, start=1)
            ]
            self.cache.set(table_key, columns)
            return columns

        if self.client is not None and self.connection_id:
            schema, _, table = table_key.partition(".")
            columns = self.client.fetch_columns(self.connection_id, schema, table)
            if columns:
                self.cache.set(table_key, columns)
                return columns

        return []

    def on_selection_changed(self, selected_objects: Iterable[Dict[str, Any]]) -> None:
        """Drop cache entries for the selected tables, or everything when none are selected."""
        keys = [make_table_key(obj["schema"], obj["table"]) for obj in selected_objects or []]

        if not keys:
            self.cache.clear()
            return

        self.cache.invalidate(keys)

    def on_connection_changed(self, connection_id: Optional[str]) -> None:
        """Switch connection; cached columns belong to the old one."""
        if connection_id != self.connection_id:
            self.cache.clear()
            self.connection_id = connection_id

    @staticmethod
    def _find_selected(
        table_key: str, selected_objects: Iterable[Dict[str, Any]]
    ) -> Optional[Dict[str, Any]]:
        for obj in selected_objects:
            if make_table_key(obj.get("schema"), obj.get("table")) == table_key:
                return obj
        return None
