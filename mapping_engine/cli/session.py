"""Mapping session: one table-selection workflow and the objects it owns."""
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set

from config import AppConfig, app_config
from mapping_engine.cache.lru_cache import SchemaCache
from mapping_engine.catalog.registry import RuleCatalog, default_catalog
from mapping_engine.exporter.csv_codec import CsvCodec
from mapping_engine.exporter.json_exporter import JsonExporter
from mapping_engine.introspection.column_resolver import ColumnResolver
from mapping_engine.introspection.schema_client import SchemaClient
from mapping_engine.mapper.store import MappingStore
from mapping_engine.schema.models import ColumnInfo, ColumnMapping

logger = logging.getLogger(__name__)


class MappingSession:
    """
    Ties a schema cache, a column resolver and a mapping store together.

    The session owns its cache, so separate sessions never share cached
    columns. Default mappings are derived at most once per table.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        catalog: Optional[RuleCatalog] = None,
        store: Optional[MappingStore] = None,
        client: Optional[SchemaClient] = None,
        connection_id: Optional[str] = None,
    ):
        """Initialize session."""
        self.config = config or app_config

        if catalog is None:
            catalog = (
                RuleCatalog.load(self.config.catalog_path)
                if self.config.catalog_path
                else default_catalog()
            )
        self.catalog = catalog

        if client is None and connection_id:
            client = SchemaClient.from_config(self.config.introspection)

        self.cache = SchemaCache(
            max_size=self.config.cache.max_size,
            ttl_seconds=self.config.cache.ttl_seconds,
        )
        self.resolver = ColumnResolver(self.cache, client=client, connection_id=connection_id)
        self.store = store or MappingStore(catalog=catalog)
        self.store.catalog = catalog
        self.codec = CsvCodec()
        self.exporter = JsonExporter()

        self.current_table: Optional[str] = None
        self._auto_mapped: Set[str] = set()

    def select_table(
        self,
        table_key: str,
        selected_objects: Optional[Iterable[Dict[str, Any]]] = None,
    ) -> List[ColumnMapping]:
        """
        Make ``table_key`` current and derive its default mappings once.

        Returns:
            The table's mappings after selection
        """
        self.current_table = table_key
        columns = self.resolver.resolve(table_key, selected_objects)

        if (
            columns
            and table_key not in self._auto_mapped
            and not self.store.has_mappings(table_key)
        ):
            self._auto_mapped.add(table_key)
            self.store.derive_default(table_key, columns)

        return self.store.get_mappings(table_key)

    def columns(
        self,
        table_key: str,
        selected_objects: Optional[Iterable[Dict[str, Any]]] = None,
    ) -> List[ColumnInfo]:
        return self.resolver.resolve(table_key, selected_objects)

    def change_selection(self, selected_objects: Iterable[Dict[str, Any]]) -> None:
        """Invalidate cached columns for a new table selection."""
        self.resolver.on_selection_changed(list(selected_objects or []))

    def change_connection(self, connection_id: Optional[str]) -> None:
        """Switch connection, creating the introspection client on first use."""
        if connection_id and self.resolver.client is None:
            self.resolver.client = SchemaClient.from_config(self.config.introspection)
        self.resolver.on_connection_changed(connection_id)

    def add_custom_functions(self, records: Iterable[Dict[str, Any]]) -> None:
        """Offer user-defined functions next to the built-in transformations."""
        self.catalog = self.catalog.with_custom_functions(records)
        self.store.catalog = self.catalog

    def apply_global_rules(
        self,
        table_key: str,
        rule_ids: Optional[Iterable[str]] = None,
        selected_objects: Optional[Iterable[Dict[str, Any]]] = None,
    ) -> int:
        columns = self.resolver.resolve(table_key, selected_objects)
        return self.store.apply_global_rules(
            table_key, {c.name: c for c in columns}, rule_ids
        )

    def export_csv(self, table_key: str) -> str:
        return self.codec.export(self.store.get_mappings(table_key))

    def import_csv(self, table_key: str, text: str) -> List[ColumnMapping]:
        """Parse CSV text and merge it into the table's mappings."""
        imported = self.codec.import_(text)
        self.store.import_mappings(table_key, imported)
        return self.store.get_mappings(table_key)

    def save(self, output_file: Path) -> None:
        self.exporter.export(output_file, self.store)
        logger.info(f"Saved {len(self.store.table_keys())} tables to {output_file}")

    @classmethod
    def load(cls, input_file: Path, config: Optional[AppConfig] = None, **kwargs) -> "MappingSession":
        """Restore a session from a JSON document written by ``save``."""
        session = cls(config=config, **kwargs)
        session.store = session.exporter.load(input_file, catalog=session.catalog)
        # Tables restored with mappings must not be re-derived
        session._auto_mapped.update(session.store.table_keys())
        return session
