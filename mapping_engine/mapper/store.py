"""
Mapping Store - Per-table column mapping lists and their edit operations.

Supports:
- Default mapping derivation from introspected columns
- Single-field and parameter edits keyed by source column
- Add/remove/duplicate/reorder
- Global rule application
- Bulk select/transform/delete/duplicate over list indices
- Audit columns, which bulk operations never touch
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple, Union

from mapping_engine.catalog.registry import RuleCatalog, default_catalog
from mapping_engine.mapper.rules import GlobalRuleMatcher
from mapping_engine.schema.models import ColumnInfo, ColumnMapping

logger = logging.getLogger(__name__)

ColumnNames = Union[Dict[str, ColumnInfo], Iterable[Union[str, ColumnInfo]]]


class MappingStore:
    """
    Ordered column mappings per ``schema.table`` key.

    Usage:
    ```python
    store = MappingStore()
    store.derive_default("sales.orders", columns)
    store.apply_global_rules("sales.orders", {c.name: c for c in columns})
    store.reorder("sales.orders", 0, 1)
    ```

    Every operation is total: unknown tables read as empty lists and
    out-of-range indices are ignored.
    """

    DUPLICATE_SUFFIX = "_copy"
    DERIVED_SUFFIX = "_derived"
    AUDIT_PREFIX = "audit_col_"

    def __init__(
        self,
        mappings: Optional[Dict[str, List[ColumnMapping]]] = None,
        catalog: Optional[RuleCatalog] = None,
    ):
        """
        Initialize store

        Args:
            mappings: Existing mappings by table key
            catalog: Catalog providing global rules, defaults to the packaged one
        """
        self._tables: Dict[str, List[ColumnMapping]] = {
            key: list(items) for key, items in (mappings or {}).items()
        }
        self._catalog = catalog

    @property
    def catalog(self) -> RuleCatalog:
        if self._catalog is None:
            self._catalog = default_catalog()
        return self._catalog

    @catalog.setter
    def catalog(self, catalog: RuleCatalog) -> None:
        self._catalog = catalog

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def get_mappings(self, table_key: str) -> List[ColumnMapping]:
        """Mappings of a table in order (empty for unknown tables)."""
        return list(self._tables.get(table_key, []))

    def has_mappings(self, table_key: str) -> bool:
        """True if the table has at least one mapping, audit rows included."""
        return bool(self._tables.get(table_key))

    def table_keys(self) -> List[str]:
        """Known table keys in insertion order."""
        return list(self._tables.keys())

    def drop_table(self, table_key: str) -> None:
        """Forget a table's mappings."""
        self._tables.pop(table_key, None)

    def find(self, table_key: str, source: str) -> Optional[ColumnMapping]:
        """Non-audit mapping for a source column."""
        if source is None:
            return None
        for mapping in self._tables.get(table_key, []):
            if not mapping.is_audit and mapping.source == source:
                return mapping
        return None

    def filter_mappings(self, table_key: str, query: str) -> List[Tuple[int, ColumnMapping]]:
        """
        Search mappings by source, target or transformation.

        Returns:
            (index, mapping) pairs, where index is the position in the full list
        """
        items = list(enumerate(self._tables.get(table_key, [])))
        if not query:
            return items

        needle = query.lower()
        return [
            (index, m) for index, m in items
            if any(
                value and needle in value.lower()
                for value in (m.source, m.target, m.transformation)
            )
        ]

    # ------------------------------------------------------------------
    # Single-mapping edits
    # ------------------------------------------------------------------

    def derive_default(self, table_key: str, columns: Iterable[ColumnInfo]) -> bool:
        """
        Create one direct mapping per column, unless the table is already mapped.

        Args:
            table_key: ``schema.table`` key
            columns: Introspected columns in source order

        Returns:
            bool: True if mappings were derived
        """
        columns = list(columns)
        if self.has_mappings(table_key) or not columns:
            return False

        derived: List[ColumnMapping] = []
        seen: Set[str] = set()
        for column in columns:
            if column.name in seen:
                continue
            seen.add(column.name)
            derived.append(ColumnMapping.for_column(column))

        self._tables[table_key] = derived
        logger.info(f"Derived {len(derived)} default mappings for {table_key}")
        return True

    def update_field(self, table_key: str, source: str, field: str, value: Any) -> None:
        """
        Set one field on the mapping for ``source``, creating it if missing.

        Args:
            table_key: ``schema.table`` key
            source: Source column name
            field: Field name (attribute or camelCase form)
            value: New value
        """
        if source is None:
            return

        attr = ColumnMapping.attribute_name(field)
        if attr == "is_audit":
            return
        # Renaming onto another mapped source would break uniqueness
        if attr == "source" and (value is None or self.find(table_key, value) is not None):
            return

        tbl = self._tables.setdefault(table_key, [])
        existing = self.find(table_key, source)

        if existing is not None:
            existing.set(field, value)
            return

        mapping = ColumnMapping(source=source, target=source, transformation="direct")
        mapping.set(field, value)
        tbl.append(mapping)

    def update_param(self, table_key: str, source: str, name: str, value: Any) -> List[str]:
        """
        Set a transformation parameter on an existing mapping.

        Returns:
            Validation messages from the transformation's parameter schema
        """
        mapping = self.find(table_key, source)
        if mapping is None:
            return []

        mapping.params[name] = value
        return self.catalog.validate_params(mapping.transformation, mapping.params)

    def add_mapping(self, table_key: str, column: ColumnInfo) -> bool:
        """Append a default mapping for ``column`` unless it is already mapped."""
        if self.find(table_key, column.name) is not None:
            return False

        self._tables.setdefault(table_key, []).append(ColumnMapping.for_column(column))
        return True

    def add_all(self, table_key: str, columns: Iterable[ColumnInfo]) -> int:
        """Append default mappings for every unmapped column, in order."""
        return sum(1 for column in columns if self.add_mapping(table_key, column))

    def remove_mapping(self, table_key: str, source: str) -> None:
        """Remove the non-audit mapping(s) for a source column."""
        tbl = self._tables.get(table_key)
        if not tbl or source is None:
            return
        self._tables[table_key] = [
            m for m in tbl if m.is_audit or m.source != source
        ]

    def duplicate_mapping(self, table_key: str, index: int) -> Optional[ColumnMapping]:
        """Append a derived copy of a single mapping, target suffixed ``_derived``."""
        tbl = self._tables.get(table_key, [])
        if not 0 <= index < len(tbl) or tbl[index].is_audit:
            return None

        original = tbl[index]
        copy = ColumnMapping(
            source=original.source,
            target=f"{original.target}{self.DERIVED_SUFFIX}",
            transformation=original.transformation,
            derived=True,
        )
        tbl.append(copy)
        return copy

    def reorder(self, table_key: str, from_index: int, to_index: int) -> bool:
        """Move the mapping at ``from_index`` to ``to_index``."""
        tbl = self._tables.get(table_key, [])
        if not (0 <= from_index < len(tbl) and 0 <= to_index < len(tbl)):
            return False

        item = tbl.pop(from_index)
        tbl.insert(to_index, item)
        return True

    def add_audit_column(self, table_key: str, target: Optional[str] = None) -> ColumnMapping:
        """Append an audit column, generating a unique target name if needed."""
        tbl = self._tables.setdefault(table_key, [])
        if target is None:
            taken = {m.target for m in tbl}
            n = 1
            while f"{self.AUDIT_PREFIX}{n}" in taken:
                n += 1
            target = f"{self.AUDIT_PREFIX}{n}"

        audit = ColumnMapping.audit(target)
        tbl.append(audit)
        return audit

    def clear_mappings(self, table_key: str) -> None:
        """Remove all non-audit mappings of a table."""
        if table_key in self._tables:
            self._tables[table_key] = [m for m in self._tables[table_key] if m.is_audit]

    # ------------------------------------------------------------------
    # Rules and bulk operations
    # ------------------------------------------------------------------

    def apply_global_rules(
        self,
        table_key: str,
        columns_by_name: ColumnNames,
        rule_ids: Optional[Iterable[str]] = None,
    ) -> int:
        """
        Set the transformation of every mapping whose source matches a global rule.

        The first matching rule in catalog order wins. Matching mappings are
        overwritten even if they were edited by hand.

        Args:
            table_key: ``schema.table`` key
            columns_by_name: Known source columns (dict by name, names, or ColumnInfo)
            rule_ids: Enabled rule identifiers, None for all catalog rules

        Returns:
            int: Number of mappings changed
        """
        known = {
            c.name if isinstance(c, ColumnInfo) else c
            for c in columns_by_name
        }
        matcher = GlobalRuleMatcher(self.catalog.list_global_rules(), rule_ids)

        changed = 0
        for mapping in self._tables.get(table_key, []):
            if mapping.is_audit or mapping.source not in known:
                continue

            transformation = matcher.transformation_for(mapping.source)
            if transformation is not None and transformation != mapping.transformation:
                mapping.transformation = transformation
                changed += 1

        logger.info(f"Global rules changed {changed} mappings in {table_key}")
        return changed

    def select_all(self, table_key: str) -> Set[int]:
        """Indices of every non-audit mapping."""
        return {
            index for index, m in enumerate(self._tables.get(table_key, []))
            if not m.is_audit
        }

    @staticmethod
    def deselect_all() -> Set[int]:
        return set()

    def _selected(self, table_key: str, selected: Iterable[int]) -> List[int]:
        """Valid, non-audit indices from a selection, in list order."""
        tbl = self._tables.get(table_key, [])
        return sorted(
            index for index in set(selected)
            if 0 <= index < len(tbl) and not tbl[index].is_audit
        )

    def apply_transformation(
        self, table_key: str, selected: Iterable[int], transformation_id: str
    ) -> int:
        """Set ``transformation_id`` on the selected mappings."""
        indices = self._selected(table_key, selected)
        tbl = self._tables.get(table_key, [])
        for index in indices:
            tbl[index].transformation = transformation_id
        return len(indices)

    def delete_selected(self, table_key: str, selected: Iterable[int]) -> int:
        """Delete the selected mappings; audit mappings are always kept."""
        indices = set(self._selected(table_key, selected))
        if not indices:
            return 0

        tbl = self._tables[table_key]
        self._tables[table_key] = [m for i, m in enumerate(tbl) if i not in indices]
        return len(indices)

    def duplicate_selected(self, table_key: str, selected: Iterable[int]) -> List[ColumnMapping]:
        """
        Append a copy of each selected mapping with ``_copy`` added to its target.

        The copy keeps the original ``source``, so two mappings share it.
        """
        indices = self._selected(table_key, selected)
        tbl = self._tables.get(table_key, [])

        copies = [
            tbl[index].copy(target=f"{tbl[index].target}{self.DUPLICATE_SUFFIX}", derived=True)
            for index in indices
        ]
        tbl.extend(copies)
        return copies

    def import_mappings(self, table_key: str, imported: Iterable[ColumnMapping]) -> None:
        """
        Merge imported mappings into a table.

        Existing non-audit mappings for sources not present in the import are
        kept in order, followed by the imported mappings.
        """
        imported = [m.copy(is_audit=False) for m in imported]
        imported_sources = {m.source for m in imported}

        kept = [
            m for m in self._tables.get(table_key, [])
            if not m.is_audit and m.source not in imported_sources
        ]
        self._tables[table_key] = kept + imported
        logger.info(f"Imported {len(imported)} mappings into {table_key}")

    # ------------------------------------------------------------------
    # Persistence hand-off
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        """JSON-serializable mappings keyed by table."""
        return {
            key: [m.to_dict() for m in items]
            for key, items in self._tables.items()
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, List[Dict[str, Any]]],
        catalog: Optional[RuleCatalog] = None,
    ) -> "MappingStore":
        return cls(
            mappings={
                key: [ColumnMapping.from_dict(record) for record in records]
                for key, records in (data or {}).items()
            },
            catalog=catalog,
        )
