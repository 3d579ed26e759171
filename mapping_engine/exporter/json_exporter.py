"""JSON exporter for mapping sessions."""
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from mapping_engine.catalog.registry import RuleCatalog
from mapping_engine.mapper.store import MappingStore


class JsonExporter:
    """Write and read the mapping-by-table document handed to persistence."""

    def export(
        self,
        output_file: Path,
        store: MappingStore,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Export to JSON file."""
        output_file = Path(output_file)
        output_file.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "metadata": {
                "created_at": datetime.now().isoformat(),
                "tables": len(store.table_keys()),
                **(metadata or {}),
            },
            "mappings": store.to_dict(),
        }

        with open(output_file, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, default=str)

    def load(self, input_file: Path, catalog: Optional[RuleCatalog] = None) -> MappingStore:
        """Load a store from a JSON file written by ``export``."""
        with open(input_file, "r", encoding="utf-8") as f:
            data = json.load(f)

        return MappingStore.from_dict(data.get("mappings", {}), catalog=catalog)
