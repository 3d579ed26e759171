"""
Schema Client - Fetches table columns from the platform introspection API.

The platform exposes ``POST /api/introspect-schema`` which, given a
connection id, answers with every schema, table and column it can see:

    {"success": true, "schemas": [{"name": "sales", "tables": [
        {"name": "orders", "columns": [{"name": "id", "type": "int"}]}]}]}
"""

import json
import logging
from typing import Any, Dict, List, Optional

import requests

from mapping_engine.schema.models import ColumnInfo

logger = logging.getLogger(__name__)


class SchemaClient:
    """
    Client for the introspection endpoint

    Usage:
    ```python
    client = SchemaClient("https://dataflow.internal", api_key="...")
    columns = client.fetch_columns("conn-42", "sales", "orders")
    ```
    """

    INTROSPECT_PATH = "/api/introspect-schema"

    def __init__(self, base_url: str, api_key: str = "", timeout: int = 30):
        """
        Initialize client

        Args:
            base_url: Platform base URL
            api_key: Bearer token, empty for none
            timeout: HTTP request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()

        if api_key:
            self.session.headers.update({"Authorization": f"Bearer {api_key}"})

    @classmethod
    def from_config(cls, config) -> "SchemaClient":
        """Build from an ``IntrospectionConfig``."""
        return cls(config.base_url, api_key=config.api_key, timeout=config.timeout)

    def introspect(self, connection_id: str) -> Optional[List[Dict[str, Any]]]:
        """
        Fetch all schemas visible through a connection.

        Returns:
            List of schema records, or None if the request failed
        """
        url = f"{self.base_url}{self.INTROSPECT_PATH}"

        try:
            response = self.session.post(
                url,
                json={"connectionId": connection_id},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            logger.warning(f"Introspection request failed for connection {connection_id}: {e}")
            return None
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON from {url}: {e}")
            return None

        if not data.get("success") or not data.get("schemas"):
            logger.warning(f"Introspection returned no schemas for connection {connection_id}")
            return None

        return data["schemas"]

    def fetch_columns(
        self, connection_id: str, schema: str, table: str
    ) -> Optional[List[ColumnInfo]]:
        """
        Fetch the columns of one table.

        Returns:
            Columns in source order, or None if the table was not found
        """
        schemas = self.introspect(connection_id)
        if schemas is None:
            return None

        schema_obj = next((s for s in schemas if s.get("name") == schema), None)
        if schema_obj is None:
            return None

        table_obj = next(
            (t for t in schema_obj.get("tables") or [] if t.get("name") == table),
            None,
        )
        if table_obj is None or not table_obj.get("columns"):
            return None

        columns = [
            ColumnInfo.from_raw(col, order=idx)
            for idx, col in enumerate(table_obj["columns"], start=1)
        ]
        logger.info(f"Fetched {len(columns)} columns for {schema}.{table}")
        return columns
