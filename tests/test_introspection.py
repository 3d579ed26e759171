"""
Unit tests for the introspection layer

Tests:
- SchemaClient: request shape, table lookup, failure handling
- DdlReader: CREATE TABLE parsing
- ColumnResolver: cache-first lookup and invalidation
"""

import json
from unittest.mock import Mock, patch

import pytest
import requests

from mapping_engine.cache import SchemaCache
from mapping_engine.introspection import ColumnResolver, DdlReader, SchemaClient
from mapping_engine.schema.models import ColumnInfo, extract_length


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def introspection_response():
    """Sample /api/introspect-schema payload"""
    return {
        "success": True,
        "schemas": [
            {
                "name": "sales",
                "tables": [
                    {
                        "name": "orders",
                        "columns": [
                            {"name": "id", "type": "int"},
                            {"name": "customer_name", "type": "varchar(255)"},
                            {"name": "amount", "type": "decimal(10,2)"},
                        ],
                    },
                    {"name": "empty", "columns": []},
                ],
            }
        ],
    }


@pytest.fixture
def sample_ddl():
    return """
    CREATE TABLE sales.orders (
        id INT PRIMARY KEY,
        customer_name VARCHAR(255) NOT NULL,
        amount DECIMAL(10, 2),
        unique_code CHAR(8),
        updated_at TIMESTAMP,
        PRIMARY KEY (id)
    );

    INSERT INTO sales.orders VALUES (1, 'a', 1.0, 'x', now());

    CREATE TABLE IF NOT EXISTS "customers" (
        "id" bigint,
        email character varying(100)
    );
    """


def mock_response(payload):
    response = Mock()
    response.json.return_value = payload
    return response


# ============================================================================
# TEST: helpers
# ============================================================================


class TestColumnInfo:
    """ColumnInfo construction"""

    def test_extract_length(self):
        assert extract_length("varchar(255)") == "255"
        assert extract_length("decimal(10,2)") == "10,2"
        assert extract_length("int") == ""
        assert extract_length(None) == ""

    def test_from_raw_defaults(self):
        """Test missing type falls back to varchar"""
        column = ColumnInfo.from_raw({"name": "note"}, order=3)

        assert column.data_type == "varchar"
        assert column.length == ""
        assert column.order == 3

    def test_from_raw_round_trip(self):
        """Test to_dict output can be read back"""
        column = ColumnInfo.from_raw({"name": "code", "type": "char(4)"}, order=1)
        assert ColumnInfo.from_raw(column.to_dict(), order=1) == column


# ============================================================================
# TEST: SchemaClient
# ============================================================================


class TestSchemaClient:
    """Tests for SchemaClient"""

    @patch("requests.Session.post")
    def test_fetch_columns(self, mock_post, introspection_response):
        """Test columns of a table are returned in order"""
        mock_post.return_value = mock_response(introspection_response)

        client = SchemaClient("https://dataflow.test/", api_key="token")
        columns = client.fetch_columns("conn-1", "sales", "orders")

        assert [c.name for c in columns] == ["id", "customer_name", "amount"]
        assert columns[1].length == "255"
        assert columns[2].length == "10,2"
        assert [c.order for c in columns] == [1, 2, 3]

        args, kwargs = mock_post.call_args
        assert args[0] == "https://dataflow.test/api/introspect-schema"
        assert kwargs["json"] == {"connectionId": "conn-1"}
        assert client.session.headers["Authorization"] == "Bearer token"

    @patch("requests.Session.post")
    def test_unknown_table(self, mock_post, introspection_response):
        """Test missing schema, table or columns return None"""
        mock_post.return_value = mock_response(introspection_response)
        client = SchemaClient("https://dataflow.test")

        assert client.fetch_columns("conn-1", "hr", "orders") is None
        assert client.fetch_columns("conn-1", "sales", "missing") is None
        assert client.fetch_columns("conn-1", "sales", "empty") is None

    @patch("requests.Session.post")
    def test_request_failure(self, mock_post):
        """Test transport errors are swallowed into None"""
        mock_post.side_effect = requests.exceptions.ConnectionError("down")

        assert SchemaClient("https://dataflow.test").introspect("conn-1") is None

    @patch("requests.Session.post")
    def test_invalid_json(self, mock_post):
        """Test an unparsable body returns None"""
        response = Mock()
        response.json.side_effect = json.JSONDecodeError("bad", "", 0)
        mock_post.return_value = response

        assert SchemaClient("https://dataflow.test").introspect("conn-1") is None

    @patch("requests.Session.post")
    def test_unsuccessful_response(self, mock_post):
        """Test success=false returns None"""
        mock_post.return_value = mock_response({"success": False, "error": "denied"})

        assert SchemaClient("https://dataflow.test").introspect("conn-1") is None


# ============================================================================
# TEST: DdlReader
# ============================================================================


class TestDdlReader:
    """Tests for DdlReader"""

    def test_read_tables(self, sample_ddl):
        """Test both tables are found with qualified keys"""
        tables = DdlReader().read(sample_ddl)
        assert sorted(tables) == ["public.customers", "sales.orders"]

    def test_columns_and_types(self, sample_ddl):
        """Test column names, types and lengths"""
        columns = DdlReader().read(sample_ddl)["sales.orders"]

        assert [c.name for c in columns] == ["id", "customer_name", "amount", "unique_code", "updated_at"]
        assert columns[0].data_type == "int"
        assert columns[1].data_type == "varchar(255)"
        assert columns[1].length == "255"
        assert columns[2].length == "10,2"
        assert columns[4].order == 5

    def test_quoted_names_and_multiword_types(self, sample_ddl):
        """Test quoted identifiers and 'character varying'"""
        columns = DdlReader().read(sample_ddl)["public.customers"]

        assert [c.name for c in columns] == ["id", "email"]
        assert columns[1].data_type == "character varying(100)"
        assert columns[1].length == "100"

    def test_default_schema(self):
        """Test the default schema can be changed"""
        tables = DdlReader(default_schema="dbo").read("CREATE TABLE t (a int);")
        assert list(tables) == ["dbo.t"]

    def test_no_create_statements(self):
        assert DdlReader().read("SELECT 1;") == {}


# ============================================================================
# TEST: ColumnResolver
# ============================================================================


class TestColumnResolver:
    """Tests for ColumnResolver"""

    def test_selected_object_columns_are_cached(self):
        """Test columns carried by the selection are used and cached"""
        cache = SchemaCache(max_size=10)
        resolver = ColumnResolver(cache)
        selected = [{"schema": "sales", "table": "orders", "columns": [{"name": "id", "type": "int"}]}]

        columns = resolver.resolve("sales.orders", selected)

        assert [c.name for c in columns] == ["id"]
        assert "sales.orders" in cache

    def test_cache_hit_skips_fetch(self):
        """Test a cached table never reaches the client"""
        cache = SchemaCache(max_size=10)
        cache.set("sales.orders", [ColumnInfo(name="id")])
        client = Mock()

        resolver = ColumnResolver(cache, client=client, connection_id="conn-1")

        assert resolver.resolve("sales.orders")[0].name == "id"
        client.fetch_columns.assert_not_called()

    def test_remote_fetch(self):
        """Test an unknown table is fetched once, then served from cache"""
        cache = SchemaCache(max_size=10)
        client = Mock()
        client.fetch_columns.return_value = [ColumnInfo(name="id")]

        resolver = ColumnResolver(cache, client=client, connection_id="conn-1")
        resolver.resolve("sales.orders")
        resolver.resolve("sales.orders")

        client.fetch_columns.assert_called_once_with("conn-1", "sales", "orders")

    def test_nothing_known(self):
        """Test no source yields an empty list"""
        resolver = ColumnResolver(SchemaCache(max_size=10))
        assert resolver.resolve("sales.orders", []) == []

    def test_selection_change_invalidates_selected(self):
        """Test only the selected keys are dropped"""
        cache = SchemaCache(max_size=10)
        cache.set("sales.orders", [])
        cache.set("sales.items", [])
        resolver = ColumnResolver(cache)

        resolver.on_selection_changed([{"schema": "sales", "table": "orders"}])

        assert "sales.orders" not in cache
        assert "sales.items" in cache

    def test_empty_selection_clears(self):
        """Test an empty selection clears the cache"""
        cache = SchemaCache(max_size=10)
        cache.set("sales.orders", [])

        ColumnResolver(cache).on_selection_changed([])

        assert len(cache) == 0

    def test_connection_change_clears(self):
        """Test switching connection clears the cache"""
        cache = SchemaCache(max_size=10)
        cache.set("sales.orders", [])
        resolver = ColumnResolver(cache, connection_id="conn-1")

        resolver.on_connection_changed("conn-1")
        assert len(cache) == 1

        resolver.on_connection_changed("conn-2")
        assert len(cache) == 0
        assert resolver.connection_id == "conn-2"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
