"""
Integration tests for MappingSession

Tests:
- Default derivation happens once per table
- Global rules over a resolved table
- CSV export/import through the session
- Save/load of the mapping-by-table document
"""

import json
from unittest.mock import Mock, patch

import pytest

from config import AppConfig, CacheConfig, IntrospectionConfig
from mapping_engine.cli.session import MappingSession
from mapping_engine.exceptions import NothingToExportError
from mapping_engine.exporter import JsonExporter
from mapping_engine.mapper import MappingStore
from mapping_engine.schema.models import ColumnMapping


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def config():
    return AppConfig(cache=CacheConfig(max_size=5))


@pytest.fixture
def session(config):
    return MappingSession(config=config)


@pytest.fixture
def orders_selection():
    """Selected sales.orders object with its columns"""
    return [{
        "schema": "sales",
        "table": "orders",
        "columns": [
            {"name": "id", "type": "int"},
            {"name": "customer_name", "type": "varchar(255)"},
            {"name": "amount", "type": "decimal(10,2)"},
            {"name": "updated_at", "type": "timestamp"},
        ],
    }]


# ============================================================================
# TEST: selection
# ============================================================================


class TestSelectTable:
    """select_table()"""

    def test_derives_default_mappings(self, session, orders_selection):
        """Test one direct mapping per column"""
        mappings = session.select_table("sales.orders", orders_selection)

        assert session.current_table == "sales.orders"
        assert [m.source for m in mappings] == ["id", "customer_name", "amount", "updated_at"]
        assert all(m.transformation == "direct" for m in mappings)
        assert mappings[1].source_length == "255"
        assert "sales.orders" in session.cache

    def test_derives_only_once(self, session, orders_selection):
        """Test clearing mappings does not trigger a second derivation"""
        session.select_table("sales.orders", orders_selection)
        session.store.clear_mappings("sales.orders")

        assert session.select_table("sales.orders", orders_selection) == []

    def test_unknown_table(self, session):
        """Test a table with no columns stays empty"""
        assert session.select_table("sales.unknown") == []
        assert session.current_table == "sales.unknown"

    def test_sessions_do_not_share_cache(self, config, orders_selection):
        """Test each session owns its cache"""
        first = MappingSession(config=config)
        second = MappingSession(config=config)

        first.select_table("sales.orders", orders_selection)

        assert "sales.orders" not in second.cache
        assert second.cache.max_size == 5

    def test_selection_change_invalidates(self, session, orders_selection):
        """Test reselecting a table drops its cached columns"""
        session.select_table("sales.orders", orders_selection)
        session.change_selection(orders_selection)

        assert "sales.orders" not in session.cache

    def test_connection_change_clears(self, session, orders_selection):
        session.select_table("sales.orders", orders_selection)
        session.change_connection("conn-2")

        assert len(session.cache) == 0


class TestRemoteColumns:
    """Columns introspected through the configured platform API"""

    @pytest.fixture
    def remote_config(self):
        return AppConfig(
            cache=CacheConfig(max_size=5),
            introspection=IntrospectionConfig(base_url="https://dataflow.test", api_key="token"),
        )

    @pytest.fixture
    def orders_response(self):
        response = Mock()
        response.json.return_value = {
            "success": True,
            "schemas": [{"name": "sales", "tables": [{"name": "orders", "columns": [
                {"name": "id", "type": "int"},
                {"name": "updated_at", "type": "timestamp"},
            ]}]}],
        }
        return response

    @patch("requests.Session.post")
    def test_client_built_from_config(self, mock_post, remote_config, orders_response):
        """Test a connection id enables remote lookup with the configured endpoint"""
        mock_post.return_value = orders_response

        session = MappingSession(config=remote_config, connection_id="conn-1")
        mappings = session.select_table("sales.orders")

        assert [m.source for m in mappings] == ["id", "updated_at"]
        assert mock_post.call_args[0][0] == "https://dataflow.test/api/introspect-schema"
        assert session.resolver.client.session.headers["Authorization"] == "Bearer token"
        assert session.resolver.client.timeout == 30

    @patch("requests.Session.post")
    def test_second_select_served_from_cache(self, mock_post, remote_config, orders_response):
        mock_post.return_value = orders_response

        session = MappingSession(config=remote_config, connection_id="conn-1")
        session.select_table("sales.orders")
        session.select_table("sales.orders")

        assert mock_post.call_count == 1

    def test_no_connection_no_client(self, remote_config):
        """Test sessions without a connection stay offline"""
        assert MappingSession(config=remote_config).resolver.client is None

    @patch("requests.Session.post")
    def test_change_connection_creates_client(self, mock_post, remote_config, orders_response):
        """Test choosing a connection later enables remote lookup"""
        mock_post.return_value = orders_response
        session = MappingSession(config=remote_config)

        session.change_connection("conn-7")
        session.select_table("sales.orders")

        assert session.resolver.connection_id == "conn-7"
        assert mock_post.call_args.kwargs["json"] == {"connectionId": "conn-7"}


# ============================================================================
# TEST: global rules
# ============================================================================


class TestSessionGlobalRules:
    """apply_global_rules() through the resolver"""

    def test_all_rules(self, session, orders_selection):
        """Test catalog rules assign transformations by column name"""
        session.select_table("sales.orders", orders_selection)

        changed = session.apply_global_rules("sales.orders", None, orders_selection)

        by_source = {m.source: m.transformation for m in session.store.get_mappings("sales.orders")}
        assert changed == 3
        assert by_source == {
            "id": "direct",
            "customer_name": "trim",
            "amount": "round_0dp",
            "updated_at": "date_iso",
        }

    def test_selected_rules_only(self, session, orders_selection):
        """Test only enabled rules are applied"""
        session.select_table("sales.orders", orders_selection)

        changed = session.apply_global_rules("sales.orders", ["date_standardize"], orders_selection)

        assert changed == 1
        assert session.store.find("sales.orders", "customer_name").transformation == "direct"


# ============================================================================
# TEST: CSV and persistence
# ============================================================================


class TestSessionCsv:
    """export_csv() and import_csv()"""

    def test_export_then_import_into_other_table(self, session, orders_selection):
        """Test a CSV export can seed another table"""
        session.select_table("sales.orders", orders_selection)
        session.apply_global_rules("sales.orders", None, orders_selection)

        text = session.export_csv("sales.orders")
        imported = session.import_csv("sales.orders_copy", text)

        assert [m.transformation for m in imported] == ["direct", "trim", "round_0dp", "date_iso"]

    def test_import_merges(self, session, orders_selection):
        """Test imported sources replace existing ones, others are kept first"""
        session.select_table("sales.orders", orders_selection)
        session.store.add_audit_column("sales.orders", "loaded_at")

        mappings = session.import_csv(
            "sales.orders", "source,target,transformation\namount,total,round_0dp\n"
        )

        assert [m.source for m in mappings] == ["id", "customer_name", "updated_at", "amount"]
        assert mappings[-1].target == "total"
        assert not any(m.is_audit for m in mappings)

    def test_export_empty_table(self, session):
        with pytest.raises(NothingToExportError):
            session.export_csv("sales.orders")


class TestSessionPersistence:
    """save() and load()"""

    def test_save_and_load(self, session, orders_selection, config, tmp_path):
        """Test mappings survive a save/load cycle"""
        session.select_table("sales.orders", orders_selection)
        session.store.update_param("sales.orders", "updated_at", "format", "yyyy-MM-dd")
        output = tmp_path / "mappings.json"

        session.save(output)
        restored = MappingSession.load(output, config=config)

        original = session.store.get_mappings("sales.orders")
        loaded = restored.store.get_mappings("sales.orders")
        assert [m.to_dict() for m in loaded] == [m.to_dict() for m in original]
        assert loaded[3].params == {"format": "yyyy-MM-dd"}

    def test_loaded_tables_are_not_rederived(self, session, orders_selection, config, tmp_path):
        """Test a restored table keeps its (empty) mapping list"""
        session.select_table("sales.orders", orders_selection)
        session.store.clear_mappings("sales.orders")
        output = tmp_path / "mappings.json"
        session.save(output)

        restored = MappingSession.load(output, config=config)

        assert restored.select_table("sales.orders", orders_selection) == []

    def test_document_shape(self, tmp_path):
        """Test the JSON document layout"""
        store = MappingStore({"sales.orders": [ColumnMapping(source="id", target="id")]})
        output = tmp_path / "doc.json"

        JsonExporter().export(output, store, metadata={"connection": "conn-1"})
        data = json.loads(output.read_text(encoding="utf-8"))

        assert data["metadata"]["tables"] == 1
        assert data["metadata"]["connection"] == "conn-1"
        assert data["mappings"]["sales.orders"][0]["source"] == "id"
        assert data["mappings"]["sales.orders"][0]["is_audit"] is False


class TestCustomFunctions:
    """add_custom_functions()"""

    def test_custom_function_usable_in_store(self, session, orders_selection):
        """Test custom functions join the session catalog"""
        session.add_custom_functions([{"name": "mask_pan", "category": "spark_udf"}])
        session.select_table("sales.orders", orders_selection)

        session.store.apply_transformation("sales.orders", [0], "custom_mask_pan")

        assert "custom_mask_pan" in session.catalog
        assert session.store.catalog is session.catalog
        assert session.store.get_mappings("sales.orders")[0].transformation == "custom_mask_pan"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
