import logging

import pytest
from sqlalchemy.dialects import sqlite

from metaquery.catalog import MetadataCatalog, TableMetadata
from metaquery.exceptions import InvalidQueryError
from metaquery.query_builder import JoinStep, build_query, compile_sql, plan_joins


@pytest.fixture
def catalog():
    return MetadataCatalog([
        TableMetadata("ORDERS", "ID,ORDER_DATE", "ID", "CLIENTS:ID_CLIENT:ID;ITEMS:ID_ORDER:ID"),
        TableMetadata("CLIENTS", "ID,NAME", "ID", "ORDERS:ID_CLIENT:ID"),
        TableMetadata("ITEMS", "ID,ID_ORDER,ID_PRODUCT,NAME", "ID", "PRODUCTS:ID_PRODUCT:ID;SUPPLIERS:ID_SUPPLIER:ID"),
        TableMetadata("PRODUCTS", "ID,NAME", "ID"),
    ])


def _sql(stmt):
    return compile_sql(stmt, sqlite.dialect())


class TestPlanJoins:
    def test_depth_one(self, catalog):
        steps = plan_joins(catalog, catalog.get("ORDERS"), 1)
        assert steps == [
            # FK not catalogued on CLIENTS, so it lives on ORDERS
            JoinStep("ORDERS", "CLIENTS", "ID_CLIENT", "ID", 1),
            JoinStep("ORDERS", "ITEMS", "ID", "ID_ORDER", 1),
        ]

    def test_depth_two_skips_joined_tables_and_unknown_targets(self, catalog, caplog):
        with caplog.at_level(logging.WARNING, logger="metaquery.query_builder"):
            steps = plan_joins(catalog, catalog.get("ORDERS"), 2)
        assert [(s.target, s.level) for s in steps] == [("CLIENTS", 1), ("ITEMS", 1), ("PRODUCTS", 2)]
        assert steps[-1] == JoinStep("ITEMS", "PRODUCTS", "ID_PRODUCT", "ID", 2)
        assert "SUPPLIERS" in caplog.text

    def test_stops_when_nothing_left(self, catalog):
        assert len(plan_joins(catalog, catalog.get("ORDERS"), 3)) == 3
        assert plan_joins(catalog, catalog.get("PRODUCTS"), 3) == []


class TestBuildQuery:
    def test_flat_select(self, catalog):
        sql = _sql(build_query(catalog, "orders"))
        assert 'FROM "ORDERS"' in sql
        assert "JOIN" not in sql
        assert 'ORDER BY "ORDERS"."ID"' in sql

    def test_joins_are_left_outer_and_labelled(self, catalog):
        sql = _sql(build_query(catalog, "ORDERS", include_joins=True, depth=1))
        assert sql.count("LEFT OUTER JOIN") == 2
        assert '"CLIENTS"."ID" = "ORDERS"."ID_CLIENT"' in sql
        assert '"ITEMS"."ID_ORDER" = "ORDERS"."ID"' in sql
        assert '"CLIENTS_NAME"' in sql
        assert '"ITEMS_ID_ORDER"' in sql

    def test_selected_column_keys(self, catalog):
        stmt = build_query(catalog, "ORDERS", include_joins=True, depth=2)
        keys = list(stmt.selected_columns.keys())
        assert keys[:2] == ["ID", "ORDER_DATE"]
        assert "CLIENTS_ID" in keys and "PRODUCTS_NAME" in keys
        # FK helper columns are used for joins but not projected
        assert "ID_CLIENT" not in keys

    def test_joins_ignored_without_flag(self, catalog):
        sql = _sql(build_query(catalog, "ORDERS", include_joins=False, depth=3))
        assert "JOIN" not in sql

    def test_unknown_table(self, catalog):
        with pytest.raises(InvalidQueryError):
            build_query(catalog, "NOPE")

    def test_invalid_depth(self, catalog):
        with pytest.raises(InvalidQueryError):
            build_query(catalog, "ORDERS", include_joins=True, depth=0)

    def test_table_without_fields(self):
        with pytest.raises(InvalidQueryError):
            build_query(MetadataCatalog([TableMetadata("EMPTY")]), "EMPTY")


def test_primary_key_selected_when_not_an_available_field():
    catalog = MetadataCatalog([TableMetadata("ORDERS", "ORDER_DATE,STATUS", "ID", "ITEMS:ID_ORDER:ID"),
                               TableMetadata("ITEMS", "ID,ID_ORDER", "ID")])
    keys = list(build_query(catalog, "ORDERS", include_joins=True).selected_columns.keys())
    assert keys == ["ORDER_DATE", "STATUS", "ID", "ITEMS_ID", "ITEMS_ID_ORDER"]
    # not duplicated when it is an available field
    catalog = MetadataCatalog([TableMetadata("ORDERS", "id,ORDER_DATE", "ID")])
    assert list(build_query(catalog, "ORDERS").selected_columns.keys()) == ["id", "ORDER_DATE"]
