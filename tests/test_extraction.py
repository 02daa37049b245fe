from collections import OrderedDict

import pytest

from metaquery.core.extraction import as_mapping, extract_nested, group_rows, row_value


class _RowLike:
    """Mimics SQLAlchemy Row: not a Mapping, exposes ._mapping."""

    def __init__(self, **values):
        self._mapping = dict(values)


class TestExtractNested:
    def test_extracts_prefixed_columns_as_camel_case(self):
        row = {"ID": 1, "CLIENTS_FIRST_NAME": "Ana", "CLIENTS_ID": 7, "ITEMS_NAME": "Pen"}
        assert extract_nested(row, "CLIENTS") == {"firstName": "Ana", "id": 7}

    def test_none_when_no_prefixed_column(self):
        assert extract_nested({"ID": 1, "NAME": "x"}, "CLIENTS") is None

    def test_all_null_related_record_is_still_a_child(self):
        child = extract_nested({"ID": 1, "CLIENTS_ID": None, "CLIENTS_NAME": None}, "CLIENTS")
        assert child == {"id": None, "name": None}

    def test_case_insensitive_prefix(self):
        assert extract_nested({"clients_name": "Ana"}, "CLIENTS") == {"name": "Ana"}

    def test_prefix_anchored_on_underscore(self):
        row = {"ITEM_ID": 1, "ITEMS_ID": 2, "ITEMDETAIL_ID": 3}
        assert extract_nested(row, "ITEM") == {"id": 1}
        assert extract_nested(row, "ITEMS") == {"id": 2}

    def test_preserves_row_column_order(self):
        row = OrderedDict([("ITEMS_NAME", "Pen"), ("ITEMS_ID", 3), ("ITEMS_QTY", 2)])
        assert list(extract_nested(row, "ITEMS")) == ["name", "id", "qty"]

    def test_does_not_mutate_row(self):
        row = {"CLIENTS_NAME": "Ana"}
        extract_nested(row, "CLIENTS")
        assert row == {"CLIENTS_NAME": "Ana"}

    def test_accepts_row_like_objects(self):
        assert extract_nested(_RowLike(CLIENTS_NAME="Ana"), "CLIENTS") == {"name": "Ana"}


class TestGroupRows:
    def test_groups_in_first_occurrence_order(self):
        rows = [{"ID": 2, "n": "a"}, {"ID": 1, "n": "b"}, {"ID": 2, "n": "c"}]
        groups = group_rows(rows, "ID")
        assert [g.key for g in groups] == [2, 1]
        assert [r["n"] for r in groups[0].rows] == ["a", "c"]
        assert groups[0].first is rows[0]

    def test_empty_input(self):
        assert group_rows([], "ID") == []

    def test_missing_key_forms_null_group(self):
        rows = [{"ID": 1}, {"OTHER": 1}, {"OTHER": 2}]
        groups = group_rows(rows, "ID")
        assert [g.key for g in groups] == [1, None]
        assert len(groups[1].rows) == 2

    @pytest.mark.parametrize("pk", [None, ""])
    def test_no_primary_key_means_single_group(self, pk):
        groups = group_rows([{"ID": 1}, {"ID": 2}], pk)
        assert len(groups) == 1
        assert groups[0].key is None

    def test_lookup_is_exact_match(self):
        groups = group_rows([{"id": 1}, {"id": 2}], "ID")
        assert len(groups) == 1

    def test_unhashable_keys_are_grouped(self):
        groups = group_rows([{"ID": [1]}, {"ID": [1]}, {"ID": [2]}], "ID")
        assert len(groups) == 2


def test_row_value_and_as_mapping():
    assert row_value({"A": 1}, "A") == 1
    assert row_value({"A": 1}, "B") is None
    assert row_value({"A": 1}, None) is None
    assert as_mapping(_RowLike(A=1))["A"] == 1
    with pytest.raises(TypeError):
        as_mapping(object())
