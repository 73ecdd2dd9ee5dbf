"""Unit tests for parameter normalizer."""

from __future__ import annotations

from pathlib import Path

from row_record.core.params import (
    is_raw_sql,
    merge_conditions,
    normalize_params,
    resolve_sql,
    split_conditions,
)
from row_record.core.registry import SQLRegistry


class TestNormalizeParams:
    def test_named_passthrough(self) -> None:
        sql = "SELECT * FROM companies WHERE id = :firm_id"
        assert normalize_params(sql, "named") == sql

    def test_pyformat_conversion(self) -> None:
        sql = "SELECT * FROM companies WHERE id = :firm_id"
        expected = "SELECT * FROM companies WHERE id = %(firm_id)s"
        assert normalize_params(sql, "pyformat") == expected

    def test_multiple_params(self) -> None:
        sql = "SELECT * FROM companies WHERE id = :id AND name = :name"
        expected = "SELECT * FROM companies WHERE id = %(id)s AND name = %(name)s"
        assert normalize_params(sql, "pyformat") == expected

    def test_typecast_exclusion(self) -> None:
        sql = "SELECT value::integer FROM t WHERE id = :id"
        expected = "SELECT value::integer FROM t WHERE id = %(id)s"
        assert normalize_params(sql, "pyformat") == expected

    def test_string_literal_exclusion(self) -> None:
        sql = "SELECT * FROM t WHERE col = ':not_a_param' AND id = :id"
        expected = "SELECT * FROM t WHERE col = ':not_a_param' AND id = %(id)s"
        assert normalize_params(sql, "pyformat") == expected

    def test_duplicate_param_names(self) -> None:
        sql = "SELECT * FROM t WHERE a = :val OR b = :val"
        expected = "SELECT * FROM t WHERE a = %(val)s OR b = %(val)s"
        assert normalize_params(sql, "pyformat") == expected

    def test_no_params(self) -> None:
        sql = "SELECT 1"
        assert normalize_params(sql, "pyformat") == sql

    def test_cache_returns_same_result(self) -> None:
        sql = "SELECT * FROM t WHERE id = :id"
        result1 = normalize_params(sql, "pyformat")
        result2 = normalize_params(sql, "pyformat")
        assert result1 == result2

    def test_underscore_in_param_name(self) -> None:
        sql = "SELECT * FROM t WHERE firm_id = :firm_id"
        expected = "SELECT * FROM t WHERE firm_id = %(firm_id)s"
        assert normalize_params(sql, "pyformat") == expected

    def test_percent_signs_are_doubled(self) -> None:
        sql = "SELECT * FROM t WHERE name LIKE '37%' AND rate > 5 % 2 AND id = :id"
        expected = "SELECT * FROM t WHERE name LIKE '37%%' AND rate > 5 %% 2 AND id = %(id)s"
        assert normalize_params(sql, "pyformat") == expected


class TestResolveSql:
    def test_inline_sql_is_detected(self) -> None:
        assert is_raw_sql("SELECT * FROM companies") is True
        assert is_raw_sql("firm.clients") is False

    def test_inline_sql_passes_through(self, tmp_sql_dir: Path, write_sql) -> None:
        write_sql("firm/clients.sql", "SELECT 1")
        registry = SQLRegistry(tmp_sql_dir)
        assert resolve_sql("SELECT 2 AS x", registry) == "SELECT 2 AS x"

    def test_registry_key_is_looked_up(self, tmp_sql_dir: Path, write_sql) -> None:
        write_sql("firm/clients.sql", "SELECT * FROM companies WHERE client_of = :id")
        registry = SQLRegistry(tmp_sql_dir)
        assert resolve_sql("firm.clients", registry) == (
            "SELECT * FROM companies WHERE client_of = :id"
        )

    def test_without_registry_returns_query(self) -> None:
        assert resolve_sql("firm.clients", None) == "firm.clients"


class TestConditions:
    def test_split_none(self) -> None:
        assert split_conditions(None) == (None, {})

    def test_split_fragment(self) -> None:
        assert split_conditions("rating > 1") == ("rating > 1", {})

    def test_split_tuple_copies_params(self) -> None:
        params = {"name": "37signals"}
        fragment, split = split_conditions(("name = :name", params))
        assert fragment == "name = :name"
        assert split == params
        assert split is not params

    def test_merge_ands_fragments(self) -> None:
        fragment, params = merge_conditions(
            ("firm_id = :owner_id", {"owner_id": 1}),
            None,
            "rating > 1",
        )
        assert fragment == "(firm_id = :owner_id) AND (rating > 1)"
        assert params == {"owner_id": 1}

    def test_merge_nothing(self) -> None:
        assert merge_conditions(None, None) == (None, {})
