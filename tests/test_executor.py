"""Tests for query execution and failure classification."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from pgscope.core.exceptions import NetworkError, QueryError
from pgscope.core.executor import (
    LINK_LOSS_PATTERNS,
    LINK_LOST_MESSAGE,
    QUERY_FAILED_MESSAGE,
    error_message,
    execute_query,
    is_link_loss,
)
from pgscope.core.types import TypeNames
from tests.fakes import make_result


def _driver(outcome):
    driver = MagicMock()
    if isinstance(outcome, Exception):
        driver.query = AsyncMock(side_effect=outcome)
    else:
        driver.query = AsyncMock(return_value=outcome)
    return driver


@pytest.mark.unit
class TestIsLinkLoss:
    @pytest.mark.parametrize("pattern", LINK_LOSS_PATTERNS)
    def test_every_pattern_matches(self, pattern):
        assert is_link_loss(f"error: {pattern} while reading")

    @pytest.mark.parametrize(
        "message",
        [
            "read ECONNRESET",
            "Connection terminated unexpectedly",
            "SERVER CLOSED THE CONNECTION unexpectedly",
        ],
    )
    def test_case_insensitive(self, message):
        assert is_link_loss(message)

    @pytest.mark.parametrize(
        "message",
        [
            'relation "missing" does not exist',
            'syntax error at or near "SELEC"',
            "division by zero",
        ],
    )
    def test_statement_errors_are_not_link_loss(self, message):
        assert not is_link_loss(message)


@pytest.mark.unit
class TestErrorMessage:
    def test_pgscope_error_uses_message(self):
        assert error_message(QueryError("bad"), "fallback") == "bad"

    def test_plain_exception(self):
        assert error_message(RuntimeError("oops"), "fallback") == "oops"

    def test_empty_message_uses_fallback(self):
        assert error_message(RuntimeError(), "fallback") == "fallback"
        assert error_message(QueryError(""), "fallback") == "fallback"


@pytest.mark.unit
class TestExecuteQuery:
    @pytest.mark.asyncio
    async def test_success_maps_fields_and_rows(self):
        raw = make_result(
            [{"id": 1, "name": "alice", "price": Decimal("9.99")}],
            fields=[("id", 23), ("name", 25), ("price", 1700)],
        )
        result = await execute_query(_driver(raw), "SELECT * FROM items")

        assert result.success
        assert [f.name for f in result.fields] == ["id", "name", "price"]
        assert [f.type_name for f in result.fields] == ["integer", "text", "oid:1700"]
        assert result.rows == [{"id": 1, "name": "alice", "price": "9.99"}]
        assert result.row_count == 1
        assert result.duration_ms >= 0

    @pytest.mark.asyncio
    async def test_field_count_matches_row_keys(self):
        raw = make_result([{"a": 1, "b": 2}, {"a": 3, "b": 4}])
        result = await execute_query(_driver(raw), "SELECT a, b FROM t")
        for row in result.rows:
            assert len(row) == len(result.fields)

    @pytest.mark.asyncio
    async def test_custom_type_names(self):
        raw = make_result([{"v": "[1,2]"}], fields=[("v", 16385)])
        names = TypeNames().merged({16385: "vector"})
        result = await execute_query(_driver(raw), "SELECT v", type_names=names)
        assert result.fields[0].type_name == "vector"

    @pytest.mark.asyncio
    async def test_missing_row_count_is_zero(self):
        raw = make_result([], fields=[], row_count=None)
        raw.row_count = None
        result = await execute_query(_driver(raw), "SET search_path TO public")
        assert result.success
        assert result.row_count == 0
        assert result.fields == []

    @pytest.mark.asyncio
    async def test_sql_passed_verbatim(self):
        driver = _driver(make_result([]))
        sql = "SELECT 1;\n  -- comment\n"
        await execute_query(driver, sql)
        driver.query.assert_awaited_once_with(sql)

    @pytest.mark.asyncio
    async def test_statement_error_keeps_raw_message(self):
        on_lost = MagicMock()
        driver = _driver(QueryError('relation "nope" does not exist'))
        result = await execute_query(driver, "SELECT * FROM nope", on_link_lost=on_lost)

        assert not result.success
        assert result.error == 'relation "nope" does not exist'
        assert result.duration_ms >= 0
        on_lost.assert_not_called()

    @pytest.mark.asyncio
    async def test_link_loss_normalized(self):
        on_lost = MagicMock()
        driver = _driver(NetworkError("server closed the connection unexpectedly"))
        result = await execute_query(driver, "SELECT 1", on_link_lost=on_lost)

        assert not result.success
        assert result.error == LINK_LOST_MESSAGE
        on_lost.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_link_loss_without_callback(self):
        driver = _driver(RuntimeError("read ECONNRESET"))
        result = await execute_query(driver, "SELECT 1")
        assert result.error == LINK_LOST_MESSAGE

    @pytest.mark.asyncio
    async def test_empty_error_uses_fallback(self):
        result = await execute_query(_driver(RuntimeError()), "SELECT 1")
        assert result.error == QUERY_FAILED_MESSAGE
