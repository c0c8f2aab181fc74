"""Tests for the psycopg driver adapter."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import psycopg
import pytest

from pgscope.core.driver import APPLICATION_NAME, Driver, PsycopgDriver
from pgscope.core.exceptions import NetworkError, QueryError
from pgscope.core.executor import LINK_LOST_MESSAGE
from pgscope.core.models import ConnectionConfig
from pgscope.core.session import DatabaseSession

CONNECT = "pgscope.core.driver.psycopg.AsyncConnection.connect"


def _cursor(description=None, rows=None, rowcount=-1, error=None):
    cur = MagicMock()
    cur.execute = AsyncMock(side_effect=error)
    cur.description = description
    cur.fetchall = AsyncMock(return_value=rows or [])
    cur.rowcount = rowcount
    return cur


def _connection(cursor):
    conn = MagicMock()
    conn.closed = False
    conn.broken = False
    conn.close = AsyncMock()
    cm = MagicMock()
    cm.__aenter__ = AsyncMock(return_value=cursor)
    cm.__aexit__ = AsyncMock(return_value=False)
    conn.cursor = MagicMock(return_value=cm)
    return conn


async def _connected(conn, config=None):
    driver = PsycopgDriver(config or ConnectionConfig())
    with patch(CONNECT, new=AsyncMock(return_value=conn)):
        await driver.connect(10)
    return driver


@pytest.mark.unit
def test_implements_protocol():
    assert isinstance(PsycopgDriver(ConnectionConfig()), Driver)


@pytest.mark.unit
class TestConnect:
    @pytest.mark.asyncio
    async def test_connection_parameters(self):
        config = ConnectionConfig(
            host="db", port=6432, database="app", user="me", password="pw", use_tls=True
        )
        driver = PsycopgDriver(config)
        with patch(CONNECT, new=AsyncMock()) as connect:
            await driver.connect(10)

        kwargs = connect.await_args.kwargs
        assert kwargs["host"] == "db"
        assert kwargs["port"] == 6432
        assert kwargs["dbname"] == "app"
        assert kwargs["user"] == "me"
        assert kwargs["password"] == "pw"
        assert kwargs["sslmode"] == "require"
        assert kwargs["connect_timeout"] == 10
        assert kwargs["application_name"] == APPLICATION_NAME
        assert kwargs["autocommit"] is True

    @pytest.mark.asyncio
    async def test_empty_credentials_left_to_libpq(self):
        driver = PsycopgDriver(ConnectionConfig())
        with patch(CONNECT, new=AsyncMock()) as connect:
            await driver.connect(0.5)

        kwargs = connect.await_args.kwargs
        assert kwargs["user"] is None
        assert kwargs["password"] is None
        assert kwargs["sslmode"] == "disable"
        assert kwargs["connect_timeout"] == 2

    @pytest.mark.asyncio
    async def test_failure_becomes_network_error(self):
        driver = PsycopgDriver(ConnectionConfig())
        error = psycopg.OperationalError("connection refused")
        with (
            patch(CONNECT, new=AsyncMock(side_effect=error)),
            pytest.raises(NetworkError, match="connection refused"),
        ):
            await driver.connect(10)


@pytest.mark.unit
class TestQuery:
    @pytest.mark.asyncio
    async def test_not_connected(self):
        driver = PsycopgDriver(ConnectionConfig())
        with pytest.raises(NetworkError, match="connection is closed"):
            await driver.query("SELECT 1")

    @pytest.mark.asyncio
    async def test_rows_and_fields(self):
        cursor = _cursor(
            description=[
                SimpleNamespace(name="id", type_code=23),
                SimpleNamespace(name="name", type_code=25),
            ],
            rows=[{"id": 1, "name": "alice"}],
            rowcount=1,
        )
        driver = await _connected(_connection(cursor))

        result = await driver.query("SELECT id, name FROM users")

        cursor.execute.assert_awaited_once_with("SELECT id, name FROM users")
        assert [(f.name, f.type_id) for f in result.fields] == [("id", 23), ("name", 25)]
        assert result.rows == [{"id": 1, "name": "alice"}]
        assert result.row_count == 1

    @pytest.mark.asyncio
    async def test_statement_without_rows(self):
        cursor = _cursor(description=None, rowcount=3)
        driver = await _connected(_connection(cursor))

        result = await driver.query("UPDATE t SET x = 1")

        assert result.fields == []
        assert result.rows == []
        assert result.row_count == 3
        cursor.fetchall.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_rowcount(self):
        driver = await _connected(_connection(_cursor(rowcount=-1)))
        result = await driver.query("SET search_path TO public")
        assert result.row_count is None

    @pytest.mark.asyncio
    async def test_statement_error(self):
        error = psycopg.errors.UndefinedTable('relation "nope" does not exist')
        driver = await _connected(_connection(_cursor(error=error)))
        with pytest.raises(QueryError, match='relation "nope" does not exist'):
            await driver.query("SELECT * FROM nope")

    @pytest.mark.asyncio
    async def test_broken_link_emits_error(self):
        error = psycopg.OperationalError("server closed the connection unexpectedly")
        conn = _connection(_cursor(error=error))
        conn.broken = True
        driver = await _connected(conn)
        signals = []
        driver.on("error", signals.append)

        with pytest.raises(NetworkError, match="server closed the connection"):
            await driver.query("SELECT 1")

        assert signals == [error]

    @pytest.mark.asyncio
    async def test_operational_error_on_live_link_is_silent(self):
        error = psycopg.OperationalError("canceling statement due to statement timeout")
        driver = await _connected(_connection(_cursor(error=error)))
        signals = []
        driver.on("error", signals.append)

        with pytest.raises(NetworkError):
            await driver.query("SELECT pg_sleep(60)")

        assert signals == []


@pytest.mark.unit
class TestClose:
    @pytest.mark.asyncio
    async def test_close_emits_end_once(self):
        conn = _connection(_cursor())
        driver = await _connected(conn)
        ended = []
        driver.on("end", ended.append)

        await driver.close()
        await driver.close()

        conn.close.assert_awaited_once()
        assert ended == [None]

    @pytest.mark.asyncio
    async def test_removed_listeners_not_called(self):
        driver = await _connected(_connection(_cursor()))
        ended = []
        driver.on("end", ended.append)
        driver.remove_all_listeners()

        await driver.close()

        assert ended == []

    @pytest.mark.asyncio
    async def test_close_without_connect(self):
        await PsycopgDriver(ConnectionConfig()).close()


@pytest.mark.unit
class TestIdleDrop:
    @pytest.mark.asyncio
    async def test_surfaces_on_next_query(self):
        cur = _cursor(
            description=[SimpleNamespace(name="version", type_code=25)],
            rows=[{"version": "PostgreSQL 16.2"}],
        )
        error = psycopg.OperationalError("SSL SYSCALL error: EOF detected")
        cur.execute = AsyncMock(side_effect=[None, error])
        conn = _connection(cur)
        session = DatabaseSession(PsycopgDriver)
        with patch(CONNECT, new=AsyncMock(return_value=conn)):
            assert (await session.connect(ConnectionConfig())).success

        conn.broken = True
        result = await session.query("SELECT 1")

        assert result.error == LINK_LOST_MESSAGE
        assert not session.is_connected()
