"""Shared test fixtures for pgscope."""

from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
from typer.testing import CliRunner

from pgscope.cli.main import app
from pgscope.core.session import DatabaseSession
from tests.fakes import FakeDriverFactory

_PG_ENV = (
    "PGHOST",
    "PGPORT",
    "PGDATABASE",
    "PGUSER",
    "PGPASSWORD",
    "PGSSLMODE",
    "PGSCOPE_PROFILE",
    "PGSCOPE_SENTRY_DSN",
)


@pytest.fixture(autouse=True)
def clean_pg_env(monkeypatch):
    """Keep the developer's libpq environment out of config resolution."""
    for name in _PG_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def runner():
    """Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def cli_runner(runner):
    """Invoke the CLI app with the given arguments."""

    def invoke(*args: str, **kwargs):
        return runner.invoke(app, list(args), **kwargs)

    return invoke


@pytest.fixture
def temp_dir():
    """Temporary directory for test files."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def driver_factory():
    """Driver factory producing in-memory fake drivers."""
    return FakeDriverFactory()


@pytest.fixture
def session(driver_factory):
    """A DatabaseSession wired to the fake driver factory."""
    return DatabaseSession(driver_factory)
