"""pgscope - PostgreSQL browser core: sessions, queries, catalog, ERD and DDL."""

from pgscope.__about__ import __version__

__all__ = ["__version__"]
