"""Data models for pgscope.

Pydantic models for connection settings, query results and the read-only
catalog projections (schemas, tables, columns, functions, ERD graph).
Catalog records are rebuilt on every request and carry no identity
beyond name and schema.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any, Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field

CellValue: TypeAlias = None | bool | int | float | str | list[Any] | dict[str, Any]
Row: TypeAlias = dict[str, CellValue]

ReferentialAction: TypeAlias = Literal[
    "CASCADE", "SET NULL", "SET DEFAULT", "RESTRICT", "NO ACTION"
]

TLS_SSLMODES = frozenset({"require", "verify-ca", "verify-full"})


class ConnectionConfig(BaseModel):
    """Parameters for one connect attempt."""

    model_config = ConfigDict(frozen=True)

    host: str = "localhost"
    port: int = 5432
    database: str = "postgres"
    user: str = ""
    password: str = Field(default="", repr=False)
    use_tls: bool = False
    ssl_mode: str | None = None

    @property
    def sslmode(self) -> str:
        """libpq sslmode: the requested mode when it agrees with use_tls."""
        if self.ssl_mode is not None and (self.ssl_mode in TLS_SSLMODES) == self.use_tls:
            return self.ssl_mode
        return "require" if self.use_tls else "disable"

    def without_password(self) -> ConnectionConfig:
        return self.model_copy(update={"password": ""})


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class ConnectionResult(BaseModel):
    success: bool
    error: str | None = None
    server_version: str | None = None


class TestResult(BaseModel):
    """Outcome of a probe session."""

    __test__ = False

    success: bool
    error: str | None = None
    latency_ms: float | None = None


class ConnectionStatus(BaseModel):
    """Payload pushed to every status observer on a state transition."""

    connected: bool
    server_version: str | None = None
    reason: str | None = None


class FieldInfo(BaseModel):
    """Metadata for a single result column."""

    name: str
    type_id: int
    type_name: str


class QueryResult(BaseModel):
    """Result of a SQL statement: rows and fields, or an error.

    duration_ms is set on both variants.
    """

    success: bool
    rows: list[Row] = []
    fields: list[FieldInfo] = []
    row_count: int = 0
    duration_ms: float = 0.0
    error: str | None = None

    @classmethod
    def ok(
        cls,
        rows: list[Row],
        fields: list[FieldInfo],
        row_count: int,
        duration_ms: float,
    ) -> QueryResult:
        return cls(
            success=True,
            rows=rows,
            fields=fields,
            row_count=row_count,
            duration_ms=duration_ms,
        )

    @classmethod
    def failure(cls, error: str, duration_ms: float = 0.0) -> QueryResult:
        return cls(success=False, error=error, duration_ms=duration_ms)


class SchemaInfo(BaseModel):
    name: str
    owner: str


class TableInfo(BaseModel):
    name: str
    schema_name: str = Field(alias="schema")
    kind: Literal["table", "view"] = "table"

    model_config = ConfigDict(populate_by_name=True)


class ColumnInfo(BaseModel):
    name: str
    data_type: str
    nullable: bool = True
    default_value: str | None = None
    is_primary_key: bool = False


class FunctionInfo(BaseModel):
    name: str
    schema_name: str = Field(alias="schema")
    return_type: str | None = None
    arguments_signature: str = ""

    model_config = ConfigDict(populate_by_name=True)


class ERDColumn(ColumnInfo):
    is_foreign_key: bool = False
    foreign_table: str | None = None
    foreign_column: str | None = None


class ERDTable(BaseModel):
    name: str
    schema_name: str = Field(alias="schema")
    columns: list[ERDColumn] = []

    model_config = ConfigDict(populate_by_name=True)


class TableRelationship(BaseModel):
    """A foreign-key edge from source column to target column."""

    constraint_name: str
    source_table: str
    source_column: str
    target_table: str
    target_column: str
    on_delete: ReferentialAction = "NO ACTION"
    on_update: ReferentialAction = "NO ACTION"


class ERDData(BaseModel):
    tables: list[ERDTable] = []
    relationships: list[TableRelationship] = []

    @classmethod
    def empty(cls) -> ERDData:
        return cls(tables=[], relationships=[])


class ERDResult(BaseModel):
    success: bool
    data: ERDData | None = None
    error: str | None = None


class RelationshipsResult(BaseModel):
    success: bool
    relationships: list[TableRelationship] | None = None
    error: str | None = None


class DDLResult(BaseModel):
    success: bool
    ddl: str | None = None
    error: str | None = None


class RecentConnection(BaseModel):
    """One entry of the most-recently-used connection history."""

    id: str
    name: str
    config: ConnectionConfig
    last_used: datetime
