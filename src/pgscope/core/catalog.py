"""Catalog query builder.

SQL text against information_schema and pg_catalog for the schema
browser, the ERD graph and DDL reconstruction. Queries run through
DatabaseSession.query(), which takes plain SQL with no parameter
binding, so every caller-supplied name is rendered with quote_literal().
"""

from __future__ import annotations

from pgscope.core.exceptions import InputError

DEFAULT_SCHEMA = "public"

SYSTEM_SCHEMAS: tuple[str, ...] = ("pg_catalog", "information_schema", "pg_toast")


def quote_literal(value: str) -> str:
    """Render ``value`` as a standard-conforming SQL string literal."""
    if "\x00" in value:
        msg = f"Invalid identifier {value!r}: NUL bytes are not allowed"
        raise InputError(msg)
    return "'" + value.replace("'", "''") + "'"


def quote_ident(name: str) -> str:
    """Render ``name`` as a double-quoted SQL identifier."""
    return '"' + name.replace('"', '""') + '"'


def _system_schema_list() -> str:
    return ", ".join(quote_literal(s) for s in SYSTEM_SCHEMAS)


def schemas_sql() -> str:
    return f"""
    SELECT schema_name AS name, schema_owner AS owner
    FROM information_schema.schemata
    WHERE schema_name NOT IN ({_system_schema_list()})
    ORDER BY schema_name
    """


def tables_sql(schema: str | None = None) -> str:
    schema_filter = f"AND table_schema = {quote_literal(schema)}" if schema else ""
    return f"""
    SELECT
        table_name AS name,
        table_schema AS schema,
        CASE table_type
            WHEN 'BASE TABLE' THEN 'table'
            WHEN 'VIEW' THEN 'view'
            ELSE 'table'
        END AS kind
    FROM information_schema.tables
    WHERE table_schema NOT IN ({_system_schema_list()})
    {schema_filter}
    ORDER BY table_schema, table_name
    """


_PRIMARY_KEY_EXISTS = """
    COALESCE(
        (SELECT true FROM information_schema.table_constraints pk
         JOIN information_schema.key_column_usage pkc
           ON pk.constraint_name = pkc.constraint_name
          AND pk.table_schema = pkc.table_schema
         WHERE pk.constraint_type = 'PRIMARY KEY'
           AND pk.table_schema = c.table_schema
           AND pk.table_name = c.table_name
           AND pkc.column_name = c.column_name
         LIMIT 1),
        false
    )"""


def columns_sql(table: str, schema: str = DEFAULT_SCHEMA) -> str:
    return f"""
    SELECT
        c.column_name AS name,
        c.data_type AS data_type,
        c.is_nullable = 'YES' AS nullable,
        c.column_default AS default_value,
        {_PRIMARY_KEY_EXISTS} AS is_primary_key
    FROM information_schema.columns c
    WHERE c.table_schema = {quote_literal(schema)}
      AND c.table_name = {quote_literal(table)}
    ORDER BY c.ordinal_position
    """


def functions_sql(schema: str | None = None) -> str:
    schema_filter = f"AND n.nspname = {quote_literal(schema)}" if schema else ""
    return f"""
    SELECT
        p.proname AS name,
        n.nspname AS schema,
        pg_catalog.pg_get_function_result(p.oid) AS return_type,
        pg_catalog.pg_get_function_arguments(p.oid) AS arguments_signature
    FROM pg_catalog.pg_proc p
    JOIN pg_catalog.pg_namespace n ON p.pronamespace = n.oid
    WHERE n.nspname NOT IN ('pg_catalog', 'information_schema')
    {schema_filter}
    ORDER BY n.nspname, p.proname
    """


def erd_sql(schema: str = DEFAULT_SCHEMA) -> str:
    """One row per (column, key constraint) pair; columns in ordinal order."""
    return f"""
    SELECT
        c.table_name AS table_name,
        c.column_name AS column_name,
        c.data_type AS data_type,
        c.is_nullable = 'YES' AS nullable,
        c.column_default AS default_value,
        {_PRIMARY_KEY_EXISTS} AS is_primary_key,
        tc.constraint_name AS constraint_name,
        tc.constraint_type AS constraint_type,
        ccu.table_name AS fk_table_name,
        ccu.column_name AS fk_column_name,
        rc.update_rule AS update_rule,
        rc.delete_rule AS delete_rule
    FROM information_schema.columns c
    LEFT JOIN information_schema.key_column_usage kcu
      ON c.table_name = kcu.table_name
     AND c.column_name = kcu.column_name
     AND c.table_schema = kcu.table_schema
    LEFT JOIN information_schema.table_constraints tc
      ON kcu.constraint_name = tc.constraint_name
     AND kcu.table_schema = tc.table_schema
    LEFT JOIN information_schema.referential_constraints rc
      ON kcu.constraint_name = rc.constraint_name
     AND kcu.constraint_schema = rc.constraint_schema
    LEFT JOIN information_schema.constraint_column_usage ccu
      ON rc.unique_constraint_name = ccu.constraint_name
     AND rc.unique_constraint_schema = ccu.constraint_schema
    WHERE c.table_schema = {quote_literal(schema)}
      AND c.table_name NOT LIKE 'pg\\_%'
      AND c.table_name NOT LIKE 'sql\\_%'
    ORDER BY c.table_name, c.ordinal_position
    """


def table_relationships_sql(table: str, schema: str = DEFAULT_SCHEMA) -> str:
    return f"""
    SELECT
        tc.constraint_name AS constraint_name,
        kcu.table_name AS source_table,
        kcu.column_name AS source_column,
        ccu.table_name AS target_table,
        ccu.column_name AS target_column,
        rc.update_rule AS update_rule,
        rc.delete_rule AS delete_rule
    FROM information_schema.table_constraints tc
    JOIN information_schema.key_column_usage kcu
      ON tc.constraint_name = kcu.constraint_name
     AND tc.table_schema = kcu.table_schema
    JOIN information_schema.referential_constraints rc
      ON tc.constraint_name = rc.constraint_name
     AND tc.constraint_schema = rc.constraint_schema
    JOIN information_schema.constraint_column_usage ccu
      ON rc.unique_constraint_name = ccu.constraint_name
     AND rc.unique_constraint_schema = ccu.constraint_schema
    WHERE tc.constraint_type = 'FOREIGN KEY'
      AND tc.table_schema = {quote_literal(schema)}
      AND kcu.table_name = {quote_literal(table)}
    ORDER BY tc.constraint_name, kcu.ordinal_position
    """


def ddl_columns_sql(table: str, schema: str = DEFAULT_SCHEMA) -> str:
    return f"""
    SELECT
        column_name,
        data_type,
        is_nullable,
        column_default,
        ordinal_position
    FROM information_schema.columns
    WHERE table_schema = {quote_literal(schema)}
      AND table_name = {quote_literal(table)}
    ORDER BY ordinal_position
    """


def ddl_constraints_sql(table: str, schema: str = DEFAULT_SCHEMA) -> str:
    return f"""
    SELECT
        tc.constraint_name,
        tc.constraint_type,
        kcu.column_name,
        ccu.table_schema AS foreign_table_schema,
        ccu.table_name AS foreign_table_name,
        ccu.column_name AS foreign_column_name
    FROM information_schema.table_constraints tc
    LEFT JOIN information_schema.key_column_usage kcu
      ON tc.constraint_name = kcu.constraint_name
     AND tc.table_schema = kcu.table_schema
    LEFT JOIN information_schema.constraint_column_usage ccu
      ON tc.constraint_name = ccu.constraint_name
     AND tc.table_schema = ccu.table_schema
    WHERE tc.table_schema = {quote_literal(schema)}
      AND tc.table_name = {quote_literal(table)}
    ORDER BY tc.constraint_type, kcu.ordinal_position
    """
