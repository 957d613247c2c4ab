"""
SQL text helpers.

Utility statements (CREATE ROLE, GRANT, ALTER USER ... PASSWORD) cannot take bind
parameters, so identifiers and literals supplied by resource properties or
secrets are quoted here before interpolation. Nothing else in the package builds
SQL from external values.
"""

from typing import Iterable
from typing import List

# Attribute sets reasserted on every run
SHARED_ROLE_ATTRIBUTES = "NOBYPASSRLS NOCREATEDB NOCREATEROLE NOLOGIN INHERIT"
LOGIN_USER_ATTRIBUTES = "NOBYPASSRLS NOCREATEDB NOCREATEROLE INHERIT"

READER_TABLE_PRIVILEGES = "SELECT"
WRITER_TABLE_PRIVILEGES = "SELECT, INSERT, UPDATE, DELETE"

ROLE_EXISTS = "SELECT 1 FROM pg_catalog.pg_roles WHERE rolname = $1"
DATABASE_EXISTS = "SELECT 1 FROM pg_catalog.pg_database WHERE datname = $1"
LIVENESS_PROBE = "SELECT 1"

# NAMEDATALEN - 1; longer names are silently truncated by the server
MAX_IDENTIFIER_BYTES = 63


def quote_ident(name: str) -> str:
    """Quote an identifier, doubling embedded double quotes. Always quoted so case is preserved."""
    if not isinstance(name, str) or not name:
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    if "\x00" in name:
        raise ValueError("SQL identifiers cannot contain NUL characters")
    if len(name.encode("utf-8")) > MAX_IDENTIFIER_BYTES:
        raise ValueError(f"SQL identifier {name!r} is longer than {MAX_IDENTIFIER_BYTES} bytes")
    return '"' + name.replace('"', '""') + '"'


def quote_literal(value: str) -> str:
    """
    Quote a string literal.

    Single quotes are doubled; values containing backslashes use the E'' form with
    backslashes doubled, so the result is correct regardless of
    standard_conforming_strings.
    """
    if not isinstance(value, str):
        raise ValueError(f"Invalid SQL literal: {type(value).__name__}")
    if "\x00" in value:
        raise ValueError("SQL literals cannot contain NUL characters")
    quoted = "'" + value.replace("'", "''") + "'"
    if "\\" in value:
        return "E" + quoted.replace("\\", "\\\\")
    return quoted


def create_database(name: str) -> str:
    return f"CREATE DATABASE {quote_ident(name)}"


def create_schema(name: str) -> str:
    return f"CREATE SCHEMA IF NOT EXISTS {quote_ident(name)}"


def create_role(name: str) -> str:
    return f"CREATE ROLE {quote_ident(name)}"


def normalize_shared_role(name: str) -> str:
    return f"ALTER ROLE {quote_ident(name)} {SHARED_ROLE_ATTRIBUTES}"


def create_user(name: str) -> str:
    return f"CREATE USER {quote_ident(name)} PASSWORD NULL"


def normalize_login_user(name: str) -> str:
    return f"ALTER ROLE {quote_ident(name)} {LOGIN_USER_ATTRIBUTES}"


def set_password(name: str, password: str) -> str:
    return f"ALTER USER {quote_ident(name)} WITH ENCRYPTED PASSWORD {quote_literal(password)}"


def grant_role(role: str, user: str) -> str:
    return f"GRANT {quote_ident(role)} TO {quote_ident(user)}"


def role_grants(database: str, role: str, schemas: Iterable[str], is_writer: bool) -> List[str]:
    """
    Grants that give a shared role its privilege set in one database.

    Connect on the database, usage on each schema, and default privileges for
    sequences and tables created later.
    """
    table_privileges = WRITER_TABLE_PRIVILEGES if is_writer else READER_TABLE_PRIVILEGES
    statements = [f"GRANT CONNECT ON DATABASE {quote_ident(database)} TO {quote_ident(role)}"]
    statements.extend(f"GRANT USAGE ON SCHEMA {quote_ident(s)} TO {quote_ident(role)}" for s in schemas)
    statements.append(f"ALTER DEFAULT PRIVILEGES GRANT USAGE ON SEQUENCES TO {quote_ident(role)}")
    statements.append(f"ALTER DEFAULT PRIVILEGES GRANT {table_privileges} ON TABLES TO {quote_ident(role)}")
    return statements
