"""SQLite compilation shims for PostgreSQL-specific SQLAlchemy types.

Installs a lightweight compiler for JSONB when the active dialect is SQLite so
that declarative metadata can be created in test runs that substitute an
in-memory SQLite database. Only storage is preserved; JSONB operators and
indexing are not emulated.

Usage: Imported for side-effects by portal.db.models.
"""
from __future__ import annotations

from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.compiler import compiles


@compiles(JSONB, "sqlite")
def _compile_jsonb_sqlite(element, compiler, **kw):  # pragma: no cover - trivial
    # Map JSONB to a generic JSON (stored as TEXT) for SQLite.
    return "JSON"
