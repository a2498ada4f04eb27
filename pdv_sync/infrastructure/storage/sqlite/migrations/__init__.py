"""Database migrations module."""

from pdv_sync.infrastructure.storage.sqlite.migrations.migrator import (
    Migration,
    SchemaCheck,
    load_migrations,
    migrate,
    verify_schema,
)

__all__ = [
    "Migration",
    "SchemaCheck",
    "load_migrations",
    "migrate",
    "verify_schema",
]
