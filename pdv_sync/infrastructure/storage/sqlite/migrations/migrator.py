"""
Schema migrations and outbox consistency checks.

Migrations are the vNNN_name.sql files next to this module. Each one runs
in its own transaction together with its schema_migrations row, so a
terminal never ends up with half a schema. A migration that was edited
after being applied stops the run: the database may hold unsent fiscal
documents and must not be migrated against a schema nobody shipped.
"""

import asyncio
import hashlib
import re
from dataclasses import dataclass
from pathlib import Path

import aiosqlite

from pdv_sync.config import get_logger, get_settings
from pdv_sync.core.exceptions import DatabaseError

logger = get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent

_FILENAME = re.compile(r"v(\d{3})_(\w+)\.sql$")

OUTBOX_GUARDS = (
    "trg_sync_queue_payload_immutable",
    "trg_sync_queue_attempts_monotonic",
    "trg_sync_queue_no_delete",
)


@dataclass(frozen=True)
class Migration:
    version: str
    name: str
    sql: str

    @property
    def checksum(self) -> str:
        return hashlib.sha256(self.sql.encode("utf-8")).hexdigest()[:16]

    @classmethod
    def load(cls, path: Path) -> "Migration":
        match = _FILENAME.match(path.name)
        if not match:
            raise ValueError(f"Invalid migration filename: {path.name}")
        return cls(match.group(1), match.group(2), path.read_text(encoding="utf-8"))


@dataclass
class SchemaCheck:
    """Outcome of one verify_schema check; detail lists what is wrong."""

    name: str
    passed: bool
    detail: str = ""


def load_migrations(directory: Path | None = None) -> list[Migration]:
    """Migrations in version order."""
    paths = sorted((directory or MIGRATIONS_DIR).glob("v*.sql"))
    return [Migration.load(path) for path in paths]


async def applied_checksums(conn: aiosqlite.Connection) -> dict[str, str]:
    """Applied version -> checksum; empty for a fresh database."""
    try:
        cursor = await conn.execute("SELECT version, checksum FROM schema_migrations")
    except aiosqlite.OperationalError:
        return {}
    return {row[0]: row[1] for row in await cursor.fetchall()}


async def _apply(conn: aiosqlite.Connection, migration: Migration) -> None:
    try:
        await conn.executescript(f"BEGIN IMMEDIATE;\n{migration.sql}")
        await conn.execute(
            "INSERT INTO schema_migrations (version, name, checksum) VALUES (?, ?, ?)",
            (migration.version, migration.name, migration.checksum),
        )
        await conn.commit()
    except aiosqlite.Error as e:
        await conn.rollback()
        logger.error("migration_failed", version=migration.version, error=str(e))
        raise DatabaseError(f"migration v{migration.version}", str(e)) from e


async def migrate(db_path: Path | None = None) -> list[str]:
    """
    Apply pending migrations.

    Returns:
        Versions applied by this call (empty when already up to date)

    Raises:
        DatabaseError: A migration failed (it was rolled back) or an applied
            migration no longer matches its file
    """
    db_path = db_path or get_settings().storage.db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)

    applied: list[str] = []
    async with aiosqlite.connect(db_path) as conn:
        await conn.execute("PRAGMA journal_mode=WAL")
        await conn.execute("PRAGMA foreign_keys=ON")

        done = await applied_checksums(conn)
        for migration in load_migrations():
            if migration.version in done:
                if done[migration.version] != migration.checksum:
                    raise DatabaseError(
                        "migrate",
                        f"v{migration.version} changed after it was applied",
                    )
                continue

            await _apply(conn, migration)
            applied.append(migration.version)
            logger.info("migration_applied", version=migration.version, name=migration.name)

    logger.info("database_migrated", db_path=str(db_path), applied=applied)
    return applied


async def _count(conn: aiosqlite.Connection, sql: str) -> int:
    cursor = await conn.execute(sql)
    row = await cursor.fetchone()
    return row[0]


async def verify_schema(db_path: Path | None = None) -> list[SchemaCheck]:
    """Check the outbox guards and the sale/outbox pairing of a database."""
    db_path = db_path or get_settings().storage.db_path

    async with aiosqlite.connect(db_path) as conn:
        cursor = await conn.execute("SELECT name FROM sqlite_master WHERE type = 'trigger'")
        triggers = {row[0] for row in await cursor.fetchall()}
        missing = [name for name in OUTBOX_GUARDS if name not in triggers]

        unqueued = await _count(
            conn,
            """
            SELECT COUNT(*) FROM vendas v
            LEFT JOIN vendas_sync_queue q ON q.venda_id = v.id
            WHERE q.id IS NULL
            """,
        )
        # Resolved entries carry their resolution time, pending ones do not
        misstamped = await _count(
            conn,
            """
            SELECT COUNT(*) FROM vendas_sync_queue
            WHERE (status = 'PENDING') = (data_sincronizacao IS NOT NULL)
            """,
        )
        cursor = await conn.execute("PRAGMA foreign_key_check")
        orphans = len(await cursor.fetchall())

    return [
        SchemaCheck("outbox_guards", not missing, ", ".join(missing)),
        SchemaCheck("sale_queued", unqueued == 0, f"{unqueued} sales without an outbox entry"),
        SchemaCheck("resolution_stamp", misstamped == 0, f"{misstamped} entries"),
        SchemaCheck("foreign_keys", orphans == 0, f"{orphans} violations"),
    ]


def main() -> None:
    """pdv-sync-migrate: migrate (default), or report version / verify."""
    import argparse

    parser = argparse.ArgumentParser(description="PDV sync database migrator")
    parser.add_argument("--db-path", type=Path, help="Database path (default from settings)")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--status", action="store_true", help="Show applied and pending versions")
    mode.add_argument("--verify", action="store_true", help="Check outbox consistency")
    args = parser.parse_args()

    async def run() -> int:
        if args.status:
            db_path = args.db_path or get_settings().storage.db_path
            done: dict[str, str] = {}
            if db_path.exists():
                async with aiosqlite.connect(db_path) as conn:
                    done = await applied_checksums(conn)
            pending = [m.version for m in load_migrations() if m.version not in done]
            print(f"Applied: {sorted(done)}")
            print(f"Pending: {pending}")
            return 0

        if args.verify:
            checks = await verify_schema(args.db_path)
            for check in checks:
                print(f"[{'PASS' if check.passed else 'FAIL'}] {check.name}")
                if not check.passed:
                    print(f"       {check.detail}")
            return 0 if all(c.passed for c in checks) else 1

        applied = await migrate(args.db_path)
        print(f"Applied: {applied}" if applied else "Up to date")
        return 0

    raise SystemExit(asyncio.run(run()))


if __name__ == "__main__":
    main()
