"""Unit tests for database migrator."""

from pathlib import Path
from unittest.mock import patch

import aiosqlite
import pytest

from pdv_sync.core.exceptions import DatabaseError
from pdv_sync.infrastructure.storage.sqlite.migrations.migrator import (
    OUTBOX_GUARDS,
    Migration,
    applied_checksums,
    load_migrations,
    main,
    migrate,
    verify_schema,
)

MIGRATOR = "pdv_sync.infrastructure.storage.sqlite.migrations.migrator"

TRACKING_TABLE = (
    "CREATE TABLE IF NOT EXISTS schema_migrations ("
    "version TEXT PRIMARY KEY, name TEXT NOT NULL, checksum TEXT, "
    "applied_at TEXT, execution_time_ms INTEGER);"
)


@pytest.fixture
def migrations_dir(tmp_path: Path) -> Path:
    path = tmp_path / "migrations"
    path.mkdir()
    (path / "v001_init.sql").write_text(TRACKING_TABLE)
    return path


async def _tables(db_path: Path) -> set[str]:
    async with aiosqlite.connect(db_path) as conn:
        cursor = await conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        return {row[0] for row in await cursor.fetchall()}


class TestMigration:
    def test_load_parses_filename(self, tmp_path: Path):
        path = tmp_path / "v001_initial.sql"
        path.write_text("SELECT 1;")

        migration = Migration.load(path)

        assert (migration.version, migration.name) == ("001", "initial")
        assert len(migration.checksum) == 16

    def test_invalid_filename_rejected(self, tmp_path: Path):
        path = tmp_path / "initial.sql"
        path.write_text("SELECT 1;")

        with pytest.raises(ValueError, match="Invalid migration filename"):
            Migration.load(path)

    def test_loaded_in_version_order(self, migrations_dir: Path):
        (migrations_dir / "v002_second.sql").write_text("SELECT 2;")

        assert [m.version for m in load_migrations(migrations_dir)] == ["001", "002"]

    def test_ships_initial_migration(self):
        assert [m.version for m in load_migrations()][0] == "001"


class TestMigrate:
    async def test_creates_schema(self, tmp_path: Path):
        db_path = tmp_path / "nested" / "pdv.db"

        assert await migrate(db_path) == ["001"]

        assert {"vendas", "venda_items", "fiscal_sequence", "vendas_sync_queue"} <= await _tables(
            db_path
        )

    async def test_second_run_is_noop(self, migrated_db: Path):
        assert await migrate(migrated_db) == []

    async def test_failed_migration_rolled_back(self, tmp_path: Path, migrations_dir: Path):
        (migrations_dir / "v002_broken.sql").write_text(
            "CREATE TABLE half_done (id INTEGER);\nCREATE TABLE oops (;"
        )
        db_path = tmp_path / "pdv.db"

        with patch(f"{MIGRATOR}.MIGRATIONS_DIR", migrations_dir):
            with pytest.raises(DatabaseError, match="v002"):
                await migrate(db_path)

        assert "half_done" not in await _tables(db_path)
        async with aiosqlite.connect(db_path) as conn:
            assert set(await applied_checksums(conn)) == {"001"}

    async def test_edited_migration_stops_the_run(self, tmp_path: Path, migrations_dir: Path):
        db_path = tmp_path / "pdv.db"

        with patch(f"{MIGRATOR}.MIGRATIONS_DIR", migrations_dir):
            await migrate(db_path)
            first = migrations_dir / "v001_init.sql"
            first.write_text(first.read_text() + "\n-- edited")
            (migrations_dir / "v002_later.sql").write_text("CREATE TABLE later (id INTEGER);")

            with pytest.raises(DatabaseError, match="changed after it was applied"):
                await migrate(db_path)

        assert "later" not in await _tables(db_path)


class TestVerifySchema:
    async def test_fresh_database_passes(self, migrated_db: Path):
        checks = await verify_schema(migrated_db)

        assert {c.name: c.passed for c in checks} == {
            "outbox_guards": True,
            "sale_queued": True,
            "resolution_stamp": True,
            "foreign_keys": True,
        }

    async def test_missing_guard_reported(self, migrated_db: Path):
        async with aiosqlite.connect(migrated_db) as conn:
            await conn.execute(f"DROP TRIGGER {OUTBOX_GUARDS[-1]}")
            await conn.commit()

        checks = {c.name: c for c in await verify_schema(migrated_db)}

        assert checks["outbox_guards"].passed is False
        assert checks["outbox_guards"].detail == OUTBOX_GUARDS[-1]

    async def test_sale_without_outbox_entry_reported(self, migrated_db: Path):
        async with aiosqlite.connect(migrated_db) as conn:
            await conn.execute(
                "INSERT INTO vendas (total, payment_method, created_at) VALUES (10, 'pix', '2024-03-15')"
            )
            await conn.commit()

        checks = {c.name: c for c in await verify_schema(migrated_db)}

        assert checks["sale_queued"].passed is False
        assert checks["sale_queued"].detail.startswith("1 ")

    async def test_pending_entry_with_resolution_time_reported(self, migrated_db: Path):
        async with aiosqlite.connect(migrated_db) as conn:
            cursor = await conn.execute(
                "INSERT INTO vendas (total, payment_method, created_at) VALUES (10, 'pix', '2024-03-15')"
            )
            await conn.execute(
                """
                INSERT INTO vendas_sync_queue
                    (venda_id, xml_assinado, status, data_criacao, data_sincronizacao)
                VALUES (?, '<NFe/>', 'PENDING', '2024-03-15', '2024-03-16')
                """,
                (cursor.lastrowid,),
            )
            await conn.commit()

        checks = {c.name: c.passed for c in await verify_schema(migrated_db)}

        assert checks["sale_queued"] is True
        assert checks["resolution_stamp"] is False


class TestCli:
    def test_migrates_then_reports_status(self, tmp_path: Path, capsys):
        db_path = str(tmp_path / "pdv.db")

        with patch("sys.argv", ["pdv-sync-migrate", "--db-path", db_path]):
            with pytest.raises(SystemExit) as exc:
                main()
        assert exc.value.code == 0

        with patch("sys.argv", ["pdv-sync-migrate", "--db-path", db_path, "--status"]):
            with pytest.raises(SystemExit):
                main()

        out = capsys.readouterr().out
        assert "Applied: ['001']" in out
        assert "Pending: []" in out

    def test_verify_exit_code(self, tmp_path: Path, capsys):
        db_path = str(tmp_path / "pdv.db")

        with patch("sys.argv", ["pdv-sync-migrate", "--db-path", db_path]):
            with pytest.raises(SystemExit):
                main()
        with patch("sys.argv", ["pdv-sync-migrate", "--db-path", db_path, "--verify"]):
            with pytest.raises(SystemExit) as exc:
                main()

        assert exc.value.code == 0
        assert "[PASS] sale_queued" in capsys.readouterr().out
