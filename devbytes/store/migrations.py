"""SQLite schema migrations for the cache store."""

import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog

from devbytes.store.errors import MigrationError


logger = structlog.get_logger()

CURRENT_VERSION = 3


@dataclass(frozen=True)
class Migration:
    """A database migration.

    Attributes:
        version: Target version after applying this migration.
        description: Human-readable description.
        up_sql: SQL to apply the migration.
    """

    version: int
    description: str
    up_sql: str


# Migrations are additive only; a column is never dropped or renamed.
MIGRATIONS: list[Migration] = [
    Migration(
        version=1,
        description="Playlist cache and refresh history",
        up_sql="""
-- Videos table: the cached playlist, one row per item
CREATE TABLE IF NOT EXISTS videos (
    id TEXT PRIMARY KEY,
    position INTEGER NOT NULL,
    title TEXT NOT NULL,
    description TEXT NOT NULL,
    url TEXT NOT NULL,
    thumbnail_url TEXT NOT NULL,
    media_url TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_videos_position ON videos(position);

-- Refresh runs table: one row per refresh attempt
CREATE TABLE IF NOT EXISTS refresh_runs (
    attempt_id TEXT PRIMARY KEY,
    started_at TEXT NOT NULL,
    finished_at TEXT NOT NULL,
    success INTEGER NOT NULL,
    failure_kind TEXT,
    error_message TEXT,
    item_count INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_refresh_runs_started_at ON refresh_runs(started_at);
""",
    ),
    Migration(
        version=2,
        description="Persisted schedule state",
        up_sql="""
CREATE TABLE IF NOT EXISTS schedules (
    name TEXT PRIMARY KEY,
    period_seconds REAL NOT NULL,
    constraints_json TEXT NOT NULL,
    next_fire_at TEXT NOT NULL,
    attempt INTEGER NOT NULL,
    last_success_at TEXT,
    last_failure_kind TEXT,
    updated_at TEXT NOT NULL
);
""",
    ),
    Migration(
        version=3,
        description="Schedule period anchor",
        up_sql="""
-- Fire time of the current period; next_fire_at may hold a retry time
ALTER TABLE schedules ADD COLUMN period_anchor_at TEXT;
""",
    ),
]


def get_migrations_to_apply(current_version: int) -> list[Migration]:
    """Get migrations that need to be applied, in order."""
    return [m for m in MIGRATIONS if m.version > current_version]


class MigrationManager:
    """Manages SQLite schema migrations."""

    VERSION_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL,
    description TEXT
);
"""

    def __init__(self, connection: sqlite3.Connection) -> None:
        """Initialize the migration manager.

        Args:
            connection: SQLite connection to manage.
        """
        self._conn = connection
        self._log = logger.bind(component="store", operation="migration")

    def ensure_version_table(self) -> None:
        """Ensure the schema_version table exists."""
        self._conn.execute(self.VERSION_TABLE_SQL)
        self._conn.commit()

    def get_current_version(self) -> int:
        """Get the current schema version, or 0 if no migrations applied."""
        self.ensure_version_table()
        cursor = self._conn.execute("SELECT MAX(version) FROM schema_version")
        row = cursor.fetchone()
        return row[0] if row[0] is not None else 0

    def apply_migrations(self) -> list[int]:
        """Apply all pending migrations.

        Returns:
            List of version numbers that were applied.

        Raises:
            MigrationError: If a migration fails to apply.
        """
        current = self.get_current_version()
        pending = get_migrations_to_apply(current)

        if not pending:
            self._log.debug("no_migrations_pending", current_version=current)
            return []

        applied: list[int] = []
        for migration in pending:
            self._log.info(
                "applying_migration",
                version=migration.version,
                description=migration.description,
            )
            try:
                self._conn.executescript(migration.up_sql)
                self._conn.execute(
                    """
                    INSERT INTO schema_version (version, applied_at, description)
                    VALUES (?, ?, ?)
                    """,
                    (
                        migration.version,
                        datetime.now(UTC).isoformat(),
                        migration.description,
                    ),
                )
                self._conn.commit()
            except sqlite3.Error as e:
                self._conn.rollback()
                self._log.error(
                    "migration_failed",
                    version=migration.version,
                    error=str(e),
                )
                raise MigrationError(migration.version, str(e)) from e

            applied.append(migration.version)
            self._log.info("migration_applied", version=migration.version)

        return applied
