"""SQLite cache store implementation."""

import itertools
import sqlite3
import threading
import time
import uuid
from collections.abc import Generator, Iterable
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path

import structlog

from devbytes.store.errors import StorageUnavailableError, StoreConnectionError
from devbytes.store.metrics import StoreMetrics, TransactionContext
from devbytes.store.migrations import CURRENT_VERSION, MigrationManager
from devbytes.store.models import CacheSnapshot, Item, RefreshRecord, ScheduleRecord
from devbytes.store.subscription import SnapshotSubscription


logger = structlog.get_logger()

MEMORY_DB = ":memory:"


class CacheStore:
    """SQLite-backed playlist cache with atomic replace and snapshot streams.

    The current snapshot is an immutable object held in memory and swapped
    only after the replacing transaction commits. Readers take that
    reference without locking; writers serialize on ``_lock`` for the whole
    install (transaction, swap and subscriber fan-out). The same lock guards
    every use of the shared SQLite connection, which is opened with
    ``check_same_thread=False`` so refresh workers and scheduler threads can
    share one store.
    """

    def __init__(self, db_path: Path | str) -> None:
        """Initialize the store.

        Args:
            db_path: Path to the SQLite file, or ``":memory:"``.
        """
        self._db_path = Path(db_path) if isinstance(db_path, str) else db_path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._snapshot = CacheSnapshot()
        self._subscribers: dict[int, SnapshotSubscription] = {}
        self._subscriber_ids = itertools.count(1)
        self._metrics = StoreMetrics.get_instance()
        self._log = logger.bind(component="store", db_path=str(self._db_path))

    @property
    def db_path(self) -> Path:
        """Get the database path."""
        return self._db_path

    @property
    def is_connected(self) -> bool:
        """Check if connected to database."""
        return self._conn is not None

    @property
    def subscriber_count(self) -> int:
        """Number of open subscriptions."""
        return len(self._subscribers)

    def connect(self) -> None:
        """Open the database, apply migrations and load the cached playlist.

        Creates the database file and parent directories if missing. The
        snapshot loaded from disk gets version 0; versions count commits
        made through this store instance.

        Raises:
            StoreConnectionError: If the database cannot be opened.
        """
        with self._lock:
            if self._conn is not None:
                return

            is_memory = str(self._db_path) == MEMORY_DB
            if not is_memory:
                self._db_path.parent.mkdir(parents=True, exist_ok=True)

            self._log.info("connecting_to_database")
            try:
                conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
                conn.row_factory = sqlite3.Row
                if not is_memory:
                    conn.execute("PRAGMA journal_mode=WAL")
                    conn.execute("PRAGMA synchronous=NORMAL")
                migration_mgr = MigrationManager(conn)
                old_version = migration_mgr.get_current_version()
                applied = migration_mgr.apply_migrations()
            except sqlite3.Error as e:
                self._log.error("database_connect_failed", error=str(e))
                msg = f"Cannot open database {self._db_path}: {e}"
                raise StoreConnectionError(msg) from e

            self._conn = conn
            self._snapshot = CacheSnapshot(items=tuple(self._load_items(conn)))
            self._log.info(
                "database_connected",
                old_version=old_version,
                new_version=CURRENT_VERSION,
                migrations_applied=applied,
                cached_items=len(self._snapshot),
            )

    def close(self) -> None:
        """Close the database and end every open subscription."""
        with self._lock:
            for subscription in list(self._subscribers.values()):
                subscription.close()
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                self._log.info("database_closed")

    def __enter__(self) -> "CacheStore":
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Context manager exit."""
        self.close()

    def _ensure_connected(self) -> sqlite3.Connection:
        """Return the open connection.

        Raises:
            StoreConnectionError: If not connected.
        """
        if self._conn is None:
            raise StoreConnectionError("Database not connected. Call connect() first.")
        return self._conn

    @contextmanager
    def _transaction(self, operation: str) -> Generator[TransactionContext]:
        """Run a write transaction with timing, logging and error mapping.

        Must be entered while holding ``_lock``.

        Args:
            operation: Name of the operation for logging.

        Yields:
            Transaction context with timing information.

        Raises:
            StorageUnavailableError: If SQLite rejects the transaction.
        """
        conn = self._ensure_connected()
        tx_id = str(uuid.uuid4())[:8]
        start_ns = time.perf_counter_ns()
        ctx = TransactionContext(tx_id=tx_id, start_time_ns=start_ns, operation=operation)

        self._log.debug("transaction_started", tx_id=tx_id, op=operation)

        try:
            yield ctx
            conn.commit()
        except sqlite3.Error as e:
            duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
            self._rollback(conn, tx_id, operation)
            self._log.error(
                "transaction_failed",
                tx_id=tx_id,
                op=operation,
                duration_ms=round(duration_ms, 2),
                error=str(e),
            )
            raise StorageUnavailableError(operation, str(e)) from e
        except Exception:
            self._rollback(conn, tx_id, operation)
            raise

        duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
        self._metrics.record_tx_duration(duration_ms)
        self._log.debug(
            "transaction_complete",
            tx_id=tx_id,
            op=operation,
            affected_rows=ctx.affected_rows,
            duration_ms=round(duration_ms, 2),
        )

    def _rollback(self, conn: sqlite3.Connection, tx_id: str, operation: str) -> None:
        try:
            conn.rollback()
        except sqlite3.Error as e:
            self._log.error("rollback_failed", tx_id=tx_id, op=operation, error=str(e))

    # ===== Playlist cache =====

    def read_all(self) -> CacheSnapshot:
        """Return the current snapshot.

        Never blocks on a concurrent ``replace_all``; a reader racing with a
        writer sees either the old or the new snapshot, never a mix.
        """
        return self._snapshot

    def replace_all(self, items: Iterable[Item]) -> CacheSnapshot:
        """Atomically replace the cached playlist.

        Args:
            items: New playlist in display order.

        Returns:
            The committed snapshot.

        Raises:
            StorageUnavailableError: If the write failed; the previous
                snapshot is still in place on disk and in memory.
            StoreConnectionError: If the store is not connected.
        """
        batch = list(items)
        with self._lock:
            conn = self._ensure_connected()
            snapshot = CacheSnapshot.from_items(
                batch,
                version=self._snapshot.version + 1,
                committed_at=datetime.now(UTC),
            )
            try:
                with self._transaction("replace_all") as ctx:
                    cursor = conn.execute("DELETE FROM videos")
                    ctx.add_affected_rows(max(cursor.rowcount, 0))
                    for position, item in enumerate(snapshot.items):
                        self._insert_item(conn, position, item)
                        ctx.add_affected_rows(1)
            except StorageUnavailableError:
                self._metrics.record_replace_failed()
                raise

            self._snapshot = snapshot
            self._metrics.record_replace(len(snapshot))
            self._publish(snapshot)

        self._log.info(
            "cache_replaced",
            version=snapshot.version,
            items=len(snapshot),
        )
        return snapshot

    def _insert_item(self, conn: sqlite3.Connection, position: int, item: Item) -> None:
        conn.execute(
            """
            INSERT INTO videos (
                id, position, title, description, url, thumbnail_url, media_url
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                item.id,
                position,
                item.title,
                item.description,
                item.url,
                item.thumbnail_url,
                item.media_url,
            ),
        )

    def _load_items(self, conn: sqlite3.Connection) -> list[Item]:
        cursor = conn.execute(
            """
            SELECT id, title, description, url, thumbnail_url, media_url
            FROM videos
            ORDER BY position
            """
        )
        return [
            Item(
                id=row["id"],
                title=row["title"],
                description=row["description"],
                url=row["url"],
                thumbnail_url=row["thumbnail_url"],
                media_url=row["media_url"],
            )
            for row in cursor.fetchall()
        ]

    # ===== Subscriptions =====

    def subscribe(self, include_current: bool = False) -> SnapshotSubscription:
        """Open a stream of committed snapshots.

        Args:
            include_current: Queue the current snapshot as the first value.

        Returns:
            A new subscription; close it to detach.
        """
        with self._lock:
            subscription = SnapshotSubscription(next(self._subscriber_ids), self._detach)
            self._subscribers[subscription.subscription_id] = subscription
            if include_current:
                subscription.publish(self._snapshot)

        self._log.debug("subscriber_attached", subscription_id=subscription.subscription_id)
        return subscription

    def _detach(self, subscription_id: int) -> None:
        # dict.pop is atomic; no lock so a subscriber can close from any thread
        self._subscribers.pop(subscription_id, None)

    def _publish(self, snapshot: CacheSnapshot) -> None:
        subscribers = list(self._subscribers.values())
        for subscription in subscribers:
            subscription.publish(snapshot)
        self._metrics.record_notified(len(subscribers))

    # ===== Refresh history =====

    def record_refresh(self, record: RefreshRecord) -> None:
        """Persist one refresh attempt.

        Raises:
            StorageUnavailableError: If the write failed.
        """
        with self._lock, self._transaction("record_refresh") as ctx:
            conn = self._ensure_connected()
            conn.execute(
                """
                INSERT OR REPLACE INTO refresh_runs (
                    attempt_id, started_at, finished_at, success,
                    failure_kind, error_message, item_count
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.attempt_id,
                    record.started_at.isoformat(),
                    record.finished_at.isoformat(),
                    1 if record.success else 0,
                    record.failure_kind,
                    record.error_message,
                    record.item_count,
                ),
            )
            ctx.add_affected_rows(1)

    def get_recent_refreshes(self, limit: int = 10) -> list[RefreshRecord]:
        """Get the most recent refresh attempts, newest first."""
        with self._lock:
            conn = self._ensure_connected()
            cursor = conn.execute(
                """
                SELECT * FROM refresh_runs
                ORDER BY started_at DESC
                LIMIT ?
                """,
                (limit,),
            )
            rows = cursor.fetchall()

        return [
            RefreshRecord(
                attempt_id=row["attempt_id"],
                started_at=datetime.fromisoformat(row["started_at"]),
                finished_at=datetime.fromisoformat(row["finished_at"]),
                success=bool(row["success"]),
                failure_kind=row["failure_kind"],
                error_message=row["error_message"],
                item_count=row["item_count"],
            )
            for row in rows
        ]

    def get_last_successful_refresh_at(self) -> datetime | None:
        """Get the finish time of the last successful refresh."""
        with self._lock:
            conn = self._ensure_connected()
            cursor = conn.execute(
                """
                SELECT finished_at FROM refresh_runs
                WHERE success = 1
                ORDER BY finished_at DESC
                LIMIT 1
                """
            )
            row = cursor.fetchone()

        if row is None:
            return None
        return datetime.fromisoformat(row["finished_at"])

    # ===== Schedule state =====

    def save_schedule_record(self, record: ScheduleRecord) -> None:
        """Insert or update a schedule record.

        Raises:
            StorageUnavailableError: If the write failed.
        """
        with self._lock, self._transaction("save_schedule") as ctx:
            conn = self._ensure_connected()
            conn.execute(
                """
                INSERT INTO schedules (
                    name, period_seconds, constraints_json, next_fire_at,
                    period_anchor_at, attempt, last_success_at,
                    last_failure_kind, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(name) DO UPDATE SET
                    period_seconds = excluded.period_seconds,
                    constraints_json = excluded.constraints_json,
                    next_fire_at = excluded.next_fire_at,
                    period_anchor_at = excluded.period_anchor_at,
                    attempt = excluded.attempt,
                    last_success_at = excluded.last_success_at,
                    last_failure_kind = excluded.last_failure_kind,
                    updated_at = excluded.updated_at
                """,
                (
                    record.name,
                    record.period_seconds,
                    record.constraints_json,
                    record.next_fire_at.isoformat(),
                    (
                        record.period_anchor_at.isoformat()
                        if record.period_anchor_at
                        else None
                    ),
                    record.attempt,
                    record.last_success_at.isoformat() if record.last_success_at else None,
                    record.last_failure_kind,
                    record.updated_at.isoformat(),
                ),
            )
            ctx.add_affected_rows(1)

    def get_schedule_record(self, name: str) -> ScheduleRecord | None:
        """Get a schedule record by name."""
        with self._lock:
            conn = self._ensure_connected()
            cursor = conn.execute("SELECT * FROM schedules WHERE name = ?", (name,))
            row = cursor.fetchone()

        if row is None:
            return None
        return self._row_to_schedule(row)

    def list_schedule_records(self) -> list[ScheduleRecord]:
        """List every persisted schedule, ordered by name."""
        with self._lock:
            conn = self._ensure_connected()
            rows = conn.execute("SELECT * FROM schedules ORDER BY name").fetchall()
        return [self._row_to_schedule(row) for row in rows]

    def delete_schedule_record(self, name: str) -> bool:
        """Delete a schedule record.

        Returns:
            True if a record was deleted.
        """
        with self._lock, self._transaction("delete_schedule") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute("DELETE FROM schedules WHERE name = ?", (name,))
            ctx.add_affected_rows(cursor.rowcount)
        return ctx.affected_rows > 0

    def _row_to_schedule(self, row: sqlite3.Row) -> ScheduleRecord:
        return ScheduleRecord(
            name=row["name"],
            period_seconds=row["period_seconds"],
            constraints_json=row["constraints_json"],
            next_fire_at=datetime.fromisoformat(row["next_fire_at"]),
            period_anchor_at=(
                datetime.fromisoformat(row["period_anchor_at"])
                if row["period_anchor_at"]
                else None
            ),
            attempt=row["attempt"],
            last_success_at=(
                datetime.fromisoformat(row["last_success_at"])
                if row["last_success_at"]
                else None
            ),
            last_failure_kind=row["last_failure_kind"],
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
