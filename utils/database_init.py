import os
import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Iterable, Optional, Tuple

import aiosqlite

# (id, name, roll_number) rows seeded into an empty local database.
DEMO_ATTENDEES: Tuple[Tuple[str, str, str], ...] = (
    ("uuid-1", "Alice Johnson", "S001"),
    ("uuid-2", "Bob Williams", "S002"),
    ("uuid-3", "Charlie Brown", "S003"),
    ("uuid-4", "Diana Miller", "S004"),
    ("uuid-5", "Ethan Davis", "S005"),
    ("uuid-6", "Fiona Garcia", "S006"),
    ("uuid-7", "George Rodriguez", "S007"),
)


class AsyncDatabaseInitializer:
    """
    Manage the local async SQLite attendance database.

    - The database file is located at: <db_dir>/attendance.db
    - `db_dir` falls back to the DATABASE_DIR environment variable. A
      RuntimeError is raised if neither is set or the path is not a directory.
    - On the first call to `ensure_database()` for a given instance:
        * The existing database file is deleted when `reset=True`.
        * The STUDENT and ATTENDANCE tables are created.
        * Seed attendees are inserted if the STUDENT table is empty.
    - Subsequent calls to `ensure_database()` on the same instance are no-ops,
      so it is safe for `connection()` to call it.
    """

    def __init__(
        self,
        db_dir: Optional[Path | str] = None,
        *,
        reset: bool = False,
        seed_attendees: Optional[Iterable[Tuple[str, str, str]]] = None,
    ) -> None:
        env_dir = str(db_dir) if db_dir is not None else os.getenv("DATABASE_DIR")

        if env_dir is None or not env_dir.strip():
            raise RuntimeError(
                "DATABASE_DIR environment variable must be set to a writable "
                "directory path where the SQLite database file will be stored."
            )

        path = Path(env_dir).expanduser()

        if path.exists() and not path.is_dir():
            raise RuntimeError(
                f"DATABASE_DIR={env_dir!r} points to a file, not a directory "
                f"({path}). Please set DATABASE_DIR to a directory path."
            )

        try:
            path.mkdir(parents=True, exist_ok=True)
        except Exception as exc:
            raise RuntimeError(
                f"Failed to create or access database directory at {path}"
            ) from exc

        self.db_dir = path
        self.db_path = self.db_dir / "attendance.db"
        self.reset = reset
        self.seed_attendees = tuple(seed_attendees or ())

        # One-time initialisation per instance.
        self._initialized = False

    async def ensure_database(self) -> None:
        """
        Ensure the SQLite schema exists at `self.db_path`.

        Subsequent calls on the same instance are no-ops.
        """
        if self._initialized:
            return

        if self.reset:
            # WAL sidecar files must go with the main file.
            for path in (
                self.db_path,
                self.db_path.with_name(self.db_path.name + "-wal"),
                self.db_path.with_name(self.db_path.name + "-shm"),
            ):
                if not path.exists():
                    continue
                try:
                    path.unlink()
                except Exception as exc:
                    raise RuntimeError(
                        f"Failed to delete existing database at {path}"
                    ) from exc

        max_attempts = 3
        for attempt in range(1, max_attempts + 1):
            try:
                async with aiosqlite.connect(self.db_path) as db:
                    await db.execute("PRAGMA journal_mode=WAL;")
                    await db.execute(
                        """
                        CREATE TABLE IF NOT EXISTS STUDENT (
                            id TEXT PRIMARY KEY,
                            name TEXT NOT NULL,
                            roll_number TEXT NOT NULL UNIQUE
                        )
                        """
                    )
                    # The UNIQUE pair is what keeps concurrent identical scans
                    # from producing two rows.
                    await db.execute(
                        """
                        CREATE TABLE IF NOT EXISTS ATTENDANCE (
                            id INTEGER PRIMARY KEY AUTOINCREMENT,
                            session_id TEXT NOT NULL,
                            student_id TEXT NOT NULL,
                            created_at INTEGER NOT NULL,
                            UNIQUE (session_id, student_id)
                        )
                        """
                    )
                    await db.execute(
                        "CREATE INDEX IF NOT EXISTS idx_attendance_session ON ATTENDANCE(session_id)"
                    )

                    if self.seed_attendees:
                        cur = await db.execute("SELECT COUNT(*) FROM STUDENT")
                        (existing,) = await cur.fetchone()
                        if not existing:
                            await db.executemany(
                                "INSERT INTO STUDENT (id, name, roll_number) VALUES (?, ?, ?)",
                                list(self.seed_attendees),
                            )

                    await db.commit()
                break
            except FileNotFoundError:
                # On some platforms a transient missing file error may occur; retry a few times.
                if attempt >= max_attempts:
                    raise
                await asyncio.sleep(0.1 * attempt)

        self._initialized = True

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Async context manager yielding an `aiosqlite.Connection`.

        The schema is created on first use via `ensure_database()`.
        """
        await self.ensure_database()
        conn = await aiosqlite.connect(self.db_path)
        try:
            yield conn
        finally:
            await conn.close()
