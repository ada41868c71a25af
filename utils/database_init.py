import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

DATABASE_FILENAME = "guide.db"


class AsyncDatabaseInitializer:
    """
    Manage the async SQLite database that backs guide sessions.

    - The database file is located at: <db_dir>/guide.db
    - A RuntimeError is raised if `db_dir` is not a directory and cannot be
      created.
    - On the first call to `ensure_database()` for a given instance the
      `sessions` and `interactions` tables are created if missing. Existing
      rows are kept so sessions survive restarts.
    - Subsequent calls to `ensure_database()` on the same instance are no-ops,
      so it is safe for `connection()` to call it.
    """

    def __init__(self, db_dir: Path | str) -> None:
        db_dir = Path(db_dir).expanduser()

        # If the path exists but is not a directory, that's a configuration error.
        if db_dir.exists() and not db_dir.is_dir():
            raise RuntimeError(
                f"DATABASE_DIR points to a file, not a directory ({db_dir}). "
                f"Please set DATABASE_DIR to a directory path."
            )

        try:
            db_dir.mkdir(parents=True, exist_ok=True)
        except Exception as exc:
            raise RuntimeError(
                f"Failed to create or access database directory at {db_dir}"
            ) from exc

        self.db_dir = db_dir
        self.db_path = self.db_dir / DATABASE_FILENAME

        self._initialized = False
        self._init_lock = asyncio.Lock()

    async def ensure_database(self) -> None:
        """
        Ensure the SQLite schema exists at `self.db_path`.

        Subsequent calls on the same instance are no-ops.
        """
        if self._initialized:
            return

        async with self._init_lock:
            if self._initialized:
                return

            max_attempts = 3
            for attempt in range(1, max_attempts + 1):
                try:
                    async with aiosqlite.connect(self.db_path) as db:
                        await db.execute(
                            """
                            CREATE TABLE IF NOT EXISTS sessions (
                                id TEXT PRIMARY KEY,
                                tone TEXT NOT NULL,
                                image_url TEXT,
                                label_text TEXT,
                                explanation TEXT,
                                custom_name TEXT,
                                custom_description TEXT,
                                created_at REAL NOT NULL
                            )
                            """
                        )
                        await db.execute(
                            """
                            CREATE TABLE IF NOT EXISTS interactions (
                                id INTEGER PRIMARY KEY AUTOINCREMENT,
                                session_id TEXT NOT NULL REFERENCES sessions(id) ON DELETE CASCADE,
                                role TEXT NOT NULL,
                                content TEXT NOT NULL,
                                created_at REAL NOT NULL
                            )
                            """
                        )
                        await db.execute(
                            "CREATE INDEX IF NOT EXISTS idx_interactions_session_id ON interactions(session_id)"
                        )

                        # Older databases predate custom guides.
                        cur = await db.execute("PRAGMA table_info(sessions)")
                        cols = await cur.fetchall()
                        col_names = {col[1] for col in cols}
                        for column in ("custom_name", "custom_description"):
                            if column not in col_names:
                                await db.execute(f"ALTER TABLE sessions ADD COLUMN {column} TEXT")

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
            await conn.execute("PRAGMA foreign_keys=ON;")
            yield conn
        finally:
            await conn.close()
