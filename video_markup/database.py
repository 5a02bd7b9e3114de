from contextlib import asynccontextmanager
from typing import AsyncIterator

import aiosqlite

CREATE_SESSIONS = """
CREATE TABLE IF NOT EXISTS sessions (
    id TEXT PRIMARY KEY,
    youtube_url TEXT NOT NULL,
    youtube_title TEXT,
    youtube_thumbnail TEXT,
    creator_token TEXT NOT NULL,
    helper_token TEXT NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    CHECK (creator_token <> helper_token)
)
"""

CREATE_MARKERS = """
CREATE TABLE IF NOT EXISTS markers (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id TEXT NOT NULL,
    start_time REAL NOT NULL CHECK (start_time >= 0),
    end_time REAL CHECK (end_time IS NULL OR end_time > start_time),
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (session_id) REFERENCES sessions(id) ON DELETE CASCADE
)
"""

CREATE_POSTS = """
CREATE TABLE IF NOT EXISTS posts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    marker_id INTEGER NOT NULL,
    author_type TEXT NOT NULL CHECK (author_type IN ('creator', 'helper')),
    text_content TEXT,
    audio_filename TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (marker_id) REFERENCES markers(id) ON DELETE CASCADE,
    CHECK (text_content IS NOT NULL OR audio_filename IS NOT NULL)
)
"""

CREATE_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_markers_session ON markers (session_id, start_time)",
    "CREATE INDEX IF NOT EXISTS idx_posts_marker ON posts (marker_id, created_at)",
]

_DDL = [CREATE_SESSIONS, CREATE_MARKERS, CREATE_POSTS, *CREATE_INDEXES]


class Database:
    """Handle on the SQLite file backing the service.

    Constructed once at startup (FastAPI lifespan) and kept on
    ``app.state.db``.  Every request opens its own short-lived connection
    through :meth:`connection`; there is no shared connection object.

    Connections run in autocommit mode (``isolation_level=None``) so that
    writes can be grouped explicitly with :func:`transaction`, which issues
    ``BEGIN IMMEDIATE`` and therefore serializes writers at the database level.
    """

    def __init__(self, path: str, busy_timeout_ms: int = 5000) -> None:
        self.path = path
        self.busy_timeout_ms = busy_timeout_ms

    async def init(self) -> None:
        """Create all tables. Called once at server startup."""
        async with self.connection() as conn:
            for stmt in _DDL:
                await conn.execute(stmt)

    async def connect(self) -> aiosqlite.Connection:
        conn = await aiosqlite.connect(self.path, isolation_level=None)
        conn.row_factory = aiosqlite.Row
        await conn.execute(f"PRAGMA busy_timeout = {int(self.busy_timeout_ms)}")
        # Cascades on markers/posts depend on this; it is per-connection in SQLite.
        await conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        conn = await self.connect()
        try:
            yield conn
        finally:
            await conn.close()


@asynccontextmanager
async def transaction(conn: aiosqlite.Connection) -> AsyncIterator[aiosqlite.Connection]:
    """Run the enclosed statements in one write transaction.

    Commits on normal exit, rolls back and re-raises on any exception.
    """
    await conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        await conn.rollback()
        raise
    else:
        await conn.commit()
