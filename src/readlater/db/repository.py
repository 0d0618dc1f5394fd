"""Database operations for save requests, labels and users."""

import asyncio
import logging
import os
import uuid
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Tuple, TypeVar

import aiosqlite

from ..config import settings
from ..models.db_models import Label, SaveRequest, User
from ..models.save_models import ArticleSavingRequestStatus

# Set up logging
logger = logging.getLogger(__name__)

# Current schema version
SCHEMA_VERSION = 1

# Database configuration
MAX_RETRIES = 3
RETRY_DELAY = 0.2  # seconds
BUSY_TIMEOUT_MS = 5000
DEFAULT_LABEL_COLOR = "#000000"

T = TypeVar("T")


class DatabaseError(Exception):
    """Custom exception for database operations."""

    pass


class DatabaseLockError(DatabaseError):
    """Exception raised when database is locked."""

    pass


class DatabaseConnectionError(DatabaseError):
    """Exception raised when database connection fails."""

    pass


_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS schema_version(
        version INTEGER PRIMARY KEY,
        applied_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS users(
        id TEXT PRIMARY KEY,
        username TEXT UNIQUE NOT NULL,
        email TEXT,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS labels(
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        name TEXT NOT NULL,
        color TEXT NOT NULL,
        description TEXT,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        UNIQUE(user_id, name COLLATE NOCASE),
        FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS save_requests(
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        client_request_id TEXT NOT NULL,
        url TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'PROCESSING',
        archived_at DATETIME,
        source TEXT,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        UNIQUE(user_id, client_request_id),
        FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS save_request_labels(
        save_request_id TEXT NOT NULL,
        label_id TEXT NOT NULL,
        PRIMARY KEY (save_request_id, label_id),
        FOREIGN KEY (save_request_id) REFERENCES save_requests(id) ON DELETE CASCADE,
        FOREIGN KEY (label_id) REFERENCES labels(id) ON DELETE CASCADE
    )
    """,
]


def _row_to_label(row: Tuple[Any, ...]) -> Label:
    return Label(
        id=row[0],
        user_id=row[1],
        name=row[2],
        color=row[3],
        description=row[4],
        created_at=row[5],
    )


class ReadLaterDatabase:
    """Handles database operations for save requests.

    One aiosqlite connection is opened by ``ainit`` and shared by all calls;
    writes are serialized with an asyncio lock so a multi-statement write is
    never interleaved with another coroutine's transaction.
    """

    def __init__(self, db_path: Optional[str] = None, *, readonly: bool = False):
        """Initialize database handle.

        Args:
            db_path: Path to the database file, or ":memory:"
            readonly: If True, write operations are refused
        """
        self.db_path = db_path or settings.readlater_db_path
        self._readonly = readonly
        self._conn: Optional[aiosqlite.Connection] = None
        self._write_lock = asyncio.Lock()

        if self.db_path != ":memory:":
            db_dirname = os.path.dirname(self.db_path)
            if db_dirname:
                os.makedirs(db_dirname, exist_ok=True)

        logger.info(
            f"Database handle created for: {self.db_path} (readonly={readonly})"
        )

    async def ainit(self) -> "ReadLaterDatabase":
        """
        Async helper so callers can do:

            db = await ReadLaterDatabase(path).ainit()

        It opens the connection and ensures the schema exists.
        """
        if self._conn is not None:
            return self
        try:
            self._conn = await aiosqlite.connect(self.db_path)
            await self._conn.execute("PRAGMA foreign_keys = ON")
            await self._conn.execute(f"PRAGMA busy_timeout = {BUSY_TIMEOUT_MS}")
            await self.init_db()
        except aiosqlite.Error as e:
            logger.error(f"Failed to initialize database: {str(e)}")
            raise DatabaseConnectionError(f"Failed to initialize database: {str(e)}")
        return self

    async def init_db(self) -> None:
        """Create the tables and record the schema version."""
        conn = self._get_connection()
        logger.info("Creating database tables...")
        for statement in _SCHEMA:
            await conn.execute(statement)
        async with conn.execute("SELECT MAX(version) FROM schema_version") as cursor:
            row = await cursor.fetchone()
        if row is None or row[0] is None or row[0] < SCHEMA_VERSION:
            await conn.execute(
                "INSERT OR IGNORE INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
        await conn.commit()

    def _get_connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise DatabaseConnectionError("Database is not initialised; call ainit() first")
        return self._conn

    async def check_connection(self) -> bool:
        """Check if the database connection is working."""
        try:
            async with self._get_connection().execute("SELECT 1") as cursor:
                await cursor.fetchone()
            return True
        except Exception:
            return False

    async def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    def _write_guard(self, op: str) -> None:
        """Guard against write operations in read-only mode.

        Args:
            op: Name of the operation being attempted

        Raises:
            DatabaseError: If database is in read-only mode
        """
        if self._readonly:
            logger.debug("WRITE-GUARD tripped on %s", op)
            raise DatabaseError(f"{op} is disabled in read-only mode")

    async def _write(self, op: str, func: Callable[[aiosqlite.Connection], Awaitable[T]]) -> T:
        """Run ``func`` in a committed transaction, retrying while the file is locked."""
        self._write_guard(op)
        conn = self._get_connection()
        for attempt in range(MAX_RETRIES):
            async with self._write_lock:
                try:
                    result = await func(conn)
                    await conn.commit()
                    return result
                except aiosqlite.OperationalError as e:
                    await conn.rollback()
                    if "locked" not in str(e):
                        raise DatabaseError(f"{op} failed: {str(e)}")
                    if attempt == MAX_RETRIES - 1:
                        raise DatabaseLockError(
                            f"{op} failed after {MAX_RETRIES} attempts: {str(e)}"
                        )
                    logger.warning(
                        f"Database locked during {op}, attempt {attempt + 1}/{MAX_RETRIES}"
                    )
                except aiosqlite.Error as e:
                    await conn.rollback()
                    raise DatabaseError(f"{op} failed: {str(e)}")
            await asyncio.sleep(RETRY_DELAY * (attempt + 1))
        raise DatabaseLockError(f"{op} failed after {MAX_RETRIES} attempts")

    # --- users ---

    async def insert_user(
        self, username: str, email: Optional[str] = None, user_id: Optional[str] = None
    ) -> User:
        """Insert a user and return it."""
        user = User(id=user_id or str(uuid.uuid4()), username=username, email=email)

        async def _insert(conn: aiosqlite.Connection) -> None:
            await conn.execute(
                "INSERT INTO users (id, username, email) VALUES (?, ?, ?)",
                (user.id, user.username, user.email),
            )

        await self._write("insert_user", _insert)
        return user

    async def get_user(self, user_id: str) -> Optional[User]:
        """Look up a user by id."""
        conn = self._get_connection()
        async with conn.execute(
            "SELECT id, username, email, created_at FROM users WHERE id = ?",
            (user_id,),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return User(id=row[0], username=row[1], email=row[2], created_at=row[3])

    # --- labels ---

    async def get_labels_by_names(self, user_id: str, names: Iterable[str]) -> List[Label]:
        """Return the user's labels whose names match ``names`` case-insensitively."""
        wanted = [name.lower() for name in names]
        if not wanted:
            return []
        placeholders = ", ".join("?" for _ in wanted)
        conn = self._get_connection()
        async with conn.execute(
            f"""
            SELECT id, user_id, name, color, description, created_at
            FROM labels
            WHERE user_id = ? AND lower(name) IN ({placeholders})
            """,
            (user_id, *wanted),
        ) as cursor:
            rows = await cursor.fetchall()
        return [_row_to_label(row) for row in rows]

    async def insert_labels(
        self, user_id: str, labels: List[Tuple[str, str, Optional[str]]]
    ) -> None:
        """Insert (name, color, description) labels, ignoring names that already exist."""

        async def _insert(conn: aiosqlite.Connection) -> None:
            await conn.executemany(
                """
                INSERT OR IGNORE INTO labels (id, user_id, name, color, description)
                VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (str(uuid.uuid4()), user_id, name, color, description)
                    for name, color, description in labels
                ],
            )

        await self._write("insert_labels", _insert)

    # --- save requests ---

    async def upsert_save_request(
        self,
        user_id: str,
        client_request_id: str,
        url: str,
        *,
        status: ArticleSavingRequestStatus = ArticleSavingRequestStatus.PROCESSING,
        archived_at: Optional[str] = None,
        source: Optional[str] = None,
        label_ids: Iterable[str] = (),
    ) -> Tuple[SaveRequest, bool]:
        """Create a save request unless one exists for (user_id, client_request_id).

        Returns:
            Tuple of the stored request and whether it was created by this call.
            An existing request is returned unchanged.
        """
        label_ids = list(label_ids)

        async def _upsert(conn: aiosqlite.Connection) -> Tuple[str, bool]:
            cursor = await conn.execute(
                """
                INSERT OR IGNORE INTO save_requests
                    (id, user_id, client_request_id, url, status, archived_at, source)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(uuid.uuid4()),
                    user_id,
                    client_request_id,
                    url,
                    status.value,
                    archived_at,
                    source,
                ),
            )
            created = cursor.rowcount > 0
            await cursor.close()
            async with conn.execute(
                "SELECT id FROM save_requests WHERE user_id = ? AND client_request_id = ?",
                (user_id, client_request_id),
            ) as select:
                row = await select.fetchone()
            request_id = row[0]
            if created and label_ids:
                await conn.executemany(
                    "INSERT OR IGNORE INTO save_request_labels (save_request_id, label_id) VALUES (?, ?)",
                    [(request_id, label_id) for label_id in label_ids],
                )
            return request_id, created

        request_id, created = await self._write("upsert_save_request", _upsert)
        save_request = await self.get_save_request(request_id)
        if save_request is None:
            raise DatabaseError(f"Save request {request_id} vanished after upsert")
        logger.info(
            "Save request stored",
            extra={"request_id": request_id, "user_id": user_id, "was_created": created},
        )
        return save_request, created

    async def get_save_request(self, request_id: str) -> Optional[SaveRequest]:
        """Fetch a save request together with its labels."""
        conn = self._get_connection()
        async with conn.execute(
            """
            SELECT id, user_id, client_request_id, url, status, archived_at, source, created_at
            FROM save_requests WHERE id = ?
            """,
            (request_id,),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        async with conn.execute(
            """
            SELECT l.id, l.user_id, l.name, l.color, l.description, l.created_at
            FROM labels l
            JOIN save_request_labels srl ON srl.label_id = l.id
            WHERE srl.save_request_id = ?
            ORDER BY srl.rowid
            """,
            (request_id,),
        ) as cursor:
            label_rows = await cursor.fetchall()
        return SaveRequest(
            id=row[0],
            user_id=row[1],
            client_request_id=row[2],
            url=row[3],
            status=ArticleSavingRequestStatus(row[4]),
            archived_at=row[5],
            source=row[6],
            created_at=row[7],
            labels=[_row_to_label(label_row) for label_row in label_rows],
        )

    async def count_save_requests(self, user_id: str) -> int:
        conn = self._get_connection()
        async with conn.execute(
            "SELECT COUNT(*) FROM save_requests WHERE user_id = ?", (user_id,)
        ) as cursor:
            row = await cursor.fetchone()
        return row[0]
