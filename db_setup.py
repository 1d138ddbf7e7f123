import logging
import sqlite3
from contextlib import contextmanager
from typing import Optional

from config import settings
from errors import StoreError, TransientStoreError

logger = logging.getLogger(__name__)


def init_db(db_name: Optional[str] = None):
    conn = get_db_connection(db_name)
    try:
        conn.executescript('''
            CREATE TABLE IF NOT EXISTS Contact (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                phoneNumber TEXT,
                email TEXT,
                linkedId INTEGER,
                linkPrecedence TEXT NOT NULL CHECK(linkPrecedence IN ('secondary', 'primary')),
                createdAt DATETIME NOT NULL,
                updatedAt DATETIME NOT NULL,
                deletedAt DATETIME,
                FOREIGN KEY (linkedId) REFERENCES Contact (id)
            );
            CREATE INDEX IF NOT EXISTS idx_contact_email ON Contact (email);
            CREATE INDEX IF NOT EXISTS idx_contact_phone ON Contact (phoneNumber);
            CREATE INDEX IF NOT EXISTS idx_contact_linked ON Contact (linkedId);
        ''')
    except sqlite3.Error as exc:
        raise _translate(exc) from exc
    finally:
        conn.close()
    logger.info("Contact table ready in %s", db_name or settings.db_name)


def get_db_connection(db_name: Optional[str] = None, timeout: Optional[float] = None):
    """Open a connection in autocommit mode; ``transaction`` issues BEGIN/COMMIT itself.

    The connection may be handed between threads of the server threadpool but
    must only be used by one of them at a time.
    """
    try:
        conn = sqlite3.connect(
            db_name or settings.db_name,
            timeout=settings.db_timeout if timeout is None else timeout,
            isolation_level=None,
            check_same_thread=False,
        )
    except sqlite3.Error as exc:
        raise _translate(exc) from exc
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


TRANSIENT_ERROR_CODES = {
    sqlite3.SQLITE_BUSY,
    sqlite3.SQLITE_LOCKED,
    sqlite3.SQLITE_IOERR,
    sqlite3.SQLITE_CANTOPEN,
    sqlite3.SQLITE_PROTOCOL,
}


def _translate(exc: sqlite3.Error) -> StoreError:
    code = getattr(exc, "sqlite_errorcode", None)
    # extended result codes carry the primary code in the low byte
    if code is not None and (code & 0xFF) in TRANSIENT_ERROR_CODES:
        return TransientStoreError(str(exc))
    return StoreError(str(exc))


@contextmanager
def transaction(conn: sqlite3.Connection):
    """Run a block inside one serialised write transaction and yield its cursor.

    BEGIN IMMEDIATE takes the database write lock before the first read, so
    two concurrent resolutions can never both observe "no match". Commits on
    normal exit and rolls back on any exception. sqlite3 errors leave as
    StoreError / TransientStoreError.
    """
    cursor = conn.cursor()
    try:
        cursor.execute("BEGIN IMMEDIATE")
        yield cursor
        cursor.execute("COMMIT")
    except BaseException as exc:
        if conn.in_transaction:
            try:
                conn.execute("ROLLBACK")
            except sqlite3.Error:
                logger.exception("Rollback failed")
        if isinstance(exc, sqlite3.Error):
            raise _translate(exc) from exc
        raise
    finally:
        cursor.close()


def check_connection(conn: sqlite3.Connection) -> bool:
    try:
        conn.execute("SELECT 1").fetchone()
    except sqlite3.Error:
        logger.exception("Database health check failed")
        return False
    return True
