"""
Feedwire Database Connection Management
======================================

Thread-safe SQLite connection pool with transaction helpers.
"""

import sqlite3
import threading
import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Generator, Any, List, Dict
from queue import Queue, Empty, Full

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """Thread-safe SQLite database connection manager with pooling."""

    def __init__(self, db_path: str = "data/feedwire.db", pool_size: int = 5):
        """Initialize database connection manager.

        Args:
            db_path: Path to SQLite database file
            pool_size: Maximum number of connections in pool
        """
        self.db_path = Path(db_path)
        self.pool_size = pool_size
        self.pool: Queue = Queue(maxsize=pool_size)
        self.lock = threading.Lock()
        self._total_connections = 0

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._initialize_pool()

    def _initialize_pool(self) -> None:
        for _ in range(self.pool_size):
            conn = self._create_connection()
            self.pool.put(conn)

    def _create_connection(self) -> sqlite3.Connection:
        """Create a new configured SQLite connection."""
        conn = sqlite3.connect(
            self.db_path,
            check_same_thread=False,  # pooled connections move between threads
            timeout=30.0
        )

        conn.execute("PRAGMA journal_mode = WAL")
        conn.execute("PRAGMA synchronous = NORMAL")
        conn.execute("PRAGMA temp_store = MEMORY")

        conn.row_factory = sqlite3.Row

        with self.lock:
            self._total_connections += 1

        logger.debug(f"Created database connection #{self._total_connections}")
        return conn

    @contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a connection from the pool with automatic return.

        Usage:
            with db_manager.get_connection() as conn:
                rows = conn.execute("SELECT * FROM articles").fetchall()
        """
        start_time = time.time()
        conn = None

        try:
            try:
                conn = self.pool.get(timeout=10.0)
            except Empty:
                logger.warning("Connection pool exhausted, creating new connection")
                conn = self._create_connection()

            acquisition_time = time.time() - start_time
            if acquisition_time > 1.0:
                logger.warning(f"Database connection acquisition took {acquisition_time:.2f}s")

            yield conn

        except sqlite3.Error as e:
            logger.error(f"Database connection error: {e}")
            if conn:
                try:
                    conn.rollback()
                except sqlite3.Error:
                    logger.warning("Rollback failed after database error")
            raise
        finally:
            if conn:
                self._release(conn)

    def _release(self, conn: sqlite3.Connection) -> None:
        try:
            self.pool.put_nowait(conn)
        except Full:
            conn.close()
            with self.lock:
                self._total_connections -= 1

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Execute operations within a database transaction.

        Commits on success, rolls back on any exception.
        """
        with self.get_connection() as conn:
            try:
                conn.execute("BEGIN IMMEDIATE")
                yield conn
                conn.commit()
            except Exception as e:
                conn.rollback()
                logger.error(f"Transaction rolled back due to error: {e}")
                raise

    def execute_query(self, query: str, params: tuple = ()) -> List[sqlite3.Row]:
        with self.get_connection() as conn:
            cursor = conn.execute(query, params)
            return cursor.fetchall()

    def execute_one(self, query: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        with self.get_connection() as conn:
            cursor = conn.execute(query, params)
            return cursor.fetchone()

    def execute_update(self, query: str, params: tuple = ()) -> int:
        """Execute an INSERT/UPDATE/DELETE query.

        Returns:
            Number of affected rows
        """
        with self.get_connection() as conn:
            cursor = conn.execute(query, params)
            conn.commit()
            return cursor.rowcount

    def get_database_info(self) -> Dict[str, Any]:
        """Get database size and row counts."""
        with self.get_connection() as conn:
            page_count = conn.execute("PRAGMA page_count").fetchone()[0]
            page_size = conn.execute("PRAGMA page_size").fetchone()[0]

            try:
                article_count = conn.execute("SELECT COUNT(*) FROM articles").fetchone()[0]
            except sqlite3.Error:
                article_count = 0

            return {
                'database_size_mb': (page_count * page_size) / (1024 * 1024),
                'page_count': page_count,
                'page_size': page_size,
                'table_counts': {'articles': article_count},
                'connection_pool_size': self.pool.qsize(),
                'total_connections': self._total_connections
            }

    def close_all_connections(self) -> None:
        """Close all connections in the pool."""
        logger.info("Closing all database connections")

        while not self.pool.empty():
            try:
                conn = self.pool.get_nowait()
                conn.close()
            except (Empty, sqlite3.Error):
                break

        with self.lock:
            self._total_connections = 0
