"""
Database connection and operations module.

Provides connection pooling and the license repository used by the
NextCap license server.
"""

import logging
from contextlib import contextmanager
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone

from psycopg2 import pool, errors as pg_errors
from psycopg2.extras import RealDictCursor

from config import get_config
from license import LicenseRecord, LicenseKeyCollisionError

logger = logging.getLogger(__name__)


class DatabaseError(Exception):
    """Base exception for database errors."""
    pass


class ConnectionPoolError(DatabaseError):
    """Exception for connection pool errors."""
    pass


class QueryError(DatabaseError):
    """Exception for query execution errors."""
    pass


class DatabaseManager:
    """
    Manages database connections with connection pooling.

    Provides both synchronous and context manager interfaces for
    database operations with automatic connection management.
    """

    def __init__(self):
        """Initialize database manager."""
        self.config = get_config().database
        self._pool: Optional[pool.ThreadedConnectionPool] = None
        self._initialized = False

    def initialize(self) -> None:
        """Initialize connection pool."""
        if self._initialized:
            logger.warning("Database manager already initialized")
            return

        try:
            self._pool = pool.ThreadedConnectionPool(
                minconn=1,
                maxconn=self.config.pool_size,
                host=self.config.host,
                port=self.config.port,
                dbname=self.config.name,
                user=self.config.user,
                password=self.config.password,
                connect_timeout=self.config.pool_timeout
            )
            self._initialized = True
            logger.info(
                f"Database connection pool initialized "
                f"(host={self.config.host}, db={self.config.name})"
            )
        except Exception as e:
            logger.error(f"Failed to initialize connection pool: {e}")
            raise ConnectionPoolError(f"Connection pool initialization failed: {e}") from e

    def close(self) -> None:
        """Close all connections in the pool."""
        if self._pool:
            self._pool.closeall()
            self._initialized = False
            logger.info("Database connection pool closed")

    @contextmanager
    def get_connection(self):
        """
        Get a connection from the pool as a context manager.

        Yields:
            psycopg2.connection: Database connection

        Raises:
            ConnectionPoolError: If pool is not initialized or connection fails
        """
        if not self._initialized:
            self.initialize()

        conn = None
        try:
            conn = self._pool.getconn()
            yield conn
        except DatabaseError:
            if conn:
                conn.rollback()
            raise
        except Exception as e:
            if conn:
                conn.rollback()
            logger.error(f"Database connection error: {e}")
            raise ConnectionPoolError(f"Connection error: {e}") from e
        finally:
            if conn:
                self._pool.putconn(conn)

    @contextmanager
    def get_cursor(self, dict_cursor: bool = False):
        """
        Get a cursor from a pooled connection.

        Args:
            dict_cursor: If True, return RealDictCursor for dict-like results

        Yields:
            psycopg2.cursor: Database cursor
        """
        with self.get_connection() as conn:
            cursor_factory = RealDictCursor if dict_cursor else None
            cursor = conn.cursor(cursor_factory=cursor_factory)
            try:
                yield cursor
                conn.commit()
            except Exception as e:
                conn.rollback()
                logger.error(f"Cursor operation error: {e}")
                raise QueryError(f"Query execution failed: {e}") from e
            finally:
                cursor.close()

    def health_check(self) -> Dict[str, Any]:
        """
        Perform database health check.

        Returns:
            Dict with health status information
        """
        try:
            with self.get_cursor() as cursor:
                cursor.execute("SELECT version();")
                version = cursor.fetchone()[0]

                cursor.execute("SELECT COUNT(*) FROM licenses;")
                license_count = cursor.fetchone()[0]

                return {
                    "status": "healthy",
                    "postgres_version": version,
                    "total_licenses": license_count,
                    "timestamp": datetime.now(timezone.utc).isoformat()
                }
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return {
                "status": "unhealthy",
                "error": str(e),
                "timestamp": datetime.now(timezone.utc).isoformat()
            }


_LICENSE_COLUMNS = "id, key, holder_name, email, is_active, expires_at, created_at"


def _row_to_record(row: Dict[str, Any]) -> LicenseRecord:
    return LicenseRecord(
        id=row['id'],
        key=row['key'],
        holder_name=row['holder_name'],
        email=row['email'],
        is_active=row['is_active'],
        expires_at=row['expires_at'],
        created_at=row['created_at'],
    )


class LicenseRepository:
    """Repository for license records."""

    def __init__(self, db_manager: DatabaseManager):
        """Initialize repository with database manager."""
        self.db = db_manager

    def list_licenses(self) -> List[LicenseRecord]:
        """List every license, newest first."""
        query = f"SELECT {_LICENSE_COLUMNS} FROM licenses ORDER BY created_at DESC, id DESC"

        with self.db.get_cursor(dict_cursor=True) as cursor:
            cursor.execute(query)
            return [_row_to_record(row) for row in cursor.fetchall()]

    def get_license_by_key(self, key: str) -> Optional[LicenseRecord]:
        """
        Look up a license by exact key.

        Args:
            key: License key string

        Returns:
            The record or None if no license has this key
        """
        query = f"SELECT {_LICENSE_COLUMNS} FROM licenses WHERE key = %s LIMIT 1"

        with self.db.get_cursor(dict_cursor=True) as cursor:
            cursor.execute(query, (key,))
            row = cursor.fetchone()
            return _row_to_record(row) if row else None

    def key_exists(self, key: str) -> bool:
        """Check whether a key has already been issued."""
        with self.db.get_cursor() as cursor:
            cursor.execute("SELECT EXISTS(SELECT 1 FROM licenses WHERE key = %s)", (key,))
            result = cursor.fetchone()
            return bool(result[0]) if result else False

    def create_license(
        self,
        key: str,
        holder_name: str,
        email: str,
        expires_at: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
    ) -> LicenseRecord:
        """
        Insert a new active license.

        Raises:
            LicenseKeyCollisionError: If the key is already taken
        """
        query = f"""
        INSERT INTO licenses (key, holder_name, email, is_active, expires_at, created_at)
        VALUES (%s, %s, %s, TRUE, %s, %s)
        RETURNING {_LICENSE_COLUMNS}
        """
        created_at = created_at or datetime.now(timezone.utc)

        try:
            with self.db.get_cursor(dict_cursor=True) as cursor:
                cursor.execute(query, (key, holder_name, email, expires_at, created_at))
                row = cursor.fetchone()
        except QueryError as e:
            if isinstance(e.__cause__, pg_errors.UniqueViolation):
                raise LicenseKeyCollisionError(f"License key already exists: {key[:4]}...") from e
            raise

        logger.info(f"Inserted license {row['id']} for {holder_name}")
        return _row_to_record(row)

    def set_active(self, license_id: int, is_active: bool) -> bool:
        """
        Set the active flag of a license.

        Returns:
            True if a license was updated
        """
        with self.db.get_cursor() as cursor:
            cursor.execute(
                "UPDATE licenses SET is_active = %s WHERE id = %s",
                (is_active, license_id),
            )
            return cursor.rowcount > 0

    def delete_license(self, license_id: int) -> bool:
        """
        Delete a license.

        Returns:
            True if a license was deleted
        """
        with self.db.get_cursor() as cursor:
            cursor.execute("DELETE FROM licenses WHERE id = %s", (license_id,))
            deleted = cursor.rowcount > 0
            if deleted:
                logger.info(f"Deleted license {license_id}")
            return deleted


# Global database manager instance
_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    """Get or create global database manager instance."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
        _db_manager.initialize()
    return _db_manager


def close_db_manager() -> None:
    """Close global database manager."""
    global _db_manager
    if _db_manager:
        _db_manager.close()
        _db_manager = None
