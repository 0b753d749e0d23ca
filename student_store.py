"""MySQL-backed store client for student records."""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import mysql.connector
from mysql.connector import pooling

from config import DatabaseConfig
from utils.exceptions import DatabaseError

logger = logging.getLogger(__name__)


class StudentStore:
    """
    Owns the connection pool used to reach the student table.

    The hosting process creates one instance, calls ``open()`` at startup and
    ``close()`` at shutdown. Callers borrow connections through
    ``connection()``, which always hands them back to the pool.
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self._pool: Optional[pooling.MySQLConnectionPool] = None

    @property
    def table(self) -> str:
        return self.config.table

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    def open(self) -> None:
        """Create the connection pool. Calling it on an open store does nothing."""
        if self._pool is not None:
            return

        log_context = {
            "host": self.config.host,
            "database": self.config.database,
            "pool_size": self.config.pool_size
        }
        try:
            self._pool = pooling.MySQLConnectionPool(
                pool_name=self.config.pool_name,
                pool_size=self.config.pool_size,
                host=self.config.host,
                port=self.config.port,
                user=self.config.user,
                password=self.config.password,
                database=self.config.database,
                connection_timeout=self.config.connect_timeout,
                ssl_disabled=self.config.ssl_disabled,
                ssl_verify_cert=self.config.ssl_verify_cert
            )
        except mysql.connector.Error as e:
            logger.error(f"Failed to connect to database: {e}", extra=log_context)
            raise DatabaseError(f"Could not create connection pool: {e}") from e

        logger.info("Connected to database", extra=log_context)

    def close(self) -> None:
        """
        Close the idle pooled connections and drop the pool.

        Connections still borrowed return to the dropped pool and are freed with it.
        """
        if self._pool is None:
            return
        pool, self._pool = self._pool, None
        try:
            # The pool has no public method to close its idle connections
            closed = pool._remove_connections()
        except mysql.connector.Error as e:
            logger.error(f"Error closing pooled connections: {e}")
            closed = 0
        logger.info(
            "Database connection pool closed",
            extra={"pool_name": self.config.pool_name, "closed_connections": closed}
        )

    @contextmanager
    def connection(self) -> Iterator["mysql.connector.connection.MySQLConnection"]:
        """
        Borrow a pooled connection for the duration of the ``with`` block.

        Raises:
            DatabaseError: If the store is not open or the pool is exhausted/unreachable
        """
        if self._pool is None:
            raise DatabaseError("Student store is not open")

        try:
            conn = self._pool.get_connection()
        except mysql.connector.Error as e:
            logger.error(f"Could not acquire database connection: {e}")
            raise DatabaseError(f"Could not acquire database connection: {e}") from e

        try:
            yield conn
        finally:
            # Returns the connection to the pool
            conn.close()

    def ping(self) -> bool:
        """Check that a connection can be borrowed and is alive."""
        try:
            with self.connection() as conn:
                return conn.is_connected()
        except DatabaseError:
            return False
