"""
Database connection management for schemaguard.

Provides a small synchronous MySQL connection pool and the single
parameterized execute primitive every statement goes through.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional
from urllib.parse import parse_qs, unquote, urlparse

import pymysql
import pymysql.cursors
from pydantic import BaseModel, Field, field_validator

from ..exceptions import (
    DatabaseConfigurationError,
    DatabaseConnectionError,
    EngineFailureError,
)
from .statements import Statement


logger = logging.getLogger(__name__)


class ConnectionConfig(BaseModel):
    """Database connection configuration."""

    host: str = Field("localhost", description="Database host")
    port: int = Field(3306, description="Database port")
    database: str = Field(..., description="Database name")
    user: str = Field("root", description="Database user")
    password: str = Field("", description="Database password")
    charset: str = Field("utf8mb4", description="Connection character set")

    # Pool settings
    max_idle: int = Field(2, description="Idle connections kept for reuse")

    # Connection settings
    connect_timeout: int = Field(10, description="Connect timeout in seconds")
    read_timeout: Optional[int] = Field(60, description="Read timeout in seconds")

    # SSL settings
    ssl_ca: Optional[str] = Field(None, description="SSL CA certificate path")
    ssl_cert: Optional[str] = Field(None, description="SSL certificate path")
    ssl_key: Optional[str] = Field(None, description="SSL key path")

    @field_validator("database")
    @classmethod
    def validate_database(cls, v):
        if not v or not v.strip():
            raise ValueError("Database name is required")
        return v

    @classmethod
    def from_url(cls, url: str) -> "ConnectionConfig":
        """Create configuration from a ``mysql://`` database URL."""
        parsed = urlparse(url)

        if parsed.scheme not in ("mysql", "mariadb", "mysql+pymysql"):
            raise DatabaseConfigurationError(f"Invalid database URL scheme: {parsed.scheme}")

        if not parsed.path or parsed.path == "/":
            raise DatabaseConfigurationError("Database name is required")

        query_params = parse_qs(parsed.query) if parsed.query else {}

        config_data: Dict[str, Any] = {
            "host": parsed.hostname or "localhost",
            "port": parsed.port or 3306,
            "database": parsed.path.lstrip("/"),
            "user": unquote(parsed.username) if parsed.username else "root",
            "password": unquote(parsed.password) if parsed.password else "",
        }

        if "charset" in query_params:
            config_data["charset"] = query_params["charset"][0]
        if "ssl_ca" in query_params:
            config_data["ssl_ca"] = query_params["ssl_ca"][0]
        if "ssl_cert" in query_params:
            config_data["ssl_cert"] = query_params["ssl_cert"][0]
        if "ssl_key" in query_params:
            config_data["ssl_key"] = query_params["ssl_key"][0]

        return cls(**config_data)

    def to_connection_kwargs(self) -> Dict[str, Any]:
        """Convert to PyMySQL connection kwargs."""
        kwargs: Dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "database": self.database,
            "user": self.user,
            "password": self.password,
            "charset": self.charset,
            "connect_timeout": self.connect_timeout,
            "read_timeout": self.read_timeout,
            "autocommit": True,
            "cursorclass": pymysql.cursors.DictCursor,
        }

        ssl = {}
        if self.ssl_ca:
            ssl["ca"] = self.ssl_ca
        if self.ssl_cert:
            ssl["cert"] = self.ssl_cert
        if self.ssl_key:
            ssl["key"] = self.ssl_key
        if ssl:
            kwargs["ssl"] = ssl

        return kwargs


class ConnectionPool:
    """Synchronous MySQL connection pool wrapper."""

    def __init__(self, config: ConnectionConfig):
        self.config = config
        self._idle: List[pymysql.connections.Connection] = []
        self._lock = threading.Lock()
        self._closed = False

    def _connect(self) -> pymysql.connections.Connection:
        try:
            logger.debug(
                f"Opening connection to {self.config.host}:{self.config.port}/{self.config.database}"
            )
            return pymysql.connect(**self.config.to_connection_kwargs())
        except pymysql.MySQLError as e:
            logger.error(f"Failed to connect to database: {e}")
            raise DatabaseConnectionError(f"Failed to connect to database: {e}", cause=e) from e

    def close(self) -> None:
        """Close all idle connections."""
        with self._lock:
            self._closed = True
            while self._idle:
                self._discard(self._idle.pop())

    def _discard(self, conn: pymysql.connections.Connection) -> None:
        try:
            conn.close()
        except pymysql.MySQLError as e:
            logger.warning(f"Error closing connection: {e}")

    @contextmanager
    def acquire(self) -> Iterator[pymysql.connections.Connection]:
        """Acquire a connection, returning it to the idle list afterwards."""
        if self._closed:
            raise DatabaseConnectionError("Pool is closed")

        with self._lock:
            conn = self._idle.pop() if self._idle else None

        if conn is not None:
            try:
                conn.ping(reconnect=True)
            except pymysql.MySQLError:
                logger.info("Discarding stale connection")
                self._discard(conn)
                conn = None
        if conn is None:
            conn = self._connect()

        healthy = True
        try:
            yield conn
        except pymysql.err.OperationalError:
            healthy = False
            raise
        finally:
            with self._lock:
                if healthy and not self._closed and len(self._idle) < self.config.max_idle:
                    self._idle.append(conn)
                    conn = None
            if conn is not None:
                self._discard(conn)

    def _run(self, statement: Statement, fetch: bool) -> Any:
        query, args = statement.compile()
        logger.debug(f"SQL: {query} args={args!r}")
        try:
            with self.acquire() as conn:
                with conn.cursor() as cursor:
                    affected = cursor.execute(query, args)
                    if fetch:
                        return list(cursor.fetchall())
                    return affected
        except pymysql.MySQLError as e:
            errno = e.args[0] if e.args and isinstance(e.args[0], int) else None
            message = e.args[1] if len(e.args) > 1 else str(e)
            logger.error(f"Statement failed ({errno}): {message}")
            raise EngineFailureError(message, errno=errno, cause=e) from e

    def execute(self, statement: Statement) -> int:
        """Execute a statement and return the affected row count."""
        return self._run(statement, fetch=False)

    def fetch(self, statement: Statement) -> List[Dict[str, Any]]:
        """Fetch all result rows as dictionaries."""
        return self._run(statement, fetch=True)

    def fetchrow(self, statement: Statement) -> Optional[Dict[str, Any]]:
        """Fetch the first result row, if any."""
        rows = self.fetch(statement)
        return rows[0] if rows else None

    def fetchval(self, statement: Statement, column: int = 0) -> Any:
        """Fetch a single value from the first row."""
        row = self.fetchrow(statement)
        if row is None:
            return None
        return list(row.values())[column]

    def get_stats(self) -> Dict[str, Any]:
        """Get connection pool statistics."""
        return {
            "idle": len(self._idle),
            "max_idle": self.config.max_idle,
            "closed": self._closed,
        }

    @property
    def is_closed(self) -> bool:
        """Check if pool is closed."""
        return self._closed

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
