"""PostgreSQL pool for the assessment store.

Each service process holds one small ThreadedConnectionPool. Submissions
insert a single row and history reads are short, so a handful of
connections covers the worker threads that persistence runs on.

Credentials come from DB_* environment variables, or from an AWS Secrets
Manager secret when DB_SECRET_ARN is set.
"""
import json
import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterator, Optional

import boto3
from psycopg2 import pool

logger = logging.getLogger(__name__)

APPLICATION_NAME = "mindscreen-assessments"


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings for the assessments database."""
    host: str = "localhost"
    port: int = 5432
    database: str = "mindscreen"
    username: str = ""
    password: str = ""
    pool_size: int = 4
    connect_timeout: int = 5
    statement_timeout_ms: int = 5000
    ssl_mode: str = "require"

    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        """Build config from DB_* variables, overlaying the secret if configured.

        Environment variables:
            DB_HOST, DB_PORT, DB_NAME, DB_USER, DB_PASSWORD
            DB_POOL_SIZE: Maximum pooled connections (default 4)
            DB_STATEMENT_TIMEOUT_MS: Per-statement limit (default 5000)
            DB_SSL_MODE: libpq sslmode (default require)
            DB_SECRET_ARN: Secrets Manager secret with host/port/dbname/username/password
            AWS_REGION: Region of the secret (default us-east-1)
        """
        config = cls(
            host=os.getenv("DB_HOST", "localhost"),
            port=int(os.getenv("DB_PORT", "5432")),
            database=os.getenv("DB_NAME", "mindscreen"),
            username=os.getenv("DB_USER", ""),
            password=os.getenv("DB_PASSWORD", ""),
            pool_size=int(os.getenv("DB_POOL_SIZE", "4")),
            statement_timeout_ms=int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "5000")),
            ssl_mode=os.getenv("DB_SSL_MODE", "require"),
        )

        secret_arn = os.getenv("DB_SECRET_ARN")
        if secret_arn:
            config = config.with_secret(secret_arn, os.getenv("AWS_REGION", "us-east-1"))
        return config

    def with_secret(self, secret_arn: str, region: str) -> "DatabaseConfig":
        """Return a copy with credentials read from Secrets Manager."""
        try:
            client = boto3.client("secretsmanager", region_name=region)
            secret = json.loads(client.get_secret_value(SecretId=secret_arn)["SecretString"])
        except Exception as e:
            logger.error(
                "DATABASE_SECRET_LOAD_FAILED",
                extra={"error": str(e), "secret_arn": secret_arn}
            )
            raise

        return replace(
            self,
            host=secret.get("host", self.host),
            port=int(secret.get("port", self.port)),
            database=secret.get("dbname", self.database),
            username=secret.get("username", self.username),
            password=secret.get("password", self.password),
        )

    def connect_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for psycopg2.connect."""
        return {
            "host": self.host,
            "port": self.port,
            "dbname": self.database,
            "user": self.username,
            "password": self.password,
            "connect_timeout": self.connect_timeout,
            "sslmode": self.ssl_mode,
            "application_name": APPLICATION_NAME,
            "options": f"-c statement_timeout={self.statement_timeout_ms}",
        }


class ConnectionManager:
    """Lends pooled connections to the repositories."""

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self._pool: Optional[pool.ThreadedConnectionPool] = None

    @property
    def initialized(self) -> bool:
        return self._pool is not None

    def initialize(self) -> None:
        """Open the pool. Calling again is a no-op."""
        if self._pool is not None:
            return

        try:
            self._pool = pool.ThreadedConnectionPool(
                1, self.config.pool_size, **self.config.connect_kwargs()
            )
        except Exception as e:
            logger.error(
                "DATABASE_POOL_OPEN_FAILED",
                extra={"error": str(e), "host": self.config.host}
            )
            raise

        logger.info(
            "DATABASE_POOL_OPENED",
            extra={
                "host": self.config.host,
                "database": self.config.database,
                "pool_size": self.config.pool_size,
            }
        )

    @contextmanager
    def get_connection(self) -> Iterator[Any]:
        """Borrow a connection; the transaction is rolled back if the block raises."""
        if self._pool is None:
            raise RuntimeError("Connection pool not initialized")

        conn = self._pool.getconn()
        try:
            yield conn
        except Exception:
            conn.rollback()
            raise
        finally:
            self._pool.putconn(conn)

    def ping(self) -> bool:
        """True if a pooled connection answers SELECT 1."""
        if self._pool is None:
            return False

        try:
            with self.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute("SELECT 1")
                    cur.fetchone()
        except Exception as e:
            logger.warning("DATABASE_PING_FAILED", extra={"error": str(e)})
            return False
        return True

    def close(self) -> None:
        if self._pool is not None:
            self._pool.closeall()
            self._pool = None
            logger.info("DATABASE_POOL_CLOSED")


_connection_manager: Optional[ConnectionManager] = None


def get_connection_manager() -> ConnectionManager:
    """Process-wide manager built from the environment."""
    global _connection_manager

    if _connection_manager is None:
        _connection_manager = ConnectionManager(DatabaseConfig.from_env())

    return _connection_manager
