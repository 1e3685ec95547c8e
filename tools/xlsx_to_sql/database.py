"""Database access for loading generated scripts."""

from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine

from shared.logger import get_logger

from .config import DatabaseConfig

logger = get_logger(__name__)

DRIVER = "mysql+pymysql"
DEFAULT_SOCKET = Path("/var/run/mysqld/mysqld.sock")
LOCAL_HOSTS = ("localhost", "127.0.0.1", "::1")


def database_url(config: DatabaseConfig, socket: Optional[str] = None) -> URL:
    """Build the SQLAlchemy URL for a MySQL / MariaDB server."""
    query = {"charset": "utf8mb4"}
    if socket:
        query["unix_socket"] = socket

    return URL.create(
        DRIVER,
        username=config.username,
        password=config.password or None,
        host=None if socket else config.hostname,
        port=None if socket else config.port,
        database=config.database,
        query=query,
    )


def _socket_for(config: DatabaseConfig) -> Optional[str]:
    if config.socket:
        return config.socket
    # Prefer the local server socket when it exists, as the mysql client does.
    if config.hostname in LOCAL_HOSTS and DEFAULT_SOCKET.exists():
        return str(DEFAULT_SOCKET)
    return None


def connect(config: DatabaseConfig) -> Engine:
    """
    Create an engine from connection settings.

    Args:
        config: Database settings

    Returns:
        SQLAlchemy Engine

    Raises:
        ConfigError: If required settings are missing
    """
    config.validate()
    socket = _socket_for(config)
    target = socket or f"{config.hostname}:{config.port}"
    logger.info(f"Connecting to {config.database} at {target} as {config.username}")
    return create_engine(database_url(config, socket), pool_pre_ping=True)


class DatabaseExecutor:
    """Execute raw SQL statements one at a time."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def ping(self) -> None:
        """
        Check that the server is reachable.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: If the connection fails
        """
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def execute(self, statement: str) -> None:
        """
        Execute one statement in its own transaction.

        The statement is passed to the driver untouched: no bind-parameter
        parsing and no ``%`` interpolation.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: If the statement fails
        """
        with self.engine.begin() as conn:
            conn.execution_options(no_parameters=True).exec_driver_sql(statement)

    def close(self) -> None:
        self.engine.dispose()
