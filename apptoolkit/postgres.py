"""Disposable PostgreSQL databases for integration tests."""

from __future__ import annotations

import contextlib
import dataclasses
import time
from collections.abc import Callable
from typing import Any

from apptoolkit.network import PORT_RANGE_MAX, get_open_port_in_range
from apptoolkit.process import run_container

PASSWORD = "password"

_FIRST_PORT = 35000
_RESET_QUERY = (
    "DROP SCHEMA public CASCADE;"
    "CREATE SCHEMA public;"
    "GRANT ALL ON SCHEMA public TO postgres;"
    "GRANT ALL ON SCHEMA public TO public;"
)


class DatabaseTimeoutError(TimeoutError):
    """Raised when the test database does not accept connections in time."""

    def __init__(self) -> None:
        super().__init__("testing database error: database connection timed out")


@dataclasses.dataclass
class PostgresDB:
    """A test PostgreSQL database reached through ``connect(dsn)``.

    ``connect`` takes a DSN and returns a DB-API connection.
    """

    connect: Callable[[str], Any]
    port: int
    name: str = "test-postgres-db"
    user: str = "postgres"
    password: str = PASSWORD
    version: str = "latest"
    migrate_up: Callable[[Any], Any] | None = None
    migrate_down: Callable[[Any], Any] | None = None
    timeout: float = 10.0
    poll_interval: float = 0.5

    def dsn(self) -> str:
        """Return the connection string of the database."""
        return (
            f"host=localhost port={self.port} user={self.user} "
            f"password={self.password} sslmode=disable dbname={self.name}"
        )

    def reset(self) -> None:
        """Drop every table, then rebuild them with ``migrate_up`` if it is set.

        With ``migrate_down`` set it tears the schema down instead of dropping
        the public schema.
        """
        connection = self.connect(self.dsn())
        with contextlib.closing(connection):
            if self.migrate_down is not None:
                # A failing tear-down is not fatal: the up migrations still run.
                with contextlib.suppress(Exception):
                    self.migrate_down(connection)
            else:
                with contextlib.closing(connection.cursor()) as cursor:
                    cursor.execute(_RESET_QUERY)
                connection.commit()
            if self.migrate_up is not None:
                self.migrate_up(connection)

    def _ping(self) -> bool:
        try:
            connection = self.connect(self.dsn())
        except Exception:
            return False
        with contextlib.suppress(Exception):
            connection.close()
        return True

    def check_connection(self) -> None:
        """Wait until the database accepts connections or ``timeout`` runs out."""
        deadline = time.monotonic() + self.timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining < self.poll_interval:
                time.sleep(max(remaining, 0.0))
                raise DatabaseTimeoutError()
            time.sleep(self.poll_interval)
            if self._ping():
                return

    def run_as_docker_container(self) -> Callable[[], None]:
        """Start the database in a docker container and return a function that kills it."""
        cleanup = run_container(
            f"postgres:{self.version}",
            [
                f"--publish={self.port}:5432",
                f"--env=POSTGRES_DB={self.name}",
                f"--env=POSTGRES_PASSWORD={self.password}",
                f"--env=POSTGRES_USER={self.user}",
                "--detach",
                "--rm",
            ],
            [],
        )
        try:
            self.check_connection()
        except BaseException:
            with contextlib.suppress(Exception):
                cleanup()
            raise
        return cleanup


def new_test_postgres_db(connect: Callable[[str], Any], **kwargs: Any) -> PostgresDB:
    """Return a test database; options are the fields of PostgresDB.

    Without a ``port`` option the first open port from 35000 up is used.
    """
    port = kwargs.pop("port", None)
    if port is None:
        port = get_open_port_in_range(_FIRST_PORT, PORT_RANGE_MAX)
    return PostgresDB(connect=connect, port=port, **kwargs)