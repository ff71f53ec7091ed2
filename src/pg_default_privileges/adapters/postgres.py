"""PostgreSQL handle for pg_default_privileges.

Executes queries through a SQLAlchemy engine.
"""

import logging
from collections.abc import Sequence

import psycopg
import sqlalchemy as sa
from psycopg import sql

from pg_default_privileges.adapters.base import DatabaseHandle
from pg_default_privileges.adapters.base import Query
from pg_default_privileges.errors import NoRowsError

logger = logging.getLogger(__name__)


class PostgresHandle(DatabaseHandle):
    """PostgreSQL-specific implementation of DatabaseHandle."""

    def __init__(self, engine: sa.engine.Engine):
        """Initialize the handle.

        Args:
            engine: SQLAlchemy engine bound to the database this handle targets. For
                SQLAlchemy < 2 `future=True` must be passed to its create_engine function.
        """
        self.engine = engine

    @property
    def database(self) -> str | None:
        return self.engine.url.database

    def _execute(self, conn, query: Query):
        """Render and execute a query on an open connection.

        Composed statements are rendered against the underlying driver connection
        when it is a psycopg one. This avoids "argument 1 must be a connection"
        errors when something like elastic-apm wraps the connection object.

        Composed statements carry no parameters and are sent to the driver as
        they are, so a quoted identifier containing ``:name`` or ``%`` is never
        mistaken for a placeholder.
        """
        if not isinstance(query.string, sql.Composable):
            logger.debug('Executing %s on database %s', query.string, self.database)
            return conn.execute(sa.text(query.string), query.parameters)

        driver_connection = conn.connection.driver_connection
        unwrapped_connection = getattr(driver_connection, '__wrapped__', driver_connection)
        context = unwrapped_connection if isinstance(unwrapped_connection, psycopg.Connection) else None
        text = query.as_string(context)
        logger.debug('Executing %s on database %s', text, self.database)
        return conn.exec_driver_sql(text, execution_options={'no_parameters': True})

    def scan(self, query: Query) -> tuple:
        """Run a query and return its first row."""
        with self.engine.connect() as conn:
            row = self._execute(conn, query).first()
        if row is None:
            raise NoRowsError(query.as_string())
        return tuple(row)

    def exec_tx(self, queries: Sequence[Query]) -> None:
        """Execute statements in order inside one transaction.

        ``engine.begin()`` commits on success and rolls back everything executed
        so far if any statement raises.
        """
        with self.engine.begin() as conn:
            for query in queries:
                self._execute(conn, query)
