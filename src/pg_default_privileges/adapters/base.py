"""Abstract base class for database handles.

Defines the interface the reconciler uses to talk to a database.
"""

from abc import ABC
from abc import abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from dataclasses import field

from psycopg import sql


@dataclass(frozen=True)
class Query:
    """A statement and its bind parameters.

    Attributes:
        string (str | sql.Composable): Either plain SQL using SQLAlchemy style named
            parameters (``:name``), or a statement composed with ``psycopg.sql`` whose
            identifiers are quoted when rendered.
        parameters (dict): Values for the named parameters. User supplied values only
            ever reach the database through these, never through the query text.
    """

    string: str | sql.Composable
    parameters: dict = field(default_factory=dict)

    def as_string(self, context=None) -> str:
        """Render the query text.

        Args:
            context: A psycopg connection to quote with. Without one, identifiers are
                quoted with the standard double quote escaping.
        """
        if isinstance(self.string, sql.Composable):
            return self.string.as_string(context)
        return self.string


class DatabaseHandle(ABC):
    """Abstract base class for a handle bound to a single database.

    Each handle must implement methods for:
    - Reading a single row
    - Executing an ordered list of statements atomically
    """

    @abstractmethod
    def scan(self, query: Query) -> tuple:
        """Run a query expected to return exactly one row.

        Args:
            query: The query to run

        Returns:
            The values of the first row

        Raises:
            NoRowsError: if the query returned no rows
        """

    @abstractmethod
    def exec_tx(self, queries: Sequence[Query]) -> None:
        """Execute statements in order inside one transaction.

        Either all statements take effect or, if any fails, none do. Statements
        are never reordered or retried individually.

        Args:
            queries: Statements to execute, in order
        """
