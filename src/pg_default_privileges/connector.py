"""Connecting declared objects to the database they target.

Role oids are global to a PostgreSQL cluster while default ACL entries belong to
a single database, so each client gets two handles: one bound to the provider's
default database and one bound to the declared object's target database.
"""

import logging
from abc import ABC
from abc import abstractmethod
from collections.abc import Callable
from collections.abc import Mapping
from functools import partial

import sqlalchemy as sa

from pg_default_privileges.adapters.base import DatabaseHandle
from pg_default_privileges.adapters.postgres import PostgresHandle
from pg_default_privileges.config import ProviderConfig
from pg_default_privileges.config import Settings
from pg_default_privileges.config import get_settings
from pg_default_privileges.core import DefaultPrivilegeClient
from pg_default_privileges.core import as_default_privilege
from pg_default_privileges.errors import ERR_GET_PC
from pg_default_privileges.errors import ERR_GET_SECRET
from pg_default_privileges.errors import ERR_TRACK_PC_USAGE
from pg_default_privileges.errors import NoSecretRefError
from pg_default_privileges.errors import ReconcileError

log = logging.getLogger(__name__)


class ProviderConfigStore(ABC):
    @abstractmethod
    def get(self, name: str) -> ProviderConfig:
        """Fetch a provider configuration by name."""


class SecretStore(ABC):
    @abstractmethod
    def get(self, namespace: str, name: str) -> Mapping[str, bytes]:
        """Fetch the data of a secret."""


class UsageTracker(ABC):
    @abstractmethod
    def track(self, mg) -> None:
        """Record that ``mg`` uses its provider configuration."""


class StaticProviderConfigStore(ProviderConfigStore):
    """Provider configurations held in memory, keyed by name."""

    def __init__(self, *configs: ProviderConfig):
        self.configs = {config.name: config for config in configs}

    def get(self, name: str) -> ProviderConfig:
        try:
            return self.configs[name]
        except KeyError:
            raise KeyError(f'ProviderConfig {name!r} not found') from None


class StaticSecretStore(SecretStore):
    """Secrets held in memory, keyed by (namespace, name)."""

    def __init__(self, secrets: Mapping[tuple[str, str], Mapping[str, bytes]] | None = None):
        self.secrets = dict(secrets or {})

    def get(self, namespace: str, name: str) -> Mapping[str, bytes]:
        try:
            return self.secrets[(namespace, name)]
        except KeyError:
            raise KeyError(f'Secret {namespace}/{name} not found') from None


def _decode(value) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode()
    return str(value)


def get_handle(engine: sa.engine.Engine) -> DatabaseHandle:
    """Factory function to get the appropriate handle for an engine."""
    dialect = engine.dialect.name

    handles: dict[str, type[DatabaseHandle]] = {
        'postgresql': PostgresHandle,
    }

    handle_class = handles.get(dialect)
    if not handle_class:
        raise ValueError(f'Unsupported database dialect: {dialect}')

    return handle_class(engine)


def new_handle(
    creds: Mapping[str, bytes],
    database: str,
    ssl_mode: str | None,
    settings: Settings | None = None,
) -> DatabaseHandle:
    """Create a handle bound to ``database`` from connection credentials.

    Args:
        creds: Secret data with ``endpoint``, ``port``, ``username`` and ``password``
        database: Database the handle is bound to
        ssl_mode: libpq ``sslmode``, or None to leave it to the driver
        settings: Process settings, defaults to ``get_settings()``
    """
    settings = settings or get_settings()
    port = _decode(creds.get('port'))
    url = sa.engine.URL.create(
        settings.driver,
        username=_decode(creds.get('username')),
        password=_decode(creds.get('password')),
        host=_decode(creds.get('endpoint')),
        port=int(port) if port else None,
        database=database,
        query={'sslmode': ssl_mode} if ssl_mode else {},
    )
    connect_args = {}
    if settings.statement_timeout_ms is not None:
        connect_args['options'] = f'-c statement_timeout={settings.statement_timeout_ms}'

    # No pooling: SET ROLE outlives the transaction, so connections must not be reused
    engine = sa.create_engine(url, poolclass=sa.pool.NullPool, connect_args=connect_args)
    return get_handle(engine)


class Connector:
    """Produces a DefaultPrivilegeClient for a declared object.

    Args:
        provider_configs: Where provider configurations are fetched from
        secrets: Where connection credentials are fetched from
        usage: Optional tracker recording which objects use which configuration
        new_handle: Creates a handle from credentials, a database name and an SSL mode.
            Defaults to ``new_handle`` with this connector's settings.
        settings: Process settings, defaults to ``get_settings()``
    """

    def __init__(
        self,
        provider_configs: ProviderConfigStore,
        secrets: SecretStore,
        usage: UsageTracker | None = None,
        new_handle: Callable[[Mapping[str, bytes], str, str | None], DatabaseHandle] | None = None,
        settings: Settings | None = None,
    ):
        self.provider_configs = provider_configs
        self.secrets = secrets
        self.usage = usage
        self.new_handle = new_handle
        self.settings = settings

    def connect(self, mg) -> DefaultPrivilegeClient:
        cr = as_default_privilege(mg)
        settings = self.settings or get_settings()

        if self.usage is not None:
            try:
                self.usage.track(cr)
            except Exception as e:
                raise ReconcileError(ERR_TRACK_PC_USAGE, e) from e

        try:
            pc = self.provider_configs.get(cr.provider_config_name)
        except Exception as e:
            raise ReconcileError(ERR_GET_PC, e) from e

        ref = pc.credentials_secret_ref
        if ref is None:
            raise NoSecretRefError

        try:
            creds = self.secrets.get(ref.namespace, ref.name)
        except Exception as e:
            raise ReconcileError(ERR_GET_SECRET, e) from e

        default_database = pc.default_database or settings.default_database
        database = cr.parameters.database or default_database
        ssl_mode = pc.ssl_mode or settings.ssl_mode

        make_handle = self.new_handle or partial(new_handle, settings=settings)

        log.debug('Connecting %s to database %s (default database %s)', cr.name, database, default_database)
        return DefaultPrivilegeClient(
            db=make_handle(creds, default_database, ssl_mode),
            db_database=make_handle(creds, database, ssl_mode),
            database=database,
        )
