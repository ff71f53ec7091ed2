"""Reconciliation of declared default privileges.

``DefaultPrivilegeClient`` implements the four verbs the host framework calls for
each declared ``DefaultPrivilege``: observe, create, update and delete. The
framework decides which verb to call from the results; nothing here schedules,
retries or runs anything concurrently.
"""

import logging

from pg_default_privileges.adapters.base import DatabaseHandle
from pg_default_privileges.errors import ERR_CREATE_DEFAULT_PERMS
from pg_default_privileges.errors import ERR_CREATE_DEFAULT_PERMS_QUERY
from pg_default_privileges.errors import ERR_REVOKE_DEFAULT_PERMS
from pg_default_privileges.errors import ERR_REVOKE_DEFAULT_PERMS_QUERY
from pg_default_privileges.errors import ERR_SELECT_DEFAULT_PERMS
from pg_default_privileges.errors import ERR_SELECT_ROLE_ID
from pg_default_privileges.errors import NoDatabaseError
from pg_default_privileges.errors import NoOwnerError
from pg_default_privileges.errors import NoRoleError
from pg_default_privileges.errors import ReconcileError
from pg_default_privileges.errors import ValidationError
from pg_default_privileges.errors import WrongKindError
from pg_default_privileges.models import DefaultPrivilege
from pg_default_privileges.models import ExternalCreation
from pg_default_privileges.models import ExternalObservation
from pg_default_privileges.models import ExternalUpdate
from pg_default_privileges.models import available
from pg_default_privileges.models import creating
from pg_default_privileges.models import deleting
from pg_default_privileges.probes import database_exists
from pg_default_privileges.probes import get_role_oid
from pg_default_privileges.probes import grant_exists
from pg_default_privileges.statements import build_install_statements
from pg_default_privileges.statements import build_revoke_statements

log = logging.getLogger(__name__)


def as_default_privilege(mg) -> DefaultPrivilege:
    if not isinstance(mg, DefaultPrivilege):
        raise WrongKindError
    return mg


class DefaultPrivilegeClient:
    """Reconciles DefaultPrivilege objects against one PostgreSQL server.

    Args:
        db: Handle bound to the provider's default database. Used for lookups that
            are cluster-wide: role oids and database existence.
        db_database: Handle bound to the database the declared object targets. Used
            for default ACL lookups and all statements that change them.
        database: Name of the database ``db_database`` is bound to.
    """

    def __init__(self, db: DatabaseHandle, db_database: DatabaseHandle, database: str | None = None):
        self.db = db
        self.db_database = db_database
        self.database = database

    def observe(self, mg) -> ExternalObservation:
        """Report whether the declared default privileges exist.

        Existing default privileges are always reported as up to date, whichever
        privileges they grant.

        Raises:
            WrongKindError: if ``mg`` is not a DefaultPrivilege
            NoRoleError, NoOwnerError: if the role or owner is not set
            ReconcileError: if a role cannot be resolved or the lookup fails
        """
        cr = as_default_privilege(mg)
        gp = cr.parameters

        if not gp.role:
            raise NoRoleError
        if not gp.owner:
            raise NoOwnerError

        try:
            role_oid = get_role_oid(self.db, gp.role)
        except Exception as e:
            raise ReconcileError(ERR_SELECT_ROLE_ID, e) from e

        try:
            owner_oid = get_role_oid(self.db, gp.owner)
        except Exception as e:
            raise ReconcileError(ERR_SELECT_ROLE_ID, e) from e

        try:
            exists = grant_exists(self.db_database, owner_oid, role_oid)
        except Exception as e:
            raise ReconcileError(ERR_SELECT_DEFAULT_PERMS, e) from e

        if not exists:
            log.debug('Default privileges %s not found', cr.name)
            return ExternalObservation(resource_exists=False)

        cr.set_conditions(available())

        return ExternalObservation(
            resource_exists=True,
            resource_up_to_date=True,
            resource_late_initialized=False,
        )

    def create(self, mg) -> ExternalCreation:
        """Install the declared default privileges.

        Previously granted default privileges are revoked and the declared ones
        granted in a single transaction, so calling this again is safe and is how
        changed privileges are applied.
        """
        cr = as_default_privilege(mg)
        cr.set_conditions(creating())

        try:
            queries = build_install_statements(cr.parameters)
        except ValidationError as e:
            raise ReconcileError(ERR_CREATE_DEFAULT_PERMS_QUERY, e) from e

        gp = cr.parameters
        log.info(
            'Granting default privileges %s on tables in schema %s owned by %s to role %s',
            gp.privileges,
            gp.schema,
            gp.owner,
            gp.role,
        )
        try:
            self.db_database.exec_tx(queries)
        except Exception as e:
            raise ReconcileError(ERR_CREATE_DEFAULT_PERMS, e) from e

        return ExternalCreation()

    def update(self, mg) -> ExternalUpdate:
        """Do nothing.

        Privileges are fully revoked and granted again by ``create``, inside a
        transaction, so there is never anything left to update.
        """
        as_default_privilege(mg)
        return ExternalUpdate()

    def delete(self, mg) -> None:
        """Revoke the declared default privileges.

        If the target database no longer exists there is nothing to revoke and
        this returns without running any statement.
        """
        cr = as_default_privilege(mg)
        cr.set_conditions(deleting())

        gp = cr.parameters
        database = gp.database or self.database
        try:
            if not database:
                raise NoDatabaseError
            queries = build_revoke_statements(gp)
        except ValidationError as e:
            raise ReconcileError(ERR_REVOKE_DEFAULT_PERMS_QUERY, e) from e

        # The database may have been dropped since the last observe
        try:
            db_exists = database_exists(self.db, database)
        except Exception as e:
            raise ReconcileError(ERR_REVOKE_DEFAULT_PERMS, e) from e

        if not db_exists:
            log.info('Database %s no longer exists, nothing to revoke for %s', database, cr.name)
            return

        log.info(
            'Revoking default privileges on tables in schema %s owned by %s from role %s',
            gp.schema,
            gp.owner,
            gp.role,
        )
        try:
            self.db_database.exec_tx(queries)
        except Exception as e:
            raise ReconcileError(ERR_REVOKE_DEFAULT_PERMS, e) from e
