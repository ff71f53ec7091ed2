"""Read-only lookups used while reconciling.

Role oids are cluster-wide, so they are looked up through the handle bound to
the provider's default database. Default ACL entries live in each database and
are looked up through the handle bound to the target database.
"""

import logging
from typing import cast

from pg_default_privileges.adapters.base import DatabaseHandle
from pg_default_privileges.errors import IdentityNotFoundError
from pg_default_privileges.errors import NoRowsError
from pg_default_privileges.errors import ReconcileError
from pg_default_privileges.statements import DEFAULT_ACL_NAMESPACE
from pg_default_privileges.statements import database_exists_query
from pg_default_privileges.statements import grant_exists_query
from pg_default_privileges.statements import role_oid_query

log = logging.getLogger(__name__)


def get_role_oid(handle: DatabaseHandle, role_name: str) -> int:
    """Get the oid of a role.

    Args:
        handle: Handle to run the lookup on
        role_name: Name of the role

    Returns:
        The role's oid

    Raises:
        IdentityNotFoundError: if no role has that name
        ReconcileError: naming the role, if the lookup itself fails
    """
    try:
        (oid,) = handle.scan(role_oid_query(role_name))
    except NoRowsError as e:
        raise IdentityNotFoundError(role_name) from e
    except Exception as e:
        raise ReconcileError(f'could not find oid for role {role_name}', e) from e
    log.debug('Role %s has oid %s', role_name, oid)
    return cast(int, oid)


def database_exists(handle: DatabaseHandle, database: str) -> bool:
    """Check whether a database exists."""
    try:
        (exists,) = handle.scan(database_exists_query(database))
    except Exception as e:
        raise ReconcileError(f'could not find database {database}', e) from e
    return bool(exists)


def grant_exists(
    handle: DatabaseHandle,
    owner_oid: int,
    role_oid: int,
    namespace: str = DEFAULT_ACL_NAMESPACE,
) -> bool:
    """Check whether the owner has granted the role any default privileges on tables.

    Absence is a normal outcome and returns False. Which privileges were granted
    is not compared.
    """
    (exists,) = handle.scan(grant_exists_query(owner_oid, role_oid, namespace))
    log.debug('Default privileges from %s to %s in %s exist: %s', owner_oid, role_oid, namespace, exists)
    return bool(exists)
