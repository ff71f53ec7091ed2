"""SQL for default privileges.

The install and revoke sequences start with ``SET ROLE`` to the owner, because
default ACL entries for an owner can only be changed from that owner's session.
Later statements depend on it, so each sequence must be executed in order in a
single transaction.
"""

from psycopg import sql

from pg_default_privileges.adapters.base import Query
from pg_default_privileges.errors import InvalidPrivilegeError
from pg_default_privileges.errors import NoOwnerError
from pg_default_privileges.errors import NoPrivilegesError
from pg_default_privileges.errors import NoRoleError
from pg_default_privileges.errors import NoSchemaError
from pg_default_privileges.models import PRIVILEGE_PATTERN
from pg_default_privileges.models import DefaultPrivilegeParameters

# Namespace the default ACL lookup is scoped to
DEFAULT_ACL_NAMESPACE = 'public'

ROLE_OID_SQL = 'SELECT oid FROM pg_roles WHERE rolname = :role_name'

DATABASE_EXISTS_SQL = 'SELECT EXISTS (SELECT datname FROM pg_catalog.pg_database WHERE datname = :database)'

# 'r' is the default ACL object type for tables (and views)
GRANT_EXISTS_SQL = """
SELECT EXISTS (
  SELECT 1 FROM (
    SELECT defaclnamespace, (aclexplode(defaclacl)).* FROM pg_default_acl
    WHERE defaclobjtype = 'r'
  ) AS t (namespace, grantor_oid, grantee_oid, prtype, grantable)
  JOIN pg_namespace ON pg_namespace.oid = namespace
  WHERE grantee_oid = :role_oid AND nspname = :namespace AND grantor_oid = :owner_oid
)
"""

_SET_ROLE = sql.SQL('SET ROLE {owner}')
_REVOKE_ALL = sql.SQL('ALTER DEFAULT PRIVILEGES FOR ROLE {owner} IN SCHEMA {schema} REVOKE ALL ON TABLES FROM {role}')
_GRANT = sql.SQL('ALTER DEFAULT PRIVILEGES FOR ROLE {owner} IN SCHEMA {schema} GRANT {privileges} ON TABLES TO {role}')


def role_oid_query(role_name: str) -> Query:
    return Query(ROLE_OID_SQL, {'role_name': role_name})


def database_exists_query(database: str) -> Query:
    return Query(DATABASE_EXISTS_SQL, {'database': database})


def grant_exists_query(owner_oid: int, role_oid: int, namespace: str = DEFAULT_ACL_NAMESPACE) -> Query:
    """Query whether the owner has granted the role default privileges on tables.

    Args:
        owner_oid: oid of the granting (owner) role
        role_oid: oid of the grantee role
        namespace: name of the schema the default ACL entry must be scoped to
    """
    return Query(GRANT_EXISTS_SQL, {'role_oid': role_oid, 'owner_oid': owner_oid, 'namespace': namespace})


def _privileges_clause(privileges) -> sql.Composable:
    for privilege in privileges:
        if not isinstance(privilege, str) or not PRIVILEGE_PATTERN.fullmatch(privilege):
            raise InvalidPrivilegeError(privilege)
    return sql.SQL(', ').join(sql.SQL(privilege) for privilege in privileges)


def _set_role(owner: str) -> Query:
    return Query(_SET_ROLE.format(owner=sql.Identifier(owner)))


def _revoke_all(owner: str, schema: str, role: str) -> Query:
    return Query(
        _REVOKE_ALL.format(
            owner=sql.Identifier(owner),
            schema=sql.Identifier(schema),
            role=sql.Identifier(role),
        ),
    )


def build_install_statements(params: DefaultPrivilegeParameters) -> list[Query]:
    """Build the statements that make the declared default privileges take effect.

    Any default privileges the owner previously granted the role in the schema
    are revoked first, so running the sequence again converges to the same state
    whatever was granted before.

    Args:
        params: The declared parameters

    Returns:
        ``SET ROLE``, the revoke of all table privileges, then the grant

    Raises:
        ValidationError: if the role, schema, privileges or owner are missing
    """
    if not params.role:
        raise NoRoleError
    if not params.schema:
        raise NoSchemaError
    if not params.privileges:
        raise NoPrivilegesError
    if not params.owner:
        raise NoOwnerError

    privileges = _privileges_clause(params.privileges)

    return [
        _set_role(params.owner),
        _revoke_all(params.owner, params.schema, params.role),
        Query(
            _GRANT.format(
                owner=sql.Identifier(params.owner),
                schema=sql.Identifier(params.schema),
                privileges=privileges,
                role=sql.Identifier(params.role),
            ),
        ),
    ]


def build_revoke_statements(params: DefaultPrivilegeParameters) -> list[Query]:
    """Build the statements that remove the role's default privileges on tables.

    Raises:
        ValidationError: if the role, schema or owner are missing
    """
    if not params.role:
        raise NoRoleError
    if not params.schema:
        raise NoSchemaError
    if not params.owner:
        raise NoOwnerError

    return [
        _set_role(params.owner),
        _revoke_all(params.owner, params.schema, params.role),
    ]
