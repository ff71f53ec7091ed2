"""Errors raised while reconciling default privileges.

Every error that crosses a verb boundary is either a validation error raised
before any query runs, or a ``ReconcileError`` whose message starts with a short,
stable stage name so that operators can tell the failing step apart without
parsing SQL.
"""

ERR_NOT = 'managed resource is not a DefaultPrivilege custom resource'
ERR_TRACK_PC_USAGE = 'cannot track ProviderConfig usage'
ERR_GET_PC = 'cannot get ProviderConfig'
ERR_NO_SECRET_REF = 'ProviderConfig does not reference a credentials Secret'
ERR_GET_SECRET = 'cannot get credentials Secret'

ERR_SELECT_ROLE_ID = 'cannot select role id'
ERR_SELECT_DEFAULT_PERMS = 'cannot select default permissions'
ERR_CREATE_DEFAULT_PERMS_QUERY = 'cannot create default permissions query'
ERR_CREATE_DEFAULT_PERMS = 'cannot create default permissions'
ERR_REVOKE_DEFAULT_PERMS = 'cannot revoke default permissions'
ERR_REVOKE_DEFAULT_PERMS_QUERY = 'cannot create revoke default permissions query'

ERR_NO_ROLE = 'role not passed or could not be resolved'
ERR_NO_OWNER = 'owner not passed or could not be resolved'
ERR_NO_SCHEMA = 'schema not passed or could not be resolved'
ERR_NO_DATABASE = 'database not passed or could not be resolved'
ERR_NO_PRIVILEGES = 'privileges not passed'


class DefaultPrivilegeError(Exception):
    """Base class for all errors raised by this package."""


class ValidationError(DefaultPrivilegeError, ValueError):
    """A required parameter is missing or malformed."""


class NoRoleError(ValidationError):
    def __init__(self):
        super().__init__(ERR_NO_ROLE)


class NoOwnerError(ValidationError):
    def __init__(self):
        super().__init__(ERR_NO_OWNER)


class NoSchemaError(ValidationError):
    def __init__(self):
        super().__init__(ERR_NO_SCHEMA)


class NoDatabaseError(ValidationError):
    def __init__(self):
        super().__init__(ERR_NO_DATABASE)


class NoPrivilegesError(ValidationError):
    def __init__(self):
        super().__init__(ERR_NO_PRIVILEGES)


class InvalidPrivilegeError(ValidationError):
    """A privilege token does not match the allowed pattern."""

    def __init__(self, privilege):
        super().__init__(f'Invalid privilege {privilege!r}: expected upper case letters only, e.g. SELECT')
        self.privilege = privilege


class WrongKindError(DefaultPrivilegeError):
    """The object handed to a verb is not a ``DefaultPrivilege``."""

    def __init__(self):
        super().__init__(ERR_NOT)


class NoSecretRefError(DefaultPrivilegeError):
    def __init__(self):
        super().__init__(ERR_NO_SECRET_REF)


class NoRowsError(DefaultPrivilegeError):
    """A scan expected exactly one row and got none."""

    def __init__(self, query: str = ''):
        super().__init__('no rows in result set')
        self.query = query


class IdentityNotFoundError(DefaultPrivilegeError):
    """A role name has no matching row in ``pg_roles``."""

    def __init__(self, role_name: str):
        super().__init__(f'could not find oid for role {role_name}')
        self.role_name = role_name


class ReferenceNotFoundError(DefaultPrivilegeError):
    """A reference or selector did not match any declared object."""


class ReconcileError(DefaultPrivilegeError):
    """Wraps a lower level failure with the name of the stage that failed.

    Attributes:
        stage (str): One of the ``ERR_*`` stage messages of this module.
        cause (BaseException): The wrapped error, also available as ``__cause__``
            when raised with ``raise ReconcileError(...) from cause``.
    """

    def __init__(self, stage: str, cause: BaseException):
        super().__init__(f'{stage}: {cause}')
        self.stage = stage
        self.cause = cause
