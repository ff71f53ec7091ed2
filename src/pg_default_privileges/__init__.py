"""PostgreSQL default privileges reconciler package."""

from pg_default_privileges.connector import Connector
from pg_default_privileges.core import DefaultPrivilegeClient
from pg_default_privileges.models import DefaultPrivilege
from pg_default_privileges.models import DefaultPrivilegeParameters
from pg_default_privileges.models import Reference
from pg_default_privileges.models import Selector
from pg_default_privileges.references import resolve_references
