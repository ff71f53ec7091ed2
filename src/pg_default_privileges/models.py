"""Declared objects and reconciliation results."""

import re
from dataclasses import dataclass
from dataclasses import field
from datetime import UTC
from datetime import datetime

from pg_default_privileges.errors import InvalidPrivilegeError

PRIVILEGE_PATTERN = re.compile(r'^[A-Z]+$')

CONDITION_READY = 'Ready'

REASON_AVAILABLE = 'Available'
REASON_CREATING = 'Creating'
REASON_DELETING = 'Deleting'


@dataclass(frozen=True)
class Reference:
    """Representation of a reference to another declared object by name.

    Attributes:
        name (str): The name of the referenced object (e.g. a declared Role).
    """

    name: str


@dataclass(frozen=True)
class Selector:
    """Representation of a label selector used to pick a declared object.

    Attributes:
        match_labels (dict): Labels that the selected object must carry.
        match_controller (bool | None): Only select objects sharing this object's
            controller. Stored for callers; the in-memory resolver ignores it.
    """

    match_labels: dict = field(default_factory=dict)
    match_controller: bool | None = None


@dataclass
class DefaultPrivilegeParameters:
    """Desired state of a set of default privileges on future tables.

    Attributes:
        privileges (list[str]): Privileges granted on tables the owner creates in
            the future, e.g. ``['SELECT', 'INSERT']`` or ``['ALL']``.
        role (str | None): The grantee role.
        owner (str | None): The role whose future tables the privileges apply to.
            Statements run with this role assumed through ``SET ROLE``.
        schema (str | None): The schema the default privileges apply within.
        database (str | None): The database to run against. When ``None`` the
            provider's default database is used.
    """

    privileges: list[str] = field(default_factory=list)
    role: str | None = None
    owner: str | None = None
    schema: str | None = None
    database: str | None = None

    role_ref: Reference | None = None
    role_selector: Selector | None = None
    owner_ref: Reference | None = None
    owner_selector: Selector | None = None
    database_ref: Reference | None = None
    database_selector: Selector | None = None

    def __post_init__(self):
        for privilege in self.privileges:
            if not isinstance(privilege, str) or not PRIVILEGE_PATTERN.fullmatch(privilege):
                raise InvalidPrivilegeError(privilege)


@dataclass(frozen=True)
class Condition:
    """A status condition as reported to the control plane."""

    type: str
    status: str
    reason: str
    message: str = ''
    last_transition_time: datetime = field(default_factory=lambda: datetime.now(UTC), compare=False)


def available() -> Condition:
    """The resource exists and is ready for use."""
    return Condition(type=CONDITION_READY, status='True', reason=REASON_AVAILABLE)


def creating() -> Condition:
    """The resource is currently being created."""
    return Condition(type=CONDITION_READY, status='False', reason=REASON_CREATING)


def deleting() -> Condition:
    """The resource is currently being deleted."""
    return Condition(type=CONDITION_READY, status='False', reason=REASON_DELETING)


@dataclass
class DefaultPrivilegeStatus:
    conditions: list[Condition] = field(default_factory=list)

    def get_condition(self, type_: str) -> Condition | None:
        return next((c for c in self.conditions if c.type == type_), None)


@dataclass
class DefaultPrivilege:
    """A declared ``DefaultPrivilege``: the unit of reconciliation.

    Attributes:
        name (str): Name of the declared object.
        parameters (DefaultPrivilegeParameters): The desired state.
        provider_config_name (str): Name of the provider configuration holding the
            connection details and default database.
        labels (dict): Labels other objects can select this one by.
        status (DefaultPrivilegeStatus): Conditions set during reconciliation.
    """

    name: str
    parameters: DefaultPrivilegeParameters = field(default_factory=DefaultPrivilegeParameters)
    provider_config_name: str = 'default'
    labels: dict = field(default_factory=dict)
    status: DefaultPrivilegeStatus = field(default_factory=DefaultPrivilegeStatus)

    @property
    def identity(self) -> tuple[str | None, str | None, str | None, str | None]:
        """The (database, schema, owner, role) tuple. Privileges are not part of it."""
        p = self.parameters
        return (p.database, p.schema, p.owner, p.role)

    def set_conditions(self, *conditions: Condition):
        """Set conditions, replacing any existing condition of the same type.

        The transition time of a condition is kept when its status is unchanged.
        """
        for condition in conditions:
            existing = self.status.get_condition(condition.type)
            if existing is not None and existing == condition:
                continue
            self.status.conditions = [c for c in self.status.conditions if c.type != condition.type]
            self.status.conditions.append(condition)


@dataclass(frozen=True)
class ExternalObservation:
    resource_exists: bool = False
    resource_up_to_date: bool = False
    resource_late_initialized: bool = False


@dataclass(frozen=True)
class ExternalCreation:
    connection_details: dict = field(default_factory=dict)


@dataclass(frozen=True)
class ExternalUpdate:
    connection_details: dict = field(default_factory=dict)
