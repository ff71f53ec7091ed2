"""Resolution of references between declared objects.

The role, owner and database of a DefaultPrivilege can each be given as a
literal name, as a ``Reference`` to another declared object, or as a
``Selector`` matching another declared object's labels. ``resolve_references``
turns references into literal names once per pass, before any verb runs, so the
reconciler itself only ever sees names.
"""

import logging
from abc import ABC
from abc import abstractmethod
from dataclasses import dataclass
from dataclasses import field

from pg_default_privileges.errors import ReconcileError
from pg_default_privileges.errors import ReferenceNotFoundError
from pg_default_privileges.models import DefaultPrivilege
from pg_default_privileges.models import Reference
from pg_default_privileges.models import Selector

log = logging.getLogger(__name__)

KIND_DATABASE = 'Database'
KIND_ROLE = 'Role'


@dataclass(frozen=True)
class ResolutionRequest:
    """A request to resolve one field.

    Attributes:
        current_value (str): The literal value currently set, '' if none.
        reference (Reference | None): Reference to the object to resolve to.
        selector (Selector | None): Selector used when no reference is set.
        to (str): Kind of object the reference points at, e.g. ``'Role'``.
    """

    current_value: str = ''
    reference: Reference | None = None
    selector: Selector | None = None
    to: str = ''

    def is_no_op(self) -> bool:
        """A set value is never re-resolved, and there is nothing to resolve without a reference or selector."""
        return bool(self.current_value) or (self.reference is None and self.selector is None)


@dataclass(frozen=True)
class ResolutionResponse:
    resolved_value: str = ''
    resolved_reference: Reference | None = None


class ReferenceResolver(ABC):
    @abstractmethod
    def resolve(self, request: ResolutionRequest) -> ResolutionResponse:
        """Resolve a request into a value and, if one was matched, a reference.

        Raises:
            ReferenceNotFoundError: if the reference or selector matched nothing
        """


@dataclass(frozen=True)
class DeclaredObject:
    """A declared object references can point at.

    Attributes:
        kind (str): e.g. ``'Role'`` or ``'Database'``.
        name (str): Name references use.
        external_name (str): Name of the object in PostgreSQL. Defaults to ``name``.
        labels (dict): Labels selectors match against.
    """

    kind: str
    name: str
    external_name: str = ''
    labels: dict = field(default_factory=dict)

    def get_external_name(self) -> str:
        return self.external_name or self.name


class InMemoryResolver(ReferenceResolver):
    """Resolves references against declared objects registered up front."""

    def __init__(self, *objects: DeclaredObject):
        self.objects: list[DeclaredObject] = list(objects)

    def register(self, obj: DeclaredObject):
        self.objects.append(obj)

    def resolve(self, request: ResolutionRequest) -> ResolutionResponse:
        if request.is_no_op():
            return ResolutionResponse(resolved_value=request.current_value, resolved_reference=request.reference)

        candidates = [obj for obj in self.objects if obj.kind == request.to]

        if request.reference is not None:
            for obj in candidates:
                if obj.name == request.reference.name:
                    return ResolutionResponse(
                        resolved_value=obj.get_external_name(),
                        resolved_reference=request.reference,
                    )
            raise ReferenceNotFoundError(f'referenced {request.to} {request.reference.name!r} not found')

        match_labels = request.selector.match_labels
        for obj in candidates:
            if all(obj.labels.get(key) == value for key, value in match_labels.items()):
                return ResolutionResponse(
                    resolved_value=obj.get_external_name(),
                    resolved_reference=Reference(obj.name),
                )
        raise ReferenceNotFoundError(f'no {request.to} matches selector {match_labels}')


def resolve_references(mg: DefaultPrivilege, resolver: ReferenceResolver):
    """Resolve the database, role and owner of a DefaultPrivilege in place.

    Raises:
        ReconcileError: naming the field that could not be resolved
    """
    gp = mg.parameters

    for path, value_attr, ref_attr, selector_attr, kind in (
        ('spec.forProvider.database', 'database', 'database_ref', 'database_selector', KIND_DATABASE),
        ('spec.forProvider.role', 'role', 'role_ref', 'role_selector', KIND_ROLE),
        ('spec.forProvider.owner', 'owner', 'owner_ref', 'owner_selector', KIND_ROLE),
    ):
        request = ResolutionRequest(
            current_value=getattr(gp, value_attr) or '',
            reference=getattr(gp, ref_attr),
            selector=getattr(gp, selector_attr),
            to=kind,
        )
        try:
            response = resolver.resolve(request)
        except Exception as e:
            raise ReconcileError(path, e) from e

        if response.resolved_value != request.current_value:
            log.debug('Resolved %s of %s to %s', path, mg.name, response.resolved_value)
        setattr(gp, value_attr, response.resolved_value or None)
        setattr(gp, ref_attr, response.resolved_reference)
