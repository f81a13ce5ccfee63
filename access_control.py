"""Instance-level access control.

Decides whether an authenticated actor may perform an action on a
category of clinical data and, for assignment-scoped rules, on the data
of one specific patient.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple, Union

logger = logging.getLogger(__name__)


class Role(str, Enum):
    ADMIN = "ADMIN"
    ORTHODONTIST = "ORTHODONTIST"
    DENTAL_SURGEON = "DENTAL_SURGEON"
    NURSE = "NURSE"
    STUDENT = "STUDENT"
    RECEPTION = "RECEPTION"


class AssignmentRole(str, Enum):
    ORTHODONTIST = "ORTHODONTIST"
    DENTAL_SURGEON = "DENTAL_SURGEON"
    NURSE = "NURSE"
    STUDENT = "STUDENT"


class ObjectType(str, Enum):
    PATIENT_GENERAL = "PATIENT_GENERAL"
    PATIENT_MEDICAL = "PATIENT_MEDICAL"
    PATIENT_RADIOGRAPHS = "PATIENT_RADIOGRAPHS"
    PATIENT_NOTES = "PATIENT_NOTES"
    PATIENT_TREATMENT = "PATIENT_TREATMENT"
    PATIENT_APPOINTMENTS = "PATIENT_APPOINTMENTS"
    CLINIC_QUEUE = "CLINIC_QUEUE"
    PATIENT_ASSIGNMENTS = "PATIENT_ASSIGNMENTS"
    # Handing out one assignment role; only "create" is meaningful
    ORTHODONTIST_ASSIGNMENTS = "ORTHODONTIST_ASSIGNMENTS"
    DENTAL_SURGEON_ASSIGNMENTS = "DENTAL_SURGEON_ASSIGNMENTS"
    NURSE_ASSIGNMENTS = "NURSE_ASSIGNMENTS"
    STUDENT_ASSIGNMENTS = "STUDENT_ASSIGNMENTS"
    USER_ACCOUNTS = "USER_ACCOUNTS"
    INVENTORY = "INVENTORY"
    AUDIT_LOGS = "AUDIT_LOGS"

    @classmethod
    def assignments_of(cls, assignment_role) -> "ObjectType":
        """Object type guarding the creation of assignments with ``assignment_role``"""
        return cls(f"{AssignmentRole(assignment_role).value}_ASSIGNMENTS")


class Action(str, Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    APPROVE = "approve"


class Mode(str, Enum):
    ALLOW = "allow"
    DENY = "deny"
    CONDITIONAL = "assigned"


class Decision(str, Enum):
    GRANT = "GRANT"
    DENY = "DENY"
    NOT_FOUND = "NOT_FOUND"


class PolicyConfigurationError(Exception):
    """The permission table names something outside the closed enumerations."""


@dataclass(frozen=True)
class Actor:
    id: int
    role: str
    department: Optional[str] = None
    status: str = "ACTIVE"
    name: Optional[str] = None
    email: Optional[str] = None


# Permission matrix

MatrixKey = Tuple[Role, ObjectType, Action]


class PermissionMatrix:
    """Immutable (role, object type, action) -> Mode table."""

    def __init__(self, entries: Mapping[MatrixKey, Mode],
                 assignment_scope: Mapping[Role, frozenset] = None):
        self._entries = MappingProxyType(dict(entries))
        self._scope = MappingProxyType(dict(assignment_scope or {}))

    @classmethod
    def from_config(cls, role_permissions: dict, assignment_scope: dict = None) -> "PermissionMatrix":
        try:
            entries = {
                (Role(role), ObjectType(object_type), Action(action)): Mode(mode)
                for role, objects in role_permissions.items()
                for object_type, actions in objects.items()
                for action, mode in actions.items()
            }
            scope = {
                Role(role): frozenset(AssignmentRole(r) for r in roles)
                for role, roles in (assignment_scope or {}).items()
            }
        except ValueError as exc:
            raise PolicyConfigurationError(str(exc)) from exc
        return cls(entries, scope)

    def decision_mode(self, role, object_type: ObjectType, action: Action) -> Mode:
        try:
            key = (Role(role), ObjectType(object_type), Action(action))
        except ValueError:
            return Mode.DENY
        return self._entries.get(key, Mode.DENY)

    def assignment_roles(self, role) -> Optional[frozenset]:
        """Assignment roles that satisfy a conditional rule for ``role``; None means any."""
        try:
            return self._scope.get(Role(role))
        except ValueError:
            return None

    def permissions_for(self, role) -> dict:
        """Nested {object_type: {action: mode}} view for one role"""
        view = {}
        for (entry_role, object_type, action), mode in self._entries.items():
            if entry_role.value == role:
                view.setdefault(object_type.value, {})[action.value] = mode.value
        return view


# Patient resolvers

class PatientTable(str, Enum):
    """Tables whose rows carry a patient_id column."""
    VISITS = "visits"
    CLINICAL_NOTES = "clinical_notes"
    CASES = "cases"
    QUEUE = "queue"
    DOCUMENTS = "medical_documents"
    ASSIGNMENTS = "patient_assignments"


def _parse_id(value) -> Optional[int]:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return None
    return parsed if parsed > 0 else None


@dataclass(frozen=True)
class DirectPatient:
    """The patient id is itself a path parameter."""
    param: str = "patient_id"

    def resolve(self, params: Mapping, store) -> Optional[int]:
        patient_id = _parse_id(params.get(self.param))
        if patient_id is None or not store.patient_exists(patient_id):
            return None
        return patient_id


@dataclass(frozen=True)
class LookupPatient:
    """The path names a row of ``table``; its patient_id column is the patient."""
    table: PatientTable
    param: str = "id"

    def resolve(self, params: Mapping, store) -> Optional[int]:
        object_id = _parse_id(params.get(self.param))
        if object_id is None:
            return None
        return store.patient_id_for(PatientTable(self.table).value, object_id)


@dataclass(frozen=True)
class AssignedPatients:
    """Collection route: conditional actors only see their assigned patients."""


Resolver = Union[DirectPatient, LookupPatient, AssignedPatients]


# Ownership

class OwnershipKind(Enum):
    CLINICAL_NOTE = ("clinical_notes", "author_id")

    def __init__(self, table, owner_column):
        self.table = table
        self.owner_column = owner_column


@dataclass(frozen=True)
class AccessResult:
    decision: Decision
    patient_id: Optional[int] = None
    # Set when a listing must be restricted to the actor's assigned patients
    assigned_only: bool = False
    assignment_roles: Optional[frozenset] = None

    @property
    def granted(self) -> bool:
        return self.decision is Decision.GRANT


class AccessEngine:
    """Combines the permission matrix with patient assignments.

    The engine holds no per-request state and never writes. A conditional
    decision costs at most two reads: the target row, then the assignment.
    """

    def __init__(self, matrix: PermissionMatrix, store):
        self.matrix = matrix
        self.store = store

    def authorize(self, actor: Actor, object_type: ObjectType, action: Action,
                  resolver: Optional[Resolver] = None, params: Mapping = None) -> AccessResult:
        mode = self.matrix.decision_mode(actor.role, object_type, action)

        if mode is Mode.ALLOW:
            return AccessResult(Decision.GRANT)
        if mode is not Mode.CONDITIONAL:
            self._log_denial(actor, object_type, action, "matrix")
            return AccessResult(Decision.DENY)

        scope = self.matrix.assignment_roles(actor.role)

        if resolver is None:
            logger.error(
                "Access control misconfiguration: conditional rule %s/%s/%s has no patient resolver",
                actor.role, object_type.value, action.value,
            )
            return AccessResult(Decision.DENY)

        if isinstance(resolver, AssignedPatients):
            return AccessResult(Decision.GRANT, assigned_only=True, assignment_roles=scope)

        patient_id = resolver.resolve(params or {}, self.store)
        if patient_id is None:
            return AccessResult(Decision.NOT_FOUND)

        roles = sorted(r.value for r in scope) if scope else None
        if self.store.has_active_assignment(patient_id, actor.id, roles):
            return AccessResult(Decision.GRANT, patient_id=patient_id)

        self._log_denial(actor, object_type, action, "assignment", patient_id)
        return AccessResult(Decision.DENY, patient_id=patient_id)

    def check_ownership(self, actor: Actor, kind: OwnershipKind, resource_id) -> Decision:
        """Only the creator of a resource may mutate it, whatever their role."""
        parsed = _parse_id(resource_id)
        if parsed is None:
            return Decision.NOT_FOUND
        owner_id = self.store.owner_of(kind.table, kind.owner_column, parsed)
        if owner_id is None:
            return Decision.NOT_FOUND
        if owner_id == actor.id:
            return Decision.GRANT
        logger.info(
            "Ownership denied: user %s is not the creator of %s %s",
            actor.id, kind.name.lower(), parsed,
        )
        return Decision.DENY

    @staticmethod
    def _log_denial(actor, object_type, action, reason, patient_id=None):
        logger.info(
            "Access denied (%s): user %s role %s %s on %s patient=%s",
            reason, actor.id, actor.role, action.value, object_type.value, patient_id,
        )
