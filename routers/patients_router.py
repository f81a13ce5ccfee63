import json
import sqlite3

from fastapi import APIRouter, Depends, HTTPException, Path
from access_control import AccessEngine, Action, Actor, AssignedPatients, DirectPatient, ObjectType
from auth import AccessGrant, enforce_access, get_access_engine, get_current_user, require_access
from database import (
    assign_patient_member, deactivate_assignment, delete_dental_chart_entry, get_dental_chart,
    get_patient, get_patient_history, get_user_by_id, insert_row, list_patient_assignments,
    list_rows, reactivate_patient, record_audit_event, soft_delete_patient, update_row,
    upsert_dental_chart_entry, upsert_patient_history,
)
from models import (
    AssignmentCreate, DentalChartEntryUpdate, HistoryUpdate, PatientCreate, PatientListResponse,
    PatientUpdate,
)

router = APIRouter(prefix="/patients", tags=["Patients"])

PATIENT = DirectPatient("patient_id")


def _require_patient(patient_id: int, access: AccessGrant) -> None:
    # A conditional grant already confirmed the patient
    if access.patient_id is None and not get_patient(patient_id):
        raise HTTPException(status_code=404, detail="Patient not found")


@router.get("/", response_model=PatientListResponse)
def get_patients(
    access: AccessGrant = Depends(
        require_access(ObjectType.PATIENT_GENERAL, Action.READ, AssignedPatients())
    ),
):
    """Patients visible to the current user"""
    patients = list_rows(
        "patients",
        patient_column="id",
        assigned_to=access.actor.id if access.assigned_only else None,
        assignment_roles=access.assignment_roles,
    )
    return PatientListResponse(patients=patients, total=len(patients))


@router.post("/", status_code=201)
def create_patient(
    patient: PatientCreate,
    access: AccessGrant = Depends(require_access(ObjectType.PATIENT_GENERAL, Action.CREATE)),
):
    try:
        created = insert_row("patients", patient.model_dump(mode="json"))
    except sqlite3.IntegrityError:
        raise HTTPException(status_code=400, detail="Patient code already exists")
    record_audit_event(access.actor.id, "CREATE", "PATIENT", created["id"], new_values=created)
    return created


@router.get("/{patient_id}")
def get_patient_by_id(
    patient_id: int,
    access: AccessGrant = Depends(require_access(ObjectType.PATIENT_GENERAL, Action.READ, PATIENT)),
):
    patient = get_patient(patient_id)
    if not patient:
        raise HTTPException(status_code=404, detail="Patient not found")
    return patient


@router.put("/{patient_id}")
def update_patient(
    patient_id: int,
    changes: PatientUpdate,
    access: AccessGrant = Depends(require_access(ObjectType.PATIENT_GENERAL, Action.UPDATE, PATIENT)),
):
    _require_patient(patient_id, access)
    data = changes.model_dump(mode="json", exclude_none=True)
    patient = update_row("patients", patient_id, data)
    record_audit_event(access.actor.id, "UPDATE", "PATIENT", patient_id, new_values=data)
    return patient


@router.delete("/{patient_id}", status_code=204)
def delete_patient(
    patient_id: int,
    access: AccessGrant = Depends(require_access(ObjectType.PATIENT_GENERAL, Action.DELETE, PATIENT)),
):
    if not soft_delete_patient(patient_id):
        raise HTTPException(status_code=404, detail="Patient not found")
    record_audit_event(access.actor.id, "DELETE", "PATIENT", patient_id)


@router.put("/{patient_id}/reactivate")
def reactivate(
    patient_id: int,
    access: AccessGrant = Depends(require_access(ObjectType.PATIENT_GENERAL, Action.DELETE)),
):
    """Bring a soft-deleted patient back"""
    patient = reactivate_patient(patient_id)
    if patient is None:
        if get_patient(patient_id):
            raise HTTPException(status_code=400, detail="Patient is already active")
        raise HTTPException(status_code=404, detail="Patient not found")
    record_audit_event(access.actor.id, "RESTORE", "PATIENT", patient_id, new_values={"deleted_at": None})
    return patient


@router.get("/{patient_id}/assignments")
def get_patient_assignments(
    patient_id: int,
    access: AccessGrant = Depends(require_access(ObjectType.PATIENT_ASSIGNMENTS, Action.READ, PATIENT)),
):
    _require_patient(patient_id, access)
    return {"assignments": list_patient_assignments(patient_id)}


@router.post("/{patient_id}/assignments", status_code=201)
def assign_member(
    patient_id: int,
    assignment: AssignmentCreate,
    actor: Actor = Depends(get_current_user),
    engine: AccessEngine = Depends(get_access_engine),
):
    """Add a staff member to the patient's care team.

    Which assignment roles an actor may hand out is part of the
    permission matrix, one object type per assignment role.
    """
    access = enforce_access(
        engine, actor, ObjectType.assignments_of(assignment.assignment_role), Action.CREATE,
        PATIENT, {"patient_id": patient_id},
    )
    _require_patient(patient_id, access)

    member = get_user_by_id(assignment.user_id)
    if not member or member["status"] != "ACTIVE":
        raise HTTPException(status_code=400, detail="Assigned user not found or inactive")
    if member["role"] != assignment.assignment_role:
        raise HTTPException(status_code=400, detail="assignment_role must match the selected user role")

    return assign_patient_member(
        patient_id, assignment.user_id, assignment.assignment_role, actor.id
    )


@router.delete("/{patient_id}/assignments/{assignment_id}", status_code=204)
def remove_member(
    patient_id: int,
    assignment_id: int,
    access: AccessGrant = Depends(require_access(ObjectType.PATIENT_ASSIGNMENTS, Action.DELETE, PATIENT)),
):
    """Rotate a staff member off the care team"""
    if not deactivate_assignment(patient_id, assignment_id, access.actor.id):
        raise HTTPException(status_code=404, detail="Active assignment not found")


@router.get("/{patient_id}/history")
def get_history(
    patient_id: int,
    access: AccessGrant = Depends(require_access(ObjectType.PATIENT_MEDICAL, Action.READ, PATIENT)),
):
    _require_patient(patient_id, access)
    history = get_patient_history(patient_id)
    if history is None:
        return {"patient_id": patient_id, "form_data": None}
    history["form_data"] = json.loads(history["form_data"]) if history["form_data"] else None
    return history


@router.put("/{patient_id}/history")
def put_history(
    patient_id: int,
    history: HistoryUpdate,
    access: AccessGrant = Depends(require_access(ObjectType.PATIENT_MEDICAL, Action.UPDATE, PATIENT)),
):
    _require_patient(patient_id, access)
    saved = upsert_patient_history(patient_id, json.dumps(history.form_data), access.actor.id)
    record_audit_event(access.actor.id, "UPSERT", "PATIENT_HISTORY", saved["id"], new_values={
        "patient_id": patient_id,
    })
    saved["form_data"] = history.form_data
    return saved


@router.get("/{patient_id}/dental-chart")
def get_chart(
    patient_id: int,
    access: AccessGrant = Depends(require_access(ObjectType.PATIENT_MEDICAL, Action.READ, PATIENT)),
):
    _require_patient(patient_id, access)
    return {"patient_id": patient_id, "entries": get_dental_chart(patient_id)}


@router.put("/{patient_id}/dental-chart/{tooth_number}")
def put_chart_entry(
    patient_id: int,
    entry: DentalChartEntryUpdate,
    tooth_number: int = Path(ge=1, le=32),
    access: AccessGrant = Depends(require_access(ObjectType.PATIENT_MEDICAL, Action.UPDATE, PATIENT)),
):
    """Record the state of one tooth"""
    _require_patient(patient_id, access)
    data = entry.model_dump(mode="json")
    for flag, status in (("is_pathology", "PATHOLOGY"), ("is_planned", "PLANNED"),
                         ("is_treated", "TREATED"), ("is_missing", "MISSING")):
        if data[flag] is None:
            data[flag] = entry.status == status
    saved = upsert_dental_chart_entry(patient_id, tooth_number, data, access.actor.id)
    record_audit_event(access.actor.id, "UPSERT", "DENTAL_CHART_ENTRY", saved["id"], new_values=saved)
    return saved


@router.delete("/{patient_id}/dental-chart/{tooth_number}", status_code=204)
def delete_chart_entry(
    patient_id: int,
    tooth_number: int = Path(ge=1, le=32),
    access: AccessGrant = Depends(require_access(ObjectType.PATIENT_MEDICAL, Action.UPDATE, PATIENT)),
):
    _require_patient(patient_id, access)
    if not delete_dental_chart_entry(patient_id, tooth_number):
        raise HTTPException(status_code=404, detail="Dental chart entry not found")
    record_audit_event(access.actor.id, "DELETE", "DENTAL_CHART_ENTRY", None, old_values={
        "patient_id": patient_id, "tooth_number": tooth_number,
    })
