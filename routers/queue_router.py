from fastapi import APIRouter, Depends, HTTPException
from access_control import Action, AssignedPatients, DirectPatient, LookupPatient, ObjectType, PatientTable
from auth import AccessGrant, require_access
from database import (
    delete_row, find_patient_row, get_patient, insert_row, list_rows, record_audit_event, update_row,
)
from models import QueueCreate, QueueStatusUpdate

router = APIRouter(tags=["Clinic Queue"])

ENTRY = LookupPatient(PatientTable.QUEUE, "entry_id")


def _require_entry(entry_id: int) -> dict:
    entry = find_patient_row("queue", entry_id)
    if not entry:
        raise HTTPException(status_code=404, detail="Queue entry not found")
    return entry


@router.get("/queue")
def get_queue(
    access: AccessGrant = Depends(require_access(ObjectType.CLINIC_QUEUE, Action.READ, AssignedPatients())),
):
    """Today's open queue entries"""
    entries = list_rows(
        "queue",
        assigned_to=access.actor.id if access.assigned_only else None,
        assignment_roles=access.assignment_roles,
        extra_where="t.status != 'COMPLETED'",
    )
    return {"queue": entries}


@router.post("/patients/{patient_id}/queue", status_code=201)
def add_to_queue(
    patient_id: int,
    entry: QueueCreate,
    access: AccessGrant = Depends(
        require_access(ObjectType.CLINIC_QUEUE, Action.CREATE, DirectPatient("patient_id"))
    ),
):
    if access.patient_id is None and not get_patient(patient_id):
        raise HTTPException(status_code=404, detail="Patient not found")
    data = entry.model_dump()
    data["patient_id"] = patient_id
    created = insert_row("queue", data)
    record_audit_event(access.actor.id, "CREATE", "QUEUE_ENTRY", created["id"], new_values=data)
    return created


@router.put("/queue/{entry_id}/status")
def update_queue_status(
    entry_id: int,
    change: QueueStatusUpdate,
    access: AccessGrant = Depends(require_access(ObjectType.CLINIC_QUEUE, Action.UPDATE, ENTRY)),
):
    existing = _require_entry(entry_id)
    entry = update_row("queue", entry_id, {"status": change.status})
    record_audit_event(
        access.actor.id, "UPDATE", "QUEUE_ENTRY", entry_id,
        {"status": existing["status"]}, {"status": change.status},
    )
    return entry


@router.delete("/queue/{entry_id}", status_code=204)
def remove_from_queue(
    entry_id: int,
    access: AccessGrant = Depends(require_access(ObjectType.CLINIC_QUEUE, Action.DELETE, ENTRY)),
):
    existing = _require_entry(entry_id)
    delete_row("queue", entry_id)
    record_audit_event(access.actor.id, "DELETE", "QUEUE_ENTRY", entry_id, old_values=existing)
