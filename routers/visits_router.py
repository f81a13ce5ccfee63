from fastapi import APIRouter, Depends, HTTPException
from access_control import Action, DirectPatient, LookupPatient, ObjectType, PatientTable
from auth import AccessGrant, require_access
from database import (
    delete_row, find_patient_row, get_patient, insert_row, list_rows, record_audit_event, update_row,
)
from models import VisitCreate, VisitUpdate

router = APIRouter(tags=["Visits"])

VISIT = LookupPatient(PatientTable.VISITS, "visit_id")
PATIENT = DirectPatient("patient_id")


def _require_visit(visit_id: int) -> dict:
    visit = find_patient_row("visits", visit_id)
    if not visit:
        raise HTTPException(status_code=404, detail="Visit not found")
    return visit


@router.get("/patients/{patient_id}/visits")
def get_patient_visits(
    patient_id: int,
    access: AccessGrant = Depends(require_access(ObjectType.PATIENT_APPOINTMENTS, Action.READ, PATIENT)),
):
    if access.patient_id is None and not get_patient(patient_id):
        raise HTTPException(status_code=404, detail="Patient not found")
    return {"visits": list_rows("visits", patient_id=patient_id)}


@router.post("/patients/{patient_id}/visits", status_code=201)
def create_visit(
    patient_id: int,
    visit: VisitCreate,
    access: AccessGrant = Depends(require_access(ObjectType.PATIENT_APPOINTMENTS, Action.CREATE, PATIENT)),
):
    if access.patient_id is None and not get_patient(patient_id):
        raise HTTPException(status_code=404, detail="Patient not found")
    data = visit.model_dump(mode="json")
    data.update(patient_id=patient_id, provider_id=access.actor.id)
    created = insert_row("visits", data)
    record_audit_event(access.actor.id, "CREATE", "VISIT", created["id"], new_values=data)
    return created


@router.get("/visits/{visit_id}")
def get_visit(
    visit_id: int,
    access: AccessGrant = Depends(require_access(ObjectType.PATIENT_APPOINTMENTS, Action.READ, VISIT)),
):
    return _require_visit(visit_id)


@router.put("/visits/{visit_id}")
def update_visit(
    visit_id: int,
    changes: VisitUpdate,
    access: AccessGrant = Depends(require_access(ObjectType.PATIENT_APPOINTMENTS, Action.UPDATE, VISIT)),
):
    existing = _require_visit(visit_id)
    data = changes.model_dump(mode="json", exclude_none=True)
    visit = update_row("visits", visit_id, data)
    record_audit_event(access.actor.id, "UPDATE", "VISIT", visit_id, existing, data)
    return visit


@router.delete("/visits/{visit_id}", status_code=204)
def delete_visit(
    visit_id: int,
    access: AccessGrant = Depends(require_access(ObjectType.PATIENT_APPOINTMENTS, Action.DELETE, VISIT)),
):
    existing = _require_visit(visit_id)
    delete_row("visits", visit_id)
    record_audit_event(access.actor.id, "DELETE", "VISIT", visit_id, old_values=existing)
