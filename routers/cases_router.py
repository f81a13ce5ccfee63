from fastapi import APIRouter, Depends, HTTPException
from access_control import Action, AssignedPatients, DirectPatient, LookupPatient, ObjectType, PatientTable
from auth import AccessGrant, require_access
from database import (
    find_patient_row, get_patient, get_user_by_id, insert_row, list_rows, record_audit_event, update_row,
)
from models import CaseCreate, CaseUpdate

router = APIRouter(tags=["Treatment Cases"])

CASE = LookupPatient(PatientTable.CASES, "case_id")


def _require_case(case_id: int) -> dict:
    case = find_patient_row("cases", case_id)
    if not case:
        raise HTTPException(status_code=404, detail="Case not found")
    return case


@router.get("/cases")
def get_cases(
    access: AccessGrant = Depends(
        require_access(ObjectType.PATIENT_TREATMENT, Action.READ, AssignedPatients())
    ),
):
    cases = list_rows(
        "cases",
        assigned_to=access.actor.id if access.assigned_only else None,
        assignment_roles=access.assignment_roles,
    )
    return {"cases": cases}


@router.post("/patients/{patient_id}/cases", status_code=201)
def create_case(
    patient_id: int,
    case: CaseCreate,
    access: AccessGrant = Depends(
        require_access(ObjectType.PATIENT_TREATMENT, Action.CREATE, DirectPatient("patient_id"))
    ),
):
    """Open a supervised treatment case for a student"""
    if access.patient_id is None and not get_patient(patient_id):
        raise HTTPException(status_code=404, detail="Patient not found")
    student = get_user_by_id(case.student_id)
    if not student or student["role"] != "STUDENT" or student["status"] != "ACTIVE":
        raise HTTPException(status_code=400, detail="student_id must reference an active student")

    created = insert_row("cases", {
        "patient_id": patient_id,
        "student_id": case.student_id,
        "supervisor_id": access.actor.id,
        "progress_notes": case.progress_notes,
    })
    record_audit_event(access.actor.id, "CREATE", "CASE", created["id"], new_values=created)
    return created


@router.get("/cases/{case_id}")
def get_case(
    case_id: int,
    access: AccessGrant = Depends(require_access(ObjectType.PATIENT_TREATMENT, Action.READ, CASE)),
):
    return _require_case(case_id)


@router.put("/cases/{case_id}")
def update_case(
    case_id: int,
    changes: CaseUpdate,
    access: AccessGrant = Depends(require_access(ObjectType.PATIENT_TREATMENT, Action.UPDATE, CASE)),
):
    existing = _require_case(case_id)
    data = changes.model_dump(exclude_none=True)
    case = update_row("cases", case_id, data)
    record_audit_event(access.actor.id, "UPDATE", "CASE", case_id, existing, data)
    return case
