from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from access_control import (
    Action, AssignedPatients, DirectPatient, LookupPatient, ObjectType, OwnershipKind, PatientTable,
)
from auth import AccessGrant, require_access
from database import (
    delete_row, find_patient_row, get_patient, insert_row, list_rows, record_audit_event, update_row,
)
from models import NoteCreate, NoteUpdate, NoteVerify

router = APIRouter(tags=["Clinical Notes"])

NOTE = LookupPatient(PatientTable.CLINICAL_NOTES, "note_id")
PATIENT = DirectPatient("patient_id")


def _require_note(note_id: int) -> dict:
    note = find_patient_row("clinical_notes", note_id)
    if not note:
        raise HTTPException(status_code=404, detail="Clinical note not found")
    return note


@router.get("/patients/{patient_id}/clinical-notes")
def get_patient_notes(
    patient_id: int,
    access: AccessGrant = Depends(require_access(ObjectType.PATIENT_NOTES, Action.READ, PATIENT)),
):
    if access.patient_id is None and not get_patient(patient_id):
        raise HTTPException(status_code=404, detail="Patient not found")
    return {"notes": list_rows("clinical_notes", patient_id=patient_id)}


@router.post("/patients/{patient_id}/clinical-notes", status_code=201)
def create_note(
    patient_id: int,
    note: NoteCreate,
    access: AccessGrant = Depends(require_access(ObjectType.PATIENT_NOTES, Action.CREATE, PATIENT)),
):
    if access.patient_id is None and not get_patient(patient_id):
        raise HTTPException(status_code=404, detail="Patient not found")
    created = insert_row("clinical_notes", {
        "patient_id": patient_id,
        "author_id": access.actor.id,
        "content": note.content,
        "note_type": note.note_type,
    })
    record_audit_event(access.actor.id, "CREATE", "CLINICAL_NOTE", created["id"], new_values={
        "patient_id": patient_id, "note_type": note.note_type,
    })
    return created


# Declared before /clinical-notes/{note_id} so "pending" is not read as an id
@router.get("/clinical-notes/pending")
def get_pending_notes(
    access: AccessGrant = Depends(
        require_access(ObjectType.PATIENT_NOTES, Action.APPROVE, AssignedPatients())
    ),
):
    """Notes awaiting verification, oldest first"""
    notes = list_rows(
        "clinical_notes",
        assigned_to=access.actor.id if access.assigned_only else None,
        assignment_roles=access.assignment_roles,
        extra_where="t.is_verified = 0",
    )
    notes.reverse()
    return {"notes": notes}


@router.get("/clinical-notes/{note_id}")
def get_note(
    note_id: int,
    access: AccessGrant = Depends(require_access(ObjectType.PATIENT_NOTES, Action.READ, NOTE)),
):
    return _require_note(note_id)


@router.put("/clinical-notes/{note_id}")
def update_note(
    note_id: int,
    changes: NoteUpdate,
    access: AccessGrant = Depends(require_access(
        ObjectType.PATIENT_NOTES, Action.UPDATE, NOTE,
        ownership=OwnershipKind.CLINICAL_NOTE, ownership_param="note_id",
    )),
):
    """Edit a note; only its author may do so"""
    existing = _require_note(note_id)
    data = changes.model_dump(exclude_none=True)
    note = update_row("clinical_notes", note_id, data)
    record_audit_event(access.actor.id, "UPDATE", "CLINICAL_NOTE", note_id, existing, data)
    return note


@router.delete("/clinical-notes/{note_id}", status_code=204)
def delete_note(
    note_id: int,
    access: AccessGrant = Depends(require_access(
        ObjectType.PATIENT_NOTES, Action.DELETE, NOTE,
        ownership=OwnershipKind.CLINICAL_NOTE, ownership_param="note_id",
    )),
):
    note = _require_note(note_id)
    if note["is_verified"]:
        raise HTTPException(status_code=409, detail="Verified notes cannot be deleted")
    delete_row("clinical_notes", note_id)
    record_audit_event(access.actor.id, "DELETE", "CLINICAL_NOTE", note_id, old_values=note)


@router.post("/clinical-notes/{note_id}/verify")
def verify_note(
    note_id: int,
    verification: NoteVerify,
    access: AccessGrant = Depends(require_access(ObjectType.PATIENT_NOTES, Action.APPROVE, NOTE)),
):
    """Countersign a note"""
    note = _require_note(note_id)
    if note["is_verified"]:
        raise HTTPException(status_code=400, detail="Note is already verified")

    changes = {
        "is_verified": 1,
        "verified_by": access.actor.id,
        "verified_at": datetime.now(timezone.utc).isoformat(),
    }
    if verification.verification_notes:
        changes["content"] = f"{note['content']}\n\n[VERIFICATION NOTE]: {verification.verification_notes}"
    verified = update_row("clinical_notes", note_id, changes)
    record_audit_event(access.actor.id, "VERIFY", "CLINICAL_NOTE", note_id, note, changes)
    return verified
