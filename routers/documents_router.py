from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from access_control import Action, DirectPatient, LookupPatient, ObjectType, PatientTable
from auth import AccessGrant, require_access
from database import find_patient_row, get_patient, insert_row, list_rows, record_audit_event, update_row
from models import DocumentCreate, DocumentUpdate

router = APIRouter(tags=["Documents"])

DOCUMENT = LookupPatient(PatientTable.DOCUMENTS, "document_id")
PATIENT = DirectPatient("patient_id")

# File storage is handled elsewhere; these routes manage document records.


def _require_document(document_id: int, deleted: bool = False) -> dict:
    document = find_patient_row("medical_documents", document_id)
    if not document or (document["deleted_at"] is not None) != deleted:
        raise HTTPException(status_code=404, detail="Document not found")
    return document


@router.get("/patients/{patient_id}/documents")
def get_patient_documents(
    patient_id: int,
    access: AccessGrant = Depends(require_access(ObjectType.PATIENT_RADIOGRAPHS, Action.READ, PATIENT)),
):
    if access.patient_id is None and not get_patient(patient_id):
        raise HTTPException(status_code=404, detail="Patient not found")
    documents = list_rows("medical_documents", patient_id=patient_id, extra_where="t.deleted_at IS NULL")
    return {"documents": documents}


@router.post("/patients/{patient_id}/documents", status_code=201)
def register_document(
    patient_id: int,
    document: DocumentCreate,
    access: AccessGrant = Depends(require_access(ObjectType.PATIENT_RADIOGRAPHS, Action.UPDATE, PATIENT)),
):
    if access.patient_id is None and not get_patient(patient_id):
        raise HTTPException(status_code=404, detail="Patient not found")
    data = document.model_dump()
    data.update(patient_id=patient_id, uploaded_by=access.actor.id)
    created = insert_row("medical_documents", data)
    record_audit_event(access.actor.id, "UPLOAD", "MEDICAL_DOCUMENT", created["id"], new_values=data)
    return created


@router.get("/documents/{document_id}")
def get_document(
    document_id: int,
    access: AccessGrant = Depends(require_access(ObjectType.PATIENT_RADIOGRAPHS, Action.READ, DOCUMENT)),
):
    return _require_document(document_id)


@router.put("/documents/{document_id}")
def update_document(
    document_id: int,
    changes: DocumentUpdate,
    access: AccessGrant = Depends(require_access(ObjectType.PATIENT_RADIOGRAPHS, Action.UPDATE, DOCUMENT)),
):
    existing = _require_document(document_id)
    data = changes.model_dump(exclude_none=True)
    document = update_row("medical_documents", document_id, data)
    record_audit_event(access.actor.id, "UPDATE", "MEDICAL_DOCUMENT", document_id, existing, data)
    return document


@router.delete("/documents/{document_id}", status_code=204)
def delete_document(
    document_id: int,
    access: AccessGrant = Depends(require_access(ObjectType.PATIENT_RADIOGRAPHS, Action.DELETE, DOCUMENT)),
):
    """Move a document to the trash"""
    existing = _require_document(document_id)
    changes = {
        "deleted_at": datetime.now(timezone.utc).isoformat(),
        "deleted_by": access.actor.id,
    }
    update_row("medical_documents", document_id, changes)
    record_audit_event(access.actor.id, "DELETE", "MEDICAL_DOCUMENT", document_id, existing, changes)


@router.put("/documents/{document_id}/restore")
def restore_document(
    document_id: int,
    access: AccessGrant = Depends(require_access(ObjectType.PATIENT_RADIOGRAPHS, Action.DELETE, DOCUMENT)),
):
    """Bring a document back from the trash"""
    existing = _require_document(document_id, deleted=True)
    document = update_row("medical_documents", document_id, {"deleted_at": None, "deleted_by": None})
    record_audit_event(access.actor.id, "RESTORE", "MEDICAL_DOCUMENT", document_id, existing, {"deleted_at": None})
    return document
