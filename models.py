from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

Role = Literal["ADMIN", "ORTHODONTIST", "DENTAL_SURGEON", "NURSE", "STUDENT", "RECEPTION"]
AssignmentRole = Literal["ORTHODONTIST", "DENTAL_SURGEON", "NURSE", "STUDENT"]


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int = 3600


class UserCreate(BaseModel):
    name: str
    email: str
    password: str = Field(min_length=6)
    role: Role
    department: Optional[str] = None


# Update models: omitted and null fields both leave the column unchanged
class UserUpdate(BaseModel):
    name: Optional[str] = None
    role: Optional[Role] = None
    department: Optional[str] = None
    status: Optional[Literal["ACTIVE", "INACTIVE"]] = None


class PatientCreate(BaseModel):
    patient_code: str
    first_name: str
    last_name: str
    date_of_birth: date
    gender: Literal["MALE", "FEMALE", "OTHER"]
    phone: Optional[str] = None
    email: Optional[str] = None


class PatientUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    status: Optional[Literal["ACTIVE", "COMPLETED", "CONSULTATION", "MAINTENANCE"]] = None


class AssignmentCreate(BaseModel):
    user_id: int
    assignment_role: AssignmentRole


class HistoryUpdate(BaseModel):
    form_data: dict


ToothStatus = Literal["HEALTHY", "PATHOLOGY", "PLANNED", "TREATED", "MISSING"]


class DentalChartEntryUpdate(BaseModel):
    status: ToothStatus = "HEALTHY"
    # Flags default to the status when omitted
    is_pathology: Optional[bool] = None
    is_planned: Optional[bool] = None
    is_treated: Optional[bool] = None
    is_missing: Optional[bool] = None
    pathology: Optional[str] = Field(default=None, max_length=500)
    treatment: Optional[str] = Field(default=None, max_length=500)
    event_date: Optional[date] = None


class NoteCreate(BaseModel):
    content: str = Field(min_length=1)
    note_type: Literal["TREATMENT", "OBSERVATION", "PROGRESS", "SUPERVISOR_REVIEW"] = "TREATMENT"


class NoteUpdate(BaseModel):
    content: Optional[str] = Field(default=None, min_length=1)
    note_type: Optional[Literal["TREATMENT", "OBSERVATION", "PROGRESS", "SUPERVISOR_REVIEW"]] = None


class NoteVerify(BaseModel):
    verification_notes: Optional[str] = None


class VisitCreate(BaseModel):
    visit_date: datetime
    procedure_type: Optional[str] = None
    notes: Optional[str] = None


class VisitUpdate(BaseModel):
    visit_date: Optional[datetime] = None
    procedure_type: Optional[str] = None
    status: Optional[Literal["SCHEDULED", "COMPLETED", "CANCELLED", "DID_NOT_ATTEND"]] = None
    notes: Optional[str] = None


class CaseCreate(BaseModel):
    student_id: int
    progress_notes: Optional[str] = None


class CaseUpdate(BaseModel):
    status: Optional[Literal["ASSIGNED", "PENDING_VERIFICATION", "VERIFIED", "REJECTED"]] = None
    progress_notes: Optional[str] = None
    supervisor_feedback: Optional[str] = None


class QueueCreate(BaseModel):
    provider_id: Optional[int] = None
    priority: Literal["LOW", "NORMAL", "HIGH", "URGENT"] = "NORMAL"
    procedure_type: Optional[str] = None
    notes: Optional[str] = None


class QueueStatusUpdate(BaseModel):
    status: Literal["WAITING", "IN_TREATMENT", "PREPARATION", "COMPLETED"]


class DocumentCreate(BaseModel):
    type: Literal["RADIOGRAPH", "NOTE", "SCAN", "PHOTO"]
    original_filename: str
    description: Optional[str] = None


class DocumentUpdate(BaseModel):
    description: Optional[str] = None


class InventoryItemCreate(BaseModel):
    name: str
    category: str
    quantity: int = Field(default=0, ge=0)
    unit: str
    minimum_threshold: int = Field(default=0, ge=0)


class InventoryItemUpdate(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    quantity: Optional[int] = Field(default=None, ge=0)
    unit: Optional[str] = None
    minimum_threshold: Optional[int] = Field(default=None, ge=0)


class PatientListResponse(BaseModel):
    patients: List[dict]
    total: int
