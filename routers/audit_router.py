from typing import Optional

from fastapi import APIRouter, Depends, Query
from access_control import Action, ObjectType
from auth import AccessGrant, require_access
from database import list_audit_logs

router = APIRouter(prefix="/audit-logs", tags=["Audit"])


@router.get("/")
def get_audit_logs(
    entity_type: Optional[str] = None,
    user_id: Optional[int] = None,
    limit: int = Query(default=100, ge=1, le=500),
    access: AccessGrant = Depends(require_access(ObjectType.AUDIT_LOGS, Action.READ)),
):
    """Most recent changes first"""
    return {"entries": list_audit_logs(entity_type, user_id, limit)}
