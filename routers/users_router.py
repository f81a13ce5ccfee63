import sqlite3

from fastapi import APIRouter, Depends, HTTPException, Request
from access_control import Action, Actor, ObjectType
from auth import AccessGrant, get_current_user, require_access
from database import create_user, get_user_by_id, list_users, record_audit_event, update_row
from models import UserCreate, UserUpdate
from security import hash_password

router = APIRouter(prefix="/users", tags=["User Management"])

PUBLIC_FIELDS = ("id", "name", "email", "role", "department", "status")


def _public(user: dict) -> dict:
    return {field: user[field] for field in PUBLIC_FIELDS}


@router.post("/", status_code=201)
def create_user_account(
    user_data: UserCreate,
    access: AccessGrant = Depends(require_access(ObjectType.USER_ACCOUNTS, Action.CREATE)),
):
    """Create staff accounts"""
    try:
        new_id = create_user(
            user_data.name,
            user_data.email,
            hash_password(user_data.password),
            user_data.role,
            user_data.department,
        )
    except sqlite3.IntegrityError:
        raise HTTPException(status_code=400, detail="Email already exists")

    created = _public(get_user_by_id(new_id))
    record_audit_event(access.actor.id, "CREATE", "USER", new_id, new_values=created)
    return created


@router.get("/")
def get_users(access: AccessGrant = Depends(require_access(ObjectType.USER_ACCOUNTS, Action.READ))):
    return {"users": list_users()}


@router.get("/me")
def get_current_user_info(request: Request, current_user: Actor = Depends(get_current_user)):
    """Current user with the permissions the matrix gives their role"""
    matrix = request.app.state.access_engine.matrix
    return {
        "id": current_user.id,
        "name": current_user.name,
        "email": current_user.email,
        "role": current_user.role,
        "department": current_user.department,
        "permissions": matrix.permissions_for(current_user.role),
    }


@router.get("/{id}")
def get_user(id: int, access: AccessGrant = Depends(require_access(ObjectType.USER_ACCOUNTS, Action.READ))):
    user = get_user_by_id(id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return _public(user)


@router.put("/{id}")
def update_user(
    id: int,
    changes: UserUpdate,
    access: AccessGrant = Depends(require_access(ObjectType.USER_ACCOUNTS, Action.UPDATE)),
):
    if id == access.actor.id and changes.status == "INACTIVE":
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")
    data = changes.model_dump(exclude_none=True)
    user = update_row("users", id, data)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    record_audit_event(access.actor.id, "UPDATE", "USER", id, new_values=data)
    return _public(user)


@router.delete("/{id}", status_code=204)
def deactivate_user(
    id: int,
    access: AccessGrant = Depends(require_access(ObjectType.USER_ACCOUNTS, Action.DELETE)),
):
    """Deactivate a staff account; rows referenced by clinical data are kept"""
    if id == access.actor.id:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")
    if not update_row("users", id, {"status": "INACTIVE"}):
        raise HTTPException(status_code=404, detail="User not found")
    record_audit_event(access.actor.id, "DEACTIVATE", "USER", id, new_values={"status": "INACTIVE"})
