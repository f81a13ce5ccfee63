from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from access_control import (
    Action, Actor, Decision, ObjectType, OwnershipKind, Resolver, AccessEngine,
)
from config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from database import get_user_by_id, get_user_by_email
from security import verify_password

security = HTTPBearer()


def authenticate_user(email: str, password: str):
    """Authenticate an active staff member against the database"""
    user = get_user_by_email(email)
    if user and user["status"] == "ACTIVE" and verify_password(password, user["password_hash"]):
        return user
    return None


def create_access_token(data: dict):
    """Create JWT access token"""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> Actor:
    """Resolve the bearer token to an active Actor"""
    try:
        payload = jwt.decode(credentials.credentials, SECRET_KEY, algorithms=[ALGORITHM])
        user_id = int(payload.get("sub"))
    except (JWTError, TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token")

    user = get_user_by_id(user_id)
    if user is None or user["status"] != "ACTIVE":
        raise HTTPException(status_code=401, detail="User not found or inactive")

    return Actor(
        id=user["id"],
        role=user["role"],
        department=user["department"],
        status=user["status"],
        name=user["name"],
        email=user["email"],
    )


def get_access_engine(request: Request) -> AccessEngine:
    return request.app.state.access_engine


@dataclass(frozen=True)
class AccessGrant:
    """What a protected handler receives once access is granted."""
    actor: Actor
    patient_id: Optional[int] = None
    assigned_only: bool = False
    assignment_roles: Optional[list] = None


def enforce_access(engine: AccessEngine, actor: Actor, object_type: ObjectType, action: Action,
                   resolver: Optional[Resolver] = None, params: Optional[dict] = None,
                   ownership: Optional[OwnershipKind] = None,
                   ownership_param: str = "id") -> AccessGrant:
    """Run the access decision and turn a refusal into an HTTP error.

    Denials carry a generic message; the reason is only logged.
    """
    params = params or {}
    result = engine.authorize(actor, object_type, action, resolver, params)
    if result.decision is Decision.NOT_FOUND:
        raise HTTPException(status_code=404, detail="Resource not found")
    if not result.granted:
        raise HTTPException(status_code=403, detail="Access denied")

    if ownership is not None:
        owned = engine.check_ownership(actor, ownership, params.get(ownership_param))
        if owned is Decision.NOT_FOUND:
            raise HTTPException(status_code=404, detail="Resource not found")
        if owned is not Decision.GRANT:
            raise HTTPException(status_code=403, detail="Access denied")

    roles = sorted(r.value for r in result.assignment_roles) if result.assignment_roles else None
    return AccessGrant(
        actor=actor,
        patient_id=result.patient_id,
        assigned_only=result.assigned_only,
        assignment_roles=roles,
    )


def require_access(object_type: ObjectType, action: Action,
                   resolver: Optional[Resolver] = None,
                   ownership: Optional[OwnershipKind] = None,
                   ownership_param: str = "id"):
    """Dependency guarding a route with the access decision engine"""
    def check_access(
        request: Request,
        actor: Actor = Depends(get_current_user),
        engine: AccessEngine = Depends(get_access_engine),
    ) -> AccessGrant:
        return enforce_access(
            engine, actor, object_type, action, resolver, request.path_params,
            ownership=ownership, ownership_param=ownership_param,
        )
    return check_access
