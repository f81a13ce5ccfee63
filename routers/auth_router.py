import logging

from fastapi import APIRouter, HTTPException
from models import LoginRequest, TokenResponse
from auth import authenticate_user, create_access_token
from config import ACCESS_TOKEN_EXPIRE_MINUTES

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=TokenResponse)
def login(request: LoginRequest):
    """Authenticate staff member and return JWT token"""
    user = authenticate_user(request.email, request.password)
    if not user:
        logger.info("Failed login for %s", request.email)
        raise HTTPException(status_code=401, detail="Incorrect email or password")

    access_token = create_access_token(data={"sub": str(user["id"]), "role": user["role"]})
    return TokenResponse(access_token=access_token, expires_in=ACCESS_TOKEN_EXPIRE_MINUTES * 60)
