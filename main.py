import logging
import sqlite3
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from access_control import AccessEngine, PermissionMatrix
from config import API_TITLE, API_VERSION, ASSIGNMENT_SCOPE, HOST, LOG_LEVEL, PORT, ROLE_PERMISSIONS
from database import AccessStore, init_database
from routers import (
    audit_router, auth_router, cases_router, documents_router, inventory_router, notes_router,
    patients_router, queue_router, users_router, visits_router,
)

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_database()
    # Built once; a malformed table stops startup here
    matrix = PermissionMatrix.from_config(ROLE_PERMISSIONS, ASSIGNMENT_SCOPE)
    app.state.access_engine = AccessEngine(matrix, AccessStore())
    yield


app = FastAPI(title=API_TITLE, version=API_VERSION, lifespan=lifespan)


@app.exception_handler(sqlite3.Error)
async def database_error_handler(request: Request, exc: sqlite3.Error):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# Include routers
app.include_router(auth_router.router)
app.include_router(users_router.router)
app.include_router(patients_router.router)
app.include_router(notes_router.router)
app.include_router(visits_router.router)
app.include_router(cases_router.router)
app.include_router(queue_router.router)
app.include_router(documents_router.router)
app.include_router(inventory_router.router)
app.include_router(audit_router.router)


# Root endpoint
@app.get("/")
def root():
    return {
        "message": "Clinic Management System API",
        "docs": "/docs",
        "endpoints": {
            "login": "POST /auth/login",
            "patients": "GET /patients",
            "care_team": "GET|POST /patients/{patient_id}/assignments",
            "clinical_notes": "GET|POST /patients/{patient_id}/clinical-notes",
            "verify_note": "POST /clinical-notes/{note_id}/verify",
            "current_user": "GET /users/me",
            "audit_logs": "GET /audit-logs",
        },
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host=HOST, port=PORT, reload=True)
