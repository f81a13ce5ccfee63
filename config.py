# Configuration settings for the Clinic Management System
import os

# JWT Configuration
SECRET_KEY = os.getenv("SECRET_KEY", "clinic-secret-key")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60

# Password hashing
PASSWORD_SALT = os.getenv("PASSWORD_SALT", "clinic_salt")
PASSWORD_ITERATIONS = int(os.getenv("PASSWORD_ITERATIONS", "100000"))

# Database Configuration
DATABASE_PATH = os.getenv("DATABASE_PATH", "clinic.db")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Permission matrix: role -> object type -> action -> mode.
# "allow" grants unconditionally, "assigned" requires an active
# assignment to the target patient. Anything missing is denied.
ROLE_PERMISSIONS = {
    "ADMIN": {
        "PATIENT_GENERAL": {"read": "allow", "delete": "allow"},
        "PATIENT_MEDICAL": {"read": "allow"},
        "PATIENT_RADIOGRAPHS": {"read": "allow"},
        "PATIENT_NOTES": {"read": "allow"},
        "PATIENT_TREATMENT": {"read": "allow"},
        "PATIENT_APPOINTMENTS": {"read": "allow"},
        "CLINIC_QUEUE": {"read": "allow"},
        "PATIENT_ASSIGNMENTS": {"read": "allow", "delete": "allow"},
        "ORTHODONTIST_ASSIGNMENTS": {"create": "allow"},
        "DENTAL_SURGEON_ASSIGNMENTS": {"create": "allow"},
        "NURSE_ASSIGNMENTS": {"create": "allow"},
        "STUDENT_ASSIGNMENTS": {"create": "allow"},
        "USER_ACCOUNTS": {"create": "allow", "read": "allow", "update": "allow", "delete": "allow"},
        "INVENTORY": {"create": "allow", "read": "allow", "update": "allow", "delete": "allow"},
        "AUDIT_LOGS": {"read": "allow"},
    },
    "ORTHODONTIST": {
        "PATIENT_GENERAL": {"read": "assigned", "update": "assigned"},
        "PATIENT_MEDICAL": {"read": "assigned", "update": "assigned"},
        "PATIENT_RADIOGRAPHS": {"read": "assigned", "update": "assigned", "delete": "assigned"},
        "PATIENT_NOTES": {
            "create": "assigned", "read": "assigned", "update": "assigned",
            "delete": "assigned", "approve": "assigned",
        },
        "PATIENT_TREATMENT": {
            "create": "assigned", "read": "assigned", "update": "assigned", "approve": "assigned",
        },
        "PATIENT_APPOINTMENTS": {"read": "assigned", "update": "assigned"},
        "CLINIC_QUEUE": {"read": "assigned", "update": "assigned"},
        "PATIENT_ASSIGNMENTS": {"read": "assigned"},
        # Orthodontists staff their own patients only
        "DENTAL_SURGEON_ASSIGNMENTS": {"create": "assigned"},
        "STUDENT_ASSIGNMENTS": {"create": "assigned"},
        "INVENTORY": {"read": "allow"},
    },
    "DENTAL_SURGEON": {
        "PATIENT_GENERAL": {"read": "assigned", "update": "assigned"},
        "PATIENT_MEDICAL": {"read": "assigned", "update": "assigned"},
        "PATIENT_RADIOGRAPHS": {"read": "assigned", "update": "assigned"},
        "PATIENT_NOTES": {
            "create": "assigned", "read": "assigned", "update": "assigned",
            "delete": "assigned", "approve": "assigned",
        },
        "PATIENT_TREATMENT": {"create": "assigned", "read": "assigned", "update": "assigned"},
        "PATIENT_APPOINTMENTS": {"read": "assigned", "update": "assigned"},
        "CLINIC_QUEUE": {"read": "assigned", "update": "assigned"},
        "PATIENT_ASSIGNMENTS": {"read": "assigned"},
        "INVENTORY": {"read": "allow"},
    },
    "NURSE": {
        "PATIENT_GENERAL": {"read": "allow", "update": "allow"},
        "PATIENT_APPOINTMENTS": {"create": "allow", "read": "allow", "update": "allow"},
        "CLINIC_QUEUE": {"create": "allow", "read": "allow", "update": "allow", "delete": "allow"},
        "PATIENT_ASSIGNMENTS": {"read": "allow", "delete": "allow"},
        "ORTHODONTIST_ASSIGNMENTS": {"create": "allow"},
        "DENTAL_SURGEON_ASSIGNMENTS": {"create": "allow"},
        "NURSE_ASSIGNMENTS": {"create": "allow"},
        "STUDENT_ASSIGNMENTS": {"create": "allow"},
        "INVENTORY": {"create": "allow", "read": "allow", "update": "allow"},
    },
    "RECEPTION": {
        "PATIENT_GENERAL": {"create": "allow", "read": "allow", "update": "allow"},
        "PATIENT_APPOINTMENTS": {
            "create": "allow", "read": "allow", "update": "allow", "delete": "allow",
        },
        "CLINIC_QUEUE": {"create": "allow", "read": "allow", "update": "allow", "delete": "allow"},
        "PATIENT_ASSIGNMENTS": {"read": "allow", "delete": "allow"},
        "ORTHODONTIST_ASSIGNMENTS": {"create": "allow"},
        "DENTAL_SURGEON_ASSIGNMENTS": {"create": "allow"},
        "NURSE_ASSIGNMENTS": {"create": "allow"},
        "STUDENT_ASSIGNMENTS": {"create": "allow"},
        "INVENTORY": {"read": "allow"},
    },
    "STUDENT": {
        "PATIENT_GENERAL": {"read": "assigned"},
        "PATIENT_MEDICAL": {"read": "assigned"},
        "PATIENT_RADIOGRAPHS": {"read": "assigned"},
        "PATIENT_NOTES": {"read": "assigned"},
        "PATIENT_TREATMENT": {"read": "assigned"},
        "PATIENT_APPOINTMENTS": {"read": "assigned"},
        "INVENTORY": {"read": "allow"},
    },
}

# Assignment roles that satisfy an "assigned" rule, per actor role.
# Roles not listed accept any active assignment to the patient.
ASSIGNMENT_SCOPE = {
    "STUDENT": ["STUDENT"],
}

# API Configuration
API_TITLE = "Clinic Management System"
API_VERSION = "1.0.0"
HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "8000"))
