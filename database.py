import json
import logging
import sqlite3
from contextlib import contextmanager

import config
from security import hash_password

logger = logging.getLogger(__name__)

SCHEMA = [
    '''
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        email TEXT UNIQUE NOT NULL,
        password_hash TEXT NOT NULL,
        role TEXT NOT NULL CHECK (role IN
            ('ADMIN', 'ORTHODONTIST', 'DENTAL_SURGEON', 'NURSE', 'STUDENT', 'RECEPTION')),
        department TEXT,
        status TEXT NOT NULL DEFAULT 'ACTIVE' CHECK (status IN ('ACTIVE', 'INACTIVE')),
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS patients (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        patient_code TEXT UNIQUE NOT NULL,
        first_name TEXT NOT NULL,
        last_name TEXT NOT NULL,
        date_of_birth DATE NOT NULL,
        gender TEXT NOT NULL,
        phone TEXT,
        email TEXT,
        status TEXT NOT NULL DEFAULT 'ACTIVE',
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        deleted_at TIMESTAMP NULL
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS patient_assignments (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        patient_id INTEGER NOT NULL,
        user_id INTEGER NOT NULL,
        assignment_role TEXT NOT NULL CHECK (assignment_role IN
            ('ORTHODONTIST', 'DENTAL_SURGEON', 'NURSE', 'STUDENT')),
        assigned_by INTEGER NOT NULL,
        active INTEGER NOT NULL DEFAULT 1,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (patient_id) REFERENCES patients(id) ON DELETE CASCADE,
        FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
        FOREIGN KEY (assigned_by) REFERENCES users(id)
    )
    ''',
    '''
    CREATE INDEX IF NOT EXISTS idx_assignment_lookup
        ON patient_assignments (patient_id, user_id, active)
    ''',
    # At most one active row per (patient, user, assignment_role)
    '''
    CREATE UNIQUE INDEX IF NOT EXISTS uniq_active_assignment
        ON patient_assignments (patient_id, user_id, assignment_role)
        WHERE active = 1
    ''',
    '''
    CREATE TABLE IF NOT EXISTS patient_histories (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        patient_id INTEGER UNIQUE NOT NULL,
        form_data TEXT,
        updated_by INTEGER NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (patient_id) REFERENCES patients(id) ON DELETE CASCADE
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS dental_chart_entries (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        patient_id INTEGER NOT NULL,
        tooth_number INTEGER NOT NULL CHECK (tooth_number BETWEEN 1 AND 32),
        status TEXT NOT NULL DEFAULT 'HEALTHY' CHECK (status IN
            ('HEALTHY', 'PATHOLOGY', 'PLANNED', 'TREATED', 'MISSING')),
        is_pathology INTEGER NOT NULL DEFAULT 0,
        is_planned INTEGER NOT NULL DEFAULT 0,
        is_treated INTEGER NOT NULL DEFAULT 0,
        is_missing INTEGER NOT NULL DEFAULT 0,
        pathology TEXT,
        treatment TEXT,
        event_date DATE,
        updated_by INTEGER NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        UNIQUE (patient_id, tooth_number),
        FOREIGN KEY (patient_id) REFERENCES patients(id) ON DELETE CASCADE,
        FOREIGN KEY (updated_by) REFERENCES users(id)
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS visits (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        patient_id INTEGER NOT NULL,
        provider_id INTEGER NOT NULL,
        visit_date TIMESTAMP NOT NULL,
        procedure_type TEXT,
        status TEXT NOT NULL DEFAULT 'SCHEDULED',
        notes TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (patient_id) REFERENCES patients(id) ON DELETE CASCADE
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS clinical_notes (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        patient_id INTEGER NOT NULL,
        author_id INTEGER NOT NULL,
        content TEXT NOT NULL,
        note_type TEXT NOT NULL DEFAULT 'TREATMENT',
        is_verified INTEGER NOT NULL DEFAULT 0,
        verified_by INTEGER NULL,
        verified_at TIMESTAMP NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (patient_id) REFERENCES patients(id) ON DELETE CASCADE,
        FOREIGN KEY (author_id) REFERENCES users(id)
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS cases (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        patient_id INTEGER NOT NULL,
        student_id INTEGER NOT NULL,
        supervisor_id INTEGER NOT NULL,
        status TEXT NOT NULL DEFAULT 'ASSIGNED',
        progress_notes TEXT,
        supervisor_feedback TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (patient_id) REFERENCES patients(id) ON DELETE CASCADE
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS queue (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        patient_id INTEGER NOT NULL,
        provider_id INTEGER NULL,
        status TEXT NOT NULL DEFAULT 'WAITING',
        priority TEXT NOT NULL DEFAULT 'NORMAL',
        procedure_type TEXT,
        notes TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (patient_id) REFERENCES patients(id) ON DELETE CASCADE
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS medical_documents (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        patient_id INTEGER NOT NULL,
        uploaded_by INTEGER NOT NULL,
        type TEXT NOT NULL,
        original_filename TEXT NOT NULL,
        description TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        deleted_at TIMESTAMP NULL,
        deleted_by INTEGER NULL,
        FOREIGN KEY (patient_id) REFERENCES patients(id) ON DELETE CASCADE
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS inventory_items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        category TEXT NOT NULL,
        quantity INTEGER NOT NULL DEFAULT 0,
        unit TEXT NOT NULL,
        minimum_threshold INTEGER NOT NULL DEFAULT 0,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS audit_logs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NULL,
        action TEXT NOT NULL,
        entity_type TEXT NOT NULL,
        entity_id INTEGER NULL,
        old_values TEXT NULL,
        new_values TEXT NULL,
        timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE SET NULL
    )
    ''',
    '''
    CREATE INDEX IF NOT EXISTS idx_audit_entity ON audit_logs (entity_type, entity_id)
    ''',
]

DEFAULT_USERS = [
    ("Clinic Admin", "admin@clinic.local", "admin123", "ADMIN"),
    ("Olivia Ortho", "ortho1@clinic.local", "ortho123", "ORTHODONTIST"),
    ("Sam Surgeon", "surgeon1@clinic.local", "surgeon123", "DENTAL_SURGEON"),
    ("Nina Nurse", "nurse1@clinic.local", "nurse123", "NURSE"),
    ("Stu Student", "student1@clinic.local", "student123", "STUDENT"),
    ("Rita Reception", "reception1@clinic.local", "reception123", "RECEPTION"),
]


def init_database():
    """Initialize SQLite database with tables and default staff"""
    with transaction() as conn:
        for statement in SCHEMA:
            conn.execute(statement)
        existing = {row["email"] for row in conn.execute("SELECT email FROM users")}
        for name, email, password, role in DEFAULT_USERS:
            if email in existing:
                continue
            conn.execute('''
                INSERT INTO users (name, email, password_hash, role)
                VALUES (?, ?, ?, ?)
            ''', (name, email, hash_password(password), role))
    logger.info("Database initialised at %s", config.DATABASE_PATH)


@contextmanager
def get_db():
    """Database connection context manager"""
    conn = sqlite3.connect(config.DATABASE_PATH)
    conn.row_factory = sqlite3.Row  # Enable dict-like access
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def transaction():
    """Connection that commits on success and rolls back on any error"""
    with get_db() as conn:
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise


# Generic row helpers. Table and column names always come from code,
# never from request input.

def find_one(table: str, row_id: int):
    with get_db() as conn:
        row = conn.execute(f"SELECT * FROM {table} WHERE id = ?", (row_id,)).fetchone()
        return dict(row) if row else None


def find_patient_row(table: str, row_id: int):
    """Row of a patient-scoped table, or None if it or its patient is gone"""
    with get_db() as conn:
        row = conn.execute(
            f"SELECT t.* FROM {table} t JOIN patients p ON p.id = t.patient_id"
            " WHERE t.id = ? AND p.deleted_at IS NULL",
            (row_id,),
        ).fetchone()
        return dict(row) if row else None


def insert_row(table: str, data: dict):
    columns = ", ".join(data)
    placeholders = ", ".join("?" for _ in data)
    with transaction() as conn:
        cursor = conn.execute(
            f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
            tuple(data.values()),
        )
        new_id = cursor.lastrowid
        row = conn.execute(f"SELECT * FROM {table} WHERE id = ?", (new_id,)).fetchone()
        return dict(row)


def update_row(table: str, row_id: int, data: dict):
    """Update columns of a row and return it, or None if it does not exist"""
    assignments = ", ".join(f"{column} = ?" for column in data)
    if assignments:
        assignments += ", "
    with transaction() as conn:
        cursor = conn.execute(
            f"UPDATE {table} SET {assignments}updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (*data.values(), row_id),
        )
        if cursor.rowcount == 0:
            return None
        row = conn.execute(f"SELECT * FROM {table} WHERE id = ?", (row_id,)).fetchone()
        return dict(row)


def delete_row(table: str, row_id: int) -> bool:
    with transaction() as conn:
        cursor = conn.execute(f"DELETE FROM {table} WHERE id = ?", (row_id,))
        return cursor.rowcount > 0


def list_rows(table: str, patient_column: str = "patient_id", patient_id=None,
              assigned_to=None, assignment_roles=None, extra_where: str = ""):
    """List rows of a patient-scoped table.

    ``patient_id`` narrows to one patient. ``assigned_to`` narrows to
    patients the given user is actively assigned to, optionally only via
    the given assignment roles. Rows of soft-deleted patients are never
    listed.
    """
    clauses = [
        "EXISTS (SELECT 1 FROM patients p"
        f" WHERE p.id = t.{patient_column} AND p.deleted_at IS NULL)"
    ]
    params = []
    if extra_where:
        clauses.append(extra_where)
    if patient_id is not None:
        clauses.append(f"t.{patient_column} = ?")
        params.append(patient_id)
    if assigned_to is not None:
        scope = ""
        if assignment_roles:
            scope = " AND pa.assignment_role IN ({})".format(", ".join("?" for _ in assignment_roles))
        clauses.append(
            "EXISTS (SELECT 1 FROM patient_assignments pa"
            f" WHERE pa.patient_id = t.{patient_column} AND pa.user_id = ?"
            f" AND pa.active = 1{scope})"
        )
        params.append(assigned_to)
        params.extend(assignment_roles or [])

    sql = f"SELECT t.* FROM {table} t WHERE " + " AND ".join(clauses) + " ORDER BY t.id DESC"
    with get_db() as conn:
        return [dict(row) for row in conn.execute(sql, params).fetchall()]


# Users

def get_user_by_email(email: str):
    """Get user by email from database"""
    with get_db() as conn:
        user = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
        return dict(user) if user else None


def get_user_by_id(user_id: int):
    """Get user by ID from database"""
    return find_one("users", user_id)


def create_user(name: str, email: str, password_hash: str, role: str, department=None):
    """Create a new user in the database"""
    with transaction() as conn:
        cursor = conn.execute('''
            INSERT INTO users (name, email, password_hash, role, department)
            VALUES (?, ?, ?, ?, ?)
        ''', (name, email, password_hash, role, department))
        return cursor.lastrowid


def list_users():
    with get_db() as conn:
        rows = conn.execute(
            "SELECT id, name, email, role, department, status FROM users ORDER BY id"
        ).fetchall()
        return [dict(row) for row in rows]


# Patients

def get_patient(patient_id: int):
    """Get a patient that has not been soft-deleted"""
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM patients WHERE id = ? AND deleted_at IS NULL", (patient_id,)
        ).fetchone()
        return dict(row) if row else None


def soft_delete_patient(patient_id: int) -> bool:
    with transaction() as conn:
        cursor = conn.execute(
            "UPDATE patients SET deleted_at = CURRENT_TIMESTAMP, status = 'INACTIVE'"
            " WHERE id = ? AND deleted_at IS NULL",
            (patient_id,),
        )
        return cursor.rowcount > 0


def reactivate_patient(patient_id: int):
    """Undo a soft delete; None if the patient is not in the trash"""
    with transaction() as conn:
        cursor = conn.execute(
            "UPDATE patients SET deleted_at = NULL, status = 'ACTIVE', updated_at = CURRENT_TIMESTAMP"
            " WHERE id = ? AND deleted_at IS NOT NULL",
            (patient_id,),
        )
        if cursor.rowcount == 0:
            return None
        return dict(conn.execute("SELECT * FROM patients WHERE id = ?", (patient_id,)).fetchone())


def get_patient_history(patient_id: int):
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM patient_histories WHERE patient_id = ?", (patient_id,)
        ).fetchone()
        return dict(row) if row else None


def upsert_patient_history(patient_id: int, form_data: str, updated_by: int):
    with transaction() as conn:
        conn.execute('''
            INSERT INTO patient_histories (patient_id, form_data, updated_by)
            VALUES (?, ?, ?)
            ON CONFLICT (patient_id) DO UPDATE SET
                form_data = excluded.form_data,
                updated_by = excluded.updated_by,
                updated_at = CURRENT_TIMESTAMP
        ''', (patient_id, form_data, updated_by))
        row = conn.execute(
            "SELECT * FROM patient_histories WHERE patient_id = ?", (patient_id,)
        ).fetchone()
        return dict(row)


# Dental chart: one row per tooth whose state differs from healthy

DENTAL_CHART_SELECT = '''
    SELECT d.*, u.name AS updated_by_name
    FROM dental_chart_entries d
    LEFT JOIN users u ON u.id = d.updated_by
'''


def get_dental_chart(patient_id: int):
    with get_db() as conn:
        rows = conn.execute(
            DENTAL_CHART_SELECT + " WHERE d.patient_id = ? ORDER BY d.tooth_number", (patient_id,)
        ).fetchall()
        return [dict(row) for row in rows]


def upsert_dental_chart_entry(patient_id: int, tooth_number: int, entry: dict, updated_by: int):
    data = dict(entry, patient_id=patient_id, tooth_number=tooth_number, updated_by=updated_by)
    columns = ", ".join(data)
    placeholders = ", ".join("?" for _ in data)
    updates = ", ".join(
        f"{column} = excluded.{column}" for column in data if column not in ("patient_id", "tooth_number")
    )
    with transaction() as conn:
        conn.execute(
            f"INSERT INTO dental_chart_entries ({columns}) VALUES ({placeholders})"
            f" ON CONFLICT (patient_id, tooth_number) DO UPDATE SET {updates}, updated_at = CURRENT_TIMESTAMP",
            tuple(data.values()),
        )
        row = conn.execute(
            DENTAL_CHART_SELECT + " WHERE d.patient_id = ? AND d.tooth_number = ?",
            (patient_id, tooth_number),
        ).fetchone()
        return dict(row)


def delete_dental_chart_entry(patient_id: int, tooth_number: int) -> bool:
    with transaction() as conn:
        cursor = conn.execute(
            "DELETE FROM dental_chart_entries WHERE patient_id = ? AND tooth_number = ?",
            (patient_id, tooth_number),
        )
        return cursor.rowcount > 0


# Audit trail

def _write_audit(conn, user_id, action, entity_type, entity_id=None, old_values=None, new_values=None):
    conn.execute('''
        INSERT INTO audit_logs (user_id, action, entity_type, entity_id, old_values, new_values)
        VALUES (?, ?, ?, ?, ?, ?)
    ''', (
        user_id, action, entity_type, entity_id,
        json.dumps(old_values, default=str) if old_values is not None else None,
        json.dumps(new_values, default=str) if new_values is not None else None,
    ))


def record_audit_event(user_id, action: str, entity_type: str, entity_id=None,
                       old_values=None, new_values=None):
    """Append one entry to the audit trail"""
    with transaction() as conn:
        _write_audit(conn, user_id, action, entity_type, entity_id, old_values, new_values)


def list_audit_logs(entity_type=None, user_id=None, limit: int = 100):
    clauses = []
    params = []
    if entity_type:
        clauses.append("a.entity_type = ?")
        params.append(entity_type)
    if user_id is not None:
        clauses.append("a.user_id = ?")
        params.append(user_id)
    sql = "SELECT a.*, u.name AS user_name FROM audit_logs a LEFT JOIN users u ON u.id = a.user_id"
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)
    sql += " ORDER BY a.id DESC LIMIT ?"
    params.append(limit)
    with get_db() as conn:
        entries = []
        for row in conn.execute(sql, params).fetchall():
            entry = dict(row)
            for column in ("old_values", "new_values"):
                if entry[column] is not None:
                    entry[column] = json.loads(entry[column])
            entries.append(entry)
        return entries


# Patient assignments

def list_patient_assignments(patient_id: int):
    """Active care-team members of a patient"""
    with get_db() as conn:
        rows = conn.execute('''
            SELECT pa.id, pa.patient_id, pa.user_id, pa.assignment_role, pa.assigned_by,
                   pa.active, pa.created_at, u.name AS user_name
            FROM patient_assignments pa
            JOIN users u ON u.id = pa.user_id
            WHERE pa.patient_id = ? AND pa.active = 1
            ORDER BY pa.id
        ''', (patient_id,)).fetchall()
        return [dict(row) for row in rows]


def assign_patient_member(patient_id: int, user_id: int, assignment_role: str, assigned_by: int):
    """Make ``user_id`` an active care-team member of a patient.

    An existing active row for the same (patient, user, role) is
    deactivated first; both writes share one transaction so the triple
    never has zero or two active rows.
    """
    with transaction() as conn:
        superseded = conn.execute('''
            UPDATE patient_assignments
            SET active = 0, updated_at = CURRENT_TIMESTAMP
            WHERE patient_id = ? AND user_id = ? AND assignment_role = ? AND active = 1
        ''', (patient_id, user_id, assignment_role)).rowcount
        cursor = conn.execute('''
            INSERT INTO patient_assignments (patient_id, user_id, assignment_role, assigned_by, active)
            VALUES (?, ?, ?, ?, 1)
        ''', (patient_id, user_id, assignment_role, assigned_by))
        row = conn.execute(
            "SELECT * FROM patient_assignments WHERE id = ?", (cursor.lastrowid,)
        ).fetchone()
        _write_audit(conn, assigned_by, "ASSIGN", "PATIENT_ASSIGNMENT", cursor.lastrowid, new_values={
            "patient_id": patient_id, "user_id": user_id, "assignment_role": assignment_role,
        })

    logger.info(
        "Assigned user %s to patient %s as %s (superseded %d)",
        user_id, patient_id, assignment_role, superseded,
    )
    return dict(row)


def deactivate_assignment(patient_id: int, assignment_id: int, deactivated_by=None) -> bool:
    """Rotate a member off a patient's care team; the row is kept for audit"""
    with transaction() as conn:
        cursor = conn.execute('''
            UPDATE patient_assignments
            SET active = 0, updated_at = CURRENT_TIMESTAMP
            WHERE id = ? AND patient_id = ? AND active = 1
        ''', (assignment_id, patient_id))
        changed = cursor.rowcount > 0
        if changed:
            _write_audit(conn, deactivated_by, "UNASSIGN", "PATIENT_ASSIGNMENT", assignment_id,
                         new_values={"patient_id": patient_id, "active": 0})
    if changed:
        logger.info("Deactivated assignment %s on patient %s", assignment_id, patient_id)
    return changed


class AccessStore:
    """Read-only queries consulted by the access decision engine."""

    def patient_exists(self, patient_id: int) -> bool:
        with get_db() as conn:
            row = conn.execute(
                "SELECT 1 FROM patients WHERE id = ? AND deleted_at IS NULL LIMIT 1",
                (patient_id,),
            ).fetchone()
            return row is not None

    def patient_id_for(self, table: str, object_id: int):
        """Patient a row belongs to; None if the row or its patient is gone"""
        with get_db() as conn:
            row = conn.execute(
                f"SELECT t.patient_id FROM {table} t JOIN patients p ON p.id = t.patient_id"
                " WHERE t.id = ? AND p.deleted_at IS NULL LIMIT 1",
                (object_id,),
            ).fetchone()
            return row["patient_id"] if row else None

    def has_active_assignment(self, patient_id: int, user_id: int, assignment_roles=None) -> bool:
        sql = '''
            SELECT 1 FROM patient_assignments
            WHERE patient_id = ? AND user_id = ? AND active = 1
        '''
        params = [patient_id, user_id]
        if assignment_roles:
            sql += " AND assignment_role IN ({})".format(", ".join("?" for _ in assignment_roles))
            params.extend(assignment_roles)
        with get_db() as conn:
            return conn.execute(sql + " LIMIT 1", params).fetchone() is not None

    def owner_of(self, table: str, owner_column: str, resource_id: int):
        """Creator column of a row, or None when the row does not exist"""
        with get_db() as conn:
            row = conn.execute(
                f"SELECT {owner_column} FROM {table} WHERE id = ? LIMIT 1", (resource_id,)
            ).fetchone()
            return row[owner_column] if row else None
