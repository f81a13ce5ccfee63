import os

# Cheap password hashing for the test run; must be set before config is imported
os.environ.setdefault("PASSWORD_ITERATIONS", "1000")

import pytest
from fastapi.testclient import TestClient

import config
from database import get_user_by_email, insert_row, init_database
from main import app

PASSWORDS = {
    "admin@clinic.local": "admin123",
    "ortho1@clinic.local": "ortho123",
    "surgeon1@clinic.local": "surgeon123",
    "nurse1@clinic.local": "nurse123",
    "student1@clinic.local": "student123",
    "reception1@clinic.local": "reception123",
}


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    """Point the app at a fresh SQLite file for each test"""
    path = str(tmp_path / "clinic-test.db")
    monkeypatch.setattr(config, "DATABASE_PATH", path)
    return path


@pytest.fixture
def seeded_db(db_path):
    init_database()
    return db_path


@pytest.fixture
def client(db_path):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def login(client):
    def _login(email, password=None):
        response = client.post(
            "/auth/login", json={"email": email, "password": password or PASSWORDS[email]}
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}
    return _login


@pytest.fixture
def staff(seeded_db):
    """Seeded staff ids keyed by short name"""
    return {
        "admin": get_user_by_email("admin@clinic.local")["id"],
        "ortho": get_user_by_email("ortho1@clinic.local")["id"],
        "surgeon": get_user_by_email("surgeon1@clinic.local")["id"],
        "nurse": get_user_by_email("nurse1@clinic.local")["id"],
        "student": get_user_by_email("student1@clinic.local")["id"],
        "reception": get_user_by_email("reception1@clinic.local")["id"],
    }


@pytest.fixture
def make_patient(seeded_db):
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        data = {
            "patient_code": f"P{counter['n']:04d}",
            "first_name": "Ana",
            "last_name": f"Patient{counter['n']}",
            "date_of_birth": "2008-04-12",
            "gender": "FEMALE",
        }
        data.update(overrides)
        return insert_row("patients", data)["id"]
    return _make
