"""
End-to-end tests through the HTTP layer.
"""
import sqlite3

import pytest

from database import assign_patient_member, insert_row


@pytest.fixture
def patient(make_patient):
    return make_patient()


def _note(patient_id, author_id, content="Bracket placed on 11", **extra):
    data = {"patient_id": patient_id, "author_id": author_id, "content": content}
    data.update(extra)
    return insert_row("clinical_notes", data)


# ── Authentication ───────────────────────────────────────────────────

def test_login_and_me(client, login):
    headers = login("nurse1@clinic.local")
    response = client.get("/users/me", headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["role"] == "NURSE"
    assert body["permissions"]["INVENTORY"]["create"] == "allow"


def test_wrong_password(client):
    response = client.post("/auth/login", json={"email": "admin@clinic.local", "password": "nope"})
    assert response.status_code == 401


def test_missing_token_is_rejected(client):
    assert client.get("/patients/").status_code in (401, 403)


def test_inactive_user_loses_access(client, login, staff):
    headers = login("surgeon1@clinic.local")
    admin = login("admin@clinic.local")
    assert client.delete(f"/users/{staff['surgeon']}", headers=admin).status_code == 204
    assert client.get("/users/me", headers=headers).status_code == 401


# ── Student scenario ─────────────────────────────────────────────────

def test_assigned_student_reads_notes(client, login, staff, patient):
    _note(patient, staff["ortho"])
    assign_patient_member(patient, staff["student"], "STUDENT", staff["reception"])

    response = client.get(f"/patients/{patient}/clinical-notes", headers=login("student1@clinic.local"))
    assert response.status_code == 200
    assert len(response.json()["notes"]) == 1


def test_unassigned_student_is_denied(client, login, staff, patient):
    other = insert_row("users", {
        "name": "Second Student", "email": "student2@clinic.local",
        "password_hash": "x", "role": "STUDENT",
    })
    assign_patient_member(patient, other["id"], "STUDENT", staff["reception"])

    response = client.get(f"/patients/{patient}/clinical-notes", headers=login("student1@clinic.local"))
    assert response.status_code == 403
    assert response.json()["detail"] == "Access denied"


def test_admin_reads_notes_of_any_patient(client, login, staff, patient):
    _note(patient, staff["ortho"])
    response = client.get(f"/patients/{patient}/clinical-notes", headers=login("admin@clinic.local"))
    assert response.status_code == 200


def test_deactivated_assignment_takes_effect_on_next_request(client, login, staff, patient):
    assignment = assign_patient_member(patient, staff["student"], "STUDENT", staff["reception"])
    headers = login("student1@clinic.local")
    assert client.get(f"/patients/{patient}", headers=headers).status_code == 200

    reception = login("reception1@clinic.local")
    response = client.delete(f"/patients/{patient}/assignments/{assignment['id']}", headers=reception)
    assert response.status_code == 204

    assert client.get(f"/patients/{patient}", headers=headers).status_code == 403


def test_student_listing_only_shows_assigned_patients(client, login, staff, make_patient):
    mine = make_patient()
    make_patient()
    assign_patient_member(mine, staff["student"], "STUDENT", staff["reception"])

    body = client.get("/patients/", headers=login("student1@clinic.local")).json()
    assert [p["id"] for p in body["patients"]] == [mine]

    everyone = client.get("/patients/", headers=login("reception1@clinic.local")).json()
    assert everyone["total"] == 2


# ── Not found vs forbidden ───────────────────────────────────────────

def test_missing_note_is_404_for_conditional_roles(client, login):
    response = client.get("/clinical-notes/4040", headers=login("ortho1@clinic.local"))
    assert response.status_code == 404


def test_missing_patient_is_404_for_conditional_roles(client, login):
    response = client.get("/patients/4040/clinical-notes", headers=login("student1@clinic.local"))
    assert response.status_code == 404


def test_missing_patient_is_404_for_broad_roles(client, login):
    response = client.get("/patients/4040", headers=login("nurse1@clinic.local"))
    assert response.status_code == 404


def test_matrix_deny_hides_existence(client, login):
    # Reception has no rights on notes: the answer is 403 whether or not the note exists
    response = client.get("/clinical-notes/4040", headers=login("reception1@clinic.local"))
    assert response.status_code == 403


# ── Ownership ────────────────────────────────────────────────────────

def test_assigned_non_author_cannot_delete_note(client, login, staff, patient):
    note = _note(patient, staff["ortho"])
    assign_patient_member(patient, staff["ortho"], "ORTHODONTIST", staff["reception"])
    assign_patient_member(patient, staff["surgeon"], "DENTAL_SURGEON", staff["reception"])

    surgeon = login("surgeon1@clinic.local")
    assert client.get(f"/clinical-notes/{note['id']}", headers=surgeon).status_code == 200
    response = client.delete(f"/clinical-notes/{note['id']}", headers=surgeon)
    assert response.status_code == 403
    assert response.json()["detail"] == "Access denied"

    response = client.put(f"/clinical-notes/{note['id']}", json={"content": "edited"}, headers=surgeon)
    assert response.status_code == 403


def test_author_edits_and_deletes_own_note(client, login, staff, patient):
    assign_patient_member(patient, staff["ortho"], "ORTHODONTIST", staff["reception"])
    ortho = login("ortho1@clinic.local")

    created = client.post(
        f"/patients/{patient}/clinical-notes", json={"content": "Initial consult"}, headers=ortho
    )
    assert created.status_code == 201
    note_id = created.json()["id"]

    edited = client.put(f"/clinical-notes/{note_id}", json={"content": "Initial consult, Class II"}, headers=ortho)
    assert edited.status_code == 200
    assert edited.json()["content"] == "Initial consult, Class II"

    assert client.delete(f"/clinical-notes/{note_id}", headers=ortho).status_code == 204
    assert client.get(f"/clinical-notes/{note_id}", headers=ortho).status_code == 404


def test_author_who_left_the_care_team_cannot_edit(client, login, staff, patient):
    assignment = assign_patient_member(patient, staff["surgeon"], "DENTAL_SURGEON", staff["reception"])
    note = _note(patient, staff["surgeon"])
    client.delete(
        f"/patients/{patient}/assignments/{assignment['id']}", headers=login("reception1@clinic.local")
    )
    response = client.put(
        f"/clinical-notes/{note['id']}", json={"content": "late edit"}, headers=login("surgeon1@clinic.local")
    )
    assert response.status_code == 403


# ── Verification ─────────────────────────────────────────────────────

def test_clinician_verifies_note(client, login, staff, patient):
    note = _note(patient, staff["student"])
    assign_patient_member(patient, staff["ortho"], "ORTHODONTIST", staff["reception"])
    ortho = login("ortho1@clinic.local")

    response = client.post(
        f"/clinical-notes/{note['id']}/verify", json={"verification_notes": "Agreed"}, headers=ortho
    )
    assert response.status_code == 200
    body = response.json()
    assert body["is_verified"] == 1
    assert body["verified_by"] == staff["ortho"]
    assert body["content"].endswith("[VERIFICATION NOTE]: Agreed")

    again = client.post(f"/clinical-notes/{note['id']}/verify", json={}, headers=ortho)
    assert again.status_code == 400


def test_student_cannot_verify(client, login, staff, patient):
    note = _note(patient, staff["ortho"])
    assign_patient_member(patient, staff["student"], "STUDENT", staff["reception"])
    response = client.post(
        f"/clinical-notes/{note['id']}/verify", json={}, headers=login("student1@clinic.local")
    )
    assert response.status_code == 403


def test_verified_note_cannot_be_deleted(client, login, staff, patient):
    note = _note(patient, staff["ortho"], is_verified=1, verified_by=staff["surgeon"])
    assign_patient_member(patient, staff["ortho"], "ORTHODONTIST", staff["reception"])
    response = client.delete(f"/clinical-notes/{note['id']}", headers=login("ortho1@clinic.local"))
    assert response.status_code == 409


# ── Assignments ──────────────────────────────────────────────────────

def test_reception_assigns_and_reassigning_keeps_one_active_row(client, login, staff, patient):
    reception = login("reception1@clinic.local")
    payload = {"user_id": staff["ortho"], "assignment_role": "ORTHODONTIST"}

    assert client.post(f"/patients/{patient}/assignments", json=payload, headers=reception).status_code == 201
    assert client.post(f"/patients/{patient}/assignments", json=payload, headers=reception).status_code == 201

    team = client.get(f"/patients/{patient}/assignments", headers=reception).json()["assignments"]
    assert len(team) == 1
    assert team[0]["user_id"] == staff["ortho"]


def test_assignment_role_must_match_member_role(client, login, staff, patient):
    response = client.post(
        f"/patients/{patient}/assignments",
        json={"user_id": staff["nurse"], "assignment_role": "ORTHODONTIST"},
        headers=login("reception1@clinic.local"),
    )
    assert response.status_code == 400


def test_orthodontist_assigns_only_for_own_patients(client, login, staff, make_patient):
    own = make_patient()
    foreign = make_patient()
    assign_patient_member(own, staff["ortho"], "ORTHODONTIST", staff["reception"])
    ortho = login("ortho1@clinic.local")
    payload = {"user_id": staff["student"], "assignment_role": "STUDENT"}

    assert client.post(f"/patients/{own}/assignments", json=payload, headers=ortho).status_code == 201
    assert client.post(f"/patients/{foreign}/assignments", json=payload, headers=ortho).status_code == 403


def test_orthodontist_cannot_assign_nurses(client, login, staff, patient):
    assign_patient_member(patient, staff["ortho"], "ORTHODONTIST", staff["reception"])
    response = client.post(
        f"/patients/{patient}/assignments",
        json={"user_id": staff["nurse"], "assignment_role": "NURSE"},
        headers=login("ortho1@clinic.local"),
    )
    assert response.status_code == 403


def test_student_cannot_assign(client, login, staff, patient):
    assign_patient_member(patient, staff["student"], "STUDENT", staff["reception"])
    response = client.post(
        f"/patients/{patient}/assignments",
        json={"user_id": staff["student"], "assignment_role": "STUDENT"},
        headers=login("student1@clinic.local"),
    )
    assert response.status_code == 403


# ── Other object types ───────────────────────────────────────────────

def test_students_have_no_queue_access(client, login, staff, patient):
    assign_patient_member(patient, staff["student"], "STUDENT", staff["reception"])
    assert client.get("/queue", headers=login("student1@clinic.local")).status_code == 403


def test_queue_flow(client, login, staff, patient):
    nurse = login("nurse1@clinic.local")
    entry = client.post(f"/patients/{patient}/queue", json={"priority": "HIGH"}, headers=nurse)
    assert entry.status_code == 201
    entry_id = entry.json()["id"]

    ortho = login("ortho1@clinic.local")
    assert client.get("/queue", headers=ortho).json()["queue"] == []
    assert client.put(f"/queue/{entry_id}/status", json={"status": "IN_TREATMENT"}, headers=ortho).status_code == 403

    assign_patient_member(patient, staff["ortho"], "ORTHODONTIST", staff["reception"])
    assert len(client.get("/queue", headers=ortho).json()["queue"]) == 1
    response = client.put(f"/queue/{entry_id}/status", json={"status": "IN_TREATMENT"}, headers=ortho)
    assert response.status_code == 200
    assert response.json()["status"] == "IN_TREATMENT"


def test_inventory_is_matrix_driven(client, login):
    item = {"name": "Elastic ligatures", "category": "Consumables", "quantity": 3, "unit": "pack",
            "minimum_threshold": 5}
    assert client.post("/inventory/", json=item, headers=login("student1@clinic.local")).status_code == 403

    created = client.post("/inventory/", json=item, headers=login("nurse1@clinic.local"))
    assert created.status_code == 201
    item_id = created.json()["id"]

    low = client.get("/inventory/?low_stock=true", headers=login("student1@clinic.local")).json()["items"]
    assert [i["id"] for i in low] == [item_id]

    assert client.delete(f"/inventory/{item_id}", headers=login("nurse1@clinic.local")).status_code == 403
    assert client.delete(f"/inventory/{item_id}", headers=login("admin@clinic.local")).status_code == 204


def test_visit_lookup_uses_visit_patient(client, login, staff, make_patient):
    mine = make_patient()
    other = make_patient()
    assign_patient_member(mine, staff["surgeon"], "DENTAL_SURGEON", staff["reception"])
    reception = login("reception1@clinic.local")
    visit_mine = client.post(
        f"/patients/{mine}/visits", json={"visit_date": "2026-11-02T09:30:00"}, headers=reception
    ).json()
    visit_other = client.post(
        f"/patients/{other}/visits", json={"visit_date": "2026-11-02T10:30:00"}, headers=reception
    ).json()

    surgeon = login("surgeon1@clinic.local")
    assert client.get(f"/visits/{visit_mine['id']}", headers=surgeon).status_code == 200
    assert client.get(f"/visits/{visit_other['id']}", headers=surgeon).status_code == 403


def test_document_trash_and_restore(client, login, staff, patient):
    assign_patient_member(patient, staff["ortho"], "ORTHODONTIST", staff["reception"])
    ortho = login("ortho1@clinic.local")
    document = client.post(
        f"/patients/{patient}/documents",
        json={"type": "RADIOGRAPH", "original_filename": "opg.png"},
        headers=ortho,
    ).json()

    assert client.delete(f"/documents/{document['id']}", headers=ortho).status_code == 204
    assert client.get(f"/patients/{patient}/documents", headers=ortho).json()["documents"] == []
    restored = client.put(f"/documents/{document['id']}/restore", headers=ortho)
    assert restored.status_code == 200
    assert restored.json()["deleted_at"] is None


def test_case_created_by_supervisor(client, login, staff, patient):
    assign_patient_member(patient, staff["ortho"], "ORTHODONTIST", staff["reception"])
    assign_patient_member(patient, staff["student"], "STUDENT", staff["ortho"])
    response = client.post(
        f"/patients/{patient}/cases", json={"student_id": staff["student"]}, headers=login("ortho1@clinic.local")
    )
    assert response.status_code == 201
    case = response.json()
    assert case["supervisor_id"] == staff["ortho"]

    student = login("student1@clinic.local")
    assert client.get(f"/cases/{case['id']}", headers=student).status_code == 200
    assert client.put(f"/cases/{case['id']}", json={"progress_notes": "x"}, headers=student).status_code == 403
    assert [c["id"] for c in client.get("/cases", headers=student).json()["cases"]] == [case["id"]]


def test_patient_history_round_trip(client, login, staff, patient):
    assign_patient_member(patient, staff["surgeon"], "DENTAL_SURGEON", staff["reception"])
    surgeon = login("surgeon1@clinic.local")
    saved = client.put(f"/patients/{patient}/history", json={"form_data": {"allergies": "latex"}}, headers=surgeon)
    assert saved.status_code == 200
    fetched = client.get(f"/patients/{patient}/history", headers=surgeon).json()
    assert fetched["form_data"] == {"allergies": "latex"}


def test_admin_creates_user_and_duplicate_email_fails(client, login):
    admin = login("admin@clinic.local")
    payload = {"name": "New Nurse", "email": "nurse2@clinic.local", "password": "secret1", "role": "NURSE"}
    created = client.post("/users/", json=payload, headers=admin)
    assert created.status_code == 201
    assert "password_hash" not in created.json()
    assert client.post("/users/", json=payload, headers=admin).status_code == 400
    assert client.get("/users/", headers=login("nurse1@clinic.local")).status_code == 403


def test_database_errors_surface_as_500(client, login, monkeypatch):
    import database

    def broken(*args, **kwargs):
        raise sqlite3.OperationalError("disk I/O error")

    headers = login("ortho1@clinic.local")
    monkeypatch.setattr(database.AccessStore, "patient_id_for", broken)
    response = client.get("/clinical-notes/1", headers=headers)
    assert response.status_code == 500
    assert response.json()["detail"] == "Internal server error"


# ── Soft-deleted patients ────────────────────────────────────────────

def test_soft_deleted_patient_is_404_on_direct_and_lookup_routes(client, login, staff, patient):
    assign_patient_member(patient, staff["ortho"], "ORTHODONTIST", staff["reception"])
    ortho = login("ortho1@clinic.local")
    note_id = client.post(
        f"/patients/{patient}/clinical-notes", json={"content": "Molar bands fitted"}, headers=ortho
    ).json()["id"]
    visit = insert_row("visits", {
        "patient_id": patient, "provider_id": staff["ortho"], "visit_date": "2026-11-03T09:00:00",
    })

    assert client.delete(f"/patients/{patient}", headers=login("admin@clinic.local")).status_code == 204

    assert client.get(f"/patients/{patient}/clinical-notes", headers=ortho).status_code == 404
    assert client.get(f"/clinical-notes/{note_id}", headers=ortho).status_code == 404
    assert client.put(f"/clinical-notes/{note_id}", json={"content": "late"}, headers=ortho).status_code == 404
    assert client.get(f"/visits/{visit['id']}", headers=ortho).status_code == 404

    # Broad roles skip resolution; the handler still hides the row
    assert client.get(f"/visits/{visit['id']}", headers=login("reception1@clinic.local")).status_code == 404


def test_reactivated_patient_is_reachable_again(client, login, staff, patient):
    admin = login("admin@clinic.local")
    assert client.put(f"/patients/{patient}/reactivate", headers=admin).status_code == 400

    assert client.delete(f"/patients/{patient}", headers=admin).status_code == 204
    assert client.get(f"/patients/{patient}", headers=admin).status_code == 404

    response = client.put(f"/patients/{patient}/reactivate", headers=admin)
    assert response.status_code == 200
    assert response.json()["deleted_at"] is None
    assert client.get(f"/patients/{patient}", headers=admin).status_code == 200

    assert client.put("/patients/4040/reactivate", headers=admin).status_code == 404
    assert client.put(f"/patients/{patient}/reactivate", headers=login("reception1@clinic.local")).status_code == 403


# ── Partial updates ──────────────────────────────────────────────────

def test_null_fields_leave_columns_unchanged(client, login, staff, patient):
    assign_patient_member(patient, staff["ortho"], "ORTHODONTIST", staff["reception"])
    ortho = login("ortho1@clinic.local")
    note_id = client.post(
        f"/patients/{patient}/clinical-notes", json={"content": "Initial consult"}, headers=ortho
    ).json()["id"]

    response = client.put(f"/clinical-notes/{note_id}", json={"content": None}, headers=ortho)
    assert response.status_code == 200
    assert response.json()["content"] == "Initial consult"

    nurse = login("nurse1@clinic.local")
    item = client.post(
        "/inventory/", json={"name": "Gloves", "category": "PPE", "unit": "box"}, headers=nurse
    ).json()
    response = client.put(f"/inventory/{item['id']}", json={"name": None, "quantity": 4}, headers=nurse)
    assert response.status_code == 200
    assert response.json()["name"] == "Gloves"
    assert response.json()["quantity"] == 4


def test_handlers_reuse_the_resolved_patient(client, login, staff, patient, monkeypatch):
    from routers import notes_router

    def unexpected(patient_id):
        raise AssertionError("patient was already resolved by the access check")

    assign_patient_member(patient, staff["ortho"], "ORTHODONTIST", staff["reception"])
    monkeypatch.setattr(notes_router, "get_patient", unexpected)

    ortho = login("ortho1@clinic.local")
    assert client.get(f"/patients/{patient}/clinical-notes", headers=ortho).status_code == 200
    created = client.post(f"/patients/{patient}/clinical-notes", json={"content": "Retainer check"}, headers=ortho)
    assert created.status_code == 201


# ── Users ────────────────────────────────────────────────────────────

def test_admin_cannot_deactivate_self_through_update(client, login, staff):
    admin = login("admin@clinic.local")
    response = client.put(f"/users/{staff['admin']}", json={"status": "INACTIVE"}, headers=admin)
    assert response.status_code == 400
    assert client.get("/users/me", headers=admin).status_code == 200

    renamed = client.put(f"/users/{staff['admin']}", json={"name": "Head Admin"}, headers=admin)
    assert renamed.status_code == 200
    assert client.put(f"/users/{staff['nurse']}", json={"status": "INACTIVE"}, headers=admin).status_code == 200


# ── Dental chart ─────────────────────────────────────────────────────

def test_dental_chart_follows_medical_permissions(client, login, staff, patient):
    assign_patient_member(patient, staff["surgeon"], "DENTAL_SURGEON", staff["reception"])
    assign_patient_member(patient, staff["student"], "STUDENT", staff["reception"])
    surgeon = login("surgeon1@clinic.local")
    student = login("student1@clinic.local")

    saved = client.put(
        f"/patients/{patient}/dental-chart/14",
        json={"status": "PATHOLOGY", "pathology": "Distal caries"},
        headers=surgeon,
    )
    assert saved.status_code == 200
    assert saved.json()["is_pathology"] == 1
    assert saved.json()["is_missing"] == 0
    assert saved.json()["updated_by"] == staff["surgeon"]

    updated = client.put(
        f"/patients/{patient}/dental-chart/14", json={"status": "TREATED", "treatment": "Composite"}, headers=surgeon
    )
    assert updated.json()["id"] == saved.json()["id"]

    chart = client.get(f"/patients/{patient}/dental-chart", headers=student)
    assert chart.status_code == 200
    assert [(e["tooth_number"], e["status"]) for e in chart.json()["entries"]] == [(14, "TREATED")]

    assert client.put(f"/patients/{patient}/dental-chart/15", json={}, headers=student).status_code == 403
    assert client.put(f"/patients/{patient}/dental-chart/33", json={}, headers=surgeon).status_code == 422
    assert client.get(f"/patients/{patient}/dental-chart", headers=login("reception1@clinic.local")).status_code == 403

    assert client.delete(f"/patients/{patient}/dental-chart/14", headers=surgeon).status_code == 204
    assert client.delete(f"/patients/{patient}/dental-chart/14", headers=surgeon).status_code == 404


# ── Audit trail ──────────────────────────────────────────────────────

def test_mutations_are_audited_and_only_admin_reads_them(client, login, staff, patient):
    reception = login("reception1@clinic.local")
    client.post(
        f"/patients/{patient}/assignments",
        json={"user_id": staff["ortho"], "assignment_role": "ORTHODONTIST"},
        headers=reception,
    )
    ortho = login("ortho1@clinic.local")
    note_id = client.post(
        f"/patients/{patient}/clinical-notes", json={"content": "Spacing closed"}, headers=ortho
    ).json()["id"]
    client.put(f"/clinical-notes/{note_id}", json={"content": "Spacing closed, UR2"}, headers=ortho)

    admin = login("admin@clinic.local")
    response = client.get("/audit-logs/?entity_type=CLINICAL_NOTE", headers=admin)
    assert response.status_code == 200
    entries = response.json()["entries"]
    assert [(e["action"], e["entity_id"], e["user_id"]) for e in entries] == [
        ("UPDATE", note_id, staff["ortho"]),
        ("CREATE", note_id, staff["ortho"]),
    ]
    assert entries[0]["old_values"]["content"] == "Spacing closed"

    assignments = client.get(f"/audit-logs/?user_id={staff['reception']}", headers=admin).json()["entries"]
    assert [e["action"] for e in assignments] == ["ASSIGN"]

    assert client.get("/audit-logs/", headers=ortho).status_code == 403
    assert client.get("/audit-logs/", headers=reception).status_code == 403


# ── Pending verification ─────────────────────────────────────────────

def test_pending_notes_list_the_verification_worklist(client, login, staff, make_patient):
    mine = make_patient()
    other = make_patient()
    assign_patient_member(mine, staff["ortho"], "ORTHODONTIST", staff["reception"])
    pending = _note(mine, staff["student"])
    _note(mine, staff["student"], is_verified=1, verified_by=staff["ortho"])
    _note(other, staff["student"])

    response = client.get("/clinical-notes/pending", headers=login("ortho1@clinic.local"))
    assert response.status_code == 200
    assert [n["id"] for n in response.json()["notes"]] == [pending["id"]]

    assert client.get("/clinical-notes/pending", headers=login("student1@clinic.local")).status_code == 403
