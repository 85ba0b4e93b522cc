"""
USER ADMINISTRATION TESTS: receptionist-managed accounts, scoped reads,
password changes.
"""
from conftest import PASSWORD
from hcc.core.config import settings
from hcc.db.init_db import init_db
from hcc.models.user import User


def test_receptionist_creates_staff(client, receptionist):
    _, headers = receptionist

    response = client.post(
        "/users",
        json={"name": "Store Keeper", "email": "store@hcc-clinic.org", "password": "store123", "role": "drugstore_manager"},
        headers=headers,
    )
    assert response.status_code == 201
    assert response.json()["role"] == "drugstore_manager"
    assert "password" not in response.json()
    assert "password_hash" not in response.json()

    login = client.post("/auth/login", json={"email": "store@hcc-clinic.org", "password": "store123"})
    assert login.status_code == 200
    assert login.json()["user"]["role"] == "drugstore_manager"


def test_only_receptionist_creates_users(client, doctor):
    _, headers = doctor

    response = client.post(
        "/users",
        json={"name": "X", "email": "x@hcc-clinic.org", "password": "xxxxxx1", "role": "student"},
        headers=headers,
    )
    assert response.status_code == 403


def test_list_users_by_role(client, receptionist, doctor, student, other_student):
    _, headers = receptionist

    everyone = client.get("/users", headers=headers)
    students = client.get("/users", params={"role": "student"}, headers=headers)

    assert everyone.status_code == 200
    assert len(everyone.json()) == 4
    assert [u["name"] for u in students.json()] == ["Asha Student", "Bilal Student"]
    assert client.get("/users", params={"role": "janitor"}, headers=headers).status_code == 400


def test_doctor_may_only_list_students(client, doctor, student):
    _, headers = doctor

    assert client.get("/users", params={"role": "student"}, headers=headers).status_code == 200
    assert client.get("/users", headers=headers).status_code == 403
    assert client.get("/users", params={"role": "doctor"}, headers=headers).status_code == 403


def test_students_cannot_list_users(client, student):
    _, headers = student

    assert client.get("/users", params={"role": "student"}, headers=headers).status_code == 403


def test_get_user(client, receptionist, student, other_student):
    _, desk_headers = receptionist
    student_id, headers = student
    other_id, _ = other_student

    assert client.get(f"/users/{student_id}", headers=headers).json()["name"] == "Asha Student"
    assert client.get(f"/users/{other_id}", headers=headers).status_code == 403
    assert client.get(f"/users/{other_id}", headers=desk_headers).status_code == 200
    assert client.get("/users/9999", headers=desk_headers).status_code == 404


def test_update_user_profile(client, receptionist, student):
    _, headers = receptionist
    student_id, _ = student

    response = client.patch(
        f"/users/{student_id}",
        json={"phone": "555-0100", "branch": "MECH", "role": "receptionist"},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["phone"] == "555-0100"
    assert response.json()["branch"] == "MECH"
    assert response.json()["role"] == "student"

    assert client.patch(f"/users/{student_id}", json={}, headers=headers).status_code == 400


def test_change_own_password(client, student, other_student):
    student_id, headers = student
    other_id, _ = other_student

    response = client.patch(f"/users/{student_id}/password", json={"password": "fresh-pass-1"}, headers=headers)
    assert response.status_code == 200

    old = client.post("/auth/login", json={"email": "asha@hcc-clinic.org", "password": PASSWORD})
    new = client.post("/auth/login", json={"email": "asha@hcc-clinic.org", "password": "fresh-pass-1"})
    assert old.status_code == 401
    assert new.status_code == 200

    assert client.patch(f"/users/{other_id}/password", json={"password": "hijack123"}, headers=headers).status_code == 403
    assert client.patch(f"/users/{student_id}/password", json={"password": "abc"}, headers=headers).status_code == 400


def test_delete_user(client, receptionist, make_user):
    _, headers = receptionist
    student_id, student_headers = make_user("student")

    response = client.delete(f"/users/{student_id}", headers=headers)
    assert response.status_code == 200
    assert client.get(f"/users/{student_id}", headers=headers).status_code == 404

    # the deleted user's token no longer authenticates
    assert client.get("/auth/me", headers=student_headers).status_code == 401


def test_receptionists_cannot_be_deleted(client, receptionist, make_user):
    _, headers = receptionist
    other_desk_id, _ = make_user("receptionist")

    assert client.delete(f"/users/{other_desk_id}", headers=headers).status_code == 403


def test_user_with_history_cannot_be_deleted(client, receptionist, doctor, student, make_slot):
    _, headers = receptionist
    doctor_id, _ = doctor
    student_id, student_headers = student
    client.post("/appointments", json={"slot_id": make_slot(doctor_id)}, headers=student_headers)

    assert client.delete(f"/users/{student_id}", headers=headers).status_code == 409
    assert client.delete(f"/users/{doctor_id}", headers=headers).status_code == 409


def test_bootstrap_receptionist(database, monkeypatch):
    monkeypatch.setattr(settings, "BOOTSTRAP_RECEPTIONIST_EMAIL", "desk@hcc-clinic.org")

    init_db(database)
    init_db(database)

    with database.session_scope() as db:
        users = [(u.email, u.role) for u in db.query(User).all()]
    assert users == [("desk@hcc-clinic.org", "receptionist")]
