"""
APPOINTMENT TESTS: booking, double-booking under concurrency, ownership,
cancellation and status transitions.
"""
import threading
from datetime import time

import pytest

from hcc.core.exceptions import ClinicError
from hcc.models.appointment import Appointment
from hcc.models.user import User
from hcc.services import appointment_service


def book(client, headers, slot_id):
    return client.post("/appointments", json={"slot_id": slot_id}, headers=headers)


def slot_availability(client, doctor_id, slot_date="2025-01-10"):
    listing = client.get(f"/doctors/{doctor_id}/slots", params={"date": slot_date}).json()
    return {s["id"]: s["is_available"] for s in listing}


def test_booking_takes_the_slot(client, doctor, student, other_student, make_slot):
    doctor_id, _ = doctor
    student_id, headers = student
    slot_id = make_slot(doctor_id)

    response = book(client, headers, slot_id)
    assert response.status_code == 201
    appointment = response.json()
    assert appointment["patient_id"] == student_id
    assert appointment["doctor_id"] == doctor_id
    assert appointment["slot_id"] == slot_id
    assert appointment["date"] == "2025-01-10"
    assert appointment["time"] == "09:00"
    assert appointment["status"] == "scheduled"

    assert slot_availability(client, doctor_id) == {slot_id: False}

    _, other_headers = other_student
    second = book(client, other_headers, slot_id)
    assert second.status_code in (404, 409)


def test_booking_unknown_slot(client, student):
    _, headers = student

    response = book(client, headers, 9999)
    assert response.status_code == 404


def test_booking_disabled_slot(client, doctor, student, make_slot):
    doctor_id, doctor_headers = doctor
    _, headers = student
    slot_id = make_slot(doctor_id)
    client.patch(f"/doctors/slots/{slot_id}", json={"is_available": False}, headers=doctor_headers)

    response = book(client, headers, slot_id)
    assert response.status_code == 404


def test_only_students_book(client, doctor, receptionist, make_slot):
    doctor_id, doctor_headers = doctor
    _, desk_headers = receptionist
    slot_id = make_slot(doctor_id)

    assert book(client, doctor_headers, slot_id).status_code == 403
    assert book(client, desk_headers, slot_id).status_code == 403
    assert client.post("/appointments", json={"slot_id": slot_id}).status_code == 401


def test_concurrent_bookings_yield_one_success(database, client, doctor, make_user, make_slot):
    doctor_id, _ = doctor
    slot_id = make_slot(doctor_id)
    student_ids = [make_user("student")[0] for _ in range(4)]

    barrier = threading.Barrier(len(student_ids))
    outcomes = []
    lock = threading.Lock()

    def attempt(student_id):
        with database.session_scope() as db:
            patient = db.get(User, student_id)
            barrier.wait()
            try:
                appointment_service.book_slot(db, patient, slot_id)
                result = 201
            except ClinicError as e:
                result = e.status_code
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=attempt, args=(sid,)) for sid in student_ids]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count(201) == 1
    assert all(code in (404, 409) for code in outcomes if code != 201)


def test_student_reads_own_appointments(client, doctor, student, make_slot):
    doctor_id, _ = doctor
    student_id, headers = student
    slot_id = make_slot(doctor_id)
    book(client, headers, slot_id)

    by_id = client.get(f"/appointments/student/{student_id}", headers=headers)
    by_me = client.get("/appointments/student/me", headers=headers)

    assert by_id.status_code == 200
    assert by_id.json() == by_me.json()
    row = by_id.json()[0]
    assert row["doctor_name"] == "Dr. X"
    assert row["patient_name"] == "Asha Student"


def test_student_cannot_read_other_students_appointments(client, student, other_student):
    _, headers = student
    other_id, _ = other_student

    existing = client.get(f"/appointments/student/{other_id}", headers=headers)
    missing = client.get("/appointments/student/9999", headers=headers)

    assert existing.status_code == 403
    assert missing.status_code == 403


def test_doctor_reads_own_appointments(client, doctor, student, make_user, make_slot):
    doctor_id, doctor_headers = doctor
    _, student_headers = student
    other_doctor_id, _ = make_user("doctor", name="Dr. Y")
    book(client, student_headers, make_slot(doctor_id))

    own = client.get("/appointments/doctor/me", headers=doctor_headers)
    other = client.get(f"/appointments/doctor/{other_doctor_id}", headers=doctor_headers)
    via_doctors = client.get(f"/doctors/{doctor_id}/appointments", headers=doctor_headers)

    assert own.status_code == 200
    assert [a["patient_name"] for a in own.json()] == ["Asha Student"]
    assert own.json()[0]["batch"] == "2023"
    assert other.status_code == 403
    assert via_doctors.json() == own.json()


def test_receptionist_sees_all_including_cancelled(client, doctor, student, receptionist, make_slot):
    doctor_id, _ = doctor
    _, student_headers = student
    _, desk_headers = receptionist
    first = book(client, student_headers, make_slot(doctor_id)).json()
    book(client, student_headers, make_slot(doctor_id, slot_time=time(10, 0)))
    client.delete(f"/appointments/{first['id']}", headers=student_headers)

    response = client.get("/appointments/all", headers=desk_headers)
    assert response.status_code == 200
    assert sorted(a["status"] for a in response.json()) == ["cancelled", "scheduled"]

    assert client.get("/appointments/all", headers=student_headers).status_code == 403


def test_cancel_frees_slot(client, doctor, student, other_student, make_slot):
    doctor_id, _ = doctor
    student_id, headers = student
    slot_id = make_slot(doctor_id)
    appointment = book(client, headers, slot_id).json()

    response = client.delete(f"/appointments/{appointment['id']}", headers=headers)
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    assert slot_availability(client, doctor_id) == {slot_id: True}
    assert client.get(f"/appointments/student/{student_id}", headers=headers).json() == []

    _, other_headers = other_student
    assert book(client, other_headers, slot_id).status_code == 201


def test_cancel_twice(client, doctor, student, make_slot):
    doctor_id, _ = doctor
    _, headers = student
    appointment = book(client, headers, make_slot(doctor_id)).json()
    client.delete(f"/appointments/{appointment['id']}", headers=headers)

    response = client.delete(f"/appointments/{appointment['id']}", headers=headers)
    assert response.status_code == 409


def test_cannot_cancel_someone_elses_appointment(client, doctor, student, other_student, make_slot):
    doctor_id, _ = doctor
    _, headers = student
    _, other_headers = other_student
    appointment = book(client, headers, make_slot(doctor_id)).json()

    response = client.delete(f"/appointments/{appointment['id']}", headers=other_headers)
    assert response.status_code == 403


def test_doctor_completes_appointment(client, doctor, student, make_slot):
    doctor_id, doctor_headers = doctor
    _, headers = student
    slot_id = make_slot(doctor_id)
    appointment = book(client, headers, slot_id).json()

    response = client.patch(
        f"/appointments/{appointment['id']}", json={"status": "completed"}, headers=doctor_headers
    )
    assert response.status_code == 200
    assert response.json()["status"] == "completed"

    # completed is terminal and keeps the slot taken
    again = client.patch(
        f"/appointments/{appointment['id']}", json={"status": "cancelled"}, headers=doctor_headers
    )
    assert again.status_code == 409
    assert slot_availability(client, doctor_id) == {slot_id: False}


def test_status_update_rules(client, doctor, student, receptionist, make_user, make_slot):
    doctor_id, _ = doctor
    _, headers = student
    _, desk_headers = receptionist
    _, other_doctor_headers = make_user("doctor", name="Dr. Y")
    appointment = book(client, headers, make_slot(doctor_id)).json()
    url = f"/appointments/{appointment['id']}"

    assert client.patch(url, json={"status": "completed"}, headers=other_doctor_headers).status_code == 403
    assert client.patch(url, json={"status": "scheduled"}, headers=desk_headers).status_code == 400
    assert client.patch(url, json={"status": "cancelled"}, headers=headers).status_code == 403

    response = client.patch(url, json={"status": "cancelled"}, headers=desk_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"


def test_stale_status_change_loses_to_committed_one(database, client, doctor, student, receptionist, make_slot):
    """Two sessions load the same scheduled appointment; the later write is refused."""
    doctor_id, _ = doctor
    _, headers = student
    desk_id, _ = receptionist
    slot_id = make_slot(doctor_id)
    appointment_id = book(client, headers, slot_id).json()["id"]

    with database.session_scope() as first, database.session_scope() as second:
        doctor_user = first.get(User, doctor_id)
        desk_user = second.get(User, desk_id)
        first.get(Appointment, appointment_id)
        second.get(Appointment, appointment_id)

        appointment_service.update_status(first, doctor_user, appointment_id, "completed")
        with pytest.raises(ClinicError) as excinfo:
            appointment_service.update_status(second, desk_user, appointment_id, "cancelled")

    assert excinfo.value.status_code == 409
    with database.session_scope() as db:
        assert db.get(Appointment, appointment_id).status == "completed"
    assert slot_availability(client, doctor_id) == {slot_id: False}
