"""Shared fixtures: a fresh SQLite file per test and users of every role."""
import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("SELF_REGISTRATION_ROLES", "student,doctor")

from datetime import date, time  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from hcc.core.security import create_access_token, get_password_hash  # noqa: E402
from hcc.db.session import Database, transaction  # noqa: E402
from hcc.main import create_app  # noqa: E402
from hcc.models import Drug, Slot, User  # noqa: E402

PASSWORD = "secret123"


@pytest.fixture
def database(tmp_path):
    db = Database(f"sqlite:///{tmp_path / 'hcc_test.db'}")
    yield db
    db.dispose()


@pytest.fixture
def client(database):
    app = create_app(database)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(client, database):
    """Insert a user directly and return (user_id, bearer headers)."""
    counter = {"n": 0}

    def _make(role: str, name: str | None = None, email: str | None = None, **fields):
        counter["n"] += 1
        with database.session_scope() as db:
            user = User(
                name=name or f"{role} {counter['n']}",
                email=email or f"{role}{counter['n']}@hcc-clinic.org",
                password_hash=get_password_hash(PASSWORD),
                role=role,
                **fields,
            )
            with transaction(db):
                db.add(user)
            user_id = user.id
        headers = {"Authorization": f"Bearer {create_access_token(user_id, role)}"}
        return user_id, headers

    return _make


@pytest.fixture
def student(make_user):
    return make_user("student", name="Asha Student", email="asha@hcc-clinic.org", batch="2023", branch="CSE")


@pytest.fixture
def other_student(make_user):
    return make_user("student", name="Bilal Student")


@pytest.fixture
def doctor(make_user):
    return make_user("doctor", name="Dr. X", specialization="General Medicine")


@pytest.fixture
def receptionist(make_user):
    return make_user("receptionist", name="Front Desk")


@pytest.fixture
def pharmacist(make_user):
    return make_user("drugstore_manager", name="Drugstore")


@pytest.fixture
def make_drug(database):
    def _make(name: str = "Paracetamol 500mg", quantity: int = 100, price: float = 2.5) -> int:
        with database.session_scope() as db:
            drug = Drug(name=name, quantity=quantity, price=price)
            with transaction(db):
                db.add(drug)
            return drug.id

    return _make


@pytest.fixture
def make_slot(database):
    def _make(doctor_id: int, slot_date: date = date(2025, 1, 10), slot_time: time = time(9, 0)) -> int:
        with database.session_scope() as db:
            slot = Slot(doctor_id=doctor_id, date=slot_date, time=slot_time, is_available=True)
            with transaction(db):
                db.add(slot)
            return slot.id

    return _make


def drug_quantity(database, drug_id: int) -> int:
    with database.session_scope() as db:
        return db.get(Drug, drug_id).quantity
