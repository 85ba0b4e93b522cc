"""Create all tables. Run on app startup.

No default credential is ever seeded. When BOOTSTRAP_RECEPTIONIST_EMAIL is
set and the user table is empty, one receptionist is created with a random
password that is logged once.
"""
import logging
import secrets

from hcc.core.config import settings
from hcc.core.security import get_password_hash
from hcc.db.base import Base
from hcc.db.session import Database, transaction
from hcc.models import Appointment, Drug, Prescription, PrescriptionDrug, Slot, User  # noqa: F401 - register models

logger = logging.getLogger(__name__)


def init_db(database: Database) -> None:
    Base.metadata.create_all(bind=database.engine)

    if not settings.BOOTSTRAP_RECEPTIONIST_EMAIL:
        return

    with database.session_scope() as db:
        if db.query(User).count() > 0:
            return

        password = secrets.token_urlsafe(16)
        with transaction(db):
            db.add(
                User(
                    name="Receptionist",
                    email=settings.BOOTSTRAP_RECEPTIONIST_EMAIL,
                    password_hash=get_password_hash(password),
                    role="receptionist",
                )
            )

        logger.warning(
            "Bootstrap receptionist created: email=%s password=%s (change it after first login)",
            settings.BOOTSTRAP_RECEPTIONIST_EMAIL,
            password,
        )
