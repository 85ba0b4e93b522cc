#!/usr/bin/env python
"""Create a receptionist account. The password is generated and printed once."""
import secrets
import sys

from hcc.core.config import settings
from hcc.core.security import get_password_hash
from hcc.db.init_db import init_db
from hcc.db.session import Database, transaction
from hcc.models.user import User


def main():
    if len(sys.argv) < 2:
        print("Usage: python create_receptionist.py <email> [name]")
        sys.exit(1)

    email = sys.argv[1]
    name = sys.argv[2] if len(sys.argv) > 2 else "Receptionist"

    database = Database(settings.DATABASE_URL)
    init_db(database)
    try:
        with database.session_scope() as db:
            if db.query(User).filter(User.email == email).first():
                print(f"\n❌ A user with email {email} already exists\n")
                sys.exit(1)

            password = secrets.token_urlsafe(12)
            with transaction(db):
                db.add(
                    User(
                        name=name,
                        email=email,
                        password_hash=get_password_hash(password),
                        role="receptionist",
                    )
                )

        print(f"\n{'='*60}")
        print("✅ Receptionist created")
        print(f"{'='*60}")
        print(f"Email:    {email}")
        print(f"Password: {password}")
        print(f"{'='*60}\n")
    finally:
        database.dispose()


if __name__ == "__main__":
    main()
