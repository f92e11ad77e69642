#!/usr/bin/env python3
"""
Admin Seed Script
Registers an admin in the admins table so they receive the daily digest.
Sign-in itself is handled by the external auth provider; pass the provider's
user id to link the two, or omit it to generate one.

Usage:
    python -m scripts.seed_admin <email> [auth_user_id]

Example:
    python -m scripts.seed_admin ops@saintrix.com
"""
import sys
import os
from uuid import uuid4

# Add the parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from saintrix.database import SessionLocal, init_db
from saintrix.models.db_models import AdminDB


def create_admin(email: str, user_id: str = None) -> bool:
    """Insert an admin row; an existing email is left untouched."""
    # Ensure tables exist
    init_db()

    db: Session = SessionLocal()
    try:
        existing = db.query(AdminDB).filter(AdminDB.email == email).first()
        if existing:
            print(f"Admin '{email}' already registered (id {existing.id}).")
            return True

        admin = AdminDB(id=user_id or str(uuid4()), email=email)
        db.add(admin)
        db.commit()

        print("Admin registered successfully!")
        print(f"  Email: {email}")
        print(f"  Id: {admin.id}")
        return True

    except SQLAlchemyError as e:
        print(f"Error registering admin: {e}")
        db.rollback()
        return False
    finally:
        db.close()


def main():
    if len(sys.argv) not in (2, 3):
        print(__doc__)
        sys.exit(1)

    email = sys.argv[1]
    user_id = sys.argv[2] if len(sys.argv) == 3 else None

    if "@" not in email:
        print("Error: Invalid email format.")
        sys.exit(1)

    success = create_admin(email, user_id)
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
