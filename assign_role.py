#!/usr/bin/env python3
"""
Assign a role to an existing account.

Usage:
    python assign_role.py pastor@example.com pastor
"""
import argparse
import sys

from sqlalchemy.orm import Session

from ministrypath import database
from ministrypath.models import User
from ministrypath.roles import ROLE_HIERARCHY, normalize_role


def assign_role(db: Session, email: str, role: str) -> User:
    """
    Set a user's role, normalizing legacy names.

    Raises:
        ValueError: if the role is unknown or the user does not exist
    """
    if role.strip().lower() not in ROLE_HIERARCHY:
        raise ValueError(f"Unknown role '{role}'")

    user = db.query(User).filter(User.email.ilike(email.strip())).first()
    if not user:
        raise ValueError(f"User {email} not found")

    user.role = normalize_role(role)
    db.commit()
    return user


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Assign a role to a user")
    parser.add_argument("email")
    parser.add_argument("role", help=", ".join(sorted(ROLE_HIERARCHY)))
    args = parser.parse_args()

    session = database.SessionLocal()
    try:
        updated = assign_role(session, args.email, args.role)
        print(f"Updated {updated.email} to role '{updated.role}'")
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        session.close()
