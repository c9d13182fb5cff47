#!/usr/bin/env python3
"""
Promote an existing user to the admin role.

The first administrator has to be bootstrapped outside the API, because only
admins may change roles. The user must have signed in once so their profile
row exists.

Usage:
    python scripts/promote_admin.py someone@example.com [--demote]
"""
import sys
import os
import argparse

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

load_dotenv()

from assethub.db import SessionLocal
from assethub.models.models import User
from assethub.services.permissions import Role


def promote(email: str, demote: bool = False) -> int:
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if not user:
            print(f"No user with email {email}; they must sign in once first")
            return 1
        target = Role.user.value if demote else Role.admin.value
        if user.role == target:
            print(f"{user.email} is already {target}")
            return 0
        user.role = target
        db.commit()
        print(f"{user.email} is now {target}")
        return 0
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Promote a user to admin")
    parser.add_argument("email")
    parser.add_argument("--demote", action="store_true", help="Set the role back to user")
    args = parser.parse_args()
    sys.exit(promote(args.email, args.demote))
