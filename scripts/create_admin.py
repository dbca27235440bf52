"""
Create an administrator account, or promote an existing user to admin.

Usage:
    python scripts/create_admin.py <email> <password> [--name "Full Name"]
"""
import sys
import os
import argparse

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from wilaiety.auth.security import get_password_hash
from wilaiety.config import settings
from wilaiety.db import Base, SessionLocal, engine
from wilaiety.models.models import AppRole, Profile, User, UserRole


def create_admin(email: str, password: str, full_name: str = None):
    if len(password) < settings.min_password_length:
        raise SystemExit(f"Password must be at least {settings.min_password_length} characters")
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        email = email.strip().lower()
        user = db.query(User).filter(User.email == email).first()
        if user is None:
            user = User(email=email, password_hash=get_password_hash(password), is_active=True)
            user.profile = Profile(full_name=full_name or email.split("@")[0])
            db.add(user)
            print(f"Created user {email}")
        else:
            user.password_hash = get_password_hash(password)
            user.is_active = True
            print(f"User {email} already exists, password reset")
        if user.role_row is None:
            user.role_row = UserRole(role=AppRole.ADMIN.value)
        else:
            user.role_row.role = AppRole.ADMIN.value
        db.commit()
        print(f"✅ {email} is now an administrator")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create or promote an administrator")
    parser.add_argument("email")
    parser.add_argument("password")
    parser.add_argument("--name", default=None, help="Full name for a new account")
    args = parser.parse_args()
    create_admin(args.email, args.password, args.name)
