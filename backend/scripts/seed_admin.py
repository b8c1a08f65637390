#!/usr/bin/env python3
"""
Staff User Seed Script
Creates an admin or reviewer account for the Talaty admin console.

Usage:
    python -m scripts.seed_admin <email> <first_name> <last_name> <password> [admin|reviewer]

Example:
    python -m scripts.seed_admin admin@talaty.local Ada Admin securepassword123
"""
import sys
from uuid import uuid4

from talaty.database import session_scope, init_db
from talaty.models.db_models import UserDB, UserRole, UserStatus, KycStatus
from talaty.auth import hash_password
from talaty.services.scoring import ScoreEngine


def create_staff_user(email: str, first_name: str, last_name: str, password: str,
                      role: UserRole = UserRole.ADMIN) -> bool:
    """Create a staff user, or promote an existing account to the role."""
    init_db()

    try:
        with session_scope() as db:
            existing = db.query(UserDB).filter(UserDB.email == email).first()

            if existing:
                if existing.role == role:
                    print(f"User '{email}' already has the {role.value} role.")
                    return False
                existing.role = role
                db.commit()
                print(f"Upgraded existing user '{email}' to {role.value} role.")
                return True

            user = UserDB(
                id=str(uuid4()),
                email=email,
                password_hash=hash_password(password),
                first_name=first_name,
                last_name=last_name,
                role=role,
                status=UserStatus.ACTIVE,
                email_verified=True,
                kyc_status=KycStatus.APPROVED,
            )
            db.add(user)
            db.commit()
            ScoreEngine(db).calculate_score(user.id)

            print(f"{role.value.capitalize()} user created successfully!")
            print(f"  Email: {email}")
            print(f"  Role: {role.value}")
            return True

    except Exception as e:
        print(f"Error creating user: {e}")
        return False


def main():
    if len(sys.argv) not in (5, 6):
        print(__doc__)
        sys.exit(1)

    email, first_name, last_name, password = sys.argv[1:5]
    role_name = sys.argv[5] if len(sys.argv) == 6 else "admin"

    if role_name not in ("admin", "reviewer"):
        print("Error: Role must be 'admin' or 'reviewer'.")
        sys.exit(1)

    if len(password) < 8:
        print("Error: Password must be at least 8 characters.")
        sys.exit(1)

    if "@" not in email:
        print("Error: Invalid email format.")
        sys.exit(1)

    success = create_staff_user(email, first_name, last_name, password, UserRole(role_name))
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
