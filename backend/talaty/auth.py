"""
Talaty eKYC - Authentication Utilities
Password hashing, JWT tokens, and role/account-status dependencies.

Three roles exist: users own their business profile, reviewers work the
document queue, admins additionally manage accounts. Suspended and
rejected accounts keep their data but cannot act, even with a token
issued before the status change.
"""
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from .config import JWT_SECRET_KEY, JWT_ALGORITHM, ACCESS_TOKEN_EXPIRE_HOURS
from .database import get_db
from .models.db_models import UserDB, UserRole, UserStatus, enum_value

# Account statuses that may not log in or use a token
BLOCKED_STATUSES = (UserStatus.SUSPENDED, UserStatus.REJECTED)

# Bearer token security
security = HTTPBearer()


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))


def create_access_token(user_id: str, email: str, role=UserRole.USER) -> str:
    """Create a JWT access token carrying the user's role."""
    expire = datetime.utcnow() + timedelta(hours=ACCESS_TOKEN_EXPIRE_HOURS)
    to_encode = {
        "sub": user_id,
        "email": email,
        "role": enum_value(role),
        "exp": expire,
    }
    return jwt.encode(to_encode, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """Decode and validate a JWT token. Expired or tampered tokens yield None."""
    try:
        return jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError:
        return None


def ensure_account_active(user: UserDB) -> None:
    """Raise 403 for suspended or rejected accounts."""
    if user.status in BLOCKED_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Account {enum_value(user.status)}",
        )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> UserDB:
    """
    Dependency to get the current authenticated user.
    Validates the JWT, loads the user and checks the account is not blocked.
    The role is read from the database, not from the token claim.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(credentials.credentials)
    if payload is None:
        raise credentials_exception

    user_id: str = payload.get("sub")
    if user_id is None:
        raise credentials_exception

    user = db.query(UserDB).filter(UserDB.id == user_id).first()
    if user is None:
        raise credentials_exception

    ensure_account_active(user)
    return user


def require_role(*roles: UserRole, detail: str = "Insufficient role"):
    """
    Build a dependency that admits only the given roles.

    Usage:
        @router.get("/queue")
        async def queue(user: UserDB = Depends(require_role(UserRole.REVIEWER))):
    """
    allowed = frozenset(roles)

    async def _require_role(current_user: UserDB = Depends(get_current_user)) -> UserDB:
        if current_user.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
        return current_user

    return _require_role


# Admin-only routes: account management, analytics, batch jobs
require_admin = require_role(UserRole.ADMIN, detail="Admin access required")

# Document review routes
require_reviewer = require_role(UserRole.ADMIN, UserRole.REVIEWER, detail="Reviewer access required")
