"""
Talaty eKYC - Authentication Router
Handles user registration, login and session verification.
"""
from uuid import uuid4
from datetime import datetime
from typing import Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, EmailStr, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.db_models import UserDB
from ..auth import (
    hash_password, verify_password, create_access_token, get_current_user, ensure_account_active,
)
from ..services.audit_service import AuditService
from ..services.scoring import create_default_score
from .common import request_context, serialize_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    business_name: Optional[str] = None

    @field_validator('password')
    @classmethod
    def validate_password_strength(cls, v):
        if len(v) < 8:
            raise ValueError('Password must be at least 8 characters')
        return v

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if len(v) < 2 or len(v) > 50:
            raise ValueError('Name must be between 2 and 50 characters')
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: dict


class RegisterResponse(BaseModel):
    message: str
    user: dict


# =============================================================================
# API ENDPOINTS
# =============================================================================

@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest, http_request: Request, db: Session = Depends(get_db)):
    """
    Register a new user account together with its starting score.
    """
    existing = db.query(UserDB).filter(UserDB.email == request.email).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User already exists with this email"
        )

    user = UserDB(
        id=str(uuid4()),
        email=request.email,
        password_hash=hash_password(request.password),
        first_name=request.first_name,
        last_name=request.last_name,
        phone=request.phone,
        business_name=request.business_name,
    )
    db.add(user)
    # User and starting score commit together
    create_default_score(db, user.id)

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Registration failed for {request.email}: {e}")
        raise HTTPException(status_code=500, detail="Registration failed")

    AuditService(db).log(
        user_id=user.id,
        action="register",
        resource_type="user",
        resource_id=user.id,
        **request_context(http_request),
    )

    logger.info(f"User registered: {request.email}")
    return RegisterResponse(message="User registered successfully", user=serialize_user(user))


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest, http_request: Request, db: Session = Depends(get_db)):
    """
    Authenticate user and return JWT token.
    """
    user = db.query(UserDB).filter(UserDB.email == request.email).first()

    if not user or not verify_password(request.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    ensure_account_active(user)

    user.last_login = datetime.utcnow()
    db.commit()

    AuditService(db).log(
        user_id=user.id,
        action="login",
        resource_type="user",
        resource_id=user.id,
        **request_context(http_request),
    )

    access_token = create_access_token(user.id, user.email, user.role.value)

    logger.info(f"User logged in: {request.email}")
    return TokenResponse(access_token=access_token, user=serialize_user(user))


@router.get("/me")
async def get_me(current_user: UserDB = Depends(get_current_user)):
    """
    Get current authenticated user info.
    """
    return serialize_user(current_user)
