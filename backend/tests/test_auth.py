"""
Tests for auth utilities and database helpers.

Covers:
1. Token issue/decode with the configured secret and expiry
2. require_role admitting and refusing roles
3. Blocked account statuses
4. session_scope rollback
"""
import asyncio
import time
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from fastapi import HTTPException
from jose import jwt

from talaty import auth, config, database
from talaty.models.db_models import UserRole, UserStatus


# =============================================================================
# TEST: TOKENS
# =============================================================================

class TestTokens:
    """Tokens are signed with the configured secret and expire after the configured hours."""

    def test_round_trip_carries_claims(self):
        token = auth.create_access_token("user-1", "a@example.com", UserRole.REVIEWER)

        payload = auth.decode_token(token)

        assert payload["sub"] == "user-1"
        assert payload["email"] == "a@example.com"
        assert payload["role"] == "reviewer"

    def test_expiry_follows_configured_hours(self):
        token = auth.create_access_token("user-1", "a@example.com")

        payload = auth.decode_token(token)
        hours_left = (payload["exp"] - time.time()) / 3600

        assert config.ACCESS_TOKEN_EXPIRE_HOURS - 1 < hours_left <= config.ACCESS_TOKEN_EXPIRE_HOURS

    def test_token_signed_with_another_secret_is_rejected(self):
        forged = jwt.encode({"sub": "user-1"}, "not-the-secret", algorithm=config.JWT_ALGORITHM)

        assert auth.decode_token(forged) is None

    def test_password_hash_verifies(self):
        hashed = auth.hash_password("password123")

        assert auth.verify_password("password123", hashed)
        assert not auth.verify_password("password124", hashed)


# =============================================================================
# TEST: ROLES AND ACCOUNT STATUS
# =============================================================================

class TestRequireRole:
    """require_role builds a dependency that admits only the listed roles."""

    def test_listed_role_passes_through(self):
        check = auth.require_role(UserRole.REVIEWER)
        user = SimpleNamespace(role=UserRole.REVIEWER)

        assert asyncio.run(check(current_user=user)) is user

    def test_other_role_is_forbidden(self):
        check = auth.require_role(UserRole.ADMIN, detail="Admin access required")

        with pytest.raises(HTTPException) as exc_info:
            asyncio.run(check(current_user=SimpleNamespace(role=UserRole.USER)))

        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "Admin access required"

    def test_reviewer_dependency_admits_admins(self):
        admin = SimpleNamespace(role=UserRole.ADMIN)

        assert asyncio.run(auth.require_reviewer(current_user=admin)) is admin

    def test_admin_dependency_refuses_reviewers(self):
        with pytest.raises(HTTPException):
            asyncio.run(auth.require_admin(current_user=SimpleNamespace(role=UserRole.REVIEWER)))


class TestAccountStatus:
    """Suspended and rejected accounts are refused; others pass."""

    @pytest.mark.parametrize("blocked", [UserStatus.SUSPENDED, UserStatus.REJECTED])
    def test_blocked_statuses_raise(self, blocked):
        with pytest.raises(HTTPException) as exc_info:
            auth.ensure_account_active(SimpleNamespace(status=blocked))

        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == f"Account {blocked.value}"

    @pytest.mark.parametrize("allowed", [UserStatus.ACTIVE, UserStatus.PENDING])
    def test_other_statuses_pass(self, allowed):
        assert auth.ensure_account_active(SimpleNamespace(status=allowed)) is None


# =============================================================================
# TEST: DATABASE HELPERS
# =============================================================================

class TestDatabaseHelpers:

    def test_sqlite_urls_share_connections_across_threads(self):
        options = database._engine_options("sqlite://")

        assert options == {"connect_args": {"check_same_thread": False}}

    def test_server_urls_ping_pooled_connections(self):
        assert database._engine_options("postgresql://u@localhost/talaty") == {"pool_pre_ping": True}

    def test_session_scope_rolls_back_and_closes_on_error(self):
        session = MagicMock()

        with patch.object(database, "SessionLocal", return_value=session):
            with pytest.raises(RuntimeError):
                with database.session_scope():
                    raise RuntimeError("boom")

        session.rollback.assert_called_once()
        session.close.assert_called_once()

    def test_session_scope_closes_without_rollback_on_success(self):
        session = MagicMock()

        with patch.object(database, "SessionLocal", return_value=session):
            with database.session_scope() as db:
                assert db is session

        session.rollback.assert_not_called()
        session.close.assert_called_once()
