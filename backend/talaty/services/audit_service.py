"""
Audit Service

Persists an audit record after each mutating operation.
Logging is fire-and-forget: a failure here is logged and swallowed so it
never blocks or rolls back the business operation that triggered it.
"""
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4
import logging

from sqlalchemy.orm import Session

from ..models.db_models import AuditLogDB, AuditStatus


logger = logging.getLogger(__name__)


class AuditService:
    """Writes and reads the audit_logs table."""

    def __init__(self, db: Session):
        self.db = db

    def log(
        self,
        user_id: Optional[str],
        action: str,
        resource_type: str,
        resource_id: Optional[str] = None,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        status: AuditStatus = AuditStatus.SUCCESS,
        error_message: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditLogDB]:
        """Record one audit entry. Returns None if the write failed."""
        try:
            entry = AuditLogDB(
                id=str(uuid4()),
                user_id=user_id,
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                old_values=old_values,
                new_values=new_values,
                ip_address=ip_address,
                user_agent=user_agent,
                status=status,
                error_message=error_message,
                event_metadata=metadata or {},
            )
            self.db.add(entry)
            self.db.commit()
            return entry
        except Exception as e:
            logger.error(f"Audit logging failed for {action} on {resource_type} {resource_id}: {e}")
            try:
                self.db.rollback()
            except Exception as rollback_error:
                logger.error(f"Audit rollback failed: {rollback_error}")
            return None

    def get_activity_log(self, user_id: str, limit: int = 50) -> List[AuditLogDB]:
        return (
            self.db.query(AuditLogDB)
            .filter(AuditLogDB.user_id == user_id)
            .order_by(AuditLogDB.created_at.desc())
            .limit(limit)
            .all()
        )

    def get_system_logs(
        self,
        filters: Optional[Dict[str, Any]] = None,
        page: int = 1,
        limit: int = 50,
    ) -> Tuple[List[AuditLogDB], int]:
        """Paginated audit logs filtered by user_id, action, resource_type or status."""
        filters = filters or {}
        query = self.db.query(AuditLogDB)

        if filters.get("user_id"):
            query = query.filter(AuditLogDB.user_id == filters["user_id"])
        if filters.get("action"):
            query = query.filter(AuditLogDB.action == filters["action"])
        if filters.get("resource_type"):
            query = query.filter(AuditLogDB.resource_type == filters["resource_type"])
        if filters.get("status"):
            query = query.filter(AuditLogDB.status == filters["status"])

        total = query.count()
        logs = (
            query.order_by(AuditLogDB.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return logs, total
