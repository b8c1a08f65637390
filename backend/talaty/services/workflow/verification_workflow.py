"""
Verification Workflow

Orchestrates every mutation the business score depends on:
document upload, review, deletion and expiry; form submission and
deletion; and the user's verification flags.

AUTHORITY MODEL:
- OWNER: upload/delete own documents, submit/delete own forms
- REVIEWER: verify documents (admin or reviewer role)
- ADMIN: set verification flags and KYC status
- SYSTEM: expire documents past their expiry date

Each mutation commits its own change first, then dispatches a score
recalculation, then writes the audit log and sends notifications.
Audit and notification failures are logged and never fail the mutation.
"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models.db_models import (
    UserDB, DocumentDB, FormDB,
    DocumentStatus, DocumentType, FormStatus, KycStatus, UserStatus, enum_value,
)
from ..audit_service import AuditService
from ..errors import (
    NotFoundError, PermissionDeniedError, ValidationError, StorageError,
)
from ..notifications import NotificationService
from .recalculation import ScoreRecalculationDispatcher, ScoreRecalculationRequested
from .state_machine import (
    DocumentStateMachine, REVIEW_OUTCOMES, EXPIRABLE_STATES,
    derive_status, parse_form_type,
)


logger = logging.getLogger(__name__)


def parse_document_type(document_type) -> DocumentType:
    try:
        return DocumentType(document_type)
    except ValueError:
        raise ValidationError(
            f"Invalid document_type: {document_type}. Must be one of: "
            f"{', '.join(t.value for t in DocumentType)}"
        )


def document_snapshot(document: DocumentDB) -> Dict[str, Any]:
    """JSON-safe view of the reviewable fields of a document."""
    return {
        "status": enum_value(document.status),
        "verification_notes": document.verification_notes,
        "verified_by": document.verified_by,
        "verified_at": document.verified_at.isoformat() if document.verified_at else None,
    }


class VerificationWorkflow:
    """
    Main service for document, form and verification-status mutations.

    Collaborators:
    - ScoreRecalculationDispatcher: the only path to the score engine
    - AuditService: fire-and-forget audit sink
    - NotificationService: fire-and-forget email on document status change
    """

    def __init__(
        self,
        db_session: Session,
        dispatcher: ScoreRecalculationDispatcher = None,
        audit: AuditService = None,
        notifier: NotificationService = None,
    ):
        self.db = db_session
        self.state_machine = DocumentStateMachine()
        self.dispatcher = dispatcher or ScoreRecalculationDispatcher(db_session)
        self.audit = audit or AuditService(db_session)
        self.notifier = notifier or NotificationService()

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _commit(self, operation: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"{operation} failed: {e}")
            raise StorageError(f"{operation} failed") from e

    def _recalculate(self, user_id: str, trigger: str) -> None:
        self.dispatcher.dispatch(ScoreRecalculationRequested(user_id=user_id, trigger=trigger))

    def _get_user(self, user_id: str) -> UserDB:
        user = self.db.query(UserDB).filter(UserDB.id == user_id).first()
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def _get_document(self, document_id: str) -> DocumentDB:
        document = self.db.query(DocumentDB).filter(DocumentDB.id == document_id).first()
        if document is None:
            raise NotFoundError(f"Document {document_id} not found")
        return document

    def _get_form(self, form_id: str) -> FormDB:
        form = self.db.query(FormDB).filter(FormDB.id == form_id).first()
        if form is None:
            raise NotFoundError(f"Form {form_id} not found")
        return form

    def _notify_status_change(self, document: DocumentDB, notes: Optional[str] = None) -> None:
        owner = document.user
        if owner is None:
            return
        try:
            self.notifier.send_document_status_email(
                email=owner.email,
                first_name=owner.first_name,
                document_name=document.document_name,
                status=enum_value(document.status),
                notes=notes,
            )
        except Exception as e:
            logger.error(f"Document status notification failed for {document.id}: {e}")

    # =========================================================================
    # DOCUMENTS
    # =========================================================================

    def upload_document(
        self,
        user_id: str,
        document_type,
        document_name: str,
        file_name: str,
        file_path: str,
        file_size: int,
        file_type: str,
        document_number: Optional[str] = None,
        expiry_date: Optional[date] = None,
        issue_date: Optional[date] = None,
        issuing_authority: Optional[str] = None,
        request_context: Optional[Dict[str, Any]] = None,
    ) -> DocumentDB:
        """
        Register an uploaded file. New documents always start PENDING.

        OWNER action.
        """
        doc_type = parse_document_type(document_type)
        self._get_user(user_id)

        document = DocumentDB(
            id=str(uuid4()),
            user_id=user_id,
            document_type=doc_type,
            document_name=document_name,
            file_name=file_name,
            file_path=file_path,
            file_size=file_size,
            file_type=file_type,
            status=DocumentStatus.PENDING,
            document_number=document_number,
            expiry_date=expiry_date,
            issue_date=issue_date,
            issuing_authority=issuing_authority,
        )
        self.db.add(document)
        self._commit("Document upload")

        self._recalculate(user_id, trigger="upload_document")

        self.audit.log(
            user_id=user_id,
            action="upload_document",
            resource_type="document",
            resource_id=document.id,
            metadata={
                "document_type": doc_type.value,
                "document_name": document_name,
                "file_size": file_size,
            },
            **(request_context or {}),
        )
        logger.info(f"Document {document.id} ({doc_type.value}) uploaded by {user_id}")
        return document

    def verify_document(
        self,
        document_id: str,
        status,
        reviewer_id: str,
        notes: Optional[str] = None,
        request_context: Optional[Dict[str, Any]] = None,
    ) -> DocumentDB:
        """
        Record a reviewer's decision on a PENDING document.

        REVIEWER action. A document is reviewed once: re-verifying an
        approved, rejected or expired document raises InvalidTransitionError
        and leaves both the document and the score unchanged.

        Raises:
            NotFoundError: document does not exist
            ValidationError: status is not approved/rejected
            InvalidTransitionError: document is not PENDING
        """
        document = self._get_document(document_id)

        try:
            new_status = DocumentStatus(status)
        except ValueError:
            new_status = None
        if new_status not in REVIEW_OUTCOMES:
            raise ValidationError(f"Invalid verification status: {status}. Must be approved or rejected")

        old_values = document_snapshot(document)

        self.state_machine.transition(document, new_status)
        document.verification_notes = notes
        document.verified_by = reviewer_id
        document.verified_at = datetime.utcnow()
        self._commit("Document verification")

        self._recalculate(document.user_id, trigger="verify_document")

        self.audit.log(
            user_id=reviewer_id,
            action="verify_document",
            resource_type="document",
            resource_id=document.id,
            old_values=old_values,
            new_values={"status": new_status.value, "verification_notes": notes},
            metadata={
                "document_owner": document.user_id,
                "document_type": enum_value(document.document_type),
            },
            **(request_context or {}),
        )
        self._notify_status_change(document, notes)

        logger.info(f"Document {document.id} {new_status.value} by reviewer {reviewer_id}")
        return document

    def delete_document(
        self,
        document_id: str,
        owner_id: str,
        request_context: Optional[Dict[str, Any]] = None,
    ) -> DocumentDB:
        """
        Delete one of the owner's documents and recalculate their score.

        OWNER action. Returns the detached record so the caller can remove
        the stored file.

        Raises:
            NotFoundError: document does not exist
            PermissionDeniedError: owner_id does not own the document
        """
        document = self._get_document(document_id)
        if document.user_id != owner_id:
            raise PermissionDeniedError(f"User {owner_id} does not own document {document_id}")

        metadata = {
            "document_type": enum_value(document.document_type),
            "document_name": document.document_name,
            "status": enum_value(document.status),
        }
        self.db.delete(document)
        self._commit("Document deletion")

        self._recalculate(owner_id, trigger="delete_document")

        self.audit.log(
            user_id=owner_id,
            action="delete_document",
            resource_type="document",
            resource_id=document_id,
            metadata=metadata,
            **(request_context or {}),
        )
        logger.info(f"Document {document_id} deleted by {owner_id}")
        return document

    def expire_documents(self, today: Optional[date] = None) -> Dict[str, Any]:
        """
        Sweep PENDING/APPROVED documents whose expiry date has passed.

        SYSTEM action, run by the scheduler. Each affected owner is
        recalculated once; a failing recalculation is reported, not raised.
        """
        today = today or datetime.utcnow().date()

        candidates = self.db.query(DocumentDB).filter(
            DocumentDB.expiry_date.isnot(None),
            DocumentDB.expiry_date < today,
            DocumentDB.status.in_(list(EXPIRABLE_STATES)),
        ).all()

        expired: List[DocumentDB] = []
        for document in candidates:
            self.state_machine.transition(document, DocumentStatus.EXPIRED)
            expired.append(document)

        if expired:
            self._commit("Document expiry sweep")

        affected_users = sorted({d.user_id for d in expired})
        failures = []
        for user_id in affected_users:
            try:
                self._recalculate(user_id, trigger="expire_documents")
            except (StorageError, NotFoundError) as e:
                logger.error(f"Recalculation after expiry failed for user {user_id}: {e}")
                failures.append({"user_id": user_id, "error": str(e)})

        for document in expired:
            self.audit.log(
                user_id=None,
                action="expire_document",
                resource_type="document",
                resource_id=document.id,
                new_values={"status": DocumentStatus.EXPIRED.value},
                metadata={
                    "document_owner": document.user_id,
                    "expiry_date": document.expiry_date.isoformat(),
                },
            )
            self._notify_status_change(document)

        logger.info(f"Expiry sweep {today.isoformat()}: {len(expired)} documents, {len(affected_users)} users")
        return {
            "task": "expire_documents",
            "run_date": today.isoformat(),
            "documents_expired": len(expired),
            "users_recalculated": len(affected_users) - len(failures),
            "failures": failures,
        }

    # =========================================================================
    # FORMS
    # =========================================================================

    def submit_form(
        self,
        user_id: str,
        form_type,
        form_data: Dict[str, Any],
        request_context: Optional[Dict[str, Any]] = None,
    ) -> FormDB:
        """
        Create or update the user's single form of this type.

        OWNER action. Status and completion are a projection of form_data:
        100% complete means SUBMITTED with submitted_at stamped, anything
        less is DRAFT. The score is recalculated whenever the form is
        submitted or leaves the submitted state.
        """
        ftype = parse_form_type(form_type)
        self._get_user(user_id)
        form_data = dict(form_data or {})

        completion, status = derive_status(form_data, ftype)

        form = self.db.query(FormDB).filter(
            FormDB.user_id == user_id,
            FormDB.form_type == ftype,
        ).first()

        created = form is None
        was_submitted = not created and form.status == FormStatus.SUBMITTED

        if created:
            form = FormDB(
                id=str(uuid4()),
                user_id=user_id,
                form_type=ftype,
                version=1,
            )
            self.db.add(form)
        else:
            form.version = (form.version or 1) + 1

        form.form_data = form_data
        form.completion_percentage = completion
        form.status = status
        form.submitted_at = datetime.utcnow() if status == FormStatus.SUBMITTED else None
        form.updated_at = datetime.utcnow()
        self._commit("Form submission")

        if status == FormStatus.SUBMITTED or was_submitted:
            self._recalculate(user_id, trigger="submit_form")

        self.audit.log(
            user_id=user_id,
            action="create_form" if created else "update_form",
            resource_type="form",
            resource_id=form.id,
            metadata={
                "form_type": ftype.value,
                "completion_percentage": completion,
                "status": status.value,
                "version": form.version,
            },
            **(request_context or {}),
        )
        return form

    def delete_form(
        self,
        form_id: str,
        owner_id: str,
        request_context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Delete one of the owner's forms and recalculate their score.

        Raises:
            NotFoundError: form does not exist
            PermissionDeniedError: owner_id does not own the form
        """
        form = self._get_form(form_id)
        if form.user_id != owner_id:
            raise PermissionDeniedError(f"User {owner_id} does not own form {form_id}")

        form_type = enum_value(form.form_type)
        self.db.delete(form)
        self._commit("Form deletion")

        self._recalculate(owner_id, trigger="delete_form")

        self.audit.log(
            user_id=owner_id,
            action="delete_form",
            resource_type="form",
            resource_id=form_id,
            metadata={"form_type": form_type},
            **(request_context or {}),
        )

    # =========================================================================
    # VERIFICATION STATUS
    # =========================================================================

    def update_user_status(
        self,
        user_id: str,
        actor_id: str,
        status=None,
        kyc_status=None,
        email_verified: Optional[bool] = None,
        phone_verified: Optional[bool] = None,
        notes: Optional[str] = None,
        request_context: Optional[Dict[str, Any]] = None,
    ) -> UserDB:
        """
        Set account status, KYC status and contact verification flags.

        ADMIN action. Recalculates the score when any score-relevant
        field actually changed.
        """
        user = self._get_user(user_id)

        updates: Dict[str, Any] = {}
        try:
            if status is not None:
                updates["status"] = UserStatus(status)
            if kyc_status is not None:
                updates["kyc_status"] = KycStatus(kyc_status)
        except ValueError as e:
            raise ValidationError(str(e))
        if email_verified is not None:
            updates["email_verified"] = bool(email_verified)
        if phone_verified is not None:
            updates["phone_verified"] = bool(phone_verified)

        old_values = {field: enum_value(getattr(user, field)) for field in updates}
        changed = {f for f, v in updates.items() if enum_value(v) != old_values[f]}

        for field, value in updates.items():
            setattr(user, field, value)
        self._commit("User status update")

        if changed & {"kyc_status", "email_verified", "phone_verified"}:
            self._recalculate(user_id, trigger="update_user_status")

        self.audit.log(
            user_id=actor_id,
            action="update_user_status",
            resource_type="user",
            resource_id=user_id,
            old_values=old_values,
            new_values={f: enum_value(v) for f, v in updates.items()},
            metadata={"notes": notes},
            **(request_context or {}),
        )
        return user
