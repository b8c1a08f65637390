"""
Verification State Machines

Document status is a small explicit state machine: a reviewer moves a
PENDING document to APPROVED or REJECTED exactly once, and the system
expires documents whose expiry date has passed.

Form status is not a state machine at all. It is a projection of the
submitted form_data against the required fields of the form type and is
recomputed on every write.
"""
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple
import math

from ...models.db_models import DocumentDB, DocumentStatus, FormStatus, FormType, enum_value
from ..errors import InvalidTransitionError, ValidationError


# =============================================================================
# DOCUMENT STATE CONFIGURATION
# =============================================================================
#
# entry_authority tells who may move a document INTO the state:
# - REVIEWER: admin or reviewer verification action
# - SYSTEM: expiry sweep
#
# =============================================================================

DOCUMENT_STATE_CONFIG = {
    DocumentStatus.PENDING: {
        "description": "Uploaded, awaiting reviewer verification",
        "allowed_transitions": [
            DocumentStatus.APPROVED,
            DocumentStatus.REJECTED,
            DocumentStatus.EXPIRED,
        ],
        "entry_authority": "OWNER",
        "counts_toward_score": False,
    },
    DocumentStatus.APPROVED: {
        "description": "Verified by a reviewer",
        "allowed_transitions": [DocumentStatus.EXPIRED],
        "entry_authority": "REVIEWER",
        "counts_toward_score": True,
    },
    DocumentStatus.REJECTED: {
        "description": "Rejected by a reviewer",
        "allowed_transitions": [],  # Terminal state
        "entry_authority": "REVIEWER",
        "counts_toward_score": False,
    },
    DocumentStatus.EXPIRED: {
        "description": "Expiry date has passed",
        "allowed_transitions": [],  # Terminal state
        "entry_authority": "SYSTEM",
        "counts_toward_score": False,
    },
}

REVIEW_OUTCOMES = (DocumentStatus.APPROVED, DocumentStatus.REJECTED)
EXPIRABLE_STATES = (DocumentStatus.PENDING, DocumentStatus.APPROVED)


class DocumentStateMachine:
    """Deterministic transitions for document verification status."""

    def get_state_config(self, state: DocumentStatus) -> Dict[str, Any]:
        return DOCUMENT_STATE_CONFIG.get(state, {})

    def can_transition(
        self,
        from_state: DocumentStatus,
        to_state: DocumentStatus,
    ) -> Tuple[bool, str]:
        """
        Check if a state transition is allowed.

        Returns (allowed, reason)
        """
        allowed_transitions = self.get_state_config(from_state).get("allowed_transitions", [])
        if to_state in allowed_transitions:
            return True, "Transition allowed"

        return False, f"Cannot transition document from {enum_value(from_state)} to {enum_value(to_state)}"

    def transition(self, document: DocumentDB, to_state: DocumentStatus) -> DocumentStatus:
        """
        Move a document to a new status in place.

        Returns the previous status.

        Raises:
            InvalidTransitionError: transition not allowed from the current status
        """
        from_state = DocumentStatus(document.status)
        allowed, reason = self.can_transition(from_state, to_state)
        if not allowed:
            raise InvalidTransitionError(reason)

        document.status = to_state
        document.updated_at = datetime.utcnow()
        return from_state

    def is_terminal_state(self, state: DocumentStatus) -> bool:
        return len(self.get_state_config(state).get("allowed_transitions", [])) == 0

    def get_next_states(self, state: DocumentStatus) -> List[DocumentStatus]:
        return self.get_state_config(state).get("allowed_transitions", [])


def is_expired(document: DocumentDB, today: Optional[date] = None) -> bool:
    """Read-time expiry check: expiry date strictly before today."""
    if document.expiry_date is None:
        return False
    today = today or datetime.utcnow().date()
    return document.expiry_date < today


# =============================================================================
# FORM STATUS PROJECTION
# =============================================================================

REQUIRED_FIELDS = {
    FormType.PERSONAL_INFO: ["firstName", "lastName", "dateOfBirth", "nationality", "address"],
    FormType.BUSINESS_INFO: ["businessName", "businessType", "registrationNumber", "industry"],
    FormType.FINANCIAL_INFO: ["annualIncome", "employmentStatus", "bankName", "accountType"],
    FormType.COMPLIANCE_INFO: ["taxId", "riskTolerance", "investmentExperience", "sourceOfFunds"],
}

COMPLETE = 100


def parse_form_type(form_type) -> FormType:
    try:
        return FormType(form_type)
    except ValueError:
        raise ValidationError(
            f"Invalid form_type: {form_type}. Must be one of: "
            f"{', '.join(t.value for t in FormType)}"
        )


def _is_present(form_data: Mapping[str, Any], field: str) -> bool:
    value = form_data.get(field)
    if value is None:
        return False
    return str(value).strip() != ""


def calculate_completion(form_type, form_data: Mapping[str, Any]) -> int:
    """Percentage of required fields present and non-blank, rounded half up."""
    required = REQUIRED_FIELDS[parse_form_type(form_type)]
    completed = [f for f in required if _is_present(form_data or {}, f)]
    return int(math.floor(100 * len(completed) / len(required) + 0.5))


def derive_status(form_data: Mapping[str, Any], form_type) -> Tuple[int, FormStatus]:
    """Project form_data onto (completion_percentage, status)."""
    completion = calculate_completion(form_type, form_data)
    status = FormStatus.SUBMITTED if completion == COMPLETE else FormStatus.DRAFT
    return completion, status


def missing_fields(form_type, form_data: Mapping[str, Any]) -> List[str]:
    required = REQUIRED_FIELDS[parse_form_type(form_type)]
    return [f for f in required if not _is_present(form_data or {}, f)]
