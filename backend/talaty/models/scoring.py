"""
Talaty eKYC - Scoring Value Objects

Plain dataclasses produced by the score engine and recommendation
generator. They carry no session state and are safe to serialize.
"""

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional

from .db_models import RiskLevel


@dataclass(frozen=True)
class ScoreComponents:
    """One computed score, before it is persisted."""
    registration: int
    documents: int
    forms: int
    verification: int
    total: int
    risk_level: RiskLevel
    calculation_details: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Recommendation:
    type: str
    priority: str
    message: str
    action: str
    potential_points: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RecalculationResult:
    """Per-user outcome of a batch recalculation."""
    user_id: str
    success: bool
    score: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
