"""
Result model for reconciled solar analyses.

A result is written twice: once as a pending placeholder and once when the
analysis completes or fails. Proposal and utility bill ids are kept as plain
historical pointers, so deleting either document leaves the result intact.
"""
import enum
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Column, DateTime, Enum, ForeignKey

from solarlens.database import Base
from solarlens.exceptions import InvalidStateTransitionError
from solarlens.models.types import UUID


class ResultStatus(str, enum.Enum):
    """Analysis result status."""

    PENDING = "pending"
    COMPLETED = "completed"
    ERROR = "error"


ALLOWED_TRANSITIONS = {
    ResultStatus.PENDING: {ResultStatus.COMPLETED, ResultStatus.ERROR},
    ResultStatus.COMPLETED: set(),
    ResultStatus.ERROR: set(),
}

DERIVED_SECTIONS = (
    "solar_savings",
    "monthly_breakdown",
    "environmental_impact",
    "solar_potential",
    "solar_production",
    "srec_incentives",
)


class Result(Base):
    """
    SQLAlchemy model for analysis results.

    Attributes:
        id: Unique identifier (UUID).
        user_id: Owning user.
        proposal_id: Proposal the analysis was derived from.
        utility_bill_id: Utility bill the analysis was derived from.
        solar_savings: Monthly, annual, twenty-year savings and payback period.
        monthly_breakdown: Twelve month entries of production, consumption and bills.
        environmental_impact: Carbon offset and equivalences.
        solar_potential: Roof potential summary.
        solar_production: Annual and monthly production estimate.
        srec_incentives: SREC eligibility and value.
        adapter_sources: Whether each estimation came from the live service or offline data.
        status: pending, then completed or error exactly once.
        processing_errors: Messages captured when the analysis failed.
    """

    __tablename__ = "results"

    id: uuid.UUID = Column(UUID(), primary_key=True, default=uuid.uuid4, index=True)
    user_id: uuid.UUID = Column(
        UUID(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    proposal_id: uuid.UUID = Column(UUID(), nullable=False, index=True)
    utility_bill_id: uuid.UUID = Column(UUID(), nullable=False, index=True)

    solar_savings: Optional[Dict[str, Any]] = Column(JSON, nullable=True)
    monthly_breakdown: Optional[List[Dict[str, Any]]] = Column(JSON, nullable=True)
    environmental_impact: Optional[Dict[str, Any]] = Column(JSON, nullable=True)
    solar_potential: Optional[Dict[str, Any]] = Column(JSON, nullable=True)
    solar_production: Optional[Dict[str, Any]] = Column(JSON, nullable=True)
    srec_incentives: Optional[Dict[str, Any]] = Column(JSON, nullable=True)
    adapter_sources: Optional[Dict[str, Any]] = Column(JSON, nullable=True)

    status: ResultStatus = Column(
        Enum(ResultStatus),
        default=ResultStatus.PENDING,
        nullable=False,
    )
    processing_errors: List[str] = Column(JSON, nullable=False, default=list)
    created_at: datetime = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: datetime = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )
    completed_at: Optional[datetime] = Column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<Result(id={self.id}, status={self.status})>"

    def transition_to(self, new_status: ResultStatus) -> None:
        """
        Move the result to a new status.

        Raises:
            InvalidStateTransitionError: If the result already reached a terminal state.
        """
        current = self.status or ResultStatus.PENDING
        if new_status not in ALLOWED_TRANSITIONS[current]:
            raise InvalidStateTransitionError(current.value, new_status.value)
        self.status = new_status
        self.completed_at = datetime.utcnow()

    def missing_sections(self) -> List[str]:
        """Names of derived sections that are still empty."""
        return [name for name in DERIVED_SECTIONS if not getattr(self, name)]
