"""
Storage and state transitions of analysis results.

A result is created pending and finalized exactly once, as completed or
error. Regenerating an analysis creates a new result.
"""
import uuid
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy.orm import Session

from solarlens.exceptions import AuthorizationError, ReconciliationFailure, ResultNotFoundError
from solarlens.models.result import DERIVED_SECTIONS, Result, ResultStatus
from solarlens.models.user import User

logger = structlog.get_logger(__name__)


class ResultLifecycle:
    """Creates, finalizes, reads and deletes results for one database session."""

    def __init__(self, db: Session):
        self.db = db

    def create_pending(self, user_id: uuid.UUID, proposal_id: uuid.UUID, utility_bill_id: uuid.UUID) -> Result:
        result = Result(
            user_id=user_id,
            proposal_id=proposal_id,
            utility_bill_id=utility_bill_id,
            status=ResultStatus.PENDING,
            processing_errors=[],
        )
        self.db.add(result)
        self.db.commit()
        self.db.refresh(result)
        logger.info("result_created", result_id=str(result.id), user_id=str(user_id))
        return result

    def complete(self, result: Result, sections: Dict[str, Any], adapter_sources: Optional[Dict[str, Any]] = None) -> Result:
        """
        Store the derived sections and mark the result completed.

        Raises:
            ReconciliationFailure: A derived section is missing or empty.
            InvalidStateTransitionError: The result is already terminal.
            SQLAlchemyError: The commit failed; the result is rolled back to pending.
        """
        missing = [name for name in DERIVED_SECTIONS if not sections.get(name)]
        if missing:
            raise ReconciliationFailure(
                f"Analysis is missing sections: {', '.join(missing)}",
                details={"missing": missing},
            )

        result.transition_to(ResultStatus.COMPLETED)
        for name in DERIVED_SECTIONS:
            setattr(result, name, sections[name])
        result.adapter_sources = adapter_sources or {}
        try:
            self.db.commit()
        except Exception:
            # Restore the stored pending state
            self.db.rollback()
            self.db.refresh(result)
            raise
        self.db.refresh(result)
        logger.info("result_completed", result_id=str(result.id))
        return result

    def fail(self, result: Result, message: str, adapter_sources: Optional[Dict[str, Any]] = None) -> Result:
        """Mark the result as error, keeping it for audit."""
        result.transition_to(ResultStatus.ERROR)
        result.processing_errors = list(result.processing_errors or []) + [message]
        if adapter_sources:
            result.adapter_sources = adapter_sources
        self.db.commit()
        self.db.refresh(result)
        logger.warning("result_failed", result_id=str(result.id), error=message)
        return result

    def get(self, result_id: uuid.UUID, user: User) -> Result:
        """
        Load a result visible to the user.

        Raises:
            ResultNotFoundError: No such result.
            AuthorizationError: The user neither owns it nor is an admin.
        """
        result = self.db.query(Result).filter(Result.id == result_id).first()
        if result is None:
            raise ResultNotFoundError(str(result_id))
        if not user.can_access(result.user_id):
            raise AuthorizationError("You do not have access to this result")
        return result

    def list_for_user(self, user: User, owner_id: Optional[uuid.UUID] = None) -> List[Result]:
        """Results of ``owner_id`` (admins only) or of the user, newest first."""
        if owner_id is not None and str(owner_id) != str(user.id) and not user.is_admin:
            raise AuthorizationError("Only administrators may list other users' results")
        target = owner_id or user.id
        return (
            self.db.query(Result)
            .filter(Result.user_id == target)
            .order_by(Result.created_at.desc())
            .all()
        )

    def delete(self, result_id: uuid.UUID, user: User) -> None:
        result = self.get(result_id, user)
        self.db.delete(result)
        self.db.commit()
        logger.info("result_deleted", result_id=str(result_id), deleted_by=str(user.id))
