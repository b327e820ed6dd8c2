"""Models package."""
from solarlens.models.proposal import DocumentStatus, Proposal
from solarlens.models.result import Result, ResultStatus
from solarlens.models.user import User, UserRole
from solarlens.models.utility_bill import BillFileType, UtilityBill

__all__ = [
    "User", "UserRole",
    "Proposal", "DocumentStatus",
    "UtilityBill", "BillFileType",
    "Result", "ResultStatus",
]
