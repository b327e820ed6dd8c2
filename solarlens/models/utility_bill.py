"""
Utility bill model for storing uploaded electricity bills.
"""
import enum
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Column, DateTime, Enum, ForeignKey, Integer, String

from solarlens.database import Base
from solarlens.models.proposal import DocumentStatus
from solarlens.models.types import UUID


class BillFileType(str, enum.Enum):
    """Which text-extraction path a bill went through."""

    PDF = "pdf"
    IMAGE = "image"


class UtilityBill(Base):
    """SQLAlchemy model for uploaded utility bills (PDF or photo)."""

    __tablename__ = "utility_bills"

    id: uuid.UUID = Column(UUID(), primary_key=True, default=uuid.uuid4, index=True)
    user_id: uuid.UUID = Column(
        UUID(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    document_id: Optional[str] = Column(String(64), nullable=True)
    file_path: str = Column(String(500), nullable=False)
    original_filename: str = Column(String(255), nullable=False)
    file_size: int = Column(Integer, nullable=False)
    mime_type: str = Column(String(100), nullable=False)
    file_type: BillFileType = Column(Enum(BillFileType), nullable=False)
    extracted_data: Optional[Dict[str, Any]] = Column(JSON, nullable=True)
    data_source: Optional[str] = Column(String(32), nullable=True)
    status: DocumentStatus = Column(
        Enum(DocumentStatus),
        default=DocumentStatus.PENDING,
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

    def __repr__(self) -> str:
        return f"<UtilityBill(id={self.id}, filename='{self.original_filename}', status={self.status})>"
