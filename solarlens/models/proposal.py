"""
Proposal model for storing uploaded solar sales proposals.

Holds file metadata and the structured fields extracted from the document.
"""
import enum
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Column, DateTime, Enum, ForeignKey, Integer, String

from solarlens.database import Base
from solarlens.models.types import UUID


class DocumentStatus(str, enum.Enum):
    """Uploaded document processing status."""

    PENDING = "pending"
    PROCESSED = "processed"
    ERROR = "error"


class Proposal(Base):
    """
    SQLAlchemy model for uploaded proposal documents.

    Attributes:
        id: Unique identifier (UUID).
        user_id: Owning user.
        document_id: Correlation id used in extraction logs.
        file_path: Storage path of the uploaded file.
        extracted_data: Extracted (or synthesized) proposal fields plus provenance.
        data_source: Tier that supplied the system size.
        status: pending until the single extraction attempt finishes.
        processing_errors: Error messages recorded during processing.
    """

    __tablename__ = "proposals"

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
        return f"<Proposal(id={self.id}, filename='{self.original_filename}', status={self.status})>"
