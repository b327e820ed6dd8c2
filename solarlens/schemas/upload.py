"""
Pydantic schemas for upload API endpoints.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from solarlens.models.proposal import DocumentStatus
from solarlens.models.utility_bill import BillFileType
from solarlens.schemas.results import ResultResponse


class DocumentResponse(BaseModel):
    """Response model for an uploaded proposal or utility bill."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(..., description="Record identifier")
    document_id: Optional[str] = Field(None, description="Extraction correlation id")
    original_filename: str = Field(..., description="Original filename")
    file_size: int = Field(..., description="File size in bytes")
    mime_type: str = Field(..., description="Declared MIME type")
    status: DocumentStatus = Field(..., description="pending, processed or error")
    data_source: Optional[str] = Field(None, description="Extraction tier that supplied the primary field")
    extracted_data: Optional[Dict[str, Any]] = Field(None, description="Extracted and synthesized fields")
    processing_errors: List[str] = Field(default_factory=list)
    created_at: datetime


class UtilityBillResponse(DocumentResponse):
    file_type: BillFileType = Field(..., description="pdf or image")


class UploadResponse(BaseModel):
    """Response model for the combined proposal and utility bill upload."""

    success: bool
    proposal: DocumentResponse
    utility_bill: UtilityBillResponse
    result: Optional[ResultResponse] = None
    errors: List[str] = Field(default_factory=list)
