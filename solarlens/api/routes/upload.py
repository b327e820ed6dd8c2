"""
Upload API routes.

Accepts solar proposals (PDF) and utility bills (PDF or photo), extracts their
fields and, for the combined upload, generates the analysis.
"""
import shutil
import uuid
from pathlib import Path
from typing import Dict, Optional

import structlog
from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status

from solarlens.api.dependencies import get_analysis_service, get_document_service
from solarlens.auth.dependencies import get_current_active_user
from solarlens.config import get_settings
from solarlens.exceptions import FileTooLargeError, InvalidFileTypeError, ValidationError
from solarlens.models.proposal import DocumentStatus
from solarlens.models.user import User
from solarlens.schemas.results import Location, ResultResponse
from solarlens.schemas.upload import DocumentResponse, UploadResponse, UtilityBillResponse
from solarlens.services.analysis_service import AnalysisService
from solarlens.services.document_service import DocumentService
from solarlens.services.text_extraction import DocumentSource

logger = structlog.get_logger(__name__)
settings = get_settings()

router = APIRouter()

# Accepted content types mapped to the type handed to text extraction
PDF_TYPES: Dict[str, str] = {
    "application/pdf": "application/pdf",
    "application/x-pdf": "application/pdf",
}
IMAGE_TYPES: Dict[str, str] = {
    "image/jpeg": "image/jpeg",
    "image/jpg": "image/jpeg",
    "image/png": "image/png",
}
PROPOSAL_EXTENSIONS = [".pdf"]
UTILITY_BILL_EXTENSIONS = [".pdf", ".jpg", ".jpeg", ".png"]


def validate_upload(file: UploadFile, allowed_types: Dict[str, str], extensions: list) -> str:
    """
    Check content type, extension and size of an uploaded file.

    Returns:
        The normalized MIME type.

    Raises:
        InvalidFileTypeError: Content type or extension not accepted.
        FileTooLargeError: File exceeds the configured size limit.
    """
    filename = file.filename or ""
    mime_type = allowed_types.get((file.content_type or "").lower())
    if mime_type is None or Path(filename).suffix.lower() not in extensions:
        raise InvalidFileTypeError(filename, extensions)

    size = file_size(file)
    if size > settings.max_upload_size_bytes:
        raise FileTooLargeError(size, settings.max_upload_size_bytes)
    return mime_type


def file_size(file: UploadFile) -> int:
    file.file.seek(0, 2)
    size = file.file.tell()
    file.file.seek(0)
    return size


def save_uploaded_file(file: UploadFile, mime_type: str) -> DocumentSource:
    """
    Save uploaded file to disk.

    Returns:
        The stored document, ready for text extraction.
    """
    upload_dir = settings.upload_dir
    upload_dir.mkdir(parents=True, exist_ok=True)

    extension = Path(file.filename).suffix.lower() if file.filename else ""
    file_path = upload_dir / f"{uuid.uuid4()}{extension}"

    with open(file_path, "wb") as buffer:
        shutil.copyfileobj(file.file, buffer)

    return DocumentSource(
        path=file_path,
        filename=file.filename or f"unknown{extension}",
        size=file_path.stat().st_size,
        mime_type=mime_type,
    )


def location_override(
    latitude: Optional[float],
    longitude: Optional[float],
    state: Optional[str],
) -> Optional[Location]:
    """Build a location from optional form or query values; both coordinates or none."""
    if latitude is None and longitude is None:
        return None
    if latitude is None or longitude is None:
        raise ValidationError("Latitude and longitude must be given together")
    return Location(latitude=latitude, longitude=longitude, state=state.upper() if state else None)


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses={207: {"model": UploadResponse, "description": "A document could not be read"}},
    summary="Upload proposal and utility bill",
    description="Extract both documents and generate the savings analysis.",
)
async def upload_documents(
    response: Response,
    proposal: UploadFile = File(..., description="Solar proposal PDF"),
    utility_bill: UploadFile = File(..., description="Utility bill PDF or image"),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
    state: Optional[str] = Form(None),
    current_user: User = Depends(get_current_active_user),
    documents: DocumentService = Depends(get_document_service),
    analysis: AnalysisService = Depends(get_analysis_service),
) -> UploadResponse:
    proposal_mime = validate_upload(proposal, PDF_TYPES, PROPOSAL_EXTENSIONS)
    bill_mime = validate_upload(utility_bill, {**PDF_TYPES, **IMAGE_TYPES}, UTILITY_BILL_EXTENSIONS)
    override = location_override(latitude, longitude, state)

    proposal_record = await documents.process_proposal(current_user.id, save_uploaded_file(proposal, proposal_mime))
    bill_record = await documents.process_utility_bill(current_user.id, save_uploaded_file(utility_bill, bill_mime))

    errors = [
        f"{label}: {message}"
        for label, record in (("proposal", proposal_record), ("utility_bill", bill_record))
        if record.status == DocumentStatus.ERROR
        for message in (record.processing_errors or [])
    ]
    if errors:
        logger.warning("upload_incomplete", user_id=str(current_user.id), errors=errors)
        response.status_code = status.HTTP_207_MULTI_STATUS
        return UploadResponse(
            success=False,
            proposal=DocumentResponse.model_validate(proposal_record),
            utility_bill=UtilityBillResponse.model_validate(bill_record),
            errors=errors,
        )

    result = await analysis.generate(proposal_record.id, bill_record.id, current_user, override)
    logger.info("upload_completed", user_id=str(current_user.id), result_id=str(result.id), status=result.status.value)
    return UploadResponse(
        success=True,
        proposal=DocumentResponse.model_validate(proposal_record),
        utility_bill=UtilityBillResponse.model_validate(bill_record),
        result=ResultResponse.model_validate(result),
    )


@router.post(
    "/upload/proposal",
    response_model=DocumentResponse,
    summary="Upload a solar proposal",
)
async def upload_proposal(
    file: UploadFile = File(..., description="Solar proposal PDF"),
    current_user: User = Depends(get_current_active_user),
    documents: DocumentService = Depends(get_document_service),
) -> DocumentResponse:
    mime_type = validate_upload(file, PDF_TYPES, PROPOSAL_EXTENSIONS)
    record = await documents.process_proposal(current_user.id, save_uploaded_file(file, mime_type))
    return DocumentResponse.model_validate(record)


@router.post(
    "/upload/utility-bill",
    response_model=UtilityBillResponse,
    summary="Upload a utility bill",
)
async def upload_utility_bill(
    file: UploadFile = File(..., description="Utility bill PDF or image"),
    current_user: User = Depends(get_current_active_user),
    documents: DocumentService = Depends(get_document_service),
) -> UtilityBillResponse:
    mime_type = validate_upload(file, {**PDF_TYPES, **IMAGE_TYPES}, UTILITY_BILL_EXTENSIONS)
    record = await documents.process_utility_bill(current_user.id, save_uploaded_file(file, mime_type))
    return UtilityBillResponse.model_validate(record)
