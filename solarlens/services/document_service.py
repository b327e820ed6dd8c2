"""
Processing of uploaded proposals and utility bills.

Each document gets exactly one extraction attempt. A document whose text
cannot be read, or whose extraction or storage fails, ends in error with the
reason recorded; it never affects the other document of the same upload.
"""
import uuid
from typing import TypeVar

import structlog
from sqlalchemy.orm import Session

from solarlens.exceptions import ExtractionFailure
from solarlens.models.proposal import DocumentStatus, Proposal
from solarlens.models.utility_bill import BillFileType, UtilityBill
from solarlens.services.extraction_pipeline import ExtractionPipeline, generate_document_id
from solarlens.services.text_extraction import DocumentKind, DocumentSource, TextExtractor

logger = structlog.get_logger(__name__)

Record = TypeVar("Record", Proposal, UtilityBill)


class DocumentService:
    """Creates document records and runs text and field extraction on them."""

    def __init__(
        self,
        db: Session,
        extractor: TextExtractor,
        proposal_pipeline: ExtractionPipeline,
        utility_bill_pipeline: ExtractionPipeline,
    ):
        self.db = db
        self.extractor = extractor
        self.proposal_pipeline = proposal_pipeline
        self.utility_bill_pipeline = utility_bill_pipeline

    async def process_proposal(self, user_id: uuid.UUID, source: DocumentSource) -> Proposal:
        proposal = Proposal(
            user_id=user_id,
            document_id=generate_document_id("proposal"),
            **self._file_metadata(source),
        )
        return await self._process(proposal, source, self.proposal_pipeline)

    async def process_utility_bill(self, user_id: uuid.UUID, source: DocumentSource) -> UtilityBill:
        file_type = BillFileType.PDF if source.kind is DocumentKind.PDF else BillFileType.IMAGE
        bill = UtilityBill(
            user_id=user_id,
            document_id=generate_document_id("bill"),
            file_type=file_type,
            **self._file_metadata(source),
        )
        return await self._process(bill, source, self.utility_bill_pipeline)

    @staticmethod
    def _file_metadata(source: DocumentSource) -> dict:
        return {
            "file_path": str(source.path),
            "original_filename": source.filename,
            "file_size": source.size,
            "mime_type": source.mime_type,
            "status": DocumentStatus.PENDING,
            "processing_errors": [],
        }

    async def _process(self, record: Record, source: DocumentSource, pipeline: ExtractionPipeline) -> Record:
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        log = logger.bind(document_type=pipeline.document_type, record_id=str(record.id), document_id=record.document_id)

        try:
            extracted = await self.extractor.extract_async(source)
            result = await pipeline.run(extracted.text, record.document_id)
            record.extracted_data = result.to_record()
            record.data_source = result.data_source.value
            record.status = DocumentStatus.PROCESSED
            self.db.commit()
        except ExtractionFailure as e:
            log.warning("document_extraction_failed", error=e.message)
            return self._mark_error(record, e.message)
        except Exception as e:
            self.db.rollback()
            log.error("document_processing_failed", error=str(e), error_type=type(e).__name__)
            return self._mark_error(record, f"Document processing failed: {e}")

        self.db.refresh(record)
        log.info(
            "document_processed",
            data_source=record.data_source,
            chars=extracted.char_count,
            synthesized=len(result.synthesized_fields),
        )
        return record

    def _mark_error(self, record: Record, message: str) -> Record:
        record.status = DocumentStatus.ERROR
        record.processing_errors = [message]
        self.db.commit()
        self.db.refresh(record)
        return record
