"""
Service dependencies for FastAPI routes.

Each request gets services bound to its own database session; the text
extractor, AI service and estimation adapters are process-wide singletons.
"""
from fastapi import Depends
from sqlalchemy.orm import Session

from solarlens.database import get_db
from solarlens.services.ai_extraction import get_ai_extraction_service
from solarlens.services.analysis_service import AnalysisService
from solarlens.services.document_service import DocumentService
from solarlens.services.environmental import EnvironmentalImpactService
from solarlens.services.estimation import get_estimation_adapters
from solarlens.services.extraction_pipeline import build_proposal_pipeline, build_utility_bill_pipeline
from solarlens.services.result_lifecycle import ResultLifecycle
from solarlens.services.text_extraction import get_text_extractor


def get_document_service(db: Session = Depends(get_db)) -> DocumentService:
    ai_service = get_ai_extraction_service()
    return DocumentService(
        db,
        get_text_extractor(),
        build_proposal_pipeline(ai_service),
        build_utility_bill_pipeline(ai_service),
    )


def get_analysis_service(db: Session = Depends(get_db)) -> AnalysisService:
    return AnalysisService(
        db,
        get_estimation_adapters(),
        EnvironmentalImpactService(get_ai_extraction_service()),
    )


def get_result_lifecycle(db: Session = Depends(get_db)) -> ResultLifecycle:
    return ResultLifecycle(db)
