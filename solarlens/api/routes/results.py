"""
Analysis result API routes.
"""
import uuid
from typing import Any, Dict, Optional

import structlog
from fastapi import APIRouter, Depends, Query, Response, status

from solarlens.api.dependencies import get_analysis_service, get_result_lifecycle
from solarlens.auth.dependencies import get_current_active_user
from solarlens.models.user import User
from solarlens.schemas.results import GenerateResultsRequest, ResultListResponse, ResultResponse
from solarlens.services.analysis_service import AnalysisService
from solarlens.services.result_lifecycle import ResultLifecycle

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post(
    "/results/generate",
    response_model=ResultResponse,
    summary="Generate an analysis",
    description="Reconcile a processed proposal and utility bill into a new result.",
)
async def generate_results(
    request: GenerateResultsRequest,
    current_user: User = Depends(get_current_active_user),
    analysis: AnalysisService = Depends(get_analysis_service),
) -> ResultResponse:
    result = await analysis.generate(
        request.proposal_id,
        request.utility_bill_id,
        current_user,
        request.location,
    )
    return ResultResponse.model_validate(result)


@router.get("/results", response_model=ResultListResponse, summary="List results")
async def list_results(
    user_id: Optional[uuid.UUID] = Query(None, description="Owner to list (administrators only)"),
    current_user: User = Depends(get_current_active_user),
    lifecycle: ResultLifecycle = Depends(get_result_lifecycle),
) -> ResultListResponse:
    results = lifecycle.list_for_user(current_user, user_id)
    return ResultListResponse(
        results=[ResultResponse.model_validate(r) for r in results],
        total=len(results),
    )


@router.get("/results/{result_id}", response_model=ResultResponse, summary="Get a result")
async def get_result(
    result_id: uuid.UUID,
    current_user: User = Depends(get_current_active_user),
    lifecycle: ResultLifecycle = Depends(get_result_lifecycle),
) -> ResultResponse:
    return ResultResponse.model_validate(lifecycle.get(result_id, current_user))


@router.delete(
    "/results/{result_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a result",
)
async def delete_result(
    result_id: uuid.UUID,
    current_user: User = Depends(get_current_active_user),
    lifecycle: ResultLifecycle = Depends(get_result_lifecycle),
) -> Response:
    lifecycle.delete(result_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/results/{result_id}/environmental-impact",
    summary="Environmental impact of a result",
    description="Stored impact, or a fresh estimate when the analysis ended in error.",
)
async def get_result_environmental_impact(
    result_id: uuid.UUID,
    current_user: User = Depends(get_current_active_user),
    lifecycle: ResultLifecycle = Depends(get_result_lifecycle),
    analysis: AnalysisService = Depends(get_analysis_service),
) -> Dict[str, Any]:
    result = lifecycle.get(result_id, current_user)
    return await analysis.environmental_impact_for_result(result, current_user)
