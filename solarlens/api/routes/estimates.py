"""
Direct access to the estimation adapters and the impact calculator.

Coordinates are optional everywhere; without them the caller's profile
location and then the configured fallback are used.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from solarlens.api.dependencies import get_analysis_service
from solarlens.api.routes.upload import location_override
from solarlens.auth.dependencies import get_current_active_user
from solarlens.models.user import User
from solarlens.schemas.extraction import EnvironmentalImpact
from solarlens.services.analysis_service import AnalysisService
from solarlens.services.estimation import (
    AdapterResponse,
    IncentiveParams,
    ProductionParams,
    RoofPotentialParams,
)

router = APIRouter()


def adapter_payload(response: AdapterResponse) -> Dict[str, Any]:
    return {
        "success": response.success,
        "source": response.source,
        "error": response.error,
        "data": response.data.model_dump(mode="json"),
    }


@router.get("/solar-potential", summary="Roof solar potential")
async def solar_potential(
    latitude: Optional[float] = Query(None, ge=-90, le=90),
    longitude: Optional[float] = Query(None, ge=-180, le=180),
    system_capacity: Optional[float] = Query(None, gt=0, description="Planned capacity in kW"),
    current_user: User = Depends(get_current_active_user),
    analysis: AnalysisService = Depends(get_analysis_service),
) -> Dict[str, Any]:
    location = analysis.resolve_location(current_user, location_override(latitude, longitude, None))
    response = await analysis.adapters.roof_potential.call(
        RoofPotentialParams(location.latitude, location.longitude, system_capacity)
    )
    return adapter_payload(response)


@router.get("/solar-production", summary="Annual and monthly production")
async def solar_production(
    system_capacity: float = Query(..., gt=0, description="System capacity in kW"),
    latitude: Optional[float] = Query(None, ge=-90, le=90),
    longitude: Optional[float] = Query(None, ge=-180, le=180),
    azimuth: float = Query(180, ge=0, lt=360),
    tilt: float = Query(20, ge=0, le=90),
    current_user: User = Depends(get_current_active_user),
    analysis: AnalysisService = Depends(get_analysis_service),
) -> Dict[str, Any]:
    location = analysis.resolve_location(current_user, location_override(latitude, longitude, None))
    response = await analysis.adapters.production.call(
        ProductionParams(system_capacity, location.latitude, location.longitude, azimuth=azimuth, tilt=tilt)
    )
    return adapter_payload(response)


@router.get("/srec-incentives", summary="SREC eligibility and state incentives")
async def srec_incentives(
    system_capacity: float = Query(..., gt=0, description="System capacity in kW"),
    annual_production: Optional[float] = Query(None, gt=0, description="Annual production in kWh"),
    state: Optional[str] = Query(None, min_length=2, max_length=2),
    current_user: User = Depends(get_current_active_user),
    analysis: AnalysisService = Depends(get_analysis_service),
) -> Dict[str, Any]:
    if state is None:
        state = analysis.resolve_location(current_user).state
    response = await analysis.adapters.incentives.call(
        IncentiveParams(state.upper(), system_capacity, annual_production)
    )
    return adapter_payload(response)


@router.get("/environmental-impact", response_model=EnvironmentalImpact, summary="Environmental impact estimate")
async def environmental_impact(
    system_size: float = Query(..., gt=0, description="System size in kW"),
    annual_production: Optional[float] = Query(None, gt=0, description="Annual production in kWh"),
    latitude: Optional[float] = Query(None, ge=-90, le=90),
    longitude: Optional[float] = Query(None, ge=-180, le=180),
    current_user: User = Depends(get_current_active_user),
    analysis: AnalysisService = Depends(get_analysis_service),
) -> EnvironmentalImpact:
    return await analysis.estimate_environmental_impact(
        system_size,
        annual_production,
        location=location_override(latitude, longitude, None),
        user=current_user,
    )
