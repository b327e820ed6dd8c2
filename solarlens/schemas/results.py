"""
Pydantic schemas for analysis results and their API responses.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from solarlens.models.result import ResultStatus
from solarlens.schemas.estimates import RoofPotential


class Location(BaseModel):
    """Coordinates and state code used for estimation."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    state: Optional[str] = Field(None, min_length=2, max_length=2, description="Two-letter state code")


class MonthlyBreakdownEntry(BaseModel):
    """One calendar month of production, consumption and bills."""

    month: str
    solar_production: float = Field(..., description="Solar production in kWh")
    energy_usage: float = Field(..., description="Household consumption in kWh")
    grid_consumption: float = Field(..., ge=0, description="Consumption not covered by solar, in kWh")
    utility_bill_with_solar: float
    utility_bill_without_solar: float
    savings: float


class SolarSavings(BaseModel):
    """Aggregate savings metrics."""

    monthly_savings: float
    annual_savings: float
    twenty_year_savings: float = Field(..., description="Twenty years of savings with utility inflation")
    payback_period: Optional[float] = Field(None, description="Years to recover net cost; None when savings are not positive")
    net_system_cost: float
    solar_offset_percentage: Optional[float] = None


class SolarPotentialSummary(BaseModel):
    """Roof potential as stored on a result."""

    roof_segment_summary: Dict[str, float]
    solar_potential_kwh: float = Field(..., description="Annual yield of the installable array in kWh")
    panel_capacity_watts: float
    max_capacity_kw: float
    carbon_offset_factor_kg_per_mwh: float
    roof_segment_count: int

    @classmethod
    def from_roof_potential(cls, potential: RoofPotential) -> "SolarPotentialSummary":
        return cls(
            roof_segment_summary=potential.roof_segment_summary,
            solar_potential_kwh=potential.yearly_energy_dc_kwh,
            panel_capacity_watts=potential.panel_capacity_watts,
            max_capacity_kw=potential.max_capacity_kw,
            carbon_offset_factor_kg_per_mwh=potential.carbon_offset_factor_kg_per_mwh,
            roof_segment_count=len(potential.roof_segments),
        )


class GenerateResultsRequest(BaseModel):
    """Request body for generating an analysis."""

    proposal_id: UUID
    utility_bill_id: UUID
    location: Optional[Location] = None


class ResultResponse(BaseModel):
    """Response model for a stored analysis result."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    proposal_id: UUID
    utility_bill_id: UUID
    status: ResultStatus
    solar_savings: Optional[Dict[str, Any]] = None
    monthly_breakdown: Optional[List[Dict[str, Any]]] = None
    environmental_impact: Optional[Dict[str, Any]] = None
    solar_potential: Optional[Dict[str, Any]] = None
    solar_production: Optional[Dict[str, Any]] = None
    srec_incentives: Optional[Dict[str, Any]] = None
    adapter_sources: Optional[Dict[str, Any]] = None
    processing_errors: List[str] = Field(default_factory=list)
    created_at: datetime
    completed_at: Optional[datetime] = None


class ResultListResponse(BaseModel):
    results: List[ResultResponse]
    total: int
