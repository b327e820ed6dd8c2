"""
Pydantic schemas shared by the live and offline estimation adapters.

Both implementations of an adapter return the same model, so callers never
branch on where the numbers came from.
"""
from typing import Dict, List

from pydantic import BaseModel, Field


class RoofSegment(BaseModel):
    """Statistics for one planar roof segment."""

    pitch_degrees: float
    azimuth_degrees: float
    area_meters2: float
    ground_area_meters2: float
    sunshine_quantiles: List[float] = Field(default_factory=list, description="Sunshine hours quantiles, low to high")

    @property
    def median_sunshine(self) -> float:
        if not self.sunshine_quantiles:
            return 0.0
        return self.sunshine_quantiles[len(self.sunshine_quantiles) // 2]


class RoofPotential(BaseModel):
    """Solar potential of the building closest to a coordinate."""

    latitude: float
    longitude: float
    roof_segments: List[RoofSegment] = Field(default_factory=list)
    max_array_area_meters2: float
    max_capacity_kw: float = Field(..., description="Maximum installable capacity in kW")
    panel_capacity_watts: float = Field(..., description="Rating of a single panel in watts")
    yearly_energy_dc_kwh: float = Field(..., description="Annual DC yield of the installable array")
    carbon_offset_factor_kg_per_mwh: float = Field(..., description="Regional grid emissions intensity")
    roof_segment_summary: Dict[str, float] = Field(
        default_factory=dict,
        description="Installable capacity in watts per orientation class",
    )


class ProductionEstimate(BaseModel):
    """Simulated AC production of a system."""

    system_capacity: float = Field(..., description="System capacity in kW DC")
    annual_production: float = Field(..., description="Annual AC output in kWh")
    monthly_production: Dict[str, float] = Field(..., description="AC output per month name in kWh")
    capacity_factor: float = Field(..., description="Fraction of theoretical maximum output, 0-1")
    solrad_annual: float = Field(0.0, description="Average daily solar radiation in kWh/m2/day")
    annual_savings: float = Field(0.0, description="Rough savings at $0.12/kWh")


class StateIncentive(BaseModel):
    """A state-level rebate or tax credit program."""

    name: str
    type: str
    amount: float = Field(..., description="Estimated value in dollars")
    details: str = ""


class IncentiveEstimate(BaseModel):
    """SREC eligibility and value for a system in a state."""

    state: str
    system_capacity_kw: float
    annual_production_kwh: float
    srec_eligible: bool
    srec_rate: float = Field(..., description="Credit price in $/MWh")
    estimated_annual_srec_value: float
    srec_program_details: str
    additional_incentives: List[StateIncentive] = Field(default_factory=list)
