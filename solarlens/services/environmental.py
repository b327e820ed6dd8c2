"""
Environmental impact of a solar system.

The AI adapter is asked first; without it, avoided emissions are computed
from the regional carbon offset factor with fixed equivalence constants.
"""
from typing import Any, Dict, Optional

import structlog

from solarlens.schemas.extraction import EnvironmentalImpact
from solarlens.services.ai_extraction import AIExtractionService

logger = structlog.get_logger(__name__)

PANEL_LIFETIME_YEARS = 25
TREES_PER_TON_CO2 = 45
MILES_PER_TON_CO2 = 2500
COAL_LBS_PER_KWH = 0.9
DEFAULT_CARBON_FACTOR_KG_PER_MWH = 680.0

SYSTEM_CALCULATED = "system-calculated"


def calculate_environmental_impact(
    annual_production_kwh: float,
    carbon_factor_kg_per_mwh: Optional[float] = None,
) -> EnvironmentalImpact:
    """Avoided CO2 in metric tons and its everyday equivalents."""
    factor = carbon_factor_kg_per_mwh or DEFAULT_CARBON_FACTOR_KG_PER_MWH
    annual_tons = (annual_production_kwh / 1000) * (factor / 1000)
    return EnvironmentalImpact(
        carbon_offset_annual=round(annual_tons, 2),
        carbon_offset_lifetime=round(annual_tons * PANEL_LIFETIME_YEARS, 2),
        trees_planted_equivalent=round(annual_tons * TREES_PER_TON_CO2),
        miles_not_driven_equivalent=round(annual_tons * MILES_PER_TON_CO2),
        coal_not_burned_pounds=round(annual_production_kwh * COAL_LBS_PER_KWH),
        carbon_offset_factor_kg_per_mwh=factor,
        estimated_production=annual_production_kwh,
        data_source=SYSTEM_CALCULATED,
        explanation=(
            f"Calculated using standard industry factors with a carbon offset factor of {factor:g} kg/MWh"
        ),
    )


class EnvironmentalImpactService:
    """Chooses between the AI estimate and the factor-based calculation."""

    def __init__(self, ai_service: Optional[AIExtractionService] = None):
        self.ai_service = ai_service

    async def estimate(
        self,
        system_size: float,
        annual_production_kwh: float,
        document_id: str,
        carbon_factor_kg_per_mwh: Optional[float] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> EnvironmentalImpact:
        if self.ai_service is not None and self.ai_service.is_configured:
            impact = await self.ai_service.estimate_environmental_impact(
                system_size, annual_production_kwh, document_id, context
            )
            if impact is not None:
                return impact
            logger.info("environmental_ai_unavailable", document_id=document_id)

        return calculate_environmental_impact(annual_production_kwh, carbon_factor_kg_per_mwh)
