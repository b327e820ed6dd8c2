"""
Production simulation through NREL PVWatts.
"""
from dataclasses import dataclass
from typing import Any, Dict

from solarlens.schemas.estimates import ProductionEstimate
from solarlens.services.estimation.base import HttpEstimationAdapter, OfflineAdapter
from solarlens.services.seasonal import MONTHS, PRODUCTION_DISTRIBUTION, distribute

SERVICE_NAME = "pvwatts"

OFFLINE_YIELD_KWH_PER_KW = 1400
OFFLINE_SOLRAD_ANNUAL = 4.5
SAVINGS_ESTIMATE_RATE = 0.12
HOURS_PER_YEAR = 8760


@dataclass
class ProductionParams:
    """PVWatts inputs; defaults describe a south-facing fixed roof mount."""

    system_capacity: float
    latitude: float
    longitude: float
    azimuth: float = 180
    tilt: float = 20
    array_type: int = 1
    module_type: int = 0
    losses: float = 14.08


class OfflineProductionAdapter(OfflineAdapter[ProductionParams, ProductionEstimate]):
    """1400 kWh per installed kW spread over a fixed seasonal curve."""

    service_name = SERVICE_NAME

    def generate(self, params: ProductionParams) -> ProductionEstimate:
        annual = round(params.system_capacity * OFFLINE_YIELD_KWH_PER_KW)
        capacity_factor = annual / (params.system_capacity * HOURS_PER_YEAR) if params.system_capacity else 0.0
        return ProductionEstimate(
            system_capacity=params.system_capacity,
            annual_production=annual,
            monthly_production=distribute(annual, PRODUCTION_DISTRIBUTION),
            capacity_factor=round(capacity_factor, 3),
            solrad_annual=OFFLINE_SOLRAD_ANNUAL,
            annual_savings=round(annual * SAVINGS_ESTIMATE_RATE, 2),
        )


class PVWattsAdapter(HttpEstimationAdapter[ProductionParams, ProductionEstimate]):
    """Live client for the PVWatts ``calculator`` endpoint."""

    service_name = SERVICE_NAME

    async def fetch(self, params: ProductionParams) -> Dict[str, Any]:
        return await self._get_json(
            "/calculator",
            {
                "api_key": self.api_key,
                "system_capacity": params.system_capacity,
                "lat": params.latitude,
                "lon": params.longitude,
                "azimuth": params.azimuth,
                "tilt": params.tilt,
                "array_type": params.array_type,
                "module_type": params.module_type,
                "losses": params.losses,
                "timeframe": "monthly",
                "dataset": "tmy3",
                "format": "json",
            },
        )

    def parse(self, payload: Dict[str, Any], params: ProductionParams) -> ProductionEstimate:
        errors = payload.get("errors")
        if errors:
            raise ValueError("; ".join(str(e) for e in errors))

        outputs = payload["outputs"]
        monthly = outputs["ac_monthly"]
        if len(monthly) != len(MONTHS):
            raise ValueError(f"expected 12 monthly values, got {len(monthly)}")

        annual = float(outputs["ac_annual"])
        return ProductionEstimate(
            system_capacity=float(payload.get("inputs", {}).get("system_capacity", params.system_capacity)),
            annual_production=round(annual),
            monthly_production={month: round(value) for month, value in zip(MONTHS, monthly)},
            # PVWatts reports a percentage
            capacity_factor=round(float(outputs["capacity_factor"]) / 100, 4),
            solrad_annual=float(outputs.get("solrad_annual", 0.0)),
            annual_savings=round(annual * SAVINGS_ESTIMATE_RATE, 2),
        )
