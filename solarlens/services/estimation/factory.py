"""
Builds the three masked estimation adapters from settings.

A live client is only wired in when its API key is configured; otherwise the
adapter serves offline data directly.
"""
from dataclasses import dataclass
from typing import Optional

import httpx

from solarlens.config import Settings, get_settings, is_configured
from solarlens.schemas.estimates import IncentiveEstimate, ProductionEstimate, RoofPotential
from solarlens.services.estimation.base import MaskingAdapter
from solarlens.services.estimation.incentives import (
    IncentiveParams,
    OfflineIncentiveAdapter,
    SrecTradeAdapter,
)
from solarlens.services.estimation.production import (
    OfflineProductionAdapter,
    ProductionParams,
    PVWattsAdapter,
)
from solarlens.services.estimation.roof_potential import (
    GoogleSolarAdapter,
    OfflineRoofPotentialAdapter,
    RoofPotentialParams,
)


@dataclass
class EstimationAdapters:
    roof_potential: MaskingAdapter[RoofPotentialParams, RoofPotential]
    production: MaskingAdapter[ProductionParams, ProductionEstimate]
    incentives: MaskingAdapter[IncentiveParams, IncentiveEstimate]


def build_estimation_adapters(
    settings: Optional[Settings] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> EstimationAdapters:
    settings = settings or get_settings()
    timeout = settings.estimation_timeout_seconds

    roof_live = None
    if is_configured(settings.google_solar_api_key):
        roof_live = GoogleSolarAdapter(settings.google_solar_api_url, settings.google_solar_api_key, timeout, client)

    production_live = None
    if is_configured(settings.pvwatts_api_key):
        production_live = PVWattsAdapter(settings.pvwatts_api_url, settings.pvwatts_api_key, timeout, client)

    incentives_live = None
    if is_configured(settings.srec_api_key):
        incentives_live = SrecTradeAdapter(settings.srec_api_url, settings.srec_api_key, timeout, client)

    return EstimationAdapters(
        roof_potential=MaskingAdapter(OfflineRoofPotentialAdapter(), roof_live),
        production=MaskingAdapter(OfflineProductionAdapter(), production_live),
        incentives=MaskingAdapter(OfflineIncentiveAdapter(), incentives_live),
    )


# Singleton instance
_adapters_instance: Optional[EstimationAdapters] = None


def get_estimation_adapters() -> EstimationAdapters:
    """Get singleton EstimationAdapters instance."""
    global _adapters_instance
    if _adapters_instance is None:
        _adapters_instance = build_estimation_adapters()
    return _adapters_instance
