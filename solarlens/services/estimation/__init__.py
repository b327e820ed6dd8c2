"""
External estimation adapters.

Each adapter has a live HTTP implementation and an offline generator with the
same output schema. ``MaskingAdapter`` hides live failures behind the offline
data and records what happened on the response.
"""
from solarlens.services.estimation.base import (
    AdapterResponse,
    EstimationAdapter,
    MaskingAdapter,
)
from solarlens.services.estimation.factory import (
    EstimationAdapters,
    build_estimation_adapters,
    get_estimation_adapters,
)
from solarlens.services.estimation.incentives import IncentiveParams
from solarlens.services.estimation.production import ProductionParams
from solarlens.services.estimation.roof_potential import RoofPotentialParams

__all__ = [
    "AdapterResponse",
    "EstimationAdapter",
    "MaskingAdapter",
    "EstimationAdapters",
    "build_estimation_adapters",
    "get_estimation_adapters",
    "IncentiveParams",
    "ProductionParams",
    "RoofPotentialParams",
]
