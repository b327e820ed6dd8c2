"""
Roof solar potential from the Google Solar API building insights endpoint.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import structlog

from solarlens.schemas.estimates import RoofPotential, RoofSegment
from solarlens.services.estimation.base import HttpEstimationAdapter, OfflineAdapter

logger = structlog.get_logger(__name__)

SERVICE_NAME = "google_solar"

OFFLINE_YIELD_KWH_PER_KW = 1400
DEFAULT_CARBON_FACTOR_KG_PER_MWH = 680.0
OFFLINE_MAX_ARRAY_AREA_M2 = 70.0
OFFLINE_MAX_CAPACITY_KW = 14.0
OFFLINE_PANEL_CAPACITY_W = 250.0

OFFLINE_SEGMENTS = [
    RoofSegment(
        pitch_degrees=25,
        azimuth_degrees=180,
        area_meters2=50,
        ground_area_meters2=48,
        sunshine_quantiles=[0.85, 0.87, 0.90, 0.92, 0.95, 0.97, 0.98, 0.99, 1.0],
    ),
    RoofSegment(
        pitch_degrees=15,
        azimuth_degrees=90,
        area_meters2=30,
        ground_area_meters2=29,
        sunshine_quantiles=[0.65, 0.70, 0.75, 0.80, 0.82, 0.85, 0.87, 0.90, 0.92],
    ),
]


@dataclass
class RoofPotentialParams:
    latitude: float
    longitude: float
    system_capacity: Optional[float] = None


def orientation_class(azimuth_degrees: float) -> str:
    """Optimal within 45 degrees of due south, Good short of east/west, else Suboptimal."""
    deviation = abs((azimuth_degrees - 180) % 360)
    deviation = min(deviation, 360 - deviation)
    if deviation <= 45:
        return "Optimal"
    if deviation < 90:
        return "Good"
    return "Suboptimal"


def summarize_segments(segments: List[RoofSegment], max_capacity_kw: float) -> Dict[str, float]:
    """
    Installable capacity in watts per orientation class.

    Capacity is apportioned by segment area weighted by median sunshine.
    """
    weights = [segment.area_meters2 * segment.median_sunshine for segment in segments]
    total_weight = sum(weights)
    summary: Dict[str, float] = {}
    if total_weight <= 0:
        return summary
    for segment, weight in zip(segments, weights):
        key = orientation_class(segment.azimuth_degrees)
        share = max_capacity_kw * 1000 * weight / total_weight
        summary[key] = round(summary.get(key, 0.0) + share, 1)
    return summary


class OfflineRoofPotentialAdapter(OfflineAdapter[RoofPotentialParams, RoofPotential]):
    """Two fixed roof segments, a south-facing and an east-facing one."""

    service_name = SERVICE_NAME

    def generate(self, params: RoofPotentialParams) -> RoofPotential:
        capacity_kw = params.system_capacity or OFFLINE_MAX_CAPACITY_KW
        segments = [segment.model_copy(deep=True) for segment in OFFLINE_SEGMENTS]
        return RoofPotential(
            latitude=params.latitude,
            longitude=params.longitude,
            roof_segments=segments,
            max_array_area_meters2=OFFLINE_MAX_ARRAY_AREA_M2,
            max_capacity_kw=OFFLINE_MAX_CAPACITY_KW,
            panel_capacity_watts=OFFLINE_PANEL_CAPACITY_W,
            yearly_energy_dc_kwh=round(capacity_kw * OFFLINE_YIELD_KWH_PER_KW, 2),
            carbon_offset_factor_kg_per_mwh=DEFAULT_CARBON_FACTOR_KG_PER_MWH,
            roof_segment_summary=summarize_segments(segments, OFFLINE_MAX_CAPACITY_KW),
        )


class GoogleSolarAdapter(HttpEstimationAdapter[RoofPotentialParams, RoofPotential]):
    """Live client for ``buildingInsights:findClosest``."""

    service_name = SERVICE_NAME

    async def fetch(self, params: RoofPotentialParams) -> Dict[str, Any]:
        return await self._get_json(
            "/buildingInsights:findClosest",
            {
                "location.latitude": params.latitude,
                "location.longitude": params.longitude,
                "key": self.api_key,
            },
        )

    def parse(self, payload: Dict[str, Any], params: RoofPotentialParams) -> RoofPotential:
        potential = payload["solarPotential"]
        segments = [
            RoofSegment(
                pitch_degrees=stat.get("pitchDegrees", 0.0),
                azimuth_degrees=stat.get("azimuthDegrees", 0.0),
                area_meters2=stat["stats"]["areaMeters2"],
                ground_area_meters2=stat["stats"].get("groundAreaMeters2", stat["stats"]["areaMeters2"]),
                sunshine_quantiles=stat["stats"].get("sunshineQuantiles", []),
            )
            for stat in potential.get("roofSegmentStats", payload.get("roofSegmentStats", []))
        ]

        panel_watts = float(potential.get("panelCapacityWatts", OFFLINE_PANEL_CAPACITY_W))
        if "maxCapacityKw" in potential:
            max_capacity_kw = float(potential["maxCapacityKw"])
        else:
            max_capacity_kw = potential["maxArrayPanelsCount"] * panel_watts / 1000

        configs = potential.get("solarPanelConfigs") or []
        if "yearlyEnergyDcKwh" in potential:
            yearly_energy = float(potential["yearlyEnergyDcKwh"])
        elif configs:
            yearly_energy = float(configs[-1]["yearlyEnergyDcKwh"])
        else:
            yearly_energy = max_capacity_kw * OFFLINE_YIELD_KWH_PER_KW

        center = payload.get("center", {})
        return RoofPotential(
            latitude=center.get("latitude", params.latitude),
            longitude=center.get("longitude", params.longitude),
            roof_segments=segments,
            max_array_area_meters2=float(potential.get("maxArrayAreaMeters2", 0.0)),
            max_capacity_kw=round(max_capacity_kw, 2),
            panel_capacity_watts=panel_watts,
            yearly_energy_dc_kwh=round(yearly_energy, 2),
            carbon_offset_factor_kg_per_mwh=float(
                potential.get("carbonOffsetFactorKgPerMwh", DEFAULT_CARBON_FACTOR_KG_PER_MWH)
            ),
            roof_segment_summary=summarize_segments(segments, max_capacity_kw),
        )
