"""
SREC and state incentive lookup through the SREC Trade API.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from solarlens.schemas.estimates import IncentiveEstimate, StateIncentive
from solarlens.services.estimation.base import HttpEstimationAdapter, OfflineAdapter

SERVICE_NAME = "srec_trade"

DEFAULT_SYSTEM_CAPACITY_KW = 10.0
DEFAULT_YIELD_KWH_PER_KW = 1400

# Current market price per SREC (one SREC per MWh generated), $/MWh
SREC_RATES: Dict[str, float] = {
    "MA": 275,
    "NJ": 225,
    "DC": 435,
    "MD": 75,
    "PA": 40,
    "OH": 15,
    "DE": 35,
    "IL": 70,
}

# name, type, $ per installed kW, details
STATE_PROGRAMS: Dict[str, List[tuple]] = {
    "CA": [(
        "Self-Generation Incentive Program (SGIP)", "rebate", 500,
        "Incentive for battery storage systems paired with solar",
    )],
    "NY": [(
        "NY-Sun Incentive Program", "rebate", 350,
        "Declining block incentive program for solar installations",
    )],
    "MA": [(
        "SMART Program", "production-based", 1200,
        "Solar Massachusetts Renewable Target (SMART) Program",
    )],
    "TX": [(
        "Austin Energy Rebate", "rebate", 2500,
        "Available only for Austin Energy customers",
    )],
}


@dataclass
class IncentiveParams:
    state: str
    system_capacity: Optional[float] = None
    annual_production: Optional[float] = None

    @property
    def capacity(self) -> float:
        return self.system_capacity or DEFAULT_SYSTEM_CAPACITY_KW

    @property
    def production(self) -> float:
        return self.annual_production or self.capacity * DEFAULT_YIELD_KWH_PER_KW

    @property
    def state_code(self) -> str:
        return (self.state or "").strip().upper()


def additional_incentives(state: str, system_capacity: float) -> List[StateIncentive]:
    return [
        StateIncentive(name=name, type=kind, amount=round(system_capacity * per_kw), details=details)
        for name, kind, per_kw, details in STATE_PROGRAMS.get(state, [])
    ]


class OfflineIncentiveAdapter(OfflineAdapter[IncentiveParams, IncentiveEstimate]):
    """Fixed per-state SREC prices and program list."""

    service_name = SERVICE_NAME

    def generate(self, params: IncentiveParams) -> IncentiveEstimate:
        state = params.state_code
        rate = SREC_RATES.get(state)
        eligible = rate is not None

        if eligible:
            value = round(params.production / 1000 * rate, 2)
            details = (
                f"{state} SREC program offers credits for every MWh (1000 kWh) of solar production. "
                f"Current market rate is approximately ${rate:g} per SREC."
            )
        else:
            rate, value = 0.0, 0.0
            details = f"{state or 'This state'} does not currently have an active SREC market."

        return IncentiveEstimate(
            state=state,
            system_capacity_kw=params.capacity,
            annual_production_kwh=params.production,
            srec_eligible=eligible,
            srec_rate=rate,
            estimated_annual_srec_value=value,
            srec_program_details=details,
            additional_incentives=additional_incentives(state, params.capacity),
        )


class SrecTradeAdapter(HttpEstimationAdapter[IncentiveParams, IncentiveEstimate]):
    """Live client for the SREC Trade ``incentives`` endpoint."""

    service_name = SERVICE_NAME

    async def fetch(self, params: IncentiveParams) -> Dict[str, Any]:
        return await self._get_json(
            "/incentives",
            {
                "state": params.state_code,
                "system_size": params.capacity,
                "annual_production": params.production,
            },
            headers={"Authorization": f"Bearer {self.api_key}"},
        )

    def parse(self, payload: Dict[str, Any], params: IncentiveParams) -> IncentiveEstimate:
        eligible = bool(payload["srec_eligible"])
        rate = float(payload.get("srec_rate") or 0) if eligible else 0.0
        value = payload.get("estimated_annual_srec_value")
        if value is None:
            value = params.production / 1000 * rate
        details = payload.get("srec_program_details") or (
            f"{params.state_code} SREC program" if eligible
            else f"{params.state_code} does not currently have an active SREC market."
        )
        return IncentiveEstimate(
            state=payload.get("state", params.state_code),
            system_capacity_kw=float(payload.get("system_capacity_kw", params.capacity)),
            annual_production_kwh=float(payload.get("annual_production_kwh", params.production)),
            srec_eligible=eligible,
            srec_rate=rate,
            estimated_annual_srec_value=round(float(value), 2) if eligible else 0.0,
            srec_program_details=details,
            additional_incentives=[
                StateIncentive.model_validate(item) for item in payload.get("additional_incentives", [])
            ],
        )
