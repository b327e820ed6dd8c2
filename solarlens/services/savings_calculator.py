"""
Monthly breakdown and aggregate savings projections.

All functions are pure; the analysis engine feeds them the reconciled
inputs and stores what they return.
"""
from typing import Dict, List, Optional

from solarlens.schemas.results import MonthlyBreakdownEntry, SolarSavings
from solarlens.services.seasonal import MONTHS, USAGE_DISTRIBUTION, distribute

DEFAULT_SYSTEM_SIZE_KW = 10.0
DEFAULT_MONTHLY_USAGE_KWH = 1000.0
DEFAULT_RATE_PER_KWH = 0.15
FALLBACK_COST_PER_KW = 3000
UTILITY_INFLATION_RATE = 0.025
PROJECTION_YEARS = 20


def monthly_usage_series(
    energy_usage: float,
    monthly_usage: Optional[Dict[str, float]] = None,
) -> Dict[str, float]:
    """
    Consumption per month.

    A complete twelve-month series from the bill is used as is; otherwise one
    month's usage is annualized and spread over the residential usage curve.
    """
    if monthly_usage and all(month in monthly_usage for month in MONTHS):
        return {month: float(monthly_usage[month]) for month in MONTHS}
    return distribute(energy_usage * 12, USAGE_DISTRIBUTION)


def monthly_production_series(
    estimated: Dict[str, float],
    claimed: Optional[Dict[str, float]] = None,
) -> Dict[str, float]:
    """The proposal's own twelve-month production when complete, else the estimate."""
    if claimed and all(month in claimed for month in MONTHS):
        return {month: float(claimed[month]) for month in MONTHS}
    return estimated


def build_monthly_breakdown(
    monthly_production: Dict[str, float],
    monthly_usage: Dict[str, float],
    rate: float,
) -> List[MonthlyBreakdownEntry]:
    """Twelve entries, January first; surplus production never makes consumption negative."""
    breakdown = []
    for month in MONTHS:
        usage = monthly_usage.get(month, 0)
        production = monthly_production.get(month, 0)
        grid_consumption = max(0, usage - production)
        without_solar = round(usage * rate, 2)
        with_solar = round(grid_consumption * rate, 2)
        breakdown.append(
            MonthlyBreakdownEntry(
                month=month,
                solar_production=production,
                energy_usage=usage,
                grid_consumption=grid_consumption,
                utility_bill_with_solar=with_solar,
                utility_bill_without_solar=without_solar,
                savings=round(without_solar - with_solar, 2),
            )
        )
    return breakdown


def projected_savings(annual_savings: float, years: int = PROJECTION_YEARS) -> float:
    """Sum of annual savings grown by utility inflation, compounded yearly."""
    total = sum(annual_savings * (1 + UTILITY_INFLATION_RATE) ** year for year in range(years))
    return round(total, 2)


def payback_period(net_cost: float, annual_savings: float) -> Optional[float]:
    """Years to recover the net cost, or None when there are no savings to recover it with."""
    if annual_savings <= 0:
        return None
    return round(net_cost / annual_savings, 1)


def solar_offset(annual_production: float, annual_usage: float) -> Optional[float]:
    """Share of consumption covered by production, in percent, capped at 100."""
    if not annual_usage or annual_usage <= 0:
        return None
    return round(min(annual_production / annual_usage * 100, 100.0), 2)


def calculate_solar_savings(
    breakdown: List[MonthlyBreakdownEntry],
    net_cost: float,
) -> SolarSavings:
    annual = round(sum(entry.savings for entry in breakdown), 2)
    annual_production = sum(entry.solar_production for entry in breakdown)
    annual_usage = sum(entry.energy_usage for entry in breakdown)
    return SolarSavings(
        monthly_savings=round(annual / 12, 2),
        annual_savings=annual,
        twenty_year_savings=projected_savings(annual),
        payback_period=payback_period(net_cost, annual),
        net_system_cost=round(net_cost, 2),
        solar_offset_percentage=solar_offset(annual_production, annual_usage),
    )
