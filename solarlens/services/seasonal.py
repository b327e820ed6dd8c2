"""
Monthly distribution tables for production and household consumption.

The two tables differ: production peaks in summer only,
while residential consumption peaks in both summer and winter.
"""
from typing import Dict, List

MONTHS: List[str] = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

_RAW_PRODUCTION_SHARES = [
    0.063, 0.074, 0.087, 0.097, 0.102, 0.101,
    0.102, 0.099, 0.093, 0.080, 0.065, 0.057,
]

# Normalized so the twelve shares add up to exactly one
PRODUCTION_DISTRIBUTION: Dict[str, float] = {
    month: share / sum(_RAW_PRODUCTION_SHARES)
    for month, share in zip(MONTHS, _RAW_PRODUCTION_SHARES)
}

USAGE_DISTRIBUTION: Dict[str, float] = {
    "January": 0.10,
    "February": 0.09,
    "March": 0.08,
    "April": 0.07,
    "May": 0.07,
    "June": 0.08,
    "July": 0.10,
    "August": 0.10,
    "September": 0.08,
    "October": 0.07,
    "November": 0.08,
    "December": 0.08,
}


def distribute(annual_total: float, distribution: Dict[str, float]) -> Dict[str, int]:
    """Split an annual total into whole-kWh monthly values."""
    return {month: round(annual_total * distribution[month]) for month in MONTHS}
