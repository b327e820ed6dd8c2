"""
Pydantic schemas for fields extracted from proposals and utility bills.

Every field is optional: each extraction tier fills what it can and the
pipeline merges tiers until the required set is complete.
"""
from datetime import date, datetime
from enum import Enum
from typing import ClassVar, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%m/%d/%y", "%m-%d-%Y", "%m-%d-%y")


class DataSource(str, Enum):
    """Extraction tier that supplied a document's primary field."""

    OPENAI = "openai"
    PATTERN_EXTRACTION = "pattern-extraction"
    FALLBACK_GENERATION = "fallback-generation"


def parse_date(value: str) -> Optional[date]:
    """Parse a date in any of the formats found on bills, or return None."""
    cleaned = value.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    return None


def missing_fields(model: BaseModel, required: List[str], prefix: str = "") -> List[str]:
    """
    List required fields that are still None.

    Nested models count as present only when all of their own fields are set,
    and are reported by dotted path (e.g. ``pricing.net_cost``).
    """
    missing = []
    for name in required:
        value = getattr(model, name)
        path = f"{prefix}{name}"
        if value is None:
            missing.append(path)
        elif isinstance(value, BaseModel):
            missing.extend(missing_fields(value, list(type(value).model_fields), f"{path}."))
    return missing


class InverterDetails(BaseModel):
    """Inverter information from a proposal."""

    type: Optional[str] = Field(None, description="Inverter manufacturer or type")
    model: Optional[str] = Field(None, description="Inverter model")
    quantity: Optional[int] = Field(None, description="Number of inverters")


class Pricing(BaseModel):
    """Proposal pricing in dollars."""

    total_cost: Optional[float] = Field(None, description="System cost before incentives")
    federal_tax_credit: Optional[float] = Field(None, description="Federal tax credit amount")
    state_rebates: Optional[float] = Field(None, description="State rebates or incentives")
    other_incentives: Optional[float] = Field(None, description="Other incentives")
    net_cost: Optional[float] = Field(None, description="Cost after incentives")


class ProposalFields(BaseModel):
    """Structured fields of a solar sales proposal."""

    REQUIRED: ClassVar[List[str]] = [
        "system_size",
        "panel_type",
        "panel_wattage",
        "panel_quantity",
        "estimated_production",
        "inverter_details",
        "pricing",
    ]

    system_size: Optional[float] = Field(None, description="System size in kW")
    panel_type: Optional[str] = Field(None, description="Panel brand and model")
    panel_wattage: Optional[int] = Field(None, description="Panel rating in watts")
    panel_quantity: Optional[int] = Field(None, description="Number of panels")
    estimated_production: Optional[int] = Field(None, description="Estimated annual production in kWh")
    monthly_production: Optional[Dict[str, float]] = Field(None, description="Production per month name in kWh")
    inverter_details: Optional[InverterDetails] = None
    pricing: Optional[Pricing] = None

    def missing(self) -> List[str]:
        return missing_fields(self, self.REQUIRED)


class BillingPeriod(BaseModel):
    """Start and end of a billing period."""

    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_text_date(cls, v):
        if isinstance(v, str):
            return parse_date(v)
        return v


class UtilityBillFields(BaseModel):
    """Structured fields of a utility bill."""

    REQUIRED: ClassVar[List[str]] = [
        "utility_company",
        "billing_period",
        "account_number",
        "total_amount",
        "energy_usage",
        "rate",
    ]

    utility_company: Optional[str] = Field(None, description="Utility company name")
    billing_period: Optional[BillingPeriod] = None
    account_number: Optional[str] = Field(None, description="Customer account number")
    total_amount: Optional[float] = Field(None, description="Amount due in dollars")
    energy_usage: Optional[float] = Field(None, description="Energy used in the period in kWh")
    monthly_usage: Optional[Dict[str, float]] = Field(None, description="Usage per month name in kWh")
    rate: Optional[float] = Field(None, description="Electricity rate in $/kWh")
    demand_charges: Optional[float] = Field(None, description="Demand charges in dollars")
    taxes: Optional[float] = Field(None, description="Taxes in dollars")
    fees: Optional[float] = Field(None, description="Fees in dollars")

    def missing(self) -> List[str]:
        return missing_fields(self, self.REQUIRED)


class EnvironmentalImpact(BaseModel):
    """Avoided emissions and everyday equivalences for a system."""

    carbon_offset_annual: float = Field(..., description="Tons of CO2 avoided per year")
    carbon_offset_lifetime: float = Field(..., description="Tons of CO2 avoided over the panel lifetime")
    trees_planted_equivalent: int
    miles_not_driven_equivalent: int
    coal_not_burned_pounds: int
    carbon_offset_factor_kg_per_mwh: float
    estimated_production: Optional[float] = Field(None, description="Annual production used, in kWh")
    data_source: str = Field(..., description="openai or system-calculated")
    explanation: str = ""
