"""
Pattern-based field extraction for proposals and utility bills.

Each extractor owns an ordered list of regular expressions; the first match
wins. Extractors are pure: the same text always yields the same values, and
a field that cannot be found comes back as None.
"""
import re
from typing import Dict, List, Optional, Pattern, Tuple

import structlog

from solarlens.schemas.extraction import (
    BillingPeriod,
    InverterDetails,
    Pricing,
    ProposalFields,
    UtilityBillFields,
    parse_date,
)
from solarlens.services.seasonal import MONTHS

logger = structlog.get_logger(__name__)

INTEGER = r"(\d{1,3}(?:,\d{3})+|\d+)"
AMOUNT = r"(\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?)"

KNOWN_UTILITIES = [
    "Pacific Gas and Electric", "PG&E",
    "Southern California Edison", "SCE",
    "San Diego Gas & Electric", "SDG&E",
    "Duke Energy",
    "Dominion Energy",
    "Florida Power & Light", "FPL",
    "Exelon",
    "American Electric Power", "AEP",
    "Xcel Energy",
    "Entergy",
    "Consolidated Edison", "ConEd",
    "FirstEnergy",
    "PPL",
    "Ameren",
    "DTE Energy",
    "CenterPoint Energy",
    "National Grid",
    "PSEG",
    "Evergy",
    "CPS Energy",
    "Austin Energy",
    "Salt River Project", "SRP",
    "SMUD",
    "LADWP",
    "NV Energy",
]


def _compile(*patterns: str, flags: int = re.IGNORECASE) -> List[Pattern]:
    return [re.compile(p, flags) for p in patterns]


# Proposal patterns
SYSTEM_SIZE_PATTERNS = _compile(
    r"system size[:\s]*(\d+(?:\.\d+)?)\s*kw",
    r"(\d+(?:\.\d+)?)\s*kw\s*system",
    r"(\d+(?:\.\d+)?)\s*kilowatt",
)
PANEL_TYPE_PATTERN = re.compile(r"([A-Za-z][\w-]*)\s+(\d{3})\s*W\b", re.IGNORECASE)
PANEL_WATTAGE_PATTERN = re.compile(
    r"(?:panel|module)s?\s*(?:wattage|rating|power|size)?[:\s]*(\d{3})\s*W\b", re.IGNORECASE
)
PANEL_QUANTITY_PATTERN = re.compile(r"(\d+)\s*(?:x|pcs|pieces|panels)\b", re.IGNORECASE)
PRODUCTION_PATTERNS = _compile(
    r"estimated\s*(?:annual)?\s*production[:\s]*" + INTEGER + r"\s*kwh",
    INTEGER + r"\s*kwh\s*(?:per|/)\s*year",
    r"annual\s*production[:\s]*" + INTEGER,
)
MONTHLY_KWH_PATTERNS = {
    month: re.compile(rf"\b{month[:3]}(?:{month[3:]})?\b\.?[:\s-]*" + INTEGER + r"\s*kwh", re.IGNORECASE)
    for month in MONTHS
}
PRICING_PATTERNS = {
    "total_cost": re.compile(r"total\s*(?:system)?\s*cost[:\s]*\$?" + AMOUNT, re.IGNORECASE),
    "federal_tax_credit": re.compile(r"federal\s*tax\s*credit[:\s]*\$?" + AMOUNT, re.IGNORECASE),
    "state_rebates": re.compile(r"state\s*rebates?[:\s]*\$?" + AMOUNT, re.IGNORECASE),
    "other_incentives": re.compile(r"other\s*incentives?[:\s]*\$?" + AMOUNT, re.IGNORECASE),
    "net_cost": re.compile(r"net\s*cost[:\s]*\$?" + AMOUNT, re.IGNORECASE),
}
INVERTER_TYPE_PATTERN = re.compile(r"inverter[:\s]*([A-Za-z][\w-]*)", re.IGNORECASE)
INVERTER_MODEL_PATTERN = re.compile(r"model[:\s]*([\w-]+)", re.IGNORECASE)
INVERTER_QUANTITY_PATTERN = re.compile(r"(\d+)\s*(?:x|pcs|pieces)?\s*inverters\b", re.IGNORECASE)

# Utility bill patterns
UTILITY_NAME_PATTERN = re.compile(r"([A-Z][A-Za-z&\s]+)(?:Utilities|Power|Energy|Electric)")
BILLING_PERIOD_PATTERNS = _compile(
    r"billing period:?\s*(\d{1,2}/\d{1,2}/\d{2,4})\s*(?:to|-|through)\s*(\d{1,2}/\d{1,2}/\d{2,4})",
    r"(?:from|period)?\s*(\d{1,2}[-/]\d{1,2}[-/]\d{2,4})\s*(?:to|through|thru|-)\s*(\d{1,2}[-/]\d{1,2}[-/]\d{2,4})",
)
ACCOUNT_NUMBER_PATTERNS = _compile(
    r"account\s*(?:number|#|no)\.?:?\s*(\d[\d-]+\d)",
    r"account:?\s*(\d[\d-]+\d)",
    r"customer\s*(?:number|#|no)\.?:?\s*(\d[\d-]+\d)",
)
TOTAL_AMOUNT_PATTERNS = _compile(
    r"total\s*amount\s*due:?\s*\$?\s*" + AMOUNT,
    r"amount\s*due:?\s*\$?\s*" + AMOUNT,
    r"total:?\s*\$?\s*" + AMOUNT,
    r"please\s*pay:?\s*\$?\s*" + AMOUNT,
)
USAGE_PATTERNS = _compile(
    r"total\s*(?:energy|electricity)\s*usage:?\s*" + INTEGER + r"\s*kwh",
    INTEGER + r"\s*kwh\s*(?:used|consumed|total)",
    r"usage:?\s*" + INTEGER + r"\s*kwh",
    r"electricity\s*used:?\s*" + INTEGER + r"\s*kwh",
)
RATE_PATTERNS = _compile(
    r"rate:?\s*\$?\s*(\d+(?:\.\d+)?)\s*(?:per|/)\s*kwh",
    r"\$?\s*(\d+(?:\.\d+)?)\s*(?:per|/)\s*kwh",
    r"kwh\s*(?:costs?|rate):?\s*\$?\s*(\d+(?:\.\d+)?)",
)
DEMAND_CHARGE_PATTERNS = _compile(r"demand\s*charges?:?\s*\$?\s*" + AMOUNT)
TAX_PATTERNS = _compile(r"(?:total\s*)?taxes:?\s*\$?\s*" + AMOUNT, r"\btax:?\s*\$?\s*" + AMOUNT)
FEE_PATTERNS = _compile(r"(?:total\s*)?fees:?\s*\$?\s*" + AMOUNT, r"\bfee:?\s*\$?\s*" + AMOUNT)


def parse_number(raw: str) -> float:
    """Parse a matched number, dropping thousands separators."""
    return float(raw.replace(",", ""))


def first_match(text: str, patterns: List[Pattern]) -> Optional[re.Match]:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match
    return None


def _first_number(text: str, patterns: List[Pattern]) -> Optional[float]:
    match = first_match(text, patterns)
    return parse_number(match.group(1)) if match else None


# Proposal extractors

def extract_system_size(text: str) -> Optional[float]:
    """System size in kW."""
    return _first_number(text, SYSTEM_SIZE_PATTERNS)


def extract_panel_details(text: str) -> Tuple[Optional[str], Optional[int], Optional[int]]:
    """
    Panel type, wattage and quantity.

    A brand followed by a three-digit rating ("SunPower 400W") gives type and
    wattage; a bare "Module: 400W" line gives the wattage only. Quantity is
    read only when a wattage was found.
    """
    match = PANEL_TYPE_PATTERN.search(text)
    if match:
        panel_type, wattage = match.group(1), int(match.group(2))
    else:
        match = PANEL_WATTAGE_PATTERN.search(text)
        if not match:
            return None, None, None
        panel_type, wattage = None, int(match.group(1))
    quantity_match = PANEL_QUANTITY_PATTERN.search(text)
    quantity = int(quantity_match.group(1)) if quantity_match else None
    return panel_type, wattage, quantity


def extract_estimated_production(text: str) -> Optional[int]:
    """Estimated annual production in kWh."""
    value = _first_number(text, PRODUCTION_PATTERNS)
    return int(value) if value is not None else None


def extract_monthly_series(text: str) -> Optional[Dict[str, float]]:
    """
    A kWh figure per month ("Jan: 850 kWh", "February 910 kWh").

    Returns:
        The twelve values keyed by full month name, or None unless every month was found.
    """
    series = {}
    for month, pattern in MONTHLY_KWH_PATTERNS.items():
        match = pattern.search(text)
        if not match:
            return None
        series[month] = parse_number(match.group(1))
    return series


def extract_pricing(text: str) -> Optional[Pricing]:
    values = {}
    for name, pattern in PRICING_PATTERNS.items():
        match = pattern.search(text)
        if match:
            values[name] = parse_number(match.group(1))
    return Pricing(**values) if values else None


def extract_inverter_details(text: str) -> Optional[InverterDetails]:
    type_match = INVERTER_TYPE_PATTERN.search(text)
    model_match = INVERTER_MODEL_PATTERN.search(text)
    if not (type_match or model_match):
        return None
    quantity_match = INVERTER_QUANTITY_PATTERN.search(text)
    return InverterDetails(
        type=type_match.group(1) if type_match else None,
        model=model_match.group(1) if model_match else None,
        quantity=int(quantity_match.group(1)) if quantity_match else None,
    )


def extract_proposal_fields(text: str) -> Optional[ProposalFields]:
    """
    Run every proposal extractor over the text.

    Returns:
        ProposalFields with whatever was found, or None when nothing matched.
    """
    panel_type, panel_wattage, panel_quantity = extract_panel_details(text)
    fields = ProposalFields(
        system_size=extract_system_size(text),
        panel_type=panel_type,
        panel_wattage=panel_wattage,
        panel_quantity=panel_quantity,
        estimated_production=extract_estimated_production(text),
        monthly_production=extract_monthly_series(text),
        inverter_details=extract_inverter_details(text),
        pricing=extract_pricing(text),
    )
    found = [name for name, value in fields if value is not None]
    logger.debug("proposal_patterns_matched", fields=found)
    return fields if found else None


# Utility bill extractors

def extract_utility_company(text: str) -> Optional[str]:
    """Known utility names first, then a capitalised "... Energy/Power/Electric" phrase."""
    for utility in KNOWN_UTILITIES:
        if re.search(rf"\b{re.escape(utility)}\b", text, re.IGNORECASE):
            return utility
    match = UTILITY_NAME_PATTERN.search(text)
    if match:
        return match.group(1).strip() or None
    return None


def extract_billing_period(text: str) -> Optional[BillingPeriod]:
    for pattern in BILLING_PERIOD_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        start, end = parse_date(match.group(1)), parse_date(match.group(2))
        if start and end:
            return BillingPeriod(start_date=start, end_date=end)
    return None


def extract_account_number(text: str) -> Optional[str]:
    match = first_match(text, ACCOUNT_NUMBER_PATTERNS)
    return match.group(1) if match else None


def extract_total_amount(text: str) -> Optional[float]:
    return _first_number(text, TOTAL_AMOUNT_PATTERNS)


def extract_energy_usage(text: str) -> Optional[float]:
    return _first_number(text, USAGE_PATTERNS)


def extract_rate(text: str) -> Optional[float]:
    return _first_number(text, RATE_PATTERNS)


def derive_rate(total_amount: Optional[float], energy_usage: Optional[float]) -> Optional[float]:
    """Back-derive $/kWh from the bill total when the rate is not printed."""
    if total_amount is None or not energy_usage:
        return None
    return round(total_amount / energy_usage, 4)


def extract_utility_bill_fields(text: str) -> Optional[UtilityBillFields]:
    """
    Run every utility bill extractor over the text.

    Returns:
        UtilityBillFields with whatever was found, or None when nothing matched.
    """
    total_amount = extract_total_amount(text)
    energy_usage = extract_energy_usage(text)
    rate = extract_rate(text)
    if rate is None:
        rate = derive_rate(total_amount, energy_usage)

    fields = UtilityBillFields(
        utility_company=extract_utility_company(text),
        billing_period=extract_billing_period(text),
        account_number=extract_account_number(text),
        total_amount=total_amount,
        energy_usage=energy_usage,
        monthly_usage=extract_monthly_series(text),
        rate=rate,
        demand_charges=_first_number(text, DEMAND_CHARGE_PATTERNS),
        taxes=_first_number(text, TAX_PATTERNS),
        fees=_first_number(text, FEE_PATTERNS),
    )
    found = [name for name, value in fields if value is not None]
    logger.debug("utility_bill_patterns_matched", fields=found)
    return fields if found else None
