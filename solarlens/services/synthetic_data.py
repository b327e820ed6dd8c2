"""
Synthetic values for fields that no extraction tier could resolve.

Values are drawn from realistic residential ranges. Fields that are already
present are never overwritten (a non-positive size or wattage counts as missing), and synthesized values are derived from them
where a relationship exists (panel count from system size, net cost from
the pricing components, bill total from usage and rate).
"""
import math
import random
from datetime import date, timedelta
from typing import Callable, List, Optional, Tuple

import structlog

from solarlens.schemas.extraction import (
    BillingPeriod,
    InverterDetails,
    Pricing,
    ProposalFields,
    UtilityBillFields,
)
from solarlens.services.field_extractors import KNOWN_UTILITIES, derive_rate

logger = structlog.get_logger(__name__)

PANEL_BRANDS = ["SunPower", "LG", "Panasonic", "Canadian Solar", "Jinko Solar", "JA Solar"]
PANEL_WATTAGES = [360, 370, 380, 390, 400, 410, 420]
INVERTER_TYPES = ["SolarEdge", "Enphase", "SMA", "Fronius", "ABB"]
INVERTER_MODELS = ["SE7600", "IQ7+", "Sunny Boy", "Primo", "UNO"]

SYSTEM_SIZE_RANGE_KW = (5.0, 15.0)
YIELD_RANGE_KWH_PER_KW = (1300, 1600)
PRICE_PER_WATT_RANGE = (2.5, 4.0)
FEDERAL_TAX_CREDIT_RATE = 0.30
STATE_REBATE_RANGE = (0.0, 0.10)
KW_PER_INVERTER = 5
USAGE_RANGE_KWH = (500, 1500)
RATE_RANGE = (0.12, 0.35)
BILLING_PERIOD_DAYS = 30
ACCOUNT_NUMBER_DIGITS = 10


class SyntheticDataGenerator:
    """
    Fills the gaps left after AI and pattern extraction.

    Args:
        rng: Random source; tests pass a seeded ``random.Random``.
        today: Date provider for the trailing billing window.
    """

    def __init__(self, rng: Optional[random.Random] = None, today: Optional[Callable[[], date]] = None):
        self.rng = rng or random.Random()
        self.today = today or date.today

    def fill_proposal(self, partial: Optional[ProposalFields]) -> Tuple[ProposalFields, List[str]]:
        """
        Complete a proposal.

        Returns:
            The completed fields and the dotted names of every synthesized field.
        """
        fields = partial.model_copy(deep=True) if partial else ProposalFields()
        synthesized: List[str] = []

        if fields.system_size is None or fields.system_size <= 0:
            fields.system_size = round(self.rng.uniform(*SYSTEM_SIZE_RANGE_KW), 2)
            synthesized.append("system_size")
        size = fields.system_size

        if fields.panel_type is None:
            fields.panel_type = self.rng.choice(PANEL_BRANDS)
            synthesized.append("panel_type")
        if fields.panel_wattage is None or fields.panel_wattage <= 0:
            fields.panel_wattage = self.rng.choice(PANEL_WATTAGES)
            synthesized.append("panel_wattage")
        if fields.panel_quantity is None:
            fields.panel_quantity = math.floor(size * 1000 / fields.panel_wattage)
            synthesized.append("panel_quantity")

        if fields.estimated_production is None:
            fields.estimated_production = round(size * self.rng.uniform(*YIELD_RANGE_KWH_PER_KW))
            synthesized.append("estimated_production")

        inverter = fields.inverter_details or InverterDetails()
        if inverter.type is None:
            inverter.type = self.rng.choice(INVERTER_TYPES)
            synthesized.append("inverter_details.type")
        if inverter.model is None:
            inverter.model = self.rng.choice(INVERTER_MODELS)
            synthesized.append("inverter_details.model")
        if inverter.quantity is None:
            inverter.quantity = math.ceil(size / KW_PER_INVERTER)
            synthesized.append("inverter_details.quantity")
        fields.inverter_details = inverter

        fields.pricing = self._fill_pricing(fields.pricing or Pricing(), size, synthesized)

        if synthesized:
            logger.info("proposal_fields_synthesized", fields=synthesized)
        return fields, synthesized

    def _fill_pricing(self, pricing: Pricing, size: float, synthesized: List[str]) -> Pricing:
        if pricing.total_cost is None:
            price_per_watt = self.rng.uniform(*PRICE_PER_WATT_RANGE)
            pricing.total_cost = float(round(size * 1000 * price_per_watt))
            synthesized.append("pricing.total_cost")
        total = pricing.total_cost

        if pricing.federal_tax_credit is None:
            pricing.federal_tax_credit = float(round(total * FEDERAL_TAX_CREDIT_RATE))
            synthesized.append("pricing.federal_tax_credit")
        if pricing.state_rebates is None:
            pricing.state_rebates = float(round(total * self.rng.uniform(*STATE_REBATE_RANGE)))
            synthesized.append("pricing.state_rebates")
        if pricing.other_incentives is None:
            pricing.other_incentives = 0.0
            synthesized.append("pricing.other_incentives")
        if pricing.net_cost is None:
            pricing.net_cost = round(
                total - pricing.federal_tax_credit - pricing.state_rebates - pricing.other_incentives, 2
            )
            synthesized.append("pricing.net_cost")
        return pricing

    def fill_utility_bill(self, partial: Optional[UtilityBillFields]) -> Tuple[UtilityBillFields, List[str]]:
        """
        Complete a utility bill.

        Demand charges, taxes and fees are left as extracted; they are not
        needed downstream and inventing them would distort the bill total.

        Returns:
            The completed fields and the dotted names of every synthesized field.
        """
        fields = partial.model_copy(deep=True) if partial else UtilityBillFields()
        synthesized: List[str] = []

        if fields.utility_company is None:
            fields.utility_company = self.rng.choice(KNOWN_UTILITIES)
            synthesized.append("utility_company")

        period = fields.billing_period or BillingPeriod()
        if period.end_date is None:
            period.end_date = self.today()
            synthesized.append("billing_period.end_date")
        if period.start_date is None:
            period.start_date = period.end_date - timedelta(days=BILLING_PERIOD_DAYS)
            synthesized.append("billing_period.start_date")
        fields.billing_period = period

        if fields.account_number is None:
            fields.account_number = "".join(str(self.rng.randint(0, 9)) for _ in range(ACCOUNT_NUMBER_DIGITS))
            synthesized.append("account_number")

        if fields.energy_usage is None:
            fields.energy_usage = float(round(self.rng.uniform(*USAGE_RANGE_KWH)))
            synthesized.append("energy_usage")

        if fields.rate is None:
            fields.rate = derive_rate(fields.total_amount, fields.energy_usage)
            if fields.rate is None:
                fields.rate = round(self.rng.uniform(*RATE_RANGE), 4)
            synthesized.append("rate")

        if fields.total_amount is None:
            fields.total_amount = round(fields.energy_usage * fields.rate, 2)
            synthesized.append("total_amount")

        if synthesized:
            logger.info("utility_bill_fields_synthesized", fields=synthesized)
        return fields, synthesized
