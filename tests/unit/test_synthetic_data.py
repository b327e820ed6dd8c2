"""
Unit tests for the synthetic data generator.
"""
import math
import random
from datetime import date

from solarlens.schemas.extraction import BillingPeriod, Pricing, ProposalFields, UtilityBillFields
from solarlens.services.synthetic_data import (
    FEDERAL_TAX_CREDIT_RATE,
    PANEL_BRANDS,
    SyntheticDataGenerator,
)


class TestProposalSynthesis:
    """Tests for filling proposal gaps."""

    def test_empty_proposal_is_completed(self, generator: SyntheticDataGenerator):
        fields, synthesized = generator.fill_proposal(None)

        assert fields.missing() == []
        assert "system_size" in synthesized
        assert "pricing.net_cost" in synthesized
        assert fields.panel_type in PANEL_BRANDS
        assert 5.0 <= fields.system_size <= 15.0

    def test_derived_values_follow_system_size(self, generator: SyntheticDataGenerator):
        fields, _ = generator.fill_proposal(ProposalFields(system_size=12.0))

        assert fields.panel_quantity == math.floor(12.0 * 1000 / fields.panel_wattage)
        assert fields.inverter_details.quantity == 3
        assert 12.0 * 1300 <= fields.estimated_production <= 12.0 * 1600

    def test_pricing_is_consistent(self, generator: SyntheticDataGenerator):
        fields, _ = generator.fill_proposal(ProposalFields(system_size=10.0, pricing=Pricing(total_cost=30000)))
        pricing = fields.pricing

        assert pricing.federal_tax_credit == round(30000 * FEDERAL_TAX_CREDIT_RATE)
        assert pricing.other_incentives == 0.0
        assert pricing.net_cost == round(
            pricing.total_cost - pricing.federal_tax_credit - pricing.state_rebates - pricing.other_incentives, 2
        )

    def test_existing_values_are_kept(self, generator: SyntheticDataGenerator):
        partial = ProposalFields(system_size=8.5, panel_type="SunPower", panel_wattage=340, panel_quantity=25)
        fields, synthesized = generator.fill_proposal(partial)

        assert (fields.system_size, fields.panel_type, fields.panel_wattage, fields.panel_quantity) == (
            8.5, "SunPower", 340, 25,
        )
        assert "system_size" not in synthesized
        assert "panel_type" not in synthesized
        # The input is not mutated
        assert partial.pricing is None

    def test_non_positive_values_are_replaced(self, generator: SyntheticDataGenerator):
        fields, synthesized = generator.fill_proposal(ProposalFields(system_size=8.0, panel_wattage=0))

        assert fields.panel_wattage > 0
        assert fields.panel_quantity == math.floor(8000 / fields.panel_wattage)
        assert "panel_wattage" in synthesized

        fields, synthesized = generator.fill_proposal(ProposalFields(system_size=0.0))
        assert fields.system_size >= 5.0
        assert "system_size" in synthesized

    def test_seeded_generators_agree(self):
        first, _ = SyntheticDataGenerator(rng=random.Random(7)).fill_proposal(None)
        second, _ = SyntheticDataGenerator(rng=random.Random(7)).fill_proposal(None)
        assert first == second


class TestUtilityBillSynthesis:
    """Tests for filling utility bill gaps."""

    def test_empty_bill_is_completed(self, generator: SyntheticDataGenerator):
        fields, synthesized = generator.fill_utility_bill(None)

        assert fields.missing() == []
        assert fields.billing_period.end_date == date(2024, 3, 31)
        assert fields.billing_period.start_date == date(2024, 3, 1)
        assert len(fields.account_number) == 10
        assert fields.total_amount == round(fields.energy_usage * fields.rate, 2)
        assert "energy_usage" in synthesized

    def test_rate_derived_from_total(self, generator: SyntheticDataGenerator):
        fields, synthesized = generator.fill_utility_bill(
            UtilityBillFields(total_amount=150.0, energy_usage=1000.0)
        )

        assert fields.rate == 0.15
        assert "rate" in synthesized
        assert "total_amount" not in synthesized

    def test_partial_billing_period(self, generator: SyntheticDataGenerator):
        fields, synthesized = generator.fill_utility_bill(
            UtilityBillFields(billing_period=BillingPeriod(end_date=date(2024, 2, 15)))
        )

        assert fields.billing_period.start_date == date(2024, 1, 16)
        assert "billing_period.start_date" in synthesized
        assert "billing_period.end_date" not in synthesized

    def test_charges_are_not_invented(self, generator: SyntheticDataGenerator):
        fields, _ = generator.fill_utility_bill(None)
        assert fields.demand_charges is None
        assert fields.taxes is None
        assert fields.fees is None
