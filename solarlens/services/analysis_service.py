"""
Analysis engine: reconciles a proposal and a utility bill into a result.

Generation always leaves a durable record behind. The pending result is
written before any computation; unexpected failures while deriving the
analysis mark it as error instead of propagating.
"""
import asyncio
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional

import structlog
from sqlalchemy.orm import Session

from solarlens.config import Settings, get_settings
from solarlens.exceptions import ProposalNotFoundError, ReconciliationFailure, UtilityBillNotFoundError
from solarlens.models.proposal import Proposal
from solarlens.models.result import Result
from solarlens.models.user import User
from solarlens.models.utility_bill import UtilityBill
from solarlens.schemas.extraction import EnvironmentalImpact, ProposalFields, UtilityBillFields
from solarlens.schemas.results import Location, SolarPotentialSummary
from solarlens.services.environmental import EnvironmentalImpactService
from solarlens.services.estimation import (
    EstimationAdapters,
    IncentiveParams,
    ProductionParams,
    RoofPotentialParams,
)
from solarlens.services.extraction_pipeline import generate_document_id
from solarlens.services.result_lifecycle import ResultLifecycle
from solarlens.services.savings_calculator import (
    DEFAULT_MONTHLY_USAGE_KWH,
    DEFAULT_RATE_PER_KWH,
    DEFAULT_SYSTEM_SIZE_KW,
    FALLBACK_COST_PER_KW,
    build_monthly_breakdown,
    calculate_solar_savings,
    monthly_production_series,
    monthly_usage_series,
)

logger = structlog.get_logger(__name__)

ASSUMED_YIELD_KWH_PER_KW = 1400


@dataclass
class ResolvedLocation:
    latitude: float
    longitude: float
    state: str
    source: str


@dataclass
class AnalysisInputs:
    """Proposal and bill values after defaults are applied."""

    system_size: float
    claimed_production: Optional[float]
    claimed_monthly_production: Optional[Dict[str, float]]
    energy_usage: float
    monthly_usage: Optional[Dict[str, float]]
    rate: float
    net_cost: float
    location: ResolvedLocation


class AnalysisService:
    """
    Generates analysis results.

    Args:
        db: Database session.
        adapters: Masked roof potential, production and incentive adapters.
        impact_service: Environmental impact estimator (AI first, factors second).
    """

    def __init__(
        self,
        db: Session,
        adapters: EstimationAdapters,
        impact_service: Optional[EnvironmentalImpactService] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.adapters = adapters
        self.impact_service = impact_service or EnvironmentalImpactService()
        self.settings = settings or get_settings()
        self.lifecycle = ResultLifecycle(db)

    async def generate(
        self,
        proposal_id: uuid.UUID,
        utility_bill_id: uuid.UUID,
        user: User,
        location: Optional[Location] = None,
    ) -> Result:
        """
        Generate and store a new analysis.

        Raises:
            ProposalNotFoundError: The proposal does not exist or is not the user's.
            UtilityBillNotFoundError: The bill does not exist or is not the user's.

        Returns:
            The result, completed or, after an internal failure, in error.
        """
        proposal = self._load_proposal(proposal_id, user)
        bill = self._load_utility_bill(utility_bill_id, user)

        result = self.lifecycle.create_pending(user.id, proposal.id, bill.id)
        log = logger.bind(result_id=str(result.id), proposal_id=str(proposal.id), utility_bill_id=str(bill.id))

        try:
            inputs = self.resolve_inputs(proposal, bill, user, location)
            log.info("analysis_inputs_resolved", system_size=inputs.system_size, location_source=inputs.location.source)
            sections, adapter_sources = await self._derive(inputs)
            self.lifecycle.complete(result, sections, adapter_sources)
        except asyncio.CancelledError:
            self.lifecycle.fail(result, "Analysis cancelled")
            raise
        except Exception as e:
            failure = e if isinstance(e, ReconciliationFailure) else ReconciliationFailure(
                f"Failed to generate analysis results: {e}"
            )
            log.error("analysis_failed", error=str(e), error_type=type(e).__name__)
            self.lifecycle.fail(result, failure.message)
            return result

        log.info("analysis_completed", annual_savings=result.solar_savings["annual_savings"])
        return result

    def _load_proposal(self, proposal_id: uuid.UUID, user: User) -> Proposal:
        proposal = self.db.query(Proposal).filter(Proposal.id == proposal_id).first()
        if proposal is None or not user.can_access(proposal.user_id):
            raise ProposalNotFoundError(str(proposal_id))
        return proposal

    def _load_utility_bill(self, utility_bill_id: uuid.UUID, user: User) -> UtilityBill:
        bill = self.db.query(UtilityBill).filter(UtilityBill.id == utility_bill_id).first()
        if bill is None or not user.can_access(bill.user_id):
            raise UtilityBillNotFoundError(str(utility_bill_id))
        return bill

    def resolve_location(self, user: Optional[User], override: Optional[Location] = None) -> ResolvedLocation:
        """Explicit override, then the saved profile location, then the configured fallback."""
        profile_state = user.state if user is not None else None
        if override is not None:
            return ResolvedLocation(
                override.latitude,
                override.longitude,
                (override.state or profile_state or self.settings.fallback_state).upper(),
                "request",
            )
        if user is not None and user.has_location:
            return ResolvedLocation(
                user.latitude,
                user.longitude,
                (profile_state or self.settings.fallback_state).upper(),
                "profile",
            )
        return ResolvedLocation(
            self.settings.fallback_latitude,
            self.settings.fallback_longitude,
            (profile_state or self.settings.fallback_state).upper(),
            "fallback",
        )

    def resolve_inputs(
        self,
        proposal: Proposal,
        bill: UtilityBill,
        user: User,
        override: Optional[Location] = None,
    ) -> AnalysisInputs:
        proposal_fields = ProposalFields.model_validate(proposal.extracted_data or {})
        bill_fields = UtilityBillFields.model_validate(bill.extracted_data or {})

        system_size = proposal_fields.system_size or DEFAULT_SYSTEM_SIZE_KW
        pricing = proposal_fields.pricing
        if pricing is not None and pricing.net_cost is not None:
            net_cost = pricing.net_cost
        else:
            net_cost = system_size * FALLBACK_COST_PER_KW

        return AnalysisInputs(
            system_size=system_size,
            claimed_production=proposal_fields.estimated_production,
            claimed_monthly_production=proposal_fields.monthly_production,
            energy_usage=bill_fields.energy_usage or DEFAULT_MONTHLY_USAGE_KWH,
            monthly_usage=bill_fields.monthly_usage,
            rate=bill_fields.rate or DEFAULT_RATE_PER_KWH,
            net_cost=net_cost,
            location=self.resolve_location(user, override),
        )

    async def _derive(self, inputs: AnalysisInputs):
        location = inputs.location
        # Incentives need a production figure before PVWatts answers
        incentive_production = inputs.claimed_production or inputs.system_size * ASSUMED_YIELD_KWH_PER_KW

        roof, production, incentives = await asyncio.gather(
            self.adapters.roof_potential.call(
                RoofPotentialParams(location.latitude, location.longitude, inputs.system_size)
            ),
            self.adapters.production.call(
                ProductionParams(inputs.system_size, location.latitude, location.longitude)
            ),
            self.adapters.incentives.call(
                IncentiveParams(location.state, inputs.system_size, incentive_production)
            ),
        )
        adapter_sources = {
            "roof_potential": roof.provenance(),
            "production": production.provenance(),
            "incentives": incentives.provenance(),
        }
        masked = [name for name, source in adapter_sources.items() if source["error"]]
        if masked:
            logger.warning("analysis_used_masked_estimates", adapters=masked)

        annual_production = inputs.claimed_production or production.data.annual_production
        impact = await self.impact_service.estimate(
            inputs.system_size,
            annual_production,
            document_id=generate_document_id("environmental"),
            carbon_factor_kg_per_mwh=roof.data.carbon_offset_factor_kg_per_mwh,
            context={"State": location.state, "Latitude": location.latitude, "Longitude": location.longitude},
        )

        usage = monthly_usage_series(inputs.energy_usage, inputs.monthly_usage)
        monthly_production = monthly_production_series(
            production.data.monthly_production, inputs.claimed_monthly_production
        )
        breakdown = build_monthly_breakdown(monthly_production, usage, inputs.rate)
        savings = calculate_solar_savings(breakdown, inputs.net_cost)

        sections: Dict[str, Any] = {
            "solar_savings": savings.model_dump(mode="json"),
            "monthly_breakdown": [entry.model_dump(mode="json") for entry in breakdown],
            "environmental_impact": impact.model_dump(mode="json"),
            "solar_potential": SolarPotentialSummary.from_roof_potential(roof.data).model_dump(mode="json"),
            "solar_production": production.data.model_dump(mode="json"),
            "srec_incentives": incentives.data.model_dump(mode="json"),
        }
        return sections, adapter_sources

    async def environmental_impact_for_result(self, result: Result, user: User) -> Dict[str, Any]:
        """
        Stored impact of a result, or a fresh estimate from its proposal when
        the analysis ended in error. The result itself is not modified.
        """
        if result.environmental_impact:
            return result.environmental_impact
        proposal = self._load_proposal(result.proposal_id, user)
        fields = ProposalFields.model_validate(proposal.extracted_data or {})
        owner = self.db.get(User, result.user_id) or user
        impact = await self.estimate_environmental_impact(
            fields.system_size or DEFAULT_SYSTEM_SIZE_KW,
            fields.estimated_production,
            user=owner,
        )
        return impact.model_dump(mode="json")

    async def estimate_environmental_impact(
        self,
        system_size: float,
        annual_production: Optional[float] = None,
        location: Optional[Location] = None,
        user: Optional[User] = None,
    ) -> EnvironmentalImpact:
        """
        Standalone impact estimate.

        Production falls back to the production adapter; the carbon factor
        comes from the roof potential adapter at the resolved location.
        """
        resolved = self.resolve_location(user, location)
        roof = await self.adapters.roof_potential.call(
            RoofPotentialParams(resolved.latitude, resolved.longitude, system_size)
        )
        if not annual_production:
            production = await self.adapters.production.call(
                ProductionParams(system_size, resolved.latitude, resolved.longitude)
            )
            annual_production = production.data.annual_production or system_size * ASSUMED_YIELD_KWH_PER_KW

        return await self.impact_service.estimate(
            system_size,
            annual_production,
            document_id=generate_document_id("environmental"),
            carbon_factor_kg_per_mwh=roof.data.carbon_offset_factor_kg_per_mwh,
        )
