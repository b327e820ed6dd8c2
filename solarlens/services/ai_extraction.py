"""
Structured field extraction with an OpenAI chat model.

The adapter never raises to its callers: an unconfigured key, a failed call or
an unparseable response all come back as None so the pipeline can fall through
to pattern extraction and synthesis.
"""
import json
import time
from typing import Any, Dict, Optional, Type, TypeVar

import structlog
from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError

from solarlens.config import get_settings, is_configured
from solarlens.schemas.extraction import EnvironmentalImpact, ProposalFields, UtilityBillFields
from solarlens.services.audit_log import ExtractionAuditLog, JsonFileAuditLog

logger = structlog.get_logger(__name__)

T = TypeVar("T", bound=BaseModel)

RAW_TEXT_SAMPLE_CHARS = 500

# USD per 1K tokens (input, output)
MODEL_PRICING = {
    "gpt-3.5-turbo": (0.0005, 0.0015),
    "gpt-4o-mini": (0.00015, 0.0006),
    "gpt-4o": (0.0025, 0.01),
}

PROPOSAL_SYSTEM_PROMPT = "You are a solar proposal analysis assistant that extracts structured data."
PROPOSAL_PROMPT = """Extract the following information from this solar proposal document:
- System size in kW
- Panel type and wattage
- Number of panels
- Estimated annual production in kWh
- Monthly production in kWh, if the proposal lists every month
- Inverter type, model and quantity
- Total system cost (before incentives)
- Federal tax credit amount
- State rebates or incentives amount
- Net cost after incentives

Format your response as JSON with these fields:
{
  "system_size": (number in kW),
  "panel_type": (string with brand and model),
  "panel_wattage": (number in watts),
  "panel_quantity": (number of panels),
  "estimated_production": (number in kWh per year),
  "monthly_production": {"January": (number in kWh), ..., "December": (number in kWh)},
  "inverter_details": {"type": (string), "model": (string), "quantity": (number)},
  "pricing": {
    "total_cost": (number in dollars),
    "federal_tax_credit": (number in dollars),
    "state_rebates": (number in dollars),
    "other_incentives": (number in dollars),
    "net_cost": (number in dollars)
  }
}

If you can't find a specific piece of information, use null for that field.
Do not include any explanations, just the JSON object."""

UTILITY_SYSTEM_PROMPT = "You are a utility bill analysis assistant that extracts structured data."
UTILITY_PROMPT = """Extract the following information from this utility bill:
- Utility company name
- Billing period start and end dates
- Account number
- Total amount due
- Total energy usage in kWh for the period
- Monthly usage history in kWh, if the bill shows every month
- Electricity rate per kWh
- Demand charges, taxes and fees

Format your response as JSON with these fields:
{
  "utility_company": (string),
  "billing_period": {"start_date": (YYYY-MM-DD), "end_date": (YYYY-MM-DD)},
  "account_number": (string),
  "total_amount": (number in dollars),
  "energy_usage": (number in kWh),
  "monthly_usage": {"January": (number in kWh), ..., "December": (number in kWh)},
  "rate": (number in dollars per kWh),
  "demand_charges": (number in dollars),
  "taxes": (number in dollars),
  "fees": (number in dollars)
}

If you can't find a specific piece of information, use null for that field.
Do not include any explanations, just the JSON object."""

ENVIRONMENTAL_SYSTEM_PROMPT = "You are an environmental impact calculation assistant for solar energy."
ENVIRONMENTAL_PROMPT = """Calculate the environmental impact of a residential solar system.

System size: {system_size} kW
Estimated annual production: {annual_production} kWh
{context}
Format your response as JSON with these fields:
{{
  "carbon_offset_annual": (number in tons of CO2),
  "carbon_offset_lifetime": (number in tons of CO2 over 25 years),
  "trees_planted_equivalent": (number of trees),
  "miles_not_driven_equivalent": (number of miles),
  "coal_not_burned_pounds": (number in lbs),
  "carbon_offset_factor_kg_per_mwh": (number, kg CO2 per MWh),
  "explanation": (brief explanation of how values were calculated)
}}

Base your calculations on the standard environmental conversion factors used in the solar industry.
Do not include any explanations outside of the JSON, just return the JSON object."""

INTEGER_IMPACT_FIELDS = ("trees_planted_equivalent", "miles_not_driven_equivalent", "coal_not_burned_pounds")


class AIExtractionService:
    """
    OpenAI-backed extraction of proposal, utility bill and impact fields.

    Input text is cut to ``max_input_chars`` before it is sent. Each attempt is
    written to the audit log under the document's correlation id.
    """

    TEMPERATURE = 0.3
    ENVIRONMENTAL_TEMPERATURE = 0.2

    def __init__(
        self,
        audit_log: ExtractionAuditLog,
        client: Optional[AsyncOpenAI] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_input_chars: Optional[int] = None,
    ):
        settings = get_settings()
        self.audit_log = audit_log
        self.model = model or settings.openai_model
        self.max_input_chars = max_input_chars or settings.ai_max_input_chars
        self._client = client

        if self._client is None:
            key = api_key if api_key is not None else settings.openai_api_key
            if is_configured(key):
                self._client = AsyncOpenAI(api_key=key, timeout=settings.openai_timeout_seconds)
            else:
                logger.warning("openai_not_configured")

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    async def extract_proposal_fields(self, text: str, document_id: str) -> Optional[ProposalFields]:
        """Extract proposal fields, or None when the AI tier has nothing to offer."""
        return await self._extract("proposal", PROPOSAL_SYSTEM_PROMPT, PROPOSAL_PROMPT, text, document_id, ProposalFields)

    async def extract_utility_fields(self, text: str, document_id: str) -> Optional[UtilityBillFields]:
        """Extract utility bill fields, or None when the AI tier has nothing to offer."""
        return await self._extract("utility_bill", UTILITY_SYSTEM_PROMPT, UTILITY_PROMPT, text, document_id, UtilityBillFields)

    async def estimate_environmental_impact(
        self,
        system_size: float,
        annual_production: float,
        document_id: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> Optional[EnvironmentalImpact]:
        """
        Ask the model for an environmental impact estimate.

        A response missing any numeric field counts as a parse failure.
        """
        if not self.is_configured:
            logger.info("openai_not_configured_skipping", document_type="environmental")
            return None

        context_lines = "".join(f"{key}: {value}\n" for key, value in (context or {}).items())
        prompt = ENVIRONMENTAL_PROMPT.format(
            system_size=system_size,
            annual_production=annual_production,
            context=context_lines,
        )
        data = await self._complete(
            "environmental", ENVIRONMENTAL_SYSTEM_PROMPT, prompt, document_id, self.ENVIRONMENTAL_TEMPERATURE
        )
        if data is None:
            return None

        try:
            for name in INTEGER_IMPACT_FIELDS:
                if isinstance(data.get(name), float):
                    data[name] = round(data[name])
            impact = EnvironmentalImpact.model_validate(
                {**data, "estimated_production": annual_production, "data_source": "openai"}
            )
        except ValidationError as e:
            self._parse_failed("environmental", document_id, e, json.dumps(data))
            return None

        logger.info("ai_environmental_estimated", document_id=document_id, annual_offset=impact.carbon_offset_annual)
        return impact

    async def _extract(
        self,
        document_type: str,
        system_prompt: str,
        prompt: str,
        text: str,
        document_id: str,
        schema: Type[T],
    ) -> Optional[T]:
        if not self.is_configured:
            logger.info("openai_not_configured_skipping", document_type=document_type)
            return None

        sample = text[:RAW_TEXT_SAMPLE_CHARS] + ("..." if len(text) > RAW_TEXT_SAMPLE_CHARS else "")
        self.audit_log.record(
            document_type, "raw_text", {"text_length": len(text), "text_sample": sample}, document_id
        )
        limited_text = text[: self.max_input_chars]
        user_prompt = f"{prompt}\n\nHere is the document text:\n{limited_text}"

        data = await self._complete(document_type, system_prompt, user_prompt, document_id, self.TEMPERATURE)
        if data is None:
            return None

        try:
            fields = schema.model_validate(data)
        except ValidationError as e:
            self._parse_failed(document_type, document_id, e, json.dumps(data))
            return None

        logger.info("ai_fields_extracted", document_type=document_type, document_id=document_id)
        return fields

    async def _complete(
        self,
        document_type: str,
        system_prompt: str,
        user_prompt: str,
        document_id: str,
        temperature: float,
    ) -> Optional[Dict[str, Any]]:
        """Send one JSON-mode chat completion and decode its content."""
        start = time.perf_counter()
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                response_format={"type": "json_object"},
            )
        except Exception as e:
            logger.error("openai_call_failed", document_type=document_type, document_id=document_id, error=str(e))
            self.audit_log.record(
                document_type,
                "api_error",
                {"error": str(e), "error_type": type(e).__name__},
                document_id,
            )
            return None

        processing_ms = round((time.perf_counter() - start) * 1000, 2)
        content = response.choices[0].message.content if response.choices else None
        try:
            data = json.loads(content or "")
            if not isinstance(data, dict):
                raise ValueError("response is not a JSON object")
        except ValueError as e:
            self._parse_failed(document_type, document_id, e, content, processing_ms)
            return None

        self.audit_log.record(
            document_type,
            "extracted_data",
            {
                "processing_time_ms": processing_ms,
                "model": self.model,
                **self._usage(response),
                "extracted_data": data,
            },
            document_id,
        )
        return data

    def _usage(self, response) -> Dict[str, Any]:
        """Token counts and estimated cost of a completion."""
        usage = getattr(response, "usage", None)
        if usage is None:
            return {}
        prompt_tokens = usage.prompt_tokens or 0
        completion_tokens = usage.completion_tokens or 0
        cost = None
        if self.model in MODEL_PRICING:
            input_price, output_price = MODEL_PRICING[self.model]
            cost = round(prompt_tokens / 1000 * input_price + completion_tokens / 1000 * output_price, 6)
        return {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": usage.total_tokens or prompt_tokens + completion_tokens,
            "estimated_cost_usd": cost,
        }

    def _parse_failed(
        self,
        document_type: str,
        document_id: str,
        error: Exception,
        raw_response: Optional[str],
        processing_ms: Optional[float] = None,
    ) -> None:
        logger.error("openai_response_unparseable", document_type=document_type, document_id=document_id, error=str(error))
        self.audit_log.record(
            document_type,
            "extraction_error",
            {"processing_time_ms": processing_ms, "error": str(error), "raw_response": raw_response},
            document_id,
        )


# Singleton instance
_ai_extraction_instance: Optional[AIExtractionService] = None


def get_ai_extraction_service() -> AIExtractionService:
    """Get singleton AIExtractionService instance."""
    global _ai_extraction_instance
    if _ai_extraction_instance is None:
        settings = get_settings()
        _ai_extraction_instance = AIExtractionService(audit_log=JsonFileAuditLog(settings.ai_extraction_log_dir))
    return _ai_extraction_instance
