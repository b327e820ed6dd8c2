"""
Tiered field extraction: AI, then patterns, then synthesis.

Tiers run in order and their results are merged beneath what earlier tiers
already found. The pipeline stops as soon as every required field is set;
whatever is still missing afterwards is synthesized. The provenance tag names
the first tier that supplied the document's primary field.
"""
import random
import string
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, TypeVar, Union

import structlog
from pydantic import BaseModel

from solarlens.schemas.extraction import DataSource, ProposalFields, UtilityBillFields
from solarlens.services.ai_extraction import AIExtractionService
from solarlens.services.field_extractors import (
    derive_rate,
    extract_inverter_details,
    extract_proposal_fields,
    extract_utility_bill_fields,
)
from solarlens.services.synthetic_data import SyntheticDataGenerator

logger = structlog.get_logger(__name__)

T = TypeVar("T", bound=BaseModel)
Fields = Union[ProposalFields, UtilityBillFields]

RAW_TEXT_SAMPLE_CHARS = 500
_BASE36 = string.digits + string.ascii_lowercase


def _base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def generate_document_id(prefix: str = "doc") -> str:
    """Correlation id of the form ``<prefix>_<base36 epoch ms>_<4 random chars>``."""
    millis = int(time.time() * 1000)
    suffix = "".join(random.choices(_BASE36, k=4))
    return f"{prefix}_{_base36(millis)}_{suffix}"


def merge_fields(primary: T, secondary: Optional[T]) -> T:
    """
    Fill the gaps of ``primary`` from ``secondary``.

    Values already present in ``primary`` always win; nested models are
    merged field by field.
    """
    if secondary is None:
        return primary
    updates: Dict[str, Any] = {}
    for name in type(primary).model_fields:
        mine = getattr(primary, name)
        theirs = getattr(secondary, name)
        if mine is None and theirs is not None:
            updates[name] = theirs.model_copy(deep=True) if isinstance(theirs, BaseModel) else theirs
        elif isinstance(mine, BaseModel) and isinstance(theirs, BaseModel):
            updates[name] = merge_fields(mine, theirs)
    return primary.model_copy(update=updates)


@dataclass
class ExtractionResult:
    """Completed fields of one document plus their provenance."""

    document_id: str
    fields: Fields
    data_source: DataSource
    synthesized_fields: List[str] = field(default_factory=list)
    tiers_used: List[str] = field(default_factory=list)
    processing_time_ms: float = 0.0
    raw_text_sample: str = ""

    def to_record(self) -> Dict[str, Any]:
        """JSON-ready form stored on the document record."""
        return {
            **self.fields.model_dump(mode="json"),
            "document_id": self.document_id,
            "data_source": self.data_source.value,
            "synthesized_fields": self.synthesized_fields,
            "processing_time_ms": self.processing_time_ms,
            "raw_text": self.raw_text_sample,
        }


class ExtractionTier(ABC):
    """One strategy for turning text into (possibly partial) fields."""

    source: DataSource

    @abstractmethod
    async def try_extract(self, text: str, document_id: str) -> Optional[Fields]:
        """Return whatever fields this tier found, or None."""
        pass


class AIProposalTier(ExtractionTier):
    source = DataSource.OPENAI

    def __init__(self, service: AIExtractionService):
        self.service = service

    async def try_extract(self, text: str, document_id: str) -> Optional[ProposalFields]:
        fields = await self.service.extract_proposal_fields(text, document_id)
        # The model is not asked to be thorough about inverters; read them from the text too
        if fields is not None and fields.inverter_details is None:
            fields.inverter_details = extract_inverter_details(text)
        return fields


class AIUtilityBillTier(ExtractionTier):
    source = DataSource.OPENAI

    def __init__(self, service: AIExtractionService):
        self.service = service

    async def try_extract(self, text: str, document_id: str) -> Optional[UtilityBillFields]:
        return await self.service.extract_utility_fields(text, document_id)


class PatternProposalTier(ExtractionTier):
    source = DataSource.PATTERN_EXTRACTION

    async def try_extract(self, text: str, document_id: str) -> Optional[ProposalFields]:
        return extract_proposal_fields(text)


class PatternUtilityBillTier(ExtractionTier):
    source = DataSource.PATTERN_EXTRACTION

    async def try_extract(self, text: str, document_id: str) -> Optional[UtilityBillFields]:
        return extract_utility_bill_fields(text)


class ExtractionPipeline(ABC):
    """Runs the tiers for one document type."""

    document_type: str
    id_prefix: str
    primary_field: str

    def __init__(self, tiers: Sequence[ExtractionTier], generator: Optional[SyntheticDataGenerator] = None):
        self.tiers = list(tiers)
        self.generator = generator or SyntheticDataGenerator()

    @abstractmethod
    def _synthesize(self, partial: Optional[Fields]) -> Tuple[Fields, List[str]]:
        pass

    def _after_merge(self, fields: Fields) -> Fields:
        return fields

    async def run(self, text: str, document_id: Optional[str] = None) -> ExtractionResult:
        """
        Extract a complete field set from text.

        Never fails for missing data: an empty text yields a fully synthesized
        record tagged ``fallback-generation``.
        """
        start = time.perf_counter()
        document_id = document_id or generate_document_id(self.id_prefix)
        merged: Optional[Fields] = None
        data_source: Optional[DataSource] = None
        tiers_used: List[str] = []

        for tier in self.tiers:
            found = await tier.try_extract(text, document_id)
            if found is None:
                continue
            tiers_used.append(tier.source.value)
            if data_source is None and getattr(found, self.primary_field) is not None:
                data_source = tier.source
            merged = found if merged is None else merge_fields(merged, found)
            merged = self._after_merge(merged)
            if not merged.missing():
                break

        fields, synthesized = self._synthesize(merged)
        result = ExtractionResult(
            document_id=document_id,
            fields=fields,
            data_source=data_source or DataSource.FALLBACK_GENERATION,
            synthesized_fields=synthesized,
            tiers_used=tiers_used,
            processing_time_ms=round((time.perf_counter() - start) * 1000, 2),
            raw_text_sample=text[:RAW_TEXT_SAMPLE_CHARS] + ("..." if len(text) > RAW_TEXT_SAMPLE_CHARS else ""),
        )
        logger.info(
            "extraction_completed",
            document_type=self.document_type,
            document_id=document_id,
            data_source=result.data_source.value,
            tiers_used=tiers_used,
            synthesized_count=len(synthesized),
            duration_ms=result.processing_time_ms,
        )
        return result


class ProposalPipeline(ExtractionPipeline):
    document_type = "proposal"
    id_prefix = "proposal"
    primary_field = "system_size"

    def _synthesize(self, partial: Optional[ProposalFields]) -> Tuple[ProposalFields, List[str]]:
        return self.generator.fill_proposal(partial)


class UtilityBillPipeline(ExtractionPipeline):
    document_type = "utility_bill"
    id_prefix = "bill"
    primary_field = "energy_usage"

    def _synthesize(self, partial: Optional[UtilityBillFields]) -> Tuple[UtilityBillFields, List[str]]:
        return self.generator.fill_utility_bill(partial)

    def _after_merge(self, fields: UtilityBillFields) -> UtilityBillFields:
        if fields.rate is None:
            rate = derive_rate(fields.total_amount, fields.energy_usage)
            if rate is not None:
                fields = fields.model_copy(update={"rate": rate})
        return fields


def build_proposal_pipeline(
    ai_service: Optional[AIExtractionService] = None,
    generator: Optional[SyntheticDataGenerator] = None,
) -> ProposalPipeline:
    """AI tier first when a configured service is given, then patterns."""
    tiers: List[ExtractionTier] = []
    if ai_service is not None and ai_service.is_configured:
        tiers.append(AIProposalTier(ai_service))
    tiers.append(PatternProposalTier())
    return ProposalPipeline(tiers, generator)


def build_utility_bill_pipeline(
    ai_service: Optional[AIExtractionService] = None,
    generator: Optional[SyntheticDataGenerator] = None,
) -> UtilityBillPipeline:
    """AI tier first when a configured service is given, then patterns."""
    tiers: List[ExtractionTier] = []
    if ai_service is not None and ai_service.is_configured:
        tiers.append(AIUtilityBillTier(ai_service))
    tiers.append(PatternUtilityBillTier())
    return UtilityBillPipeline(tiers, generator)
