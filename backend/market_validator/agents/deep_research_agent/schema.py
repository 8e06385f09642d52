"""Typed stage payloads — the parse-or-fail boundary for generator output.

Each stage's raw JSON is parsed into one of the payload models below before
any business logic touches it. Payload models are deliberately loose
(free-form strings, unknown keys ignored) so that they only reject output
whose *shape* is wrong; value-level repairs happen in the stage modules.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ...errors import ShapeValidationError
from ...schemas.market_validation_schema import (
    IdeaContext,
    MarketSnapshot,
    Source,
    SynthesisAndNextSteps,
)

logger = logging.getLogger(__name__)

PayloadT = TypeVar("PayloadT", bound="StagePayload")


@dataclass(frozen=True)
class ResearchContext:
    """Inputs shared by every stage of one run."""

    idea: IdeaContext
    language: str
    compact_description: str
    keywords: str


def _source_objects(v: Any, owner: str) -> Any:
    """Drop source entries that are not objects (e.g. a bare URL string)."""
    if v is None:
        return []
    if not isinstance(v, list):
        return v
    kept = [item for item in v if isinstance(item, (dict, Source))]
    if len(kept) != len(v):
        logger.warning("[DEEP] Dropped %d malformed source entries from %s", len(v) - len(kept), owner)
    return kept


class StagePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    # Top-level key → Python type the raw JSON must carry under it.
    required_keys: ClassVar[Dict[str, type]] = {}


class RawHypothesis(BaseModel):
    """A hypothesis as emitted by the generator; layer not yet verified."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    layer: Any = ""
    title: Any = ""
    description: Any = ""
    evidence_summary: Any = Field(default="", alias="evidenceSummary")
    confidence: Any = "low"
    supporting_sources: List[Source] = Field(default_factory=list, alias="supportingSources")
    contradicting_signals: List[Any] = Field(default_factory=list, alias="contradictingSignals")

    @field_validator("supporting_sources", mode="before")
    @classmethod
    def _sources(cls, v: Any) -> Any:
        return _source_objects(v, "supportingSources")

    @field_validator("contradicting_signals", mode="before")
    @classmethod
    def _none_list(cls, v: Any) -> Any:
        return [] if v is None else v


class RawMarketSignal(BaseModel):
    """A market signal as emitted by the generator; type not yet verified."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: Any = ""
    title: Any = ""
    summary: Any = ""
    classification: Any = ""
    evidence_snippets: List[Any] = Field(default_factory=list, alias="evidenceSnippets")
    sources: List[Source] = Field(default_factory=list)
    strength: Any = "low"

    @field_validator("sources", mode="before")
    @classmethod
    def _sources(cls, v: Any) -> Any:
        return _source_objects(v, "marketSignals.sources")

    @field_validator("evidence_snippets", mode="before")
    @classmethod
    def _none_list(cls, v: Any) -> Any:
        return [] if v is None else v


class DraftPayload(StagePayload):
    required_keys: ClassVar[Dict[str, type]] = {"marketSnapshot": dict, "behavioralHypotheses": list}

    market_snapshot: MarketSnapshot = Field(alias="marketSnapshot")
    behavioral_hypotheses: List[RawHypothesis] = Field(alias="behavioralHypotheses")


class HypothesisEvidencePayload(StagePayload):
    required_keys: ClassVar[Dict[str, type]] = {"behavioralHypotheses": list}

    behavioral_hypotheses: List[RawHypothesis] = Field(alias="behavioralHypotheses")


class SignalEvidencePayload(StagePayload):
    required_keys: ClassVar[Dict[str, type]] = {"marketSignals": list}

    market_signals: List[RawMarketSignal] = Field(alias="marketSignals")


class SynthesisPayload(StagePayload):
    required_keys: ClassVar[Dict[str, type]] = {"conflictsAndGaps": dict, "synthesisAndNextSteps": dict}

    conflicts_and_gaps: Dict[str, Any] = Field(alias="conflictsAndGaps")
    synthesis_and_next_steps: SynthesisAndNextSteps = Field(alias="synthesisAndNextSteps")


def parse_stage_payload(model: Type[PayloadT], raw: Dict[str, Any]) -> PayloadT:
    """Parse *raw* into *model* or raise ShapeValidationError.

    The first required key that is absent raises kind="missing_key"; a key
    with the wrong JSON type, or content pydantic cannot coerce, raises
    kind="invalid_type" naming that key.
    """
    for key, expected in model.required_keys.items():
        if key not in raw:
            raise ShapeValidationError(key, "missing_key")
        if not isinstance(raw[key], expected):
            raise ShapeValidationError(key, "invalid_type")

    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        first = exc.errors()[0] if exc.errors() else {}
        loc = first.get("loc") or ("payload",)
        raise ShapeValidationError(str(loc[0]), "invalid_type") from exc


__all__ = [
    "ResearchContext",
    "StagePayload",
    "RawHypothesis",
    "RawMarketSignal",
    "DraftPayload",
    "HypothesisEvidencePayload",
    "SignalEvidencePayload",
    "SynthesisPayload",
    "parse_stage_payload",
]
