"""Pydantic schemas for the Market Validation report.

Field names are snake_case in Python and camelCase on the wire (the report
JSON consumed by the frontend). Both spellings are accepted on input.

Enum-like fields are normalised on the way in: generator output such as
"High" or "Pay Intention" is lower-cased / snake-cased, and anything outside
the allowed set falls back to the most conservative value.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..constants import (
    CONFIDENCE_LEVELS,
    CONFLICT_TYPES,
    EVIDENCE_TYPES,
    HYPOTHESIS_LAYERS,
    MARKET_SIGNAL_TYPES,
    RESULT_SCHEMA_VERSION,
)

HypothesisLayer = Literal["existence", "awareness", "consideration", "intent", "pay_intention"]
ConfidenceLevel = Literal["low", "medium", "high"]
EvidenceType = Literal["behavioral", "quantitative", "stated", "directional"]
MarketSignalType = Literal[
    "existing_workarounds",
    "competitors",
    "social_trend",
    "cost_per_attention",
    "channel_fit",
    "share_triggers",
    "market_sophistication",
    "objection_density",
]
ConflictType = Literal["contradiction", "missing_signal", "risk_flag"]
Language = Literal["en", "es"]


def _normalise_enum(value: Any, allowed: list[str], fallback: str) -> str:
    if not isinstance(value, str):
        return fallback
    cleaned = value.strip().lower().replace("-", "_").replace(" ", "_")
    return cleaned if cleaned in allowed else fallback


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Input ────────────────────────────────────────────────────────────────

class IdeaContext(_CamelModel):
    """The idea being validated. Never mutated by the pipeline."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    title: str = Field(..., description="Idea title")
    description: str = Field(default="", description="Free-form idea description")
    tags: List[str] = Field(default_factory=list, description="Idea tags")

    @field_validator("description", mode="before")
    @classmethod
    def _none_description(cls, v: Any) -> str:
        return _as_text(v)


# ── Section 1: Market snapshot ───────────────────────────────────────────

class CustomerSegment(_CamelModel):
    primary_user: str = ""
    buyer: str = ""
    context_of_use: str = ""
    environment: str = Field(default="", description="consumer | SMB | enterprise | regulated")

    @field_validator("primary_user", "buyer", "context_of_use", "environment", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return _as_text(v)


class MarketContext(_CamelModel):
    type: str = Field(default="", description="B2C | B2B | B2B2C")
    scope: str = Field(default="", description="horizontal | vertical")
    category_type: str = Field(default="", description="new_category | existing_category")

    @field_validator("type", "scope", "category_type", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return _as_text(v)


class MarketSnapshot(_CamelModel):
    customer_segment: CustomerSegment = Field(default_factory=CustomerSegment)
    market_context: MarketContext = Field(default_factory=MarketContext)
    geography: str = ""
    timing_context: str = ""

    # A bare string is kept as the segment's primary user / the context type.
    @field_validator("customer_segment", mode="before")
    @classmethod
    def _segment(cls, v: Any) -> Any:
        if v is None:
            return {}
        return {"primary_user": v} if isinstance(v, str) else v

    @field_validator("market_context", mode="before")
    @classmethod
    def _context(cls, v: Any) -> Any:
        if v is None:
            return {}
        return {"type": v} if isinstance(v, str) else v

    @field_validator("geography", "timing_context", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return _as_text(v)


# ── Evidence ─────────────────────────────────────────────────────────────

class Source(_CamelModel):
    """A cited evidence source. Owned by exactly one hypothesis or signal."""

    title: str = ""
    url: str = ""
    evidence_type: EvidenceType = "stated"
    snippet: str = ""

    @field_validator("title", "url", "snippet", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return _as_text(v)

    @field_validator("evidence_type", mode="before")
    @classmethod
    def _evidence_type(cls, v: Any) -> str:
        return _normalise_enum(v, EVIDENCE_TYPES, "stated")


# ── Section 2: Behavioral hypotheses ─────────────────────────────────────

class BehavioralHypothesis(_CamelModel):
    layer: HypothesisLayer
    title: str = ""
    description: str = ""
    evidence_summary: str = ""
    confidence: ConfidenceLevel = "low"
    supporting_sources: List[Source] = Field(default_factory=list)
    contradicting_signals: List[str] = Field(default_factory=list)

    @field_validator("layer", mode="before")
    @classmethod
    def _layer(cls, v: Any) -> Any:
        return _normalise_enum(v, HYPOTHESIS_LAYERS, v)

    @field_validator("title", "description", "evidence_summary", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return _as_text(v)

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, v: Any) -> str:
        return _normalise_enum(v, CONFIDENCE_LEVELS, "low")

    @field_validator("supporting_sources", "contradicting_signals", mode="before")
    @classmethod
    def _none_list(cls, v: Any) -> Any:
        return [] if v is None else v


# ── Section 3: Market signals ────────────────────────────────────────────

class MarketSignal(_CamelModel):
    type: MarketSignalType
    title: str = ""
    summary: str = ""
    classification: str = ""
    evidence_snippets: List[str] = Field(default_factory=list)
    sources: List[Source] = Field(default_factory=list)
    strength: ConfidenceLevel = "low"

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, v: Any) -> Any:
        return _normalise_enum(v, MARKET_SIGNAL_TYPES, v)

    @field_validator("title", "summary", "classification", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return _as_text(v)

    @field_validator("strength", mode="before")
    @classmethod
    def _strength(cls, v: Any) -> str:
        return _normalise_enum(v, CONFIDENCE_LEVELS, "low")

    @field_validator("evidence_snippets", "sources", mode="before")
    @classmethod
    def _none_list(cls, v: Any) -> Any:
        return [] if v is None else v


# ── Section 4: Conflicts & gaps ──────────────────────────────────────────

class ConflictItem(_CamelModel):
    type: ConflictType
    description: str = ""
    related_signals: Optional[List[str]] = None

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, v: Any) -> Any:
        return _normalise_enum(v, CONFLICT_TYPES, v)

    @field_validator("description", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return _as_text(v)


class ConflictsAndGaps(_CamelModel):
    contradictions: List[ConflictItem] = Field(default_factory=list)
    missing_signals: List[ConflictItem] = Field(default_factory=list)
    risk_flags: List[ConflictItem] = Field(default_factory=list)


# ── Section 5: Synthesis & next steps ────────────────────────────────────

class SynthesisAndNextSteps(_CamelModel):
    strong_points: List[str] = Field(default_factory=list)
    weak_points: List[str] = Field(default_factory=list)
    key_unknowns: List[str] = Field(default_factory=list)
    suggested_next_steps: List[str] = Field(default_factory=list)
    pivot_guidance: List[str] = Field(default_factory=list)

    @field_validator(
        "strong_points",
        "weak_points",
        "key_unknowns",
        "suggested_next_steps",
        "pivot_guidance",
        mode="before",
    )
    @classmethod
    def _none_list(cls, v: Any) -> Any:
        return [] if v is None else v


# ── Aggregate ────────────────────────────────────────────────────────────

class SearchData(_CamelModel):
    """Placeholder for raw search results (not collected by this pipeline)."""

    google_results: List[dict] = Field(default_factory=list)
    google_trends: List[dict] = Field(default_factory=list)
    bing_results: List[dict] = Field(default_factory=list)


class MarketValidationResult(_CamelModel):
    """The complete report. Created once, at the end of a pipeline run."""

    market_snapshot: MarketSnapshot
    behavioral_hypotheses: List[BehavioralHypothesis]
    market_signals: List[MarketSignal]
    conflicts_and_gaps: ConflictsAndGaps
    synthesis_and_next_steps: SynthesisAndNextSteps
    search_data: SearchData = Field(default_factory=SearchData)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: int = RESULT_SCHEMA_VERSION


# ── HTTP contract ────────────────────────────────────────────────────────

class DeepResearchRequest(_CamelModel):
    """Request body for POST /ai/deep-research."""

    title: Optional[str] = Field(default=None, description="Idea title (min 10 chars, checked by the route)")
    description: Optional[str] = Field(default=None, description="Idea description")
    tags: List[str] = Field(default_factory=list, description="Idea tags")
    language: Language = Field(default="en", description="Report language")

    def to_idea(self) -> IdeaContext:
        return IdeaContext(title=self.title or "", description=self.description or "", tags=self.tags)


__all__ = [
    "IdeaContext",
    "CustomerSegment",
    "MarketContext",
    "MarketSnapshot",
    "Source",
    "BehavioralHypothesis",
    "MarketSignal",
    "ConflictItem",
    "ConflictsAndGaps",
    "SynthesisAndNextSteps",
    "SearchData",
    "MarketValidationResult",
    "DeepResearchRequest",
]
