# Schemas package
from .market_validation_schema import (
    BehavioralHypothesis,
    ConflictItem,
    ConflictsAndGaps,
    DeepResearchRequest,
    IdeaContext,
    MarketSignal,
    MarketSnapshot,
    MarketValidationResult,
    Source,
    SynthesisAndNextSteps,
)

__all__ = [
    "IdeaContext",
    "DeepResearchRequest",
    "MarketSnapshot",
    "Source",
    "BehavioralHypothesis",
    "MarketSignal",
    "ConflictItem",
    "ConflictsAndGaps",
    "SynthesisAndNextSteps",
    "MarketValidationResult",
]
