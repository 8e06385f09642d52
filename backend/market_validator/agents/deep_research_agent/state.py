from typing import List, Optional, TypedDict

from ...schemas.market_validation_schema import (
    BehavioralHypothesis,
    MarketSignal,
    MarketValidationResult,
)
from .draft import DraftResult
from .schema import ResearchContext
from .synthesis import SynthesisResult
from .timing import StepTimer


class DeepResearchState(TypedDict, total=False):
    # Input
    context: ResearchContext
    timer: StepTimer

    # Stage outputs (each written once, by its own node)
    draft_result: Optional[DraftResult]
    enriched_hypotheses: Optional[List[BehavioralHypothesis]]
    banned_domains: List[str]  # hostnames cited as hypothesis evidence
    market_signals: Optional[List[MarketSignal]]
    synthesis_result: Optional[SynthesisResult]

    # Final Output (populated by the validate node)
    result: Optional[MarketValidationResult]
