"""Step C — synthesis (no web).

Derives conflictsAndGaps and synthesisAndNextSteps from the snapshot, the
enriched hypotheses and the researched signals.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List

from ...constants import SYNTHESIS_LIST_LIMITS
from ...schemas.market_validation_schema import (
    BehavioralHypothesis,
    ConflictItem,
    ConflictsAndGaps,
    MarketSignal,
    MarketSnapshot,
    SynthesisAndNextSteps,
)
from ...services.openai_client import CompletionRequest, OpenAISettings
from .prompts import build_synthesis_prompt
from .repairs import text_items
from .schema import SynthesisPayload, parse_stage_payload

logger = logging.getLogger(__name__)

SYNTHESIS_MAX_OUTPUT_TOKENS = 2600
SYNTHESIS_TEMPERATURE = 0.2

# Wire key → (python field, forced item type)
_CONFLICT_LISTS = {
    "contradictions": ("contradictions", "contradiction"),
    "missingSignals": ("missing_signals", "missing_signal"),
    "riskFlags": ("risk_flags", "risk_flag"),
}


@dataclass(frozen=True)
class SynthesisResult:
    conflicts_and_gaps: ConflictsAndGaps
    synthesis_and_next_steps: SynthesisAndNextSteps


def _conflict_item(item: Any, item_type: str) -> ConflictItem | None:
    if isinstance(item, str):
        return ConflictItem(type=item_type, description=item) if item.strip() else None
    if not isinstance(item, dict):
        return None
    related = item.get("relatedSignals", item.get("related_signals"))
    return ConflictItem(
        type=item_type,
        description=item.get("description", ""),
        related_signals=text_items(related) if isinstance(related, list) else None,
    )


def build_conflicts(raw: Dict[str, Any]) -> ConflictsAndGaps:
    """Each list is filtered to usable items and its item type is fixed."""
    lists: Dict[str, List[ConflictItem]] = {}
    for wire_key, (field_name, item_type) in _CONFLICT_LISTS.items():
        values = raw.get(wire_key, raw.get(field_name))
        items = values if isinstance(values, list) else []
        lists[field_name] = [c for c in (_conflict_item(i, item_type) for i in items) if c is not None]
    return ConflictsAndGaps(**lists)


def bound_synthesis(synthesis: SynthesisAndNextSteps) -> SynthesisAndNextSteps:
    """Truncate each list to its configured maximum."""
    bounded = {}
    for field_name, limit in SYNTHESIS_LIST_LIMITS.items():
        values: List[str] = getattr(synthesis, field_name)
        if len(values) > limit:
            logger.warning("[DEEP] Truncated %s from %d to %d items", field_name, len(values), limit)
        bounded[field_name] = list(values[:limit])
    return SynthesisAndNextSteps(**bounded)


async def synthesize(
    client,
    settings: OpenAISettings,
    language: str,
    market_snapshot: MarketSnapshot,
    hypotheses: List[BehavioralHypothesis],
    market_signals: List[MarketSignal],
) -> SynthesisResult:
    """Run Step C and return conflicts + synthesis."""
    prompt = build_synthesis_prompt(
        language=language,
        market_snapshot=market_snapshot.model_dump(by_alias=True),
        hypotheses=[h.model_dump(by_alias=True) for h in hypotheses],
        market_signals=[s.model_dump(by_alias=True) for s in market_signals],
    )
    raw = await client.create_json(
        CompletionRequest(
            model=settings.light_model,
            input=prompt,
            max_output_tokens=SYNTHESIS_MAX_OUTPUT_TOKENS,
            temperature=SYNTHESIS_TEMPERATURE,
            json_response=True,
            read_timeout=settings.light_timeout,
        )
    )
    payload = parse_stage_payload(SynthesisPayload, raw)
    return SynthesisResult(
        conflicts_and_gaps=build_conflicts(payload.conflicts_and_gaps),
        synthesis_and_next_steps=bound_synthesis(payload.synthesis_and_next_steps),
    )
