"""Step A — fast draft (no web).

Produces the marketSnapshot and a five-hypothesis skeleton, one per funnel
layer in fixed order, each with an empty supportingSources list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from ...schemas.market_validation_schema import BehavioralHypothesis, MarketSnapshot
from ...services.openai_client import CompletionRequest, OpenAISettings
from .prompts import build_draft_prompt
from .repairs import align_by_key, hypothesis_from_raw, layer_order, placeholder_hypothesis
from .schema import DraftPayload, RawHypothesis, ResearchContext, parse_stage_payload

logger = logging.getLogger(__name__)

DRAFT_MAX_OUTPUT_TOKENS = 2000
DRAFT_TEMPERATURE = 0.2


@dataclass(frozen=True)
class DraftResult:
    market_snapshot: MarketSnapshot
    behavioral_hypotheses: List[BehavioralHypothesis]


def build_skeleton(raw_hypotheses: List[RawHypothesis]) -> List[BehavioralHypothesis]:
    """Exactly one hypothesis per layer, in order, with no sources yet."""

    def build(layer: str, raw: Optional[RawHypothesis]) -> BehavioralHypothesis:
        if raw is None:
            return placeholder_hypothesis(layer)
        return hypothesis_from_raw(layer, raw, sources=[])

    skeleton, missing = align_by_key(raw_hypotheses, layer_order(), lambda h: h.layer, build)
    if missing:
        logger.warning("[DEEP] Draft missing layers %s — placeholders inserted", missing)
    if len(raw_hypotheses) != len(skeleton):
        logger.warning(
            "[DEEP] Draft returned %d hypotheses, kept %d", len(raw_hypotheses), len(skeleton)
        )
    return skeleton


async def draft_snapshot_and_hypotheses(
    client,
    settings: OpenAISettings,
    context: ResearchContext,
) -> DraftResult:
    """Run Step A and return the snapshot + hypothesis skeleton."""
    prompt = build_draft_prompt(
        idea=context.idea,
        language=context.language,
        compact_description=context.compact_description,
        keywords=context.keywords,
    )
    raw = await client.create_json(
        CompletionRequest(
            model=settings.light_model,
            input=prompt,
            max_output_tokens=DRAFT_MAX_OUTPUT_TOKENS,
            temperature=DRAFT_TEMPERATURE,
            json_response=True,
            read_timeout=settings.light_timeout,
        )
    )
    payload = parse_stage_payload(DraftPayload, raw)
    return DraftResult(
        market_snapshot=payload.market_snapshot,
        behavioral_hypotheses=build_skeleton(payload.behavioral_hypotheses),
    )
