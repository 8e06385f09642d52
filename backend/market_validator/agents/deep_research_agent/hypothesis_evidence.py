"""Step B1 — hypothesis evidence (web search).

Fills evidence for the draft skeleton. The enriched list replaces the
skeleton wholesale; a layer the generator dropped keeps its skeleton entry.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Set

from ...constants import (
    BEHAVIORAL_SOURCES_PER_HYPOTHESIS,
    CONTRADICTING_SIGNAL_MAX_CHARS,
    CONTRADICTING_SIGNALS_MAX,
    HYPOTHESIS_SNIPPET_MAX_CHARS,
    QUANTITATIVE_SOURCES_PER_HYPOTHESIS,
    SOURCES_PER_HYPOTHESIS,
)
from ...schemas.market_validation_schema import BehavioralHypothesis, Source
from ...services.domain_registry import domain_of
from ...services.openai_client import WEB_SEARCH_TOOL, CompletionRequest, OpenAISettings
from .prompts import build_hypothesis_evidence_prompt
from .repairs import align_by_key, hypothesis_from_raw, layer_order, text_items, truncate
from .schema import HypothesisEvidencePayload, RawHypothesis, ResearchContext, parse_stage_payload

logger = logging.getLogger(__name__)

HYPOTHESIS_EVIDENCE_MAX_OUTPUT_TOKENS = 18000
HYPOTHESIS_EVIDENCE_MAX_TOOL_CALLS = 24


def _unique_sources(layer: str, sources: List[Source], seen_domains: Set[str]) -> List[Source]:
    """Drop sources whose domain was already cited; trim snippets."""
    kept: List[Source] = []
    for source in sources:
        domain = domain_of(source.url)
        if domain and domain in seen_domains:
            logger.warning("[DEEP] Dropped repeated domain %s from layer %s", domain, layer)
            continue
        if domain:
            seen_domains.add(domain)
        kept.append(
            source.model_copy(update={"snippet": truncate(source.snippet, HYPOTHESIS_SNIPPET_MAX_CHARS)})
        )
    return kept


def _audit_source_mix(hypothesis: BehavioralHypothesis) -> None:
    sources = hypothesis.supporting_sources
    behavioral = sum(1 for s in sources if s.evidence_type == "behavioral")
    quantitative = sum(1 for s in sources if s.evidence_type == "quantitative")
    if (
        len(sources) != SOURCES_PER_HYPOTHESIS
        or behavioral != BEHAVIORAL_SOURCES_PER_HYPOTHESIS
        or quantitative != QUANTITATIVE_SOURCES_PER_HYPOTHESIS
    ):
        logger.warning(
            "[DEEP] Layer %s has %d sources (%d behavioral, %d quantitative)",
            hypothesis.layer,
            len(sources),
            behavioral,
            quantitative,
        )


def enrich_hypotheses(
    raw_hypotheses: List[RawHypothesis],
    skeleton: List[BehavioralHypothesis],
) -> List[BehavioralHypothesis]:
    """Align generator output to the layers and enforce evidence limits."""
    by_layer = {h.layer: h for h in skeleton}
    seen_domains: Set[str] = set()

    def build(layer: str, raw: Optional[RawHypothesis]) -> BehavioralHypothesis:
        if raw is None:
            fallback = by_layer.get(layer)
            if fallback is not None:
                return fallback.model_copy(deep=True)
            return BehavioralHypothesis(layer=layer)
        contradictions = [
            truncate(text, CONTRADICTING_SIGNAL_MAX_CHARS)
            for text in text_items(raw.contradicting_signals)[:CONTRADICTING_SIGNALS_MAX]
        ]
        return hypothesis_from_raw(
            layer,
            raw,
            sources=_unique_sources(layer, raw.supporting_sources, seen_domains),
            contradicting_signals=contradictions,
        )

    enriched, missing = align_by_key(raw_hypotheses, layer_order(), lambda h: h.layer, build)
    if missing:
        logger.warning("[DEEP] Evidence missing layers %s — kept draft entries", missing)
    for hypothesis in enriched:
        _audit_source_mix(hypothesis)
    return enriched


async def fill_hypothesis_evidence(
    client,
    settings: OpenAISettings,
    context: ResearchContext,
    skeleton: List[BehavioralHypothesis],
) -> List[BehavioralHypothesis]:
    """Run Step B1 and return the enriched hypotheses."""
    prompt = build_hypothesis_evidence_prompt(
        idea=context.idea,
        language=context.language,
        compact_description=context.compact_description,
        keywords=context.keywords,
        hypotheses=[h.model_dump(by_alias=True) for h in skeleton],
    )
    raw = await client.create_json(
        CompletionRequest(
            model=settings.deep_model,
            input=prompt,
            max_output_tokens=HYPOTHESIS_EVIDENCE_MAX_OUTPUT_TOKENS,
            tools=[WEB_SEARCH_TOOL],
            max_tool_calls=HYPOTHESIS_EVIDENCE_MAX_TOOL_CALLS,
            read_timeout=settings.deep_timeout,
        )
    )
    payload = parse_stage_payload(HypothesisEvidencePayload, raw)
    return enrich_hypotheses(payload.behavioral_hypotheses, skeleton)
