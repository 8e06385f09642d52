"""Step B2 — market signal evidence (web search).

Researches the eight market signals. Domains already cited as hypothesis
evidence are banned; a signal that still cites a banned or reused domain is
kept but downgraded (directional sources, low strength).
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Set

from ...constants import MARKET_SIGNAL_LABELS, MARKET_SIGNAL_TYPES, SIGNAL_SNIPPET_MAX_CHARS, SOURCES_PER_SIGNAL
from ...schemas.market_validation_schema import MarketSignal, Source
from ...services.domain_registry import domain_of
from ...services.openai_client import WEB_SEARCH_TOOL, CompletionRequest, OpenAISettings
from .prompts import build_signal_evidence_prompt
from .repairs import align_by_key, text_items, truncate
from .schema import RawMarketSignal, ResearchContext, SignalEvidencePayload, parse_stage_payload

logger = logging.getLogger(__name__)

SIGNAL_EVIDENCE_MAX_OUTPUT_TOKENS = 9000
SIGNAL_EVIDENCE_MAX_TOOL_CALLS = 24


def _placeholder_signal(signal_type: str) -> MarketSignal:
    return MarketSignal(
        type=signal_type,
        title=MARKET_SIGNAL_LABELS[signal_type],
        classification="no_evidence",
        strength="low",
    )


def _snippets(raw: RawMarketSignal, sources: List[Source]) -> List[str]:
    """At most one snippet per source, in source order, each trimmed."""
    snippets = [truncate(text, SIGNAL_SNIPPET_MAX_CHARS) for text in text_items(raw.evidence_snippets)]
    for source in sources[len(snippets):]:
        if source.snippet.strip():
            snippets.append(truncate(source.snippet, SIGNAL_SNIPPET_MAX_CHARS))
    return snippets[:SOURCES_PER_SIGNAL]


def _has_domain_conflict(sources: List[Source], used_domains: Set[str]) -> bool:
    local: Set[str] = set()
    conflict = False
    for source in sources:
        domain = domain_of(source.url)
        if not domain:
            continue
        if domain in used_domains or domain in local:
            conflict = True
        local.add(domain)
    used_domains.update(local)
    return conflict


def build_signals(raw_signals: List[RawMarketSignal], banned_domains: Iterable[str]) -> List[MarketSignal]:
    """One signal per type, in order, with source/domain rules enforced."""
    used_domains: Set[str] = set(banned_domains)

    def build(signal_type: str, raw: Optional[RawMarketSignal]) -> MarketSignal:
        if raw is None:
            return _placeholder_signal(signal_type)
        sources = [s.model_copy(deep=True) for s in raw.sources[:SOURCES_PER_SIGNAL]]
        signal = MarketSignal(
            type=signal_type,
            title=raw.title,
            summary=raw.summary,
            classification=raw.classification,
            evidence_snippets=_snippets(raw, sources),
            sources=sources,
            strength=raw.strength,
        )
        if _has_domain_conflict(sources, used_domains):
            logger.warning("[DEEP] Signal %s reuses a domain — downgraded to directional/low", signal_type)
            signal = signal.model_copy(
                update={
                    "sources": [s.model_copy(update={"evidence_type": "directional"}) for s in sources],
                    "strength": "low",
                }
            )
        return signal

    signals, missing = align_by_key(raw_signals, MARKET_SIGNAL_TYPES, lambda s: s.type, build)
    if missing:
        logger.warning("[DEEP] Signals missing types %s — placeholders inserted", missing)
    return signals


async def research_market_signals(
    client,
    settings: OpenAISettings,
    context: ResearchContext,
    banned_domains: List[str],
) -> List[MarketSignal]:
    """Run Step B2 and return exactly one signal per type."""
    prompt = build_signal_evidence_prompt(
        idea=context.idea,
        language=context.language,
        compact_description=context.compact_description,
        keywords=context.keywords,
        banned_domains=banned_domains,
    )
    raw = await client.create_json(
        CompletionRequest(
            model=settings.deep_model,
            input=prompt,
            max_output_tokens=SIGNAL_EVIDENCE_MAX_OUTPUT_TOKENS,
            tools=[WEB_SEARCH_TOOL],
            max_tool_calls=SIGNAL_EVIDENCE_MAX_TOOL_CALLS,
            read_timeout=settings.deep_timeout,
        )
    )
    payload = parse_stage_payload(SignalEvidencePayload, raw)
    return build_signals(payload.market_signals, banned_domains)
