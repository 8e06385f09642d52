"""Deep research orchestrator.

Runs the four stages strictly in order and assembles the report:

    START -> draft -> hypothesis_evidence -> signal_evidence
          -> synthesis -> validate -> END

Each node awaits exactly one completion call (validate awaits none). Any
exception aborts the run and propagates unchanged; there is no partial
result, retry or fallback.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union

from langgraph.graph import END, START, StateGraph

from ...constants import SUPPORTED_LANGUAGES
from ...errors import ConfigurationError
from ...schemas.market_validation_schema import IdeaContext, MarketValidationResult, SearchData
from ...services.domain_registry import collect_domains_from_hypotheses
from ...services.openai_client import OpenAISettings, ResponsesClient, load_openai_settings
from ...services.text_processing import process_idea_description
from .draft import draft_snapshot_and_hypotheses
from .hypothesis_evidence import fill_hypothesis_evidence
from .schema import ResearchContext
from .signal_evidence import research_market_signals
from .state import DeepResearchState
from .synthesis import synthesize
from .timing import StepTimer
from .validator import validate_minimal_shape

logger = logging.getLogger(__name__)


def create_deep_research_graph(client, settings: OpenAISettings) -> StateGraph:
    """Build the sequential stage graph bound to one client and settings."""

    async def draft(state: DeepResearchState) -> dict:
        async with state["timer"].async_step("draft"):
            result = await draft_snapshot_and_hypotheses(client, settings, state["context"])
        return {"draft_result": result}

    async def hypothesis_evidence(state: DeepResearchState) -> dict:
        async with state["timer"].async_step("hypothesis_evidence"):
            enriched = await fill_hypothesis_evidence(
                client, settings, state["context"], state["draft_result"].behavioral_hypotheses
            )
        banned = collect_domains_from_hypotheses(enriched)
        logger.info("[DEEP] %d domains cited as hypothesis evidence", len(banned))
        return {"enriched_hypotheses": enriched, "banned_domains": banned}

    async def signal_evidence(state: DeepResearchState) -> dict:
        async with state["timer"].async_step("signal_evidence"):
            signals = await research_market_signals(
                client, settings, state["context"], state["banned_domains"]
            )
        return {"market_signals": signals}

    async def synthesis(state: DeepResearchState) -> dict:
        async with state["timer"].async_step("synthesis"):
            result = await synthesize(
                client,
                settings,
                state["context"].language,
                state["draft_result"].market_snapshot,
                state["enriched_hypotheses"],
                state["market_signals"],
            )
        return {"synthesis_result": result}

    async def validate(state: DeepResearchState) -> dict:
        synthesis_result = state["synthesis_result"]
        result = MarketValidationResult(
            market_snapshot=state["draft_result"].market_snapshot,
            behavioral_hypotheses=state["enriched_hypotheses"],
            market_signals=state["market_signals"],
            conflicts_and_gaps=synthesis_result.conflicts_and_gaps,
            synthesis_and_next_steps=synthesis_result.synthesis_and_next_steps,
            search_data=SearchData(),
        )
        validate_minimal_shape(result)
        return {"result": result}

    graph = StateGraph(DeepResearchState)

    graph.add_node("draft", draft)
    graph.add_node("hypothesis_evidence", hypothesis_evidence)
    graph.add_node("signal_evidence", signal_evidence)
    graph.add_node("synthesis", synthesis)
    graph.add_node("validate", validate)

    graph.add_edge(START, "draft")
    graph.add_edge("draft", "hypothesis_evidence")
    graph.add_edge("hypothesis_evidence", "signal_evidence")
    graph.add_edge("signal_evidence", "synthesis")
    graph.add_edge("synthesis", "validate")
    graph.add_edge("validate", END)

    return graph


class MarketValidationPipeline:
    """Deep research for one idea at a time.

    ``client`` is anything with an async ``create_json(CompletionRequest)``;
    it defaults to a ResponsesClient built from ``settings``. Instances hold
    no per-run state, so one pipeline may serve concurrent runs.
    """

    def __init__(self, client=None, settings: Optional[OpenAISettings] = None):
        self.settings = settings if settings is not None else load_openai_settings()
        self.client = client if client is not None else ResponsesClient(self.settings)
        self._graph = create_deep_research_graph(self.client, self.settings).compile()

    async def run(
        self,
        idea: Union[IdeaContext, Mapping[str, Any]],
        language: str = "en",
    ) -> MarketValidationResult:
        if language not in SUPPORTED_LANGUAGES:
            raise ValueError(f"Unsupported language: {language!r}")
        if not self.settings.is_configured:
            raise ConfigurationError("OPENAI_API_KEY is not set")

        idea_context = idea if isinstance(idea, IdeaContext) else IdeaContext.model_validate(idea)
        compact = process_idea_description(idea_context)
        context = ResearchContext(
            idea=idea_context,
            language=language,
            compact_description=compact.compact_description,
            keywords=compact.keywords,
        )

        timer = StepTimer("deep_research")
        logger.info("[DEEP] Starting market validation for %r (%s)", idea_context.title, language)
        final_state = await self._graph.ainvoke({"context": context, "timer": timer})
        timer.summary()
        return final_state["result"]


async def run_market_validation(
    idea: Union[IdeaContext, Mapping[str, Any]],
    language: str = "en",
    *,
    client=None,
    settings: Optional[OpenAISettings] = None,
) -> MarketValidationResult:
    """Run one deep research pass and return the validated report."""
    return await MarketValidationPipeline(client, settings).run(idea, language)
