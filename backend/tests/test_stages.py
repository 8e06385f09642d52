"""Deep research stage tests — request shape, payload parsing and repairs.

Each stage is driven by StubCompletionClient with canned JSON; no network.
"""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from market_validator.agents.deep_research_agent.draft import draft_snapshot_and_hypotheses
from market_validator.agents.deep_research_agent.hypothesis_evidence import fill_hypothesis_evidence
from market_validator.agents.deep_research_agent.schema import (
    DraftPayload,
    HypothesisEvidencePayload,
    ResearchContext,
    parse_stage_payload,
)
from market_validator.agents.deep_research_agent.signal_evidence import research_market_signals
from market_validator.agents.deep_research_agent.synthesis import synthesize
from market_validator.errors import ShapeValidationError
from market_validator.schemas.market_validation_schema import (
    BehavioralHypothesis,
    IdeaContext,
    MarketSnapshot,
    Source,
)
from market_validator.services.openai_client import OpenAISettings

from stubs import (
    LAYERS,
    SIGNAL_TYPES,
    StubCompletionClient,
    draft_payload,
    hypothesis_payload,
    signal_payload,
    synthesis_payload,
)

SETTINGS = OpenAISettings(api_key="test-key", light_model="light-model", deep_model="deep-model")

CONTEXT = ResearchContext(
    idea=IdeaContext(title="Pet-sitting marketplace", tags=["pets"]),
    language="en",
    compact_description="Marketplace for pet sitters",
    keywords="pets, sitters",
)


def _skeleton():
    return [BehavioralHypothesis(layer=layer, title=f"{layer} draft") for layer in LAYERS]


# ---------------------------------------------------------------------------
# Payload boundary
# ---------------------------------------------------------------------------

class TestParseStagePayload:
    def test_missing_key(self):
        with pytest.raises(ShapeValidationError) as exc_info:
            parse_stage_payload(DraftPayload, {"marketSnapshot": {}})
        assert exc_info.value.kind == "missing_key"
        assert exc_info.value.field == "behavioralHypotheses"
        assert exc_info.value.code == "MISSING_KEY_behavioralHypotheses"

    def test_wrong_top_level_type(self):
        with pytest.raises(ShapeValidationError) as exc_info:
            parse_stage_payload(DraftPayload, {"marketSnapshot": {}, "behavioralHypotheses": {}})
        assert exc_info.value.code == "INVALID_behavioralHypotheses"

    def test_uncoercible_content(self):
        raw = {"marketSnapshot": {"customerSegment": ["everyone"]}, "behavioralHypotheses": []}
        with pytest.raises(ShapeValidationError) as exc_info:
            parse_stage_payload(DraftPayload, raw)
        assert exc_info.value.kind == "invalid_type"

    def test_string_segment_and_context_are_kept(self):
        raw = draft_payload()
        raw["marketSnapshot"]["customerSegment"] = "Urban pet owners"
        raw["marketSnapshot"]["marketContext"] = "B2C"
        payload = parse_stage_payload(DraftPayload, raw)
        assert payload.market_snapshot.customer_segment.primary_user == "Urban pet owners"
        assert payload.market_snapshot.market_context.type == "B2C"

    def test_non_object_sources_are_dropped(self):
        raw = hypothesis_payload()
        raw["behavioralHypotheses"][0]["supportingSources"].append("https://reddit.com/r/x")
        payload = parse_stage_payload(HypothesisEvidencePayload, raw)
        assert len(payload.behavioral_hypotheses[0].supporting_sources) == 5

    def test_extra_keys_ignored(self):
        raw = draft_payload()
        raw["marketSignals"] = []
        payload = parse_stage_payload(DraftPayload, raw)
        assert len(payload.behavioral_hypotheses) == 5


# ---------------------------------------------------------------------------
# Step A
# ---------------------------------------------------------------------------

class TestDraftStage:
    @pytest.mark.asyncio
    async def test_request_shape(self):
        client = StubCompletionClient([draft_payload()])
        await draft_snapshot_and_hypotheses(client, SETTINGS, CONTEXT)

        request = client.requests[0]
        assert request.model == "light-model"
        assert request.max_output_tokens == 2000
        assert request.temperature == 0.2
        assert request.json_response is True
        assert request.tools == []
        assert request.read_timeout == SETTINGS.light_timeout
        assert "Pet-sitting marketplace" in request.input

    @pytest.mark.asyncio
    async def test_skeleton_has_layers_in_order_without_sources(self):
        raw = draft_payload()
        raw["behavioralHypotheses"][0]["supportingSources"] = [{"title": "x", "url": "https://x.com"}]
        client = StubCompletionClient([raw])

        result = await draft_snapshot_and_hypotheses(client, SETTINGS, CONTEXT)

        assert [h.layer for h in result.behavioral_hypotheses] == LAYERS
        assert all(h.supporting_sources == [] for h in result.behavioral_hypotheses)
        assert result.market_snapshot.geography == "United States"

    @pytest.mark.asyncio
    async def test_reorders_and_fills_missing_layers(self):
        raw = draft_payload()
        hypotheses = raw["behavioralHypotheses"]
        raw["behavioralHypotheses"] = [hypotheses[4], hypotheses[0], hypotheses[2], hypotheses[0]]
        raw["behavioralHypotheses"][0]["layer"] = "Pay Intention"
        client = StubCompletionClient([raw])

        result = await draft_snapshot_and_hypotheses(client, SETTINGS, CONTEXT)

        assert [h.layer for h in result.behavioral_hypotheses] == LAYERS
        assert result.behavioral_hypotheses[4].title == "pay_intention hypothesis"
        assert result.behavioral_hypotheses[1].title == ""
        assert result.behavioral_hypotheses[3].confidence == "low"

    @pytest.mark.asyncio
    async def test_shape_error_propagates(self):
        client = StubCompletionClient([{"behavioralHypotheses": []}])
        with pytest.raises(ShapeValidationError) as exc_info:
            await draft_snapshot_and_hypotheses(client, SETTINGS, CONTEXT)
        assert exc_info.value.field == "marketSnapshot"


# ---------------------------------------------------------------------------
# Step B1
# ---------------------------------------------------------------------------

class TestHypothesisEvidenceStage:
    @pytest.mark.asyncio
    async def test_request_shape(self):
        client = StubCompletionClient([hypothesis_payload()])
        await fill_hypothesis_evidence(client, SETTINGS, CONTEXT, _skeleton())

        request = client.requests[0]
        assert request.model == "deep-model"
        assert request.max_output_tokens == 18000
        assert request.max_tool_calls == 24
        assert request.tools == [{"type": "web_search_preview", "search_context_size": "medium"}]
        assert request.json_response is False
        assert request.temperature is None
        assert request.read_timeout == SETTINGS.deep_timeout
        assert "existence draft" in request.input

    @pytest.mark.asyncio
    async def test_returns_enriched_hypotheses(self):
        client = StubCompletionClient([hypothesis_payload()])
        skeleton = _skeleton()

        enriched = await fill_hypothesis_evidence(client, SETTINGS, CONTEXT, skeleton)

        assert [h.layer for h in enriched] == LAYERS
        for hypothesis in enriched:
            assert len(hypothesis.supporting_sources) == 5
            assert sum(s.evidence_type == "behavioral" for s in hypothesis.supporting_sources) == 3
            assert hypothesis.confidence == "medium"
        assert skeleton[0].supporting_sources == []

    @pytest.mark.asyncio
    async def test_missing_layer_keeps_skeleton_entry(self):
        raw = hypothesis_payload()
        raw["behavioralHypotheses"] = [h for h in raw["behavioralHypotheses"] if h["layer"] != "intent"]
        client = StubCompletionClient([raw])

        enriched = await fill_hypothesis_evidence(client, SETTINGS, CONTEXT, _skeleton())

        assert [h.layer for h in enriched] == LAYERS
        assert enriched[3].title == "intent draft"
        assert enriched[3].supporting_sources == []

    @pytest.mark.asyncio
    async def test_truncates_snippets_and_contradictions(self):
        raw = hypothesis_payload()
        first = raw["behavioralHypotheses"][0]
        first["supportingSources"][0]["snippet"] = "s" * 400
        first["contradictingSignals"] = ["c" * 300, "second", "third"]
        client = StubCompletionClient([raw])

        enriched = await fill_hypothesis_evidence(client, SETTINGS, CONTEXT, _skeleton())

        assert len(enriched[0].supporting_sources[0].snippet) == 180
        assert len(enriched[0].contradicting_signals) == 2
        assert len(enriched[0].contradicting_signals[0]) == 140

    @pytest.mark.asyncio
    async def test_drops_domain_repeated_across_layers(self):
        raw = hypothesis_payload()
        repeated = raw["behavioralHypotheses"][0]["supportingSources"][0]["url"]
        raw["behavioralHypotheses"][1]["supportingSources"][0]["url"] = repeated
        client = StubCompletionClient([raw])

        enriched = await fill_hypothesis_evidence(client, SETTINGS, CONTEXT, _skeleton())

        assert len(enriched[0].supporting_sources) == 5
        assert len(enriched[1].supporting_sources) == 4


# ---------------------------------------------------------------------------
# Step B2
# ---------------------------------------------------------------------------

class TestSignalEvidenceStage:
    @pytest.mark.asyncio
    async def test_request_shape_and_banned_domains_in_prompt(self):
        client = StubCompletionClient([signal_payload()])
        await research_market_signals(client, SETTINGS, CONTEXT, ["reddit.com", "rover.com"])

        request = client.requests[0]
        assert request.model == "deep-model"
        assert request.max_output_tokens == 9000
        assert request.max_tool_calls == 24
        assert request.read_timeout == SETTINGS.deep_timeout
        assert "reddit.com" in request.input
        assert "rover.com" in request.input

    @pytest.mark.asyncio
    async def test_eight_signals_in_order(self):
        raw = signal_payload()
        raw["marketSignals"].reverse()
        client = StubCompletionClient([raw])

        signals = await research_market_signals(client, SETTINGS, CONTEXT, [])

        assert [s.type for s in signals] == SIGNAL_TYPES
        assert all(len(s.sources) == 2 for s in signals)
        assert all(s.strength == "medium" for s in signals)

    @pytest.mark.asyncio
    async def test_missing_signal_gets_low_placeholder(self):
        raw = signal_payload()
        raw["marketSignals"] = raw["marketSignals"][:6]
        client = StubCompletionClient([raw])

        signals = await research_market_signals(client, SETTINGS, CONTEXT, [])

        assert len(signals) == 8
        assert signals[6].type == "market_sophistication"
        assert signals[6].strength == "low"
        assert signals[6].sources == []
        assert signals[6].evidence_snippets == []

    @pytest.mark.asyncio
    async def test_banned_domain_downgrades_signal(self):
        raw = signal_payload()
        raw["marketSignals"][1]["sources"][0]["url"] = "https://www.reddit.com/r/dogs"
        client = StubCompletionClient([raw])

        signals = await research_market_signals(client, SETTINGS, CONTEXT, ["reddit.com"])

        competitors = signals[1]
        assert competitors.strength == "low"
        assert all(s.evidence_type == "directional" for s in competitors.sources)
        assert signals[0].strength == "medium"

    @pytest.mark.asyncio
    async def test_domain_reused_between_signals_downgrades_later_one(self):
        raw = signal_payload()
        raw["marketSignals"][3]["sources"][1]["url"] = raw["marketSignals"][0]["sources"][0]["url"]
        client = StubCompletionClient([raw])

        signals = await research_market_signals(client, SETTINGS, CONTEXT, [])

        assert signals[0].strength == "medium"
        assert signals[3].strength == "low"

    @pytest.mark.asyncio
    async def test_same_domain_pair_downgrades_signal(self):
        raw = signal_payload()
        raw["marketSignals"][0]["sources"][0]["url"] = "https://a.com/1"
        raw["marketSignals"][0]["sources"][1]["url"] = "https://www.a.com/2"
        client = StubCompletionClient([raw])

        signals = await research_market_signals(client, SETTINGS, CONTEXT, [])

        assert signals[0].strength == "low"
        assert all(s.evidence_type == "directional" for s in signals[0].sources)
        assert signals[1].strength == "medium"

    @pytest.mark.asyncio
    async def test_non_object_source_is_dropped(self):
        raw = signal_payload()
        raw["marketSignals"][2]["sources"].insert(0, "https://bare-url.com")
        client = StubCompletionClient([raw])

        signals = await research_market_signals(client, SETTINGS, CONTEXT, [])

        assert len(signals) == 8
        assert [s.title for s in signals[2].sources] == ["A", "B"]
        assert signals[2].strength == "medium"

    @pytest.mark.asyncio
    async def test_snippets_truncated_and_capped(self):
        raw = signal_payload()
        raw["marketSignals"][0]["evidenceSnippets"] = ["a" * 500, "b", "c"]
        client = StubCompletionClient([raw])

        signals = await research_market_signals(client, SETTINGS, CONTEXT, [])

        assert len(signals[0].evidence_snippets) == 2
        assert len(signals[0].evidence_snippets[0]) == 160


# ---------------------------------------------------------------------------
# Step C
# ---------------------------------------------------------------------------

class TestSynthesisStage:
    async def _run(self, raw):
        client = StubCompletionClient([raw])
        hypotheses = [
            BehavioralHypothesis(layer=layer, supporting_sources=[Source(url=f"https://{layer}.com")])
            for layer in LAYERS
        ]
        result = await synthesize(client, SETTINGS, "es", MarketSnapshot(), hypotheses, [])
        return client, result

    @pytest.mark.asyncio
    async def test_request_shape(self):
        client, _ = await self._run(synthesis_payload())

        request = client.requests[0]
        assert request.model == "light-model"
        assert request.max_output_tokens == 2600
        assert request.temperature == 0.2
        assert request.json_response is True
        assert request.tools == []
        assert "Spanish" in request.input
        assert "https://existence.com" in request.input

    @pytest.mark.asyncio
    async def test_builds_conflicts(self):
        _, result = await self._run(synthesis_payload())

        gaps = result.conflicts_and_gaps
        assert gaps.contradictions[0].related_signals == ["competitors"]
        assert gaps.missing_signals[0].description == "No pricing data"
        assert result.synthesis_and_next_steps.strong_points == ["Clear recurring need"]

    @pytest.mark.asyncio
    async def test_forces_conflict_types_per_list(self):
        raw = synthesis_payload()
        raw["conflictsAndGaps"]["riskFlags"] = [{"type": "contradiction", "description": "x"}, "plain text", 42]
        _, result = await self._run(raw)

        flags = result.conflicts_and_gaps.risk_flags
        assert [f.type for f in flags] == ["risk_flag", "risk_flag"]
        assert flags[1].description == "plain text"

    @pytest.mark.asyncio
    async def test_truncates_lists(self):
        raw = synthesis_payload()
        steps = raw["synthesisAndNextSteps"]
        for key in steps:
            steps[key] = [f"{key} {i}" for i in range(10)]
        _, result = await self._run(raw)

        synthesis = result.synthesis_and_next_steps
        assert len(synthesis.strong_points) == 5
        assert len(synthesis.weak_points) == 5
        assert len(synthesis.key_unknowns) == 6
        assert len(synthesis.suggested_next_steps) == 7
        assert len(synthesis.pivot_guidance) == 4

    @pytest.mark.asyncio
    async def test_missing_section_is_shape_error(self):
        with pytest.raises(ShapeValidationError) as exc_info:
            await self._run({"conflictsAndGaps": {}})
        assert exc_info.value.code == "MISSING_KEY_synthesisAndNextSteps"
