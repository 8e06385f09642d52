"""Report schema tests — wire aliases and enum normalisation."""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from pydantic import ValidationError

from market_validator.schemas.market_validation_schema import (
    BehavioralHypothesis,
    ConflictItem,
    DeepResearchRequest,
    IdeaContext,
    MarketSignal,
    MarketSnapshot,
    Source,
)


class TestEnumNormalisation:
    def test_confidence_is_lowercased(self):
        assert BehavioralHypothesis(layer="existence", confidence="High").confidence == "high"

    def test_unknown_confidence_falls_back_to_low(self):
        assert BehavioralHypothesis(layer="existence", confidence="very sure").confidence == "low"

    def test_layer_accepts_spaced_form(self):
        assert BehavioralHypothesis(layer="Pay Intention").layer == "pay_intention"

    def test_unknown_layer_rejected(self):
        with pytest.raises(ValidationError):
            BehavioralHypothesis(layer="retention")

    def test_unknown_evidence_type_falls_back_to_stated(self):
        assert Source(url="https://a.com", evidenceType="anecdotal").evidence_type == "stated"

    def test_signal_type_and_strength(self):
        signal = MarketSignal(type="Cost-Per-Attention", strength=None)
        assert signal.type == "cost_per_attention"
        assert signal.strength == "low"

    def test_conflict_type(self):
        assert ConflictItem(type="Risk Flag").type == "risk_flag"


class TestWireNames:
    def test_accepts_camel_case(self):
        hypothesis = BehavioralHypothesis.model_validate(
            {"layer": "intent", "evidenceSummary": "x", "supportingSources": None}
        )
        assert hypothesis.evidence_summary == "x"
        assert hypothesis.supporting_sources == []

    def test_dumps_camel_case(self):
        data = Source(title="t", url="https://a.com").model_dump(by_alias=True)
        assert data == {"title": "t", "url": "https://a.com", "evidenceType": "stated", "snippet": ""}


class TestSnapshotSections:
    def test_string_segment_becomes_primary_user(self):
        snapshot = MarketSnapshot.model_validate({"customerSegment": "Busy dog owners"})
        assert snapshot.customer_segment.primary_user == "Busy dog owners"
        assert snapshot.customer_segment.buyer == ""

    def test_string_context_becomes_type(self):
        snapshot = MarketSnapshot.model_validate({"marketContext": "B2B2C", "customerSegment": None})
        assert snapshot.market_context.type == "B2B2C"
        assert snapshot.customer_segment.primary_user == ""

    def test_list_segment_rejected(self):
        with pytest.raises(ValidationError):
            MarketSnapshot.model_validate({"customerSegment": ["owners"]})

class TestRequest:
    def test_to_idea(self):
        request = DeepResearchRequest(title="Pet-sitting marketplace", description=None, tags=["pets"])
        idea = request.to_idea()
        assert idea == IdeaContext(title="Pet-sitting marketplace", description="", tags=["pets"])
        assert request.language == "en"

    def test_idea_is_frozen(self):
        idea = IdeaContext(title="Pet-sitting marketplace")
        with pytest.raises(ValidationError):
            idea.title = "Changed title here"
