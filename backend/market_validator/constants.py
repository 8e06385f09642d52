"""Centralized constants shared across the deep research agent and routes.

This module is the SINGLE SOURCE OF TRUTH for the hypothesis layers, the
market signal taxonomy, evidence classifications and per-stage output
limits. Reused by:
  - Deep Research Agent (prompts, stage repairs)
  - Result schemas
  - Frontend (mirrored in the report tabs)
"""

from __future__ import annotations

# ── Behavioral funnel layers ────────────────────────────────────────────
# Exactly one hypothesis per layer, always in this order.
# LOCKED — the report UI renders hypotheses by position.

HYPOTHESIS_LAYERS: list[str] = [
    "existence",
    "awareness",
    "consideration",
    "intent",
    "pay_intention",
]

# ── Market signal taxonomy ──────────────────────────────────────────────
# Fixed list, fixed order. Evaluated independently of the layers above.

MARKET_SIGNAL_TYPES: list[str] = [
    "existing_workarounds",
    "competitors",
    "social_trend",
    "cost_per_attention",
    "channel_fit",
    "share_triggers",
    "market_sophistication",
    "objection_density",
]

# Human-readable labels used in the signal research prompt.
MARKET_SIGNAL_LABELS: dict[str, str] = {
    "existing_workarounds": "Existing Workarounds",
    "competitors": "Direct and Possible Competitors",
    "social_trend": "Social Media Trending (TikTok/Instagram/etc.)",
    "cost_per_attention": "Cost-Per-Attention Signals",
    "channel_fit": "Channel-Idea Fit",
    "share_triggers": "Share Triggers",
    "market_sophistication": "Market Sophistication Level",
    "objection_density": "Objection Density",
}

# ── Evidence and confidence enums ───────────────────────────────────────
CONFIDENCE_LEVELS: list[str] = ["low", "medium", "high"]
EVIDENCE_TYPES: list[str] = ["behavioral", "quantitative", "stated", "directional"]
CONFLICT_TYPES: list[str] = ["contradiction", "missing_signal", "risk_flag"]

SUPPORTED_LANGUAGES: frozenset[str] = frozenset({"en", "es"})

# ── Hypothesis evidence (Step B1) requirements ──────────────────────────
SOURCES_PER_HYPOTHESIS: int = 5
BEHAVIORAL_SOURCES_PER_HYPOTHESIS: int = 3
QUANTITATIVE_SOURCES_PER_HYPOTHESIS: int = 2
HYPOTHESIS_SNIPPET_MAX_CHARS: int = 180
CONTRADICTING_SIGNALS_MAX: int = 2
CONTRADICTING_SIGNAL_MAX_CHARS: int = 140
DRAFT_DESCRIPTION_MAX_CHARS: int = 260

# ── Market signal (Step B2) requirements ────────────────────────────────
SOURCES_PER_SIGNAL: int = 2
SIGNAL_SNIPPET_MAX_CHARS: int = 160

# ── Synthesis (Step C) list bounds ──────────────────────────────────────
SYNTHESIS_LIST_LIMITS: dict[str, int] = {
    "strong_points": 5,
    "weak_points": 5,
    "key_unknowns": 6,
    "suggested_next_steps": 7,
    "pivot_guidance": 4,
}

# ── Final result ────────────────────────────────────────────────────────
RESULT_SCHEMA_VERSION: int = 1

REQUIRED_RESULT_KEYS: list[str] = [
    "marketSnapshot",
    "behavioralHypotheses",
    "marketSignals",
    "conflictsAndGaps",
    "synthesisAndNextSteps",
]

# Fallback when a 429 carries no parseable retry hint.
DEFAULT_RETRY_AFTER_SECONDS: int = 3
