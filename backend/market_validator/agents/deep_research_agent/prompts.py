"""Prompt templates for the Deep Research Agent (Responses API).

One builder per stage. Output is always a single JSON object:
  - Draft (A) and Synthesis (C) additionally force JSON via text.format.
  - Hypothesis evidence (B1) and market signals (B2) run with web_search,
    where text.format is not sent, so the prompts carry the JSON contract.
"""

from __future__ import annotations

import json
from typing import Any, List

from ...constants import (
    CONTRADICTING_SIGNAL_MAX_CHARS,
    DRAFT_DESCRIPTION_MAX_CHARS,
    HYPOTHESIS_LAYERS,
    HYPOTHESIS_SNIPPET_MAX_CHARS,
    MARKET_SIGNAL_LABELS,
    MARKET_SIGNAL_TYPES,
    SIGNAL_SNIPPET_MAX_CHARS,
    SYNTHESIS_LIST_LIMITS,
)
from ...schemas.market_validation_schema import IdeaContext


def language_instruction(language: str) -> str:
    if language == "es":
        return "IMPORTANT: Respond in Spanish. All titles, descriptions, and content must be in Spanish."
    return "IMPORTANT: Respond in English. All titles, descriptions, and content must be in English."


def _idea_block(idea: IdeaContext, compact_description: str, keywords: str) -> str:
    return (
        f"TITLE: {idea.title}\n"
        f"DESCRIPTION (compact): {compact_description}\n"
        f"KEYWORDS: {keywords}\n"
        f"TAGS: {', '.join(idea.tags)}"
    )


def _dump(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Step A — draft (no web)
# ---------------------------------------------------------------------------
def build_draft_prompt(
    *,
    idea: IdeaContext,
    language: str,
    compact_description: str,
    keywords: str,
) -> str:
    layers = ", ".join(HYPOTHESIS_LAYERS)
    return f"""You are a Market Validation Analyst.

TASK:
- Create marketSnapshot AND a behavioralHypotheses SKELETON (no web research).
- Do NOT browse. Do NOT cite sources. Do NOT invent URLs.

RULES:
- Output MUST be valid JSON ONLY. No extra text. No markdown.
- behavioralHypotheses MUST contain EXACTLY 5 items, one per layer, in this order:
  {layers}
- supportingSources MUST be an empty array [] for every hypothesis (no evidence yet).
- Keep descriptions concise (<= {DRAFT_DESCRIPTION_MAX_CHARS} chars each).

Return JSON with EXACTLY this structure (no extra keys):
{{
  "marketSnapshot": {{
    "customerSegment": {{
      "primaryUser": "",
      "buyer": "",
      "contextOfUse": "",
      "environment": "consumer|SMB|enterprise|regulated"
    }},
    "marketContext": {{
      "type": "B2C|B2B|B2B2C",
      "scope": "horizontal|vertical",
      "categoryType": "new_category|existing_category"
    }},
    "geography": "",
    "timingContext": ""
  }},
  "behavioralHypotheses": [
    {{
      "layer": "{'|'.join(HYPOTHESIS_LAYERS)}",
      "title": "",
      "description": "",
      "evidenceSummary": "",
      "confidence": "low|medium|high",
      "supportingSources": [],
      "contradictingSignals": []
    }}
  ]
}}

{language_instruction(language)}

IDEA:
{_idea_block(idea, compact_description, keywords)}"""


# ---------------------------------------------------------------------------
# Step B1 — hypothesis evidence (web_search)
# ---------------------------------------------------------------------------
def build_hypothesis_evidence_prompt(
    *,
    idea: IdeaContext,
    language: str,
    compact_description: str,
    keywords: str,
    hypotheses: List[dict],
) -> str:
    return f"""You are a market signal researcher.

GOAL:
Fill evidence for the provided behavioralHypotheses ONLY.

HARD RULES:
- You MUST use web_search to find evidence for the hypotheses.
- Output MUST be VALID JSON ONLY. No extra text. No markdown. No code fences.
- Return ONLY this JSON structure: {{ "behavioralHypotheses": [...] }}
- Do NOT return marketSnapshot, marketSignals, conflictsAndGaps, or synthesisAndNextSteps.
- Keep the 5 hypotheses, their layers and their order exactly as given.

EVIDENCE REQUIREMENTS (strict):
For EACH hypothesis, set:
- evidenceSummary (<= {DRAFT_DESCRIPTION_MAX_CHARS} chars)
- confidence: low|medium|high
- supportingSources: EXACTLY 5 items total:
  - EXACTLY 3 with evidenceType "behavioral"
  - EXACTLY 2 with evidenceType "quantitative"
Each source must include: title, url, evidenceType, snippet
- snippet <= {HYPOTHESIS_SNIPPET_MAX_CHARS} characters, single paragraph, no long quotes

ONE SOURCE PER EVIDENCE (strict):
- A "source" is one site/domain (reddit.com, x.com, a single blog, a single news site).
  Different pages on the same domain count as the SAME source.
- Within a hypothesis, all 5 supportingSources MUST come from 5 DIFFERENT domains.
- If several good signals share a domain, keep the single strongest and find the rest elsewhere.

GLOBAL UNIQUENESS (strict):
- Across ALL behavioralHypotheses, every domain may appear AT MOST ONCE in the entire response.
- A domain cited for one layer must NOT appear under any other layer.
- 5 hypotheses x 5 sources = 25 sources = 25 different domains. Plan your searches for that.
- Before returning, check that no domain appears twice anywhere.

SOURCE PRIORITY FOR BEHAVIORAL EVIDENCE:
1) Observable behavior of real people: posts, comments and threads on Reddit, X (Twitter),
   niche forums, community discussions, product reviews.
2) Direct quotes or paraphrases of what people say they do, want, or struggle with.
- DEPRIORITIZE generic news, press releases, analyst reports and "thought leadership"
  unless they quote real users or customers.
- Prefer the thread/post/comment itself over an article summarising it.
- Behavioral snippets should read like people talking ("I always...", "We tried...",
  "Nobody I know..."), not headlines or analyst language.

CONTRADICTIONS:
- contradictingSignals: 0-2 short strings (<= {CONTRADICTING_SIGNAL_MAX_CHARS} chars each) if any conflicts are found.

INPUT IDEA:
{_idea_block(idea, compact_description, keywords)}

HYPOTHESES SKELETON (fill evidence for these):
{_dump(hypotheses)}

{language_instruction(language)}

Return JSON ONLY:
{{ "behavioralHypotheses": [ ...filled hypotheses... ] }}"""


# ---------------------------------------------------------------------------
# Step B2 — market signals (web_search)
# ---------------------------------------------------------------------------
_SIGNAL_SOURCE_GUIDANCE: dict[str, str] = {
    "existing_workarounds": "informal solutions, local ordering behavior, WhatsApp/Facebook groups, local directories.",
    "competitors": "apps/sites offering similar value, app store listings, local platforms.",
    "social_trend": "TikTok/IG hashtags, creator posts, comment sections, trend pages that clearly show trend behavior.",
    "cost_per_attention": "ad libraries, ad rate benchmarks, campaign case studies, CPM/CPC references, app install benchmarks.",
    "channel_fit": "channels where the target audience already converts (creator affiliate funnels, niche pages, promo mechanics).",
    "share_triggers": "explicit 'I shared this / tag a friend / sent to my group' behavior in comments, reviews or posts.",
    "market_sophistication": "users comparing options, knowing prices, expecting UX features, discussing quality metrics.",
    "objection_density": "complaints and friction: 'too expensive', 'slow', 'not worth it', trust/safety, payment issues.",
}


def build_signal_evidence_prompt(
    *,
    idea: IdeaContext,
    language: str,
    compact_description: str,
    keywords: str,
    banned_domains: List[str],
) -> str:
    total_sources = 2 * len(MARKET_SIGNAL_TYPES)
    signal_list = "\n".join(
        f"{i}) {MARKET_SIGNAL_LABELS[t]} (type: {t})" for i, t in enumerate(MARKET_SIGNAL_TYPES, start=1)
    )
    guidance = "\n".join(
        f"- {MARKET_SIGNAL_LABELS[t]}: {_SIGNAL_SOURCE_GUIDANCE[t]}" for t in MARKET_SIGNAL_TYPES
    )
    return f"""You are a marketing-focused market signal researcher.

GOAL:
Return evidence-backed marketSignals for the idea using web_search.

HARD RULES (non-negotiable):
- You MUST use web_search.
- Output MUST be VALID JSON ONLY. No extra text. No markdown. No code fences.
- Return ONLY this JSON structure: {{ "marketSignals": [...] }}
- Do NOT return marketSnapshot, behavioralHypotheses, conflictsAndGaps, or synthesisAndNextSteps.
- You MUST NOT reuse the same domain anywhere in the marketSignals output.

SIGNALS (fixed list; return ALL {len(MARKET_SIGNAL_TYPES)}, in this exact order):
{signal_list}

GLOBAL UNIQUENESS (hard constraint):
- Each signal MUST have EXACTLY 2 sources, so the response has EXACTLY {total_sources} sources.
- All {total_sources} sources MUST come from {total_sources} DIFFERENT domains (hostnames).
- If a signal cannot be evidenced without reusing a domain:
  - still output the signal,
  - set evidenceType="directional" for BOTH of its sources,
  - set strength="low".
  - NEVER reuse a domain to fill the gap.

BANNED DOMAINS (already used as hypothesis evidence; do NOT use any of them):
{_dump(banned_domains)}

SIGNAL-APPROPRIATE SOURCES:
{guidance}

QUALITY RULES (behavioral-first, but honest):
- PRIORITIZE real user comments, reviews, community threads, app store reviews, forum discussions.
- USE quantitative sources only where they fit the signal (cost-per-attention, competitors).
- DEPRIORITIZE generic SEO listicles, press releases and aggregator pages.
- Each evidence snippet MUST read like a real observation (complaint, desire, behavior) or a concrete metric.
- Do NOT reuse the same brand/entity as core evidence across signals, and do NOT reframe one page as several signals.

EVIDENCE SNIPPETS:
- Exactly 2 evidenceSnippets per signal, each <= {SIGNAL_SNIPPET_MAX_CHARS} characters.
- Snippet 1 corresponds to source 1; snippet 2 to source 2.

OUTPUT FORMAT (exact; no extra keys):
{{
  "marketSignals": [
    {{
      "type": "{'|'.join(MARKET_SIGNAL_TYPES)}",
      "title": "short title",
      "summary": "what the signal indicates (<= 280 chars)",
      "classification": "short classification label",
      "evidenceSnippets": ["<= {SIGNAL_SNIPPET_MAX_CHARS} chars", "<= {SIGNAL_SNIPPET_MAX_CHARS} chars"],
      "sources": [
        {{ "title": "", "url": "", "evidenceType": "behavioral|quantitative|stated|directional" }},
        {{ "title": "", "url": "", "evidenceType": "behavioral|quantitative|stated|directional" }}
      ],
      "strength": "low|medium|high"
    }}
  ]
}}

SELF-CHECK BEFORE RETURNING (silently):
1) {total_sources} sources in total.
2) {total_sources} unique hostnames.
3) No hostname from the banned list.
4) All {len(MARKET_SIGNAL_TYPES)} signals present, in order.
5) evidenceSnippets follow source order.

{language_instruction(language)}

IDEA:
{_idea_block(idea, compact_description, keywords)}

Return JSON ONLY."""


# ---------------------------------------------------------------------------
# Step C — synthesis (no web)
# ---------------------------------------------------------------------------
def build_synthesis_prompt(
    *,
    language: str,
    market_snapshot: dict,
    hypotheses: List[dict],
    market_signals: List[dict],
) -> str:
    limits = SYNTHESIS_LIST_LIMITS
    return f"""You are a Market Validation Analyst.

TASK:
Using ONLY the provided marketSnapshot + behavioralHypotheses (with supportingSources)
+ marketSignals (with sources), derive:
- conflictsAndGaps
- synthesisAndNextSteps

HARD RULES:
- Do NOT browse the web.
- Do NOT invent new URLs.
- Output MUST be valid JSON ONLY. No extra text. No markdown.

OUTPUT LIMITS:
- synthesisAndNextSteps:
  - strongPoints: max {limits['strong_points']}
  - weakPoints: max {limits['weak_points']}
  - keyUnknowns: max {limits['key_unknowns']}
  - suggestedNextSteps: max {limits['suggested_next_steps']} (each is a 48-72h test)
  - pivotGuidance: max {limits['pivot_guidance']}

Return JSON with EXACTLY this structure (no extra keys):
{{
  "conflictsAndGaps": {{
    "contradictions": [
      {{ "type": "contradiction", "description": "", "relatedSignals": [""] }}
    ],
    "missingSignals": [
      {{ "type": "missing_signal", "description": "" }}
    ],
    "riskFlags": [
      {{ "type": "risk_flag", "description": "" }}
    ]
  }},
  "synthesisAndNextSteps": {{
    "strongPoints": [""],
    "weakPoints": [""],
    "keyUnknowns": [""],
    "suggestedNextSteps": [""],
    "pivotGuidance": [""]
  }}
}}

{language_instruction(language)}

INPUTS:
marketSnapshot:
{_dump(market_snapshot)}

behavioralHypotheses (enriched):
{_dump(hypotheses)}

marketSignals (researched, treat as additional evidence):
{_dump(market_signals)}"""
