"""Text processing — compacts idea descriptions for deep research prompts.

Keeps the informative blocks of a (possibly long, pasted) idea description,
drops bullet-heavy menus and emoji, hard-caps the length, and extracts a
short frequency-ranked keyword list. Deterministic: same idea → same output.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass
from typing import List

from ..schemas.market_validation_schema import IdeaContext

# Pictographs, dingbats, flags, variation selectors and ZWJ.
_EMOJI_RE = re.compile(
    "["
    "\U0001F000-\U0001FAFF"
    "\U00002600-\U000027BF"
    "\U00002B00-\U00002BFF"
    "\U0001F1E6-\U0001F1FF"
    "\u200d\ufe0f"
    "]",
)

_KEEP_HEADINGS: tuple[str, ...] = (
    "the core idea",
    "why this works",
    "expansion potential",
    "one-line pitch",
    "descripción",
    "idea",
)

_STOP_WORDS: frozenset[str] = frozenset(
    {
        "the", "and", "for", "with", "you", "your", "this", "that", "are",
        "but", "not", "into", "from", "they", "their",
        "una", "para", "con", "que", "por", "como", "pero",
    }
)

MAX_COMPACT_CHARS = 1000
MAX_KEYWORDS = 12
_MAX_BLOCK_CHARS = 500
_LISTY_THRESHOLD = 6


@dataclass(frozen=True)
class CompactIdea:
    compact_description: str
    keywords: str


def compact_idea_text(raw: str, max_chars: int = 1200) -> str:
    """Strip emoji, collapse whitespace and hard-cut to *max_chars*."""
    if not raw:
        return ""
    text = _EMOJI_RE.sub("", raw)
    text = text.replace("\r\n", "\n")
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text).strip()
    if len(text) <= max_chars:
        return text
    return text[:max_chars].rstrip() + "…"


def extract_key_sections(raw: str) -> str:
    """Keep heading blocks and short, non-listy blocks; drop mega lists."""
    if not raw:
        return ""
    text = raw.replace("\r\n", "\n")
    blocks = [b.strip() for b in re.split(r"\n\s*\n", text) if b.strip()]

    kept: List[str] = []
    for block in blocks:
        lowered = block.lower()
        is_heading = any(heading in lowered for heading in _KEEP_HEADINGS)
        bullet_lines = len(re.findall(r"^\s*[-•]", block, flags=re.MULTILINE))
        dash_items = block.count(" – ")
        is_listy = bullet_lines >= _LISTY_THRESHOLD or dash_items >= _LISTY_THRESHOLD
        if is_heading or (not is_listy and len(block) <= _MAX_BLOCK_CHARS):
            kept.append(block)

    result = "\n\n".join(kept) if kept else "\n\n".join(blocks[:2])
    return result.strip()


def keywordize(raw: str, max_items: int = MAX_KEYWORDS) -> List[str]:
    """Most frequent content words (≥4 chars), ties in first-seen order."""
    if not raw:
        return []
    cleaned = _EMOJI_RE.sub("", raw.lower())
    cleaned = re.sub(r"[^a-z0-9\s-]", " ", cleaned)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()

    words = [w for w in cleaned.split(" ") if len(w) >= 4 and w not in _STOP_WORDS]
    # Counter preserves insertion order, and most_common() is a stable sort.
    return [word for word, _ in Counter(words).most_common(max_items)]


def process_idea_description(idea: IdeaContext) -> CompactIdea:
    """Compact description + comma-joined keywords for the stage prompts."""
    description = idea.description or ""
    return CompactIdea(
        compact_description=compact_idea_text(extract_key_sections(description), MAX_COMPACT_CHARS),
        keywords=", ".join(keywordize(description)),
    )
