"""Deterministic repairs applied to generator output after parsing.

The stage prompts ask for fixed shapes (one hypothesis per layer, eight
signals in order, bounded snippets). These helpers make the parsed output
conform without calling the generator again. Every repair returns new model
instances; inputs are never mutated.
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Sequence, Tuple, TypeVar

from ...constants import HYPOTHESIS_LAYERS
from ...schemas.market_validation_schema import BehavioralHypothesis, Source
from .schema import RawHypothesis

T = TypeVar("T")
R = TypeVar("R")


def truncate(text: Any, max_chars: int) -> str:
    """Cut *text* to at most *max_chars*, ending with an ellipsis when cut."""
    value = text if isinstance(text, str) else ("" if text is None else str(text))
    value = value.strip()
    if len(value) <= max_chars:
        return value
    return value[: max_chars - 1].rstrip() + "…"


def normalise_key(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip().lower().replace("-", "_").replace(" ", "_")


def text_items(values: Sequence[Any]) -> List[str]:
    """Non-empty string items of *values*, stripped."""
    return [v.strip() for v in values if isinstance(v, str) and v.strip()]


def align_by_key(
    items: Sequence[T],
    order: Sequence[str],
    key: Callable[[T], Any],
    build: Callable[[str, Optional[T]], R],
) -> Tuple[List[R], List[str]]:
    """Return exactly one entry per key in *order*.

    For each key, the first item whose normalised key matches is used. An
    item with a blank/unknown key at the same position is used as a
    positional fallback. Otherwise *build* receives None and must produce a
    placeholder. Returns the aligned list and the keys that had no match.
    """
    known = set(order)
    by_key: dict[str, T] = {}
    for item in items:
        k = normalise_key(key(item))
        if k in known and k not in by_key:
            by_key[k] = item

    aligned: List[R] = []
    missing: List[str] = []
    for index, k in enumerate(order):
        match = by_key.get(k)
        if match is None and index < len(items) and normalise_key(key(items[index])) not in known:
            match = items[index]
        if match is None:
            missing.append(k)
        aligned.append(build(k, match))
    return aligned, missing


def hypothesis_from_raw(
    layer: str,
    raw: RawHypothesis,
    *,
    sources: Optional[List[Source]] = None,
    contradicting_signals: Optional[List[str]] = None,
) -> BehavioralHypothesis:
    """Build a BehavioralHypothesis for *layer* from generator output."""
    return BehavioralHypothesis(
        layer=layer,
        title=raw.title,
        description=raw.description,
        evidence_summary=raw.evidence_summary,
        confidence=raw.confidence,
        supporting_sources=(
            sources if sources is not None
            else [s.model_copy(deep=True) for s in raw.supporting_sources]
        ),
        contradicting_signals=(
            contradicting_signals if contradicting_signals is not None
            else text_items(raw.contradicting_signals)
        ),
    )


def placeholder_hypothesis(layer: str) -> BehavioralHypothesis:
    return BehavioralHypothesis(layer=layer, confidence="low")


def layer_order() -> List[str]:
    return list(HYPOTHESIS_LAYERS)
