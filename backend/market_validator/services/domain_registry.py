"""Domain registry — hostname extraction for evidence-source uniqueness.

A "domain" is the lower-cased hostname of a cited URL with a leading
``www.`` removed. It is the unit over which the "no repeated source" rules
are evaluated, and the unit passed forward as ``bannedDomains`` from the
hypothesis evidence stage to the market signal stage.

Pure functions. Malformed URLs contribute no domain.
"""

from __future__ import annotations

from typing import Iterable, List
from urllib.parse import urlparse

from ..schemas.market_validation_schema import BehavioralHypothesis


def domain_of(url: str) -> str:
    """Return the normalised domain for *url*, or "" if it cannot be parsed."""
    if not url or not isinstance(url, str):
        return ""
    try:
        host = urlparse(url.strip()).hostname
    except ValueError:
        return ""
    if not host:
        return ""
    host = host.lower()
    if host.startswith("www."):
        host = host[4:]
    return host


def extract_domains(urls: Iterable[str]) -> List[str]:
    """Deduplicated domains of *urls*, in first-seen order."""
    seen: dict[str, None] = {}
    for url in urls:
        domain = domain_of(url)
        if domain:
            seen.setdefault(domain, None)
    return list(seen)


def collect_domains_from_hypotheses(hypotheses: Iterable[BehavioralHypothesis]) -> List[str]:
    """Every domain cited in the hypotheses' supporting sources."""
    return extract_domains(
        source.url
        for hypothesis in hypotheses
        for source in hypothesis.supporting_sources
    )
