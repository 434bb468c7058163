"""
LeadScout dedupe + scoring engine.

Two merge paths, neither of which ever drops an accepted value:
1. Same run, several sources: DiscoveredLeads grouped by canonical URL
2. New discovery vs persisted Lead: folded into the stored record in place
"""

from datetime import UTC, datetime
from urllib.parse import urlparse, urlunparse

from .models import (
    QUALITY_RANK,
    ContactBundle,
    DiscoveredLead,
    Lead,
    QualityTier,
    unique,
)


def canonical_url(url: str) -> str:
    """Normalize a URL for deduplication: lower host, no www, fragment or trailing slash."""
    url = url.strip()
    try:
        parsed = urlparse(url)
    except ValueError:
        return url
    if not parsed.netloc:
        return url.rstrip("/")
    host = parsed.netloc.lower()
    if host.startswith("www."):
        host = host[4:]
    path = parsed.path.rstrip("/")
    return urlunparse((parsed.scheme.lower(), host, path, parsed.params, parsed.query, ""))


def merge_bundles(a: ContactBundle, b: ContactBundle) -> ContactBundle:
    """Per-kind union: a's values in order, then b's values a did not have."""
    return ContactBundle(**{kind: unique([*values, *b.get(kind)]) for kind, values in a.items()})


def score_quality(bundle: ContactBundle, has_description: bool) -> QualityTier:
    """
    Coarse triage tier.

    high: 3+ contacts, at least one email, and a description
    medium: 2+ contacts, or any email
    low: everything else
    """
    total = bundle.total()
    has_email = bool(bundle.emails)
    if total >= 3 and has_email and has_description:
        return "high"
    if total >= 2 or has_email:
        return "medium"
    return "low"


def _best_score(a: int | None, b: int | None) -> int | None:
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)


def merge_discovered(existing: DiscoveredLead, incoming: DiscoveredLead) -> DiscoveredLead:
    """Fold a second same-run result for the same URL into the first."""
    contacts = merge_bundles(existing.contacts, incoming.contacts)
    description = existing.description or incoming.description
    return existing.model_copy(
        update={
            "title": existing.title or incoming.title,
            "description": description,
            "contacts": contacts,
            "sources": unique([*existing.sources, *incoming.sources]),
            "tags": unique([*existing.tags, *incoming.tags]),
            "relevance_score": _best_score(existing.relevance_score, incoming.relevance_score),
            "quality": score_quality(contacts, bool(description)),
        }
    )


def dedupe_discovered(results: list[DiscoveredLead]) -> list[DiscoveredLead]:
    """Merge a run's results that point at the same canonical URL."""
    by_key: dict[str, DiscoveredLead] = {}

    for result in results:
        key = canonical_url(result.url)
        if key in by_key:
            by_key[key] = merge_discovered(by_key[key], result)
        else:
            by_key[key] = result

    return list(by_key.values())


def merge_into_lead(lead: Lead, incoming: DiscoveredLead) -> Lead:
    """
    Merge a new discovery into a persisted Lead, in place.

    Quality only moves up: to the incoming tier if strictly better, or to
    high when the incoming record came from enrichment.
    """
    lead.contacts = merge_bundles(lead.contacts, incoming.contacts)
    lead.tags = unique([*lead.tags, *incoming.tags])
    lead.sources = unique([*lead.sources, *incoming.sources])

    if incoming.source == "enriched":
        lead.quality = "high"
    elif QUALITY_RANK[incoming.quality] > QUALITY_RANK[lead.quality]:
        lead.quality = incoming.quality

    lead.relevance_score = _best_score(lead.relevance_score, incoming.relevance_score)

    # Fill missing fields
    if not lead.title and incoming.title:
        lead.title = incoming.title
    if not lead.description and incoming.description:
        lead.description = incoming.description

    lead.updated_at = datetime.now(UTC)
    return lead
