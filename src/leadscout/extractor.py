"""
LeadScout extractor - regex-based contact extraction from raw page text.

Key design:
- One pass per requested TargetKind; other kinds are skipped entirely
- Every capture goes through its cleaner, then the format-tier predicate
- Pure and stateless: safe to call from worker threads
"""

from collections.abc import Iterable
from functools import partial

from bs4 import BeautifulSoup

from .denylists import bare_host
from .models import ALL_TARGETS, ContactBundle, TargetKind, unique
from .patterns import PATTERNS
from .validator import FORMAT_PREDICATES


def _limit_root_domains(websites: list[str], max_websites: int) -> list[str]:
    """Keep at most max_websites distinct root domains, first seen first."""
    kept: list[str] = []
    roots: set[str] = set()
    for website in websites:
        root = bare_host(website)
        if root in roots:
            continue
        if len(roots) >= max_websites:
            break
        roots.add(root)
        kept.append(website)
    return kept


def extract_kind(
    text: str,
    kind: TargetKind,
    source_url: str = "",
    max_websites: int = 3,
) -> list[str]:
    """
    Extract, clean and format-check the values of one kind.

    Args:
        text: Raw text (or HTML) to scan
        kind: The contact kind to look for
        source_url: URL of the page the text came from (self-links are dropped)
        max_websites: Cap on distinct website root domains

    Returns:
        Duplicate-free values in first-seen order
    """
    pattern = PATTERNS[kind]
    cleaner = pattern.cleaner
    if kind == "websites":
        cleaner = partial(cleaner, source_domain=bare_host(source_url) if source_url else "")

    cleaned = []
    for raw in pattern.captures(text):
        value = cleaner(raw)
        if value is not None:
            cleaned.append(value)

    values = [value for value in unique(cleaned) if FORMAT_PREDICATES[kind](value)]
    if kind == "websites":
        values = _limit_root_domains(values, max_websites)
    return values


def extract_contacts(
    text: str,
    source_url: str = "",
    targets: Iterable[TargetKind] = ALL_TARGETS,
    max_websites: int = 3,
) -> ContactBundle:
    """
    Turn unstructured text into a ContactBundle.

    Kinds outside `targets` stay empty. Empty text yields an empty bundle.
    """
    if not text:
        return ContactBundle()

    requested = set(targets)
    fields = {
        kind: extract_kind(text, kind, source_url, max_websites)
        for kind in ALL_TARGETS
        if kind in requested
    }
    return ContactBundle(**fields)


def normalize_contacts(bundle: ContactBundle) -> ContactBundle:
    """
    Run loosely formatted values (AI output, manual input) through the cleaners.

    Bare domains get an https:// scheme; handles given as profile URLs are
    reduced to the handle. No source domain applies, so a lead's own site
    survives as a website.
    """
    fields: dict[str, list[str]] = {}
    for kind, values in bundle.items():
        cleaned: list[str] = []
        for value in values:
            value = value.strip()
            if kind == "websites" and "://" not in value:
                if "." not in value or " " in value:
                    continue
                value = f"https://{value}"
            elif kind not in ("emails", "websites") and "/" in value:
                cleaned.extend(extract_kind(value, kind))
                continue
            result = PATTERNS[kind].cleaner(value)
            if result is not None:
                cleaned.append(result)
        fields[kind] = cleaned
    return ContactBundle(**fields)


def html_to_text(html: str) -> str:
    """
    Flatten HTML into scannable text, keeping link targets.

    Handles live in href attributes more often than in visible text, so each
    href is appended after the visible text.
    """
    if not html:
        return ""
    soup = BeautifulSoup(html, "lxml")
    hrefs = [a.get("href", "") for a in soup.find_all("a")]
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    visible = soup.get_text(separator=" ", strip=True)
    return "\n".join([visible, *[href for href in hrefs if isinstance(href, str) and href]])


def extract_from_html(
    html: str,
    source_url: str = "",
    targets: Iterable[TargetKind] = ALL_TARGETS,
    max_websites: int = 3,
) -> ContactBundle:
    """extract_contacts over the visible text and link targets of an HTML page."""
    return extract_contacts(html_to_text(html), source_url, targets, max_websites)
