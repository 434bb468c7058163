"""
LeadScout validator - two-tier contact validation.

Format tier: synchronous regex/denylist predicates, no I/O.
Deep tier: async reachability checks against the live web. Network failure
never drops data: a check that cannot decide reports UNKNOWN, and only
ABSENT removes an item.

Platform body markers are scraped from live markup and drift over time;
they live in ValidatorConfig so they can be updated from the settings file.
"""

import asyncio
import re
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any
from urllib.parse import urlparse

import httpx

from .denylists import ASSET_EXTENSIONS, GENERIC_INBOXES, bare_host, is_junk_handle
from .models import ContactBundle, SingleUrlCheck, TargetKind, ValidationResult

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# =============================================================================
# FORMAT TIER
# =============================================================================

_EMAIL_SHAPE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_EMAIL_TEST_DOMAIN = re.compile(r"@(example|test|localhost)\.", re.IGNORECASE)
_EMAIL_VENDOR_DOMAIN = re.compile(r"@(sentry|wix|mailchimp)\.", re.IGNORECASE)
_HANDLE_CHARS = re.compile(r"^[a-z0-9._-]+$")

JUNK_WEBSITE_MARKERS: tuple[str, ...] = (
    "example.com",
    "localhost",
    "test.com",
    "sentry.io",
    "google.com/search",
    "facebook.com/sharer",
    "twitter.com/intent",
    "linkedin.com/sharing",
)


def is_valid_email(email: str) -> bool:
    if not _EMAIL_SHAPE.match(email):
        return False
    local = email.split("@", 1)[0].lower()
    if local in GENERIC_INBOXES:
        return False
    if _EMAIL_TEST_DOMAIN.search(email) or _EMAIL_VENDOR_DOMAIN.search(email):
        return False
    return not email.lower().endswith(ASSET_EXTENSIONS)


def is_valid_phone(phone: str) -> bool:
    """7-15 digits, not a placeholder like 0000000 or 1234567."""
    digits = re.sub(r"\D", "", phone)
    if len(digits) < 7 or len(digits) > 15:
        return False
    if len(set(digits)) == 1:
        return False
    return not digits.startswith(("123456", "000000"))


def is_valid_social_handle(handle: str) -> bool:
    cleaned = handle.removeprefix("@").lower()
    if len(cleaned) < 2 or len(cleaned) > 30:
        return False
    if not _HANDLE_CHARS.match(cleaned):
        return False
    return not is_junk_handle(cleaned)


def is_valid_website(url: str) -> bool:
    try:
        parsed = urlparse(url)
        host = (parsed.hostname or "").lower()
    except ValueError:
        return False
    if parsed.scheme.lower() not in ("http", "https") or not host:
        return False
    lowered = url.lower()
    return not any(marker in host or marker in lowered for marker in JUNK_WEBSITE_MARKERS)


FORMAT_PREDICATES: dict[TargetKind, Callable[[str], bool]] = {
    "emails": is_valid_email,
    "phones": is_valid_phone,
    "websites": is_valid_website,
    "whatsapp": is_valid_phone,
    "instagram": is_valid_social_handle,
    "github": is_valid_social_handle,
    "twitter": is_valid_social_handle,
    "linkedin": is_valid_social_handle,
    "telegram": is_valid_social_handle,
    "discord": is_valid_social_handle,
}


def validate_format(bundle: ContactBundle | Mapping[str, Any]) -> ValidationResult:
    """
    Keep only values that pass their kind's format predicate.

    Accepts a ContactBundle or any partial mapping of kind -> values.
    Every rejected value counts toward removed_count.
    """
    if not isinstance(bundle, ContactBundle):
        bundle = ContactBundle.from_partial(bundle)

    removed = 0
    fields: dict[str, list[str]] = {}
    for kind, values in bundle.items():
        predicate = FORMAT_PREDICATES[kind]
        kept = [value for value in values if predicate(value)]
        removed += len(values) - len(kept)
        fields[kind] = kept
    return ValidationResult(**fields, removed_count=removed)


# =============================================================================
# DEEP TIER
# =============================================================================


class Presence(Enum):
    """Verdict of a live check. Only ABSENT is evidence enough to drop."""

    ABSENT = "absent"
    PRESENT = "present"
    UNKNOWN = "unknown"

    @property
    def keep(self) -> bool:
        return self is not Presence.ABSENT


@dataclass
class ValidatorConfig:
    """Deep-tier tuning: timeouts, per-call caps and platform body markers."""

    timeout: float = 5.0
    max_handles_per_kind: int = 5
    max_websites: int = 3
    user_agent: str = DEFAULT_USER_AGENT
    instagram_absent_markers: tuple[str, ...] = (
        "Sorry, this page isn't available",
        "Page Not Found",
        '"user":null',
    )
    twitter_absent_markers: tuple[str, ...] = (
        "This account doesn't exist",
        "Account suspended",
    )
    telegram_present_markers: tuple[str, ...] = (
        "you can contact",
        "Preview channel",
        "can view and join",
    )


PROFILE_URLS: dict[str, str] = {
    "instagram": "https://www.instagram.com/{handle}/",
    "twitter": "https://twitter.com/{handle}",
    "github": "https://github.com/{handle}",
    "linkedin": "https://www.linkedin.com/in/{handle}/",
    "telegram": "https://t.me/{handle}",
}

LINKEDIN_COMPANY_URL = "https://www.linkedin.com/company/{handle}/"

# Checked concurrently; discord invites have no reliable existence signal
DEEP_SOCIAL_KINDS: tuple[TargetKind, ...] = ("instagram", "twitter", "github", "linkedin", "telegram")

PLATFORM_HOSTS: dict[str, tuple[str, ...]] = {
    "instagram": ("instagram.com",),
    "twitter": ("twitter.com", "x.com"),
    "github": ("github.com",),
    "linkedin": ("linkedin.com",),
    "telegram": ("t.me", "telegram.me"),
}


def _headers(config: ValidatorConfig) -> dict[str, str]:
    return {
        "User-Agent": config.user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.5",
    }


@asynccontextmanager
async def _client_scope(
    client: httpx.AsyncClient | None, config: ValidatorConfig
) -> AsyncIterator[httpx.AsyncClient]:
    """Use the injected client, or own one for the duration of the call."""
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(
        timeout=config.timeout,
        follow_redirects=True,
        headers=_headers(config),
    ) as owned:
        yield owned


async def _get(client: httpx.AsyncClient, url: str, config: ValidatorConfig) -> httpx.Response:
    request = client.get(url, headers=_headers(config), timeout=config.timeout, follow_redirects=True)
    return await asyncio.wait_for(request, timeout=config.timeout)


async def check_website(
    url: str, client: httpx.AsyncClient, config: ValidatorConfig | None = None
) -> Presence:
    """404/410/5xx is ABSENT, any other status PRESENT, no answer UNKNOWN."""
    config = config or ValidatorConfig()
    try:
        response = await _get(client, url, config)
    except (httpx.HTTPError, httpx.InvalidURL, TimeoutError):
        return Presence.UNKNOWN
    if response.status_code in (404, 410) or response.status_code >= 500:
        return Presence.ABSENT
    return Presence.PRESENT


def _classify_profile(platform: str, response: httpx.Response, config: ValidatorConfig) -> Presence:
    if response.status_code == 404:
        return Presence.ABSENT
    if platform == "instagram":
        if any(marker in response.text for marker in config.instagram_absent_markers):
            return Presence.ABSENT
    elif platform == "twitter":
        if any(marker in response.text for marker in config.twitter_absent_markers):
            return Presence.ABSENT
    elif platform == "telegram":
        if any(marker in response.text for marker in config.telegram_present_markers):
            return Presence.PRESENT
    # Login walls, rate limits and unfamiliar markup prove nothing
    return Presence.UNKNOWN


async def _profile_presence(
    platform: str, url: str, client: httpx.AsyncClient, config: ValidatorConfig
) -> Presence:
    try:
        response = await _get(client, url, config)
    except (httpx.HTTPError, httpx.InvalidURL, TimeoutError):
        return Presence.UNKNOWN
    return _classify_profile(platform, response, config)


async def check_social_profile(
    platform: str,
    handle: str,
    client: httpx.AsyncClient,
    config: ValidatorConfig | None = None,
) -> Presence:
    """
    Check a handle against its platform's canonical profile page.

    A LinkedIn slug is ABSENT only when both the /in/ and /company/ pages 404.
    """
    config = config or ValidatorConfig()
    template = PROFILE_URLS.get(platform)
    if template is None:
        return Presence.UNKNOWN
    handle = handle.removeprefix("@")

    presence = await _profile_presence(platform, template.format(handle=handle), client, config)
    if platform == "linkedin" and presence is Presence.ABSENT:
        company_url = LINKEDIN_COMPANY_URL.format(handle=handle)
        presence = await _profile_presence(platform, company_url, client, config)
    return presence


async def _check_kind(
    kind: TargetKind,
    handles: list[str],
    client: httpx.AsyncClient,
    config: ValidatorConfig,
) -> tuple[list[str], int]:
    """Sequential checks within one kind; values past the cap are dropped uncounted."""
    cap = config.max_handles_per_kind
    kept: list[str] = []
    removed = 0
    for handle in handles[:cap]:
        presence = await check_social_profile(kind, handle, client, config)
        if presence.keep:
            kept.append(handle)
        else:
            removed += 1
            print(f"[Validator] Removed invalid {kind}: {handle}")
    return kept, removed


async def validate_deep(
    bundle: ContactBundle | Mapping[str, Any],
    config: ValidatorConfig | None = None,
    client: httpx.AsyncClient | None = None,
) -> ValidationResult:
    """
    Format tier, then live checks for websites and social handles.

    Websites are checked one by one first, then the five checkable social
    kinds run concurrently. Emails, phones, whatsapp and discord pass through.
    Never raises for network reasons.
    """
    config = config or ValidatorConfig()
    basic = validate_format(bundle)
    removed = basic.removed_count

    async with _client_scope(client, config) as http:
        websites: list[str] = []
        for url in basic.websites[: config.max_websites]:
            presence = await check_website(url, http, config)
            if presence.keep:
                websites.append(url)
            else:
                removed += 1
                print(f"[Validator] Removed invalid website: {url}")

        results = await asyncio.gather(
            *(_check_kind(kind, basic.get(kind), http, config) for kind in DEEP_SOCIAL_KINDS)
        )

    fields = {kind: list(values) for kind, values in basic.items()}
    fields["websites"] = websites
    for kind, (kept, kind_removed) in zip(DEEP_SOCIAL_KINDS, results, strict=True):
        fields[kind] = kept
        removed += kind_removed
    return ValidationResult(**fields, removed_count=removed)


# =============================================================================
# SINGLE URL
# =============================================================================


def detect_platform(host: str) -> str | None:
    """Platform for a host; exact host or subdomain match only."""
    host = bare_host(host)
    for platform, domains in PLATFORM_HOSTS.items():
        if any(host == domain or host.endswith("." + domain) for domain in domains):
            return platform
    return None


def handle_from_path(platform: str, path: str) -> str | None:
    segments = [segment for segment in path.split("/") if segment]
    if platform == "linkedin":
        if len(segments) >= 2 and segments[0] in ("in", "company"):
            return segments[1]
        return None
    if not segments:
        return None
    return segments[0].removeprefix("@") or None


async def validate_single_url(
    url: str,
    config: ValidatorConfig | None = None,
    client: httpx.AsyncClient | None = None,
) -> SingleUrlCheck:
    """
    Check one profile or website URL.

    Known social hosts are checked as profiles; anything else (or a profile
    URL without a handle) falls back to a plain reachability check.
    """
    config = config or ValidatorConfig()
    try:
        parsed = urlparse(url)
        host = parsed.hostname
    except ValueError:
        return SingleUrlCheck(valid=False)
    if parsed.scheme.lower() not in ("http", "https") or not host:
        return SingleUrlCheck(valid=False)

    platform = detect_platform(host)
    handle = handle_from_path(platform, parsed.path) if platform else None

    async with _client_scope(client, config) as http:
        if platform is None or handle is None:
            presence = await check_website(url, http, config)
            return SingleUrlCheck(valid=presence.keep)
        presence = await check_social_profile(platform, handle, http, config)
    return SingleUrlCheck(valid=presence.keep, platform=platform, handle=handle)


# =============================================================================
# SYNC WRAPPERS
# =============================================================================


def validate_deep_sync(
    bundle: ContactBundle | Mapping[str, Any], config: ValidatorConfig | None = None
) -> ValidationResult:
    """validate_deep for callers without an event loop."""
    return asyncio.run(validate_deep(bundle, config))


def validate_single_url_sync(url: str, config: ValidatorConfig | None = None) -> SingleUrlCheck:
    """validate_single_url for callers without an event loop."""
    return asyncio.run(validate_single_url(url, config))
