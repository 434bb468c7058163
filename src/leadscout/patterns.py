"""
LeadScout pattern library - one recognition regex plus a cleaner per contact kind.

A cleaner maps a raw capture to a normalized value, or None to reject it.
Social handles are only recognized inside their platform's URL; bare
@mentions are too ambiguous against surrounding prose.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import urlparse

from .denylists import (
    ASSET_EXTENSIONS,
    is_blocked_email_domain,
    is_blocked_website,
    is_junk_handle,
)
from .models import TargetKind

# No word char, dot or dash right before a platform domain, so that
# "netflix.com/" never reads as "x.com/"
_HOST_START = r"(?<![\w.-])"

EMAIL_REGEX = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

PHONE_REGEX = re.compile(
    r"(?<![\w.+/-])"
    r"(?:\+?\d{7,15}"
    r"|(?:\+\d{1,3}[\s.-]?)?(?:\(\d{1,4}\)[\s.-]?)?\d{2,5}(?:[\s.-]\d{2,5}){1,4})"
    r"(?![\w/-])"
)

WHATSAPP_REGEX = re.compile(
    r"(?:wa\.me/|whatsapp\.com/send/?\?phone=|whatsapp[\s:#-]*)(\+?\d[\d\s().-]{5,}\d)",
    re.IGNORECASE,
)

INSTAGRAM_REGEX = re.compile(
    _HOST_START + r"(?:www\.|m\.)?instagram\.com/([A-Za-z0-9_.]+)", re.IGNORECASE
)

GITHUB_REGEX = re.compile(_HOST_START + r"(?:www\.)?github\.com/([A-Za-z0-9-]+)", re.IGNORECASE)

TWITTER_REGEX = re.compile(
    _HOST_START + r"(?:www\.|mobile\.)?(?:twitter|x)\.com/(?:#!/)?@?([A-Za-z0-9_]+)",
    re.IGNORECASE,
)

TELEGRAM_REGEX = re.compile(_HOST_START + r"(?:t|telegram)\.me/([A-Za-z0-9_]+)", re.IGNORECASE)

LINKEDIN_REGEX = re.compile(
    _HOST_START + r"(?:[a-z]{2,3}\.)?linkedin\.com/(?:in|company)/([A-Za-z0-9_-]+)",
    re.IGNORECASE,
)

DISCORD_REGEX = re.compile(
    _HOST_START + r"(?:discord\.gg|discord(?:app)?\.com/invite)/([A-Za-z0-9-]+)",
    re.IGNORECASE,
)

WEBSITE_REGEX = re.compile(r"https?://[^\s\"'<>()\[\]{}|\\^`]+", re.IGNORECASE)

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
# IPv4 addresses, version strings and dotted dates; "415.555.0123" still passes
_DOTTED_NUMBER = re.compile(r"^(?:\d{1,3}(?:\.\d{1,3}){2,3}|\d{4}\.\d{1,2}\.\d{1,2}|\d{1,2}\.\d{1,2}\.\d{4})$")
_TRAILING_PUNCTUATION = ".,;:!?'\")]}"


# =============================================================================
# CLEANERS
# =============================================================================


def clean_email(raw: str) -> str | None:
    """Lower-case an email; reject denylisted domains and asset filenames."""
    email = raw.strip().strip(".").lower()
    if "@" not in email:
        return None
    if email.endswith(ASSET_EXTENSIONS):
        return None
    domain = email.rsplit("@", 1)[1]
    if is_blocked_email_domain(domain):
        return None
    return email


def clean_phone(raw: str) -> str | None:
    """Reduce a phone capture to its digits (7-15 of them)."""
    raw = raw.strip()
    if _ISO_DATE.match(raw) or _DOTTED_NUMBER.match(raw):
        return None
    digits = re.sub(r"\D", "", raw)
    if len(digits) < 7 or len(digits) > 15:
        return None
    return digits


def clean_handle(raw: str) -> str | None:
    """Normalize an instagram/github/twitter/telegram handle."""
    handle = raw.strip().lstrip("@").rstrip(".").lower()
    if is_junk_handle(handle):
        return None
    return handle


def clean_linkedin(raw: str) -> str | None:
    slug = raw.strip().strip("-").lower()
    return slug if len(slug) > 1 else None


def clean_discord(raw: str) -> str | None:
    # Invite codes are case-sensitive and opaque
    code = raw.strip()
    return code if len(code) > 1 else None


def clean_website(raw: str, source_domain: str = "") -> str | None:
    """
    Reduce a URL to scheme://host if it qualifies as a "main website".

    The Website Filter runs against the full URL (path included) before the
    path is dropped.
    """
    url = raw.strip().rstrip(_TRAILING_PUNCTUATION)
    try:
        parsed = urlparse(url)
        host = parsed.hostname
    except ValueError:
        return None
    if parsed.scheme.lower() not in ("http", "https") or not host:
        return None
    if is_blocked_website(url, source_domain):
        return None
    return f"{parsed.scheme.lower()}://{host}"


# =============================================================================
# PATTERN TABLE
# =============================================================================


@dataclass(frozen=True)
class ContactPattern:
    """Recognition regex and cleaner for one contact kind."""

    kind: TargetKind
    regex: re.Pattern[str]
    cleaner: Callable[..., str | None]
    group: int = 1

    def captures(self, text: str) -> list[str]:
        """All raw captures in text, in order of appearance."""
        return [match.group(self.group) for match in self.regex.finditer(text)]


PATTERNS: dict[TargetKind, ContactPattern] = {
    "emails": ContactPattern("emails", EMAIL_REGEX, clean_email, group=0),
    "phones": ContactPattern("phones", PHONE_REGEX, clean_phone, group=0),
    "websites": ContactPattern("websites", WEBSITE_REGEX, clean_website, group=0),
    "whatsapp": ContactPattern("whatsapp", WHATSAPP_REGEX, clean_phone),
    "instagram": ContactPattern("instagram", INSTAGRAM_REGEX, clean_handle),
    "github": ContactPattern("github", GITHUB_REGEX, clean_handle),
    "twitter": ContactPattern("twitter", TWITTER_REGEX, clean_handle),
    "linkedin": ContactPattern("linkedin", LINKEDIN_REGEX, clean_linkedin),
    "telegram": ContactPattern("telegram", TELEGRAM_REGEX, clean_handle),
    "discord": ContactPattern("discord", DISCORD_REGEX, clean_discord),
}
