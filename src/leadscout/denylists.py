"""
LeadScout denylists - static junk sets shared by the extractor and validator.

Everything here is built once at import time and never mutated.
"""

import re
from urllib.parse import urlparse

# =============================================================================
# JUNK HANDLES
# Strings that regex passes pick up from markup, share widgets and nav links
# =============================================================================

JUNK_HANDLES: frozenset[str] = frozenset(
    {
        # HTML/CSS/JS vocabulary
        "page", "class", "data", "count", "title", "name", "type", "value",
        "id", "div", "span", "link", "href", "src", "img", "alt", "url",
        "style", "script", "head", "body", "html", "meta", "form", "text",
        "input", "button", "label", "content", "item", "items", "list",
        "width", "height", "size", "color", "font", "border", "display",
        "margin", "padding", "flex", "grid", "block", "none", "auto",
        "center", "left", "right", "top", "bottom", "true", "false",
        "null", "undefined", "object", "array", "string", "number",
        "menu", "nav", "header", "footer", "main", "section", "article",
        "aside", "wrapper", "container", "row", "col", "column", "card",
        "box", "panel", "modal", "icon", "image", "logo", "avatar",
        "thumb", "thumbnail", "btn", "submit", "cancel", "close", "open",
        "active", "disabled", "hidden", "visible", "show", "hide", "toggle",
        "loading", "error", "success", "warning", "info", "alert", "message",
        "primary", "secondary", "default", "custom", "static", "dynamic",
        # Platform names
        "instagram", "twitter", "facebook", "linkedin", "github", "youtube",
        "tiktok", "pinterest", "snapchat", "reddit", "whatsapp", "telegram",
        "discord",
        # Page sections
        "home", "about", "contact", "privacy", "terms", "legal", "blog",
        "login", "signup", "register", "settings", "profile", "account",
        "search", "share", "intent", "hashtag", "status", "media", "post",
        "news", "help", "support", "faq", "careers", "jobs", "store", "shop",
        "explore", "sharer", "home.php", "widgets.js",
        # Generic words
        "user", "users", "admin", "test", "demo", "example", "sample", "app",
        "new", "old", "first", "last", "next", "prev", "previous", "api",
        "more", "less", "all", "any", "some", "other", "another", "web",
        "version", "beta", "alpha", "latest", "release", "update", "site",
        "username", "yourname", "yourhandle",
    }
)  # fmt: skip

_JUNK_HANDLE_PATTERNS = (
    re.compile(r"^[0-9]+$"),  # only digits
    re.compile(r"^[0-9.]+$"),  # 0.9.14
    re.compile(r"^v?\d+\.\d+"),  # v1.2.3
    re.compile(r"^[a-z]{1,2}$"),
    re.compile(r"^\d+[a-z]+$"),  # 2col
    re.compile(r"^[a-z]+\d+$"),  # page1, item2
    re.compile(r"^(item|data|class|page|type|name|value|count|index|node|row|col)_?\d*$"),
)

_STARTS_WITH_LETTER = re.compile(r"^[a-z]")


def is_junk_handle(handle: str) -> bool:
    """True if a cleaned, lower-cased handle looks like markup or boilerplate."""
    if len(handle) < 2:
        return True
    if handle in JUNK_HANDLES:
        return True
    if any(pattern.search(handle) for pattern in _JUNK_HANDLE_PATTERNS):
        return True
    return not _STARTS_WITH_LETTER.match(handle)


# =============================================================================
# EMAILS
# =============================================================================

BLOCKED_EMAIL_DOMAINS: frozenset[str] = frozenset(
    {
        "example.com",
        "example.org",
        "domain.com",
        "email.com",
        "yourdomain.com",
        "sentry.io",
        "sentry-next.wixpress.com",
        "wixpress.com",
        "wix.com",
        "mailchimp.com",
        "w3.org",
        "schema.org",
        "godaddy.com",
        "cloudflare.com",
        "squarespace.com",
        "wordpress.com",
    }
)

GENERIC_INBOXES: frozenset[str] = frozenset(
    {"info", "contact", "hello", "support", "admin", "noreply", "no-reply", "sales", "team", "help"}
)

ASSET_EXTENSIONS: tuple[str, ...] = (".png", ".jpg", ".jpeg", ".gif", ".svg", ".css", ".js")


def is_blocked_email_domain(domain: str) -> bool:
    """True if the domain (or a parent of it) is a known non-lead domain."""
    domain = domain.lower().strip(".")
    return any(domain == blocked or domain.endswith("." + blocked) for blocked in BLOCKED_EMAIL_DOMAINS)


# =============================================================================
# WEBSITES
# =============================================================================

BLOCKED_WEBSITE_DOMAINS: tuple[str, ...] = (
    # Social
    "facebook.com", "twitter.com", "x.com", "instagram.com", "linkedin.com",
    "youtube.com", "youtu.be", "tiktok.com", "pinterest.com", "reddit.com",
    "t.me", "telegram.me", "wa.me", "whatsapp.com",
    "discord.com", "discord.gg",
    # Dev tools
    "github.com", "gitlab.com",
    # Big platforms and CDNs
    "google.com", "googleapis.com", "gstatic.com", "googleusercontent.com",
    "apple.com", "microsoft.com", "amazon.com", "amazonaws.com",
    "cloudflare.com", "cloudfront.net", "akamaihd.net", "fastly.net",
    "jsdelivr.net", "unpkg.com", "cdnjs.com", "bootstrapcdn.com",
    # Analytics and ads
    "google-analytics.com", "googletagmanager.com", "doubleclick.net",
    "facebook.net", "fbcdn.net", "hotjar.com", "mixpanel.com",
    # Standards
    "w3.org", "schema.org", "json-ld.org",
    # Hosted blogs and site builders
    "medium.com", "substack.com", "wordpress.com", "blogger.com",
    "wix.com", "squarespace.com", "gravatar.com", "wp.com",
    # Error tracking
    "sentry.io", "bugsnag.com", "logrocket.com",
    # File hosting
    "dropbox.com", "imgur.com", "giphy.com",
)  # fmt: skip

BLOCKED_PATH_FRAGMENTS: tuple[str, ...] = (
    "/cdn/",
    "/static/",
    "/assets/",
    "/images/",
    "/js/",
    "/css/",
    "/api/",
    "/feed",
    "/rss",
    "/sitemap",
)

BLOCKED_PATH_SUFFIXES: tuple[str, ...] = (
    ".js",
    ".css",
    ".png",
    ".jpg",
    ".gif",
    ".svg",
    ".woff",
    ".ttf",
)


def bare_host(url_or_host: str) -> str:
    """Lower-cased host without port or leading www."""
    if "://" in url_or_host:
        try:
            host = urlparse(url_or_host).hostname or ""
        except ValueError:
            return ""
    else:
        host = url_or_host.split("/")[0].split(":")[0]
    host = host.lower().strip(".")
    if host.startswith("www."):
        host = host[4:]
    return host


def is_blocked_website(url: str, source_domain: str = "") -> bool:
    """
    True if a URL should not be reported as a "main website" contact.

    Rejects self-links to the source page's own domain, social/CDN/analytics
    hosts, asset and feed paths, and anything deeper than one path segment.
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return True
    host = bare_host(url)
    if not host:
        return True
    if source_domain and host == bare_host(source_domain):
        return True
    if any(host == blocked or host.endswith("." + blocked) for blocked in BLOCKED_WEBSITE_DOMAINS):
        return True

    path = parsed.path.lower()
    if any(fragment in path for fragment in BLOCKED_PATH_FRAGMENTS):
        return True
    if path.endswith(BLOCKED_PATH_SUFFIXES):
        return True
    segments = [segment for segment in path.split("/") if segment]
    return len(segments) > 1
