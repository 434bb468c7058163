"""
LeadScout fetcher - polite HTTP fetching with rate limiting and caching.
"""

import hashlib
import json
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .extractor import html_to_text

HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")


@dataclass
class FetchResult:
    """Result of fetching a URL."""

    url: str
    success: bool
    status_code: int = 0
    html: str = ""
    text: str = ""
    error: str = ""
    from_cache: bool = False


@dataclass
class FetcherConfig:
    """Fetcher configuration."""

    timeout: float = 30.0
    max_retries: int = 3
    delay_between_requests: float = 1.0  # Seconds between requests to same domain
    max_concurrent: int = 5
    user_agent: str = "LeadScout/0.1 (Contact Discovery Tool)"
    cache_dir: Path | None = None  # If set, cache fetched pages here
    use_cache: bool = True  # Whether to use cached results if available


class Fetcher:
    """Polite HTTP fetcher with domain throttling and caching. Safe to share across threads."""

    def __init__(self, config: FetcherConfig | None = None, transport: httpx.BaseTransport | None = None):
        self.config = config or FetcherConfig()
        self._transport = transport
        self._domain_last_hit: dict[str, float] = {}
        self._domain_lock = threading.Lock()
        self._cache_hits = 0
        self._cache_misses = 0

    def _get_domain(self, url: str) -> str:
        """Extract domain from URL."""
        return urlparse(url).netloc.lower()

    def _wait_for_domain(self, domain: str) -> None:
        """Wait if we've hit this domain recently."""
        with self._domain_lock:
            last_hit = self._domain_last_hit.get(domain, 0.0)
            wait = self.config.delay_between_requests - (time.time() - last_hit)
            self._domain_last_hit[domain] = time.time() + max(wait, 0.0)
        if wait > 0:
            time.sleep(wait)

    def _url_to_cache_key(self, url: str) -> str:
        """Convert URL to a cache-safe filename."""
        return hashlib.sha256(url.encode()).hexdigest()[:16]

    def _get_cache_path(self, url: str) -> Path | None:
        if not self.config.cache_dir:
            return None
        return self.config.cache_dir / f"{self._url_to_cache_key(url)}.json"

    def _load_from_cache(self, url: str) -> FetchResult | None:
        """Try to load a cached result."""
        if not self.config.use_cache:
            return None

        cache_path = self._get_cache_path(url)
        if not cache_path or not cache_path.exists():
            return None

        try:
            with open(cache_path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            return None

        self._cache_hits += 1
        return FetchResult(
            url=data["url"],
            success=data["success"],
            status_code=data.get("status_code", 0),
            html=data.get("html", ""),
            text=data.get("text", ""),
            error=data.get("error", ""),
            from_cache=True,
        )

    def _save_to_cache(self, result: FetchResult) -> None:
        cache_path = self._get_cache_path(result.url)
        if not cache_path:
            return

        data = {
            "url": result.url,
            "success": result.success,
            "status_code": result.status_code,
            "html": result.html,
            "text": result.text,
            "error": result.error,
        }
        try:
            cache_path.parent.mkdir(parents=True, exist_ok=True)
            with open(cache_path, "w", encoding="utf-8") as f:
                json.dump(data, f)
        except OSError as e:
            print(f"[Fetcher] Cache write failed for {result.url}: {e}")

    def _fetch_with_retry(self, url: str) -> httpx.Response:
        """Fetch URL, retrying transport errors with exponential backoff."""

        @retry(
            stop=stop_after_attempt(self.config.max_retries),
            wait=wait_exponential(multiplier=1, min=2, max=10),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        )
        def _do_fetch() -> httpx.Response:
            with httpx.Client(
                timeout=self.config.timeout,
                follow_redirects=True,
                headers={"User-Agent": self.config.user_agent},
                transport=self._transport,
            ) as client:
                return client.get(url)

        return _do_fetch()

    def fetch(self, url: str) -> FetchResult:
        """
        Fetch a single URL, respecting rate limits and cache.

        Non-2xx or non-HTML responses come back with empty html/text.
        """
        cached = self._load_from_cache(url)
        if cached:
            return cached

        self._cache_misses += 1
        self._wait_for_domain(self._get_domain(url))

        try:
            resp = self._fetch_with_retry(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return FetchResult(url=url, success=False, error=str(e))

        content_type = resp.headers.get("content-type", "").lower()
        is_html = any(kind in content_type for kind in HTML_CONTENT_TYPES)
        if not resp.is_success or not is_html:
            return FetchResult(
                url=url,
                success=False,
                status_code=resp.status_code,
                error=f"HTTP {resp.status_code}" if not resp.is_success else f"Not HTML: {content_type}",
            )

        html = resp.text
        result = FetchResult(
            url=url,
            success=True,
            status_code=resp.status_code,
            html=html,
            text=html_to_text(html),
        )
        self._save_to_cache(result)
        return result

    def get_cache_stats(self) -> dict[str, float]:
        """Get cache hit/miss statistics."""
        return {
            "hits": self._cache_hits,
            "misses": self._cache_misses,
            "hit_rate": self._cache_hits / max(1, self._cache_hits + self._cache_misses),
        }


def fetch_page_content(url: str, fetcher: Fetcher | None = None) -> str:
    """HTML of a page, or "" if it could not be fetched."""
    fetcher = fetcher or Fetcher()
    return fetcher.fetch(url).html
