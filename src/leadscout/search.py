"""
LeadScout search providers - keyword web search and AI research.

Keyword search returns SearchHits (title, url, snippet); AI research returns
ResearchLeads that already carry a loosely-shaped contact bundle.
"""

import json
import os
import re
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

import httpx
import openai
from openai import OpenAI
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .models import ALL_TARGETS, ENTITY_TYPES, ContactBundle, EnrichmentData, EntityType, TargetKind


class ProviderError(Exception):
    """Raised when an upstream search/research API is unavailable or misbehaves."""


class RateLimitError(ProviderError):
    """Raised when API returns 429 Too Many Requests."""


# =============================================================================
# KEYWORD SEARCH
# =============================================================================


class SearchHit(BaseModel):
    """One organic web search result."""

    model_config = ConfigDict(extra="forbid")

    title: str = ""
    url: str = Field(..., min_length=1)
    description: str = ""


class SearchProvider(ABC):
    """Abstract search provider interface."""

    @abstractmethod
    def search(self, query: str, count: int = 10) -> list[SearchHit]:
        """Execute search and return hits."""


class BraveSearchProvider(SearchProvider):
    """Brave web search API provider with retry logic."""

    BASE_URL = "https://api.search.brave.com/res/v1/web/search"

    def __init__(self, api_key: str | None = None, transport: httpx.BaseTransport | None = None):
        self.api_key = api_key or os.getenv("BRAVE_API_KEY")
        if not self.api_key:
            raise ValueError("BRAVE_API_KEY not set")
        self._transport = transport
        self._last_request_time: float = 0
        self._min_request_interval: float = 1.0  # Free tier allows 1 request/s

    def _wait_for_rate_limit(self) -> None:
        """Ensure minimum interval between requests."""
        elapsed = time.time() - self._last_request_time
        if elapsed < self._min_request_interval:
            time.sleep(self._min_request_interval - elapsed)
        self._last_request_time = time.time()

    @retry(
        retry=retry_if_exception_type(RateLimitError),
        stop=stop_after_attempt(4),
        wait=wait_exponential(multiplier=2, min=2, max=30),
        reraise=True,
    )
    def _search_with_retry(self, query: str, count: int) -> list[SearchHit]:
        """Execute search with retry on rate limit."""
        self._wait_for_rate_limit()

        headers = {
            "Accept": "application/json",
            "X-Subscription-Token": self.api_key,
        }
        params = {"q": query, "count": count, "search_lang": "en"}

        try:
            with httpx.Client(timeout=30, transport=self._transport) as client:
                resp = client.get(self.BASE_URL, params=params, headers=headers)
        except httpx.HTTPError as e:
            raise ProviderError(f"Brave search failed: {e}") from e

        if resp.status_code == 429:
            print("  [Rate limit] Brave 429, backing off...")
            raise RateLimitError("Brave search rate limited")
        if not resp.is_success:
            raise ProviderError(f"Brave search failed: {resp.status_code} {resp.reason_phrase}")

        try:
            data = resp.json()
        except ValueError as e:
            raise ProviderError(f"Brave search returned invalid JSON: {e}") from e

        hits = []
        for item in (data.get("web") or {}).get("results", []):
            if not item.get("url"):
                continue
            hits.append(
                SearchHit(
                    title=item.get("title") or "",
                    url=item["url"],
                    description=item.get("description") or "",
                )
            )
        return hits

    def search(self, query: str, count: int = 10) -> list[SearchHit]:
        """Execute Brave web search and return hits."""
        return self._search_with_retry(query, count)


class MockSearchProvider(SearchProvider):
    """Mock provider for testing - returns predefined hits."""

    def __init__(self, hits: list[SearchHit] | None = None):
        self.hits = hits or []
        self.queries: list[str] = []

    def search(self, query: str, count: int = 10) -> list[SearchHit]:
        self.queries.append(query)
        return self.hits[:count]


# =============================================================================
# AI RESEARCH
# =============================================================================


class ResearchLead(BaseModel):
    """One lead as returned by an AI research pass (already JSON-decoded)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    url: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: str = ""
    contacts: ContactBundle = Field(default_factory=ContactBundle)
    relevance_score: int | None = Field(default=None, alias="relevanceScore")
    tags: list[str] = Field(default_factory=list)

    @field_validator("contacts", mode="before")
    @classmethod
    def _loose_contacts(cls, value: Any) -> Any:
        if isinstance(value, ContactBundle):
            return value
        return ContactBundle.from_partial(value if isinstance(value, dict) else None)

    @field_validator("relevance_score", mode="before")
    @classmethod
    def _clamp_score(cls, value: Any) -> int | None:
        if value is None or value == "":
            return None
        try:
            score = round(float(value))
        except (TypeError, ValueError):
            return None
        return max(0, min(100, score))

    @field_validator("description", mode="before")
    @classmethod
    def _none_description(cls, value: Any) -> Any:
        return value or ""

    @field_validator("tags", mode="before")
    @classmethod
    def _string_tags(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        return [str(tag) for tag in value if tag]


ENTITY_SCALAR_FIELDS = (
    "description",
    "image",
    "title",
    "role",
    "company",
    "industry",
    "size",
    "founded",
    "headquarters",
    "author",
    "publisher",
    "year",
)

# Single-value contact fields the entity prompt asks for
ENTITY_CONTACT_FIELDS: dict[str, TargetKind] = {
    "website": "websites",
    "email": "emails",
    "phone": "phones",
    "twitter": "twitter",
    "linkedin": "linkedin",
    "github": "github",
    "instagram": "instagram",
}


class ResearchEntity(BaseModel):
    """One entity as returned by an AI directory search (already JSON-decoded)."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1)
    type: EntityType = "organization"
    description: str | None = None
    image: str | None = None
    title: str | None = None
    role: str | None = None
    company: str | None = None
    industry: str | None = None
    size: str | None = None
    founded: str | None = None
    headquarters: str | None = None
    author: str | None = None
    publisher: str | None = None
    year: str | None = None
    contacts: ContactBundle = Field(default_factory=ContactBundle)
    tags: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _gather_contacts(cls, data: Any) -> Any:
        """Fold website/email/twitter/... scalars into one contact bundle."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        raw = data.get("contacts")
        gathered: dict[str, list[Any]] = {}
        if isinstance(raw, dict):
            for kind, values in ContactBundle.from_partial(raw).items():
                gathered[kind] = list(values)
        for key, kind in ENTITY_CONTACT_FIELDS.items():
            value = data.pop(key, None)
            if value:
                gathered.setdefault(kind, []).append(value)
        data["contacts"] = ContactBundle.from_partial(gathered)
        return data

    @field_validator("type", mode="before")
    @classmethod
    def _known_type(cls, value: Any) -> Any:
        value = str(value or "").lower()
        return value if value in ENTITY_TYPES else "organization"

    @field_validator(*ENTITY_SCALAR_FIELDS, mode="before")
    @classmethod
    def _scalar_text(cls, value: Any) -> str | None:
        # "founded": 1998 and friends
        if value is None or isinstance(value, (dict, list)):
            return None
        return str(value).strip() or None

    @field_validator("tags", mode="before")
    @classmethod
    def _string_tags(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        return [str(tag) for tag in value if tag]


TARGET_DESCRIPTIONS: dict[str, str] = {
    "emails": "email addresses",
    "phones": "phone numbers",
    "websites": "website URLs",
    "whatsapp": "WhatsApp numbers",
    "instagram": "Instagram handles",
    "github": "GitHub profiles",
    "twitter": "Twitter/X handles",
    "linkedin": "LinkedIn profiles",
    "telegram": "Telegram handles",
    "discord": "Discord servers",
}

RESEARCH_PROMPT = """You are a lead generation research assistant. Search for relevant companies/people and return structured data.
Return ONLY valid JSON, no markdown or explanations.
{context}
Return an array of leads in this exact format:
[
  {{
    "url": "https://example.com",
    "title": "Company/Person Name",
    "description": "Brief description of what they do",
    "contacts": {{
      "emails": ["email@example.com"],
      "phones": ["+1234567890"],
      "websites": ["https://example.com"],
      "whatsapp": [],
      "instagram": ["handle"],
      "github": ["username"],
      "twitter": ["handle"],
      "linkedin": ["profile-slug"],
      "telegram": [],
      "discord": []
    }},
    "relevanceScore": 85,
    "tags": ["startup", "ai", "b2b"]
  }}
]"""

RESEARCH_QUERY_PROMPT = """Search for: "{query}"

Find companies/people matching this query and extract their contact information.
Focus on finding: {targets}

Return up to 10 relevant leads as a JSON array. Include relevance scores (0-100) based on how well they match the search intent."""

IMPROVE_PROMPT = (
    "You are a search query optimizer. Improve the given search query to find better "
    "lead generation results. Return ONLY the improved query, nothing else."
)

ENRICH_PROMPT = """Research this company/entity:
Name: {title}
URL: {url}
{description}
Return JSON with this structure:
{{
  "companyInfo": "Brief company description",
  "industry": "Primary industry",
  "size": "Employee count range (e.g., 10-50)",
  "funding": "Funding status if known",
  "techStack": ["technology1", "technology2"],
  "keyPeople": [{{"name": "John Doe", "role": "CEO", "contact": "email or linkedin"}}],
  "additionalContacts": {{
    "emails": [],
    "phones": [],
    "linkedin": [],
    "twitter": []
  }}
}}"""

ENTITY_TYPE_DESCRIPTIONS: dict[str, str] = {
    "all": "people, organizations, books, products, events, or places",
    "person": "people/individuals",
    "organization": "companies/organizations",
    "book": "books/publications",
    "product": "products/services",
    "event": "events/conferences",
    "place": "places/locations",
}

ENTITY_SYSTEM_PROMPT = (
    "You are a research assistant that finds and structures information about entities. "
    "Always return valid JSON arrays only."
)

ENTITY_PROMPT = """Search for {types} related to: "{query}"
{context}
Return a JSON array of entities with this structure:
[
  {{
    "name": "Entity Name",
    "type": "person|organization|book|product|event|place",
    "description": "Brief description (1-2 sentences)",
    "image": "URL to image/logo if known",
    "title": "Job title (for people)",
    "role": "Role or position",
    "company": "Company name (for people)",
    "industry": "Industry/sector",
    "size": "Company size (for orgs)",
    "founded": "Year founded",
    "headquarters": "Location",
    "author": "Author name (for books)",
    "publisher": "Publisher (for books)",
    "year": "Publication year",
    "website": "Official website URL",
    "email": "Contact email if public",
    "twitter": "Twitter handle without @",
    "linkedin": "LinkedIn profile slug",
    "tags": ["relevant", "tags"]
  }}
]

Return 10-20 relevant entities. Only include fields that are applicable and known.
Focus on well-known, verifiable entities. Return ONLY the JSON array, no other text."""


_FENCE = re.compile(r"```(?:json)?\s*\n?")


def parse_json_content(content: str) -> Any:
    """
    Decode JSON from a chat response.

    Strips markdown code fences, then decodes the first JSON array or object
    in the text.

    Raises:
        ValueError: If no JSON value can be decoded.
    """
    text = _FENCE.sub("", content).strip()
    try:
        return json.loads(text)
    except ValueError:
        pass

    decoder = json.JSONDecoder()
    for i, char in enumerate(text):
        if char in "[{":
            try:
                value, _ = decoder.raw_decode(text[i:])
                return value
            except ValueError:
                continue
    raise ValueError(f"No JSON found in response: {content[:100]!r}")


class ResearchProvider(ABC):
    """Abstract AI research provider interface."""

    @abstractmethod
    def research(
        self, query: str, targets: Iterable[TargetKind] = ALL_TARGETS, context: str = ""
    ) -> list[ResearchLead]:
        """Find leads for a query, with contacts of the requested kinds."""

    def improve_query(self, query: str, context: str = "", targets: Iterable[TargetKind] = ()) -> str:
        """Rewrite a query for better results; the original on any failure."""
        return query

    def enrich(self, url: str, title: str, description: str = "", context: str = "") -> EnrichmentData:
        """Background research on one lead; empty on any failure."""
        return EnrichmentData()

    def research_entities(
        self, query: str, entity_type: EntityType | str = "all", context: str = ""
    ) -> list[ResearchEntity]:
        """Find people, organizations, books and the like for a directory search."""
        return []


class PerplexityResearchProvider(ResearchProvider):
    """Perplexity research via its OpenAI-compatible chat completions API."""

    BASE_URL = "https://api.perplexity.ai"
    DEFAULT_MODEL = "sonar"

    def __init__(self, api_key: str | None = None, model: str | None = None, client: Any = None):
        self.api_key = api_key or os.getenv("PERPLEXITY_API_KEY")
        if not self.api_key and client is None:
            raise ValueError("PERPLEXITY_API_KEY not set")
        self.client = client or OpenAI(api_key=self.api_key, base_url=self.BASE_URL)
        self.model = model or os.getenv("LEADSCOUT_RESEARCH_MODEL", self.DEFAULT_MODEL)

    @retry(
        retry=retry_if_exception_type(RateLimitError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=2, min=2, max=30),
        reraise=True,
    )
    def _chat(self, system_prompt: str, user_prompt: str, temperature: float, max_tokens: int) -> str:
        """One chat completion; returns the message content."""
        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.RateLimitError as e:
            print("  [Rate limit] Perplexity 429, backing off...")
            raise RateLimitError(str(e)) from e
        except openai.OpenAIError as e:
            raise ProviderError(f"Perplexity request failed: {e}") from e

        if not completion.choices:
            return ""
        return completion.choices[0].message.content or ""

    def research(
        self, query: str, targets: Iterable[TargetKind] = ALL_TARGETS, context: str = ""
    ) -> list[ResearchLead]:
        """
        Ask the model for leads as a JSON array.

        Raises ProviderError if the API is unreachable; an unparseable answer
        is logged and yields no leads.
        """
        target_text = ", ".join(TARGET_DESCRIPTIONS.get(t, t) for t in targets)
        context_text = f"\nContext for filtering results: {context}\n" if context else ""
        content = self._chat(
            RESEARCH_PROMPT.format(context=context_text),
            RESEARCH_QUERY_PROMPT.format(query=query, targets=target_text),
            temperature=0.1,
            max_tokens=4096,
        )

        try:
            data = parse_json_content(content)
        except ValueError as e:
            print(f"[Research] Failed to parse response: {e}")
            return []
        if isinstance(data, dict):
            data = data.get("leads", [data])
        if not isinstance(data, list):
            print("[Research] Response is not a list of leads")
            return []

        leads = []
        for item in data:
            if not isinstance(item, dict):
                continue
            try:
                leads.append(ResearchLead.model_validate(item))
            except ValidationError:
                # Missing url or title
                continue
        return leads

    def improve_query(self, query: str, context: str = "", targets: Iterable[TargetKind] = ()) -> str:
        target_list = list(targets)
        lines = [f'Original query: "{query}"']
        if context:
            lines.append(f"Business context: {context}")
        if target_list:
            lines.append(f"Looking for: {', '.join(target_list)}")
        lines.append(
            "\nImprove this query to be more effective for finding business leads "
            "with contact information. Keep it concise but comprehensive."
        )

        try:
            improved = self._chat(IMPROVE_PROMPT, "\n".join(lines), temperature=0.3, max_tokens=200)
        except ProviderError as e:
            print(f"[Research] Query improvement failed: {e}")
            return query
        return improved.strip().strip('"') or query

    def enrich(self, url: str, title: str, description: str = "", context: str = "") -> EnrichmentData:
        system_prompt = (
            "You are a business intelligence researcher. Research the given company/entity "
            "and return detailed information.\nReturn ONLY valid JSON, no markdown or explanations."
        )
        if context:
            system_prompt += f"\nRelevance context: {context}"
        user_prompt = ENRICH_PROMPT.format(
            title=title,
            url=url,
            description=f"Description: {description}\n" if description else "",
        )

        try:
            content = self._chat(system_prompt, user_prompt, temperature=0.1, max_tokens=2048)
            data = parse_json_content(content)
            if not isinstance(data, dict):
                raise ValueError("enrichment response is not an object")
            return EnrichmentData.model_validate(data)
        except (ProviderError, ValueError) as e:
            print(f"[Research] Enrichment failed for {url}: {e}")
            return EnrichmentData()

    def research_entities(
        self, query: str, entity_type: EntityType | str = "all", context: str = ""
    ) -> list[ResearchEntity]:
        """
        Ask the model for entities as a JSON array.

        Raises ProviderError if the API is unreachable; an unparseable answer
        is logged and yields no entities.
        """
        types = ENTITY_TYPE_DESCRIPTIONS.get(entity_type, ENTITY_TYPE_DESCRIPTIONS["all"])
        context_text = f"Context for filtering results: {context}\n" if context else ""
        content = self._chat(
            ENTITY_SYSTEM_PROMPT,
            ENTITY_PROMPT.format(types=types, query=query, context=context_text),
            temperature=0.2,
            max_tokens=4096,
        )

        try:
            data = parse_json_content(content)
        except ValueError as e:
            print(f"[Directory] Failed to parse response: {e}")
            return []
        if isinstance(data, dict):
            data = data.get("entities", [data])
        if not isinstance(data, list):
            print("[Directory] Response is not a list of entities")
            return []

        entities = []
        for item in data:
            if not isinstance(item, dict):
                continue
            try:
                entities.append(ResearchEntity.model_validate(item))
            except ValidationError:
                # Missing name
                continue
        return entities


class MockResearchProvider(ResearchProvider):
    """Mock research provider for testing - returns predefined leads."""

    def __init__(
        self,
        leads: list[ResearchLead] | None = None,
        enrichment: EnrichmentData | None = None,
        improved_query: str | None = None,
        entities: list[ResearchEntity] | None = None,
    ):
        self.leads = leads or []
        self.entities = entities or []
        self.enrichment = enrichment or EnrichmentData()
        self.improved_query = improved_query
        self.queries: list[str] = []

    def research(
        self, query: str, targets: Iterable[TargetKind] = ALL_TARGETS, context: str = ""
    ) -> list[ResearchLead]:
        self.queries.append(query)
        return list(self.leads)

    def improve_query(self, query: str, context: str = "", targets: Iterable[TargetKind] = ()) -> str:
        return self.improved_query or query

    def enrich(self, url: str, title: str, description: str = "", context: str = "") -> EnrichmentData:
        return self.enrichment

    def research_entities(
        self, query: str, entity_type: EntityType | str = "all", context: str = ""
    ) -> list[ResearchEntity]:
        self.queries.append(query)
        if entity_type == "all":
            return list(self.entities)
        return [entity for entity in self.entities if entity.type == entity_type]


def get_search_provider(name: str = "brave") -> SearchProvider:
    """Factory to get the configured search provider."""
    if name == "brave":
        return BraveSearchProvider()
    elif name == "mock":
        return MockSearchProvider()
    else:
        raise ValueError(f"Unknown search provider: {name}")


def get_research_provider(name: str = "perplexity", model: str | None = None) -> ResearchProvider:
    """Factory to get the configured research provider."""
    if name == "perplexity":
        return PerplexityResearchProvider(model=model)
    elif name == "mock":
        return MockResearchProvider()
    else:
        raise ValueError(f"Unknown research provider: {name}")
