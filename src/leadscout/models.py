"""
LeadScout data models - strict Pydantic schemas for contact discovery.

Design principles:
- extra="forbid" everywhere (fail fast on unknown fields)
- ContactBundle has exactly ten fields; unknown keys are dropped only at
  the from_partial() boundary
- Every contact list is duplicate-free with first-seen order
- Quality tier is derived, never set by hand (except enrichment)
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

# =============================================================================
# TYPE LITERALS
# =============================================================================

TargetKind = Literal[
    "emails",
    "phones",
    "websites",
    "whatsapp",
    "instagram",
    "github",
    "twitter",
    "linkedin",
    "telegram",
    "discord",
]

ALL_TARGETS: tuple[TargetKind, ...] = (
    "emails",
    "phones",
    "websites",
    "whatsapp",
    "instagram",
    "github",
    "twitter",
    "linkedin",
    "telegram",
    "discord",
)

SourceKind = Literal["keyword-search", "ai-research", "enriched", "manual"]

QualityTier = Literal["low", "medium", "high"]

QUALITY_RANK: dict[str, int] = {"low": 0, "medium": 1, "high": 2}

LeadStatus = Literal["new", "contacted", "replied", "converted", "rejected"]

# Where a query looks; a subset of SourceKind
QuerySource = Literal["keyword-search", "ai-research"]

EntityType = Literal["person", "organization", "book", "product", "event", "place"]

ENTITY_TYPES: tuple[EntityType, ...] = ("person", "organization", "book", "product", "event", "place")

QueryStatus = Literal["pending", "running", "completed", "failed"]


def _now() -> datetime:
    return datetime.now(UTC)


def unique(values: Iterable[str]) -> list[str]:
    """Drop duplicates and blanks, keeping first-seen order."""
    seen: set[str] = set()
    result = []
    for value in values:
        if not value or value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result


# =============================================================================
# CONTACT BUNDLE
# =============================================================================


class ContactBundle(BaseModel):
    """All extracted identifiers for one page/entity, one list per kind."""

    model_config = ConfigDict(extra="forbid")

    emails: list[str] = Field(default_factory=list)
    phones: list[str] = Field(default_factory=list)
    websites: list[str] = Field(default_factory=list)
    whatsapp: list[str] = Field(default_factory=list)
    instagram: list[str] = Field(default_factory=list)
    github: list[str] = Field(default_factory=list)
    twitter: list[str] = Field(default_factory=list)
    linkedin: list[str] = Field(default_factory=list)
    telegram: list[str] = Field(default_factory=list)
    discord: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _dedupe_fields(self) -> ContactBundle:
        # Emails compare case-insensitively
        self.emails = [email.lower() for email in self.emails]
        for kind in ALL_TARGETS:
            setattr(self, kind, unique(getattr(self, kind)))
        return self

    @classmethod
    def from_partial(cls, data: Mapping[str, Any] | None) -> ContactBundle:
        """
        Build a bundle from a loosely-shaped mapping (AI output, JSON payloads).

        Unknown keys and None values are ignored; a bare string counts as a
        one-element list. Non-string items are coerced with str().
        """
        if not data:
            return cls()
        fields: dict[str, list[str]] = {}
        for kind in ALL_TARGETS:
            raw = data.get(kind)
            if raw is None:
                continue
            if isinstance(raw, str):
                raw = [raw]
            elif not isinstance(raw, Iterable):
                continue
            fields[kind] = [str(item).strip() for item in raw if item is not None]
        return cls(**fields)

    def get(self, kind: str) -> list[str]:
        """Values for one kind."""
        return getattr(self, kind)

    def items(self) -> Iterator[tuple[TargetKind, list[str]]]:
        """Iterate (kind, values) in canonical field order."""
        for kind in ALL_TARGETS:
            yield kind, getattr(self, kind)

    def total(self) -> int:
        """Total number of contact values across all kinds."""
        return sum(len(values) for _, values in self.items())

    def is_empty(self) -> bool:
        return self.total() == 0


class ValidationResult(ContactBundle):
    """Validator output: the surviving bundle plus how many items were rejected."""

    removed_count: int = Field(default=0, ge=0)

    def to_bundle(self) -> ContactBundle:
        return ContactBundle(**{kind: list(values) for kind, values in self.items()})


class SingleUrlCheck(BaseModel):
    """Result of checking one profile or website URL."""

    model_config = ConfigDict(extra="forbid")

    valid: bool
    platform: str | None = None
    handle: str | None = None


# =============================================================================
# ENRICHMENT
# =============================================================================


class KeyPerson(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    role: str = ""
    contact: str | None = None


class EnrichmentData(BaseModel):
    """Company background returned by an enrichment research pass."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    company_info: str | None = Field(default=None, alias="companyInfo")
    industry: str | None = None
    size: str | None = None
    funding: str | None = None
    tech_stack: list[str] = Field(default_factory=list, alias="techStack")
    key_people: list[KeyPerson] = Field(default_factory=list, alias="keyPeople")
    additional_contacts: ContactBundle = Field(
        default_factory=ContactBundle, alias="additionalContacts"
    )

    @model_validator(mode="before")
    @classmethod
    def _loose_contacts(cls, data: Any) -> Any:
        if isinstance(data, dict):
            for key in ("additionalContacts", "additional_contacts"):
                raw = data.get(key)
                if isinstance(raw, Mapping) and not isinstance(raw, ContactBundle):
                    data = {**data, key: ContactBundle.from_partial(raw)}
        return data


# =============================================================================
# PROJECTS AND QUERIES
# =============================================================================


class Project(BaseModel):
    """A named lead-generation effort; its context steers AI research."""

    model_config = ConfigDict(extra="forbid")

    id: str
    name: str = Field(..., min_length=1)
    description: str | None = None
    context: str | None = None
    target_keywords: list[str] = Field(default_factory=list)
    exclude_keywords: list[str] = Field(default_factory=list)
    industry: str | None = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class Query(BaseModel):
    """A saved search within a project, rerunnable."""

    model_config = ConfigDict(extra="forbid")

    id: str
    project_id: str
    search_term: str = Field(..., min_length=1)
    improved_query: str | None = None
    targets: list[TargetKind] = Field(default_factory=lambda: list(ALL_TARGETS))
    sources: list[QuerySource] = Field(default_factory=lambda: ["keyword-search", "ai-research"])
    status: QueryStatus = "pending"
    last_run: datetime | None = None
    result_count: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    @property
    def effective_term(self) -> str:
        """The improved query if there is one."""
        return self.improved_query or self.search_term


# =============================================================================
# LEADS
# =============================================================================


class DiscoveredLead(BaseModel):
    """One result of a discovery run, before it reaches the store."""

    model_config = ConfigDict(extra="forbid")

    url: str = Field(..., min_length=1)
    title: str = ""
    description: str | None = None
    contacts: ContactBundle = Field(default_factory=ContactBundle)
    source: SourceKind = "keyword-search"
    sources: list[SourceKind] = Field(default_factory=list)
    quality: QualityTier = "low"
    tags: list[str] = Field(default_factory=list)
    relevance_score: int | None = Field(default=None, ge=0, le=100)

    @model_validator(mode="after")
    def _primary_in_sources(self) -> DiscoveredLead:
        if self.source not in self.sources:
            self.sources.insert(0, self.source)
        return self


class Lead(BaseModel):
    """
    A persisted lead: identity + one contact bundle + classification.
    Repeat encounters of the same URL are merged into it, never duplicated.
    """

    model_config = ConfigDict(extra="forbid")

    id: str
    project_id: str = ""
    query_id: str = ""
    url: str = Field(..., min_length=1)
    title: str = ""
    description: str | None = None

    contacts: ContactBundle = Field(default_factory=ContactBundle)

    # Provenance
    source: SourceKind = "manual"
    sources: list[SourceKind] = Field(default_factory=list)

    # Classification
    quality: QualityTier = "low"
    status: LeadStatus = "new"
    tags: list[str] = Field(default_factory=list)
    relevance_score: int | None = Field(default=None, ge=0, le=100)
    notes: str | None = None

    # Enrichment
    enriched_at: datetime | None = None
    enrichment: EnrichmentData | None = None

    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    def get_primary_email(self) -> str | None:
        """Get the first email found."""
        return self.contacts.emails[0] if self.contacts.emails else None

    def get_primary_phone(self) -> str | None:
        """Get the first phone found."""
        return self.contacts.phones[0] if self.contacts.phones else None


# =============================================================================
# DIRECTORY
# =============================================================================


class DirectoryQuery(BaseModel):
    """An AI entity search within a project."""

    model_config = ConfigDict(extra="forbid")

    id: str
    project_id: str
    search_term: str = Field(..., min_length=1)
    entity_type: EntityType | Literal["all"] = "all"
    status: QueryStatus = "pending"
    last_run: datetime | None = None
    result_count: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class DirectoryEntity(BaseModel):
    """
    A person, organization, book, product, event or place found by a
    directory search. Carries the same contact bundle as a Lead; the other
    descriptive fields apply only to some entity types.
    """

    model_config = ConfigDict(extra="forbid")

    id: str
    project_id: str = ""
    query_id: str = ""
    type: EntityType = "organization"
    name: str = Field(..., min_length=1)
    description: str | None = None
    image: str | None = None

    # People
    title: str | None = None
    role: str | None = None
    company: str | None = None

    # Organizations
    industry: str | None = None
    size: str | None = None
    founded: str | None = None
    headquarters: str | None = None

    # Books
    author: str | None = None
    publisher: str | None = None
    year: str | None = None

    contacts: ContactBundle = Field(default_factory=ContactBundle)
    source: SourceKind = "ai-research"
    tags: list[str] = Field(default_factory=list)

    enriched_at: datetime | None = None
    enrichment: EnrichmentData | None = None

    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    @property
    def search_context(self) -> str:
        """How the entity is described to a research model."""
        if self.type == "person":
            text = self.name
            if self.company:
                text += f" at {self.company}"
            if self.title:
                text += f", {self.title}"
            return text
        if self.type == "organization":
            return f"{self.name} company" + (f" in {self.industry}" if self.industry else "")
        return self.name


# =============================================================================
# RUN RESULTS
# =============================================================================


class RunResult(BaseModel):
    """Result of one discovery run for a query."""

    model_config = ConfigDict(extra="forbid")

    run_id: str = Field(default="")
    query_id: str = Field(default="")
    search_term: str = Field(default="")
    leads: list[Lead] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=_now)
    finished_at: datetime | None = Field(default=None)

    # Stats
    search_hits: int = Field(default=0)
    pages_fetched: int = Field(default=0)
    research_hits: int = Field(default=0)
    total_discovered: int = Field(default=0)
    total_after_dedupe: int = Field(default=0)
    removed_by_validation: int = Field(default=0)
    leads_created: int = Field(default=0)
    leads_merged: int = Field(default=0)

    # Errors
    errors: list[str] = Field(default_factory=list)
