"""
LeadScout pipeline - orchestrates a query run from search to stored leads.

Keyword search and AI research feed one list of DiscoveredLeads, which are
merged by URL, optionally deep-validated, scored and upserted into the store.
"""

import asyncio
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from pathlib import Path

import httpx

from .dedupe import dedupe_discovered, merge_into_lead, score_quality
from .exporter import generate_report
from .extractor import extract_contacts, normalize_contacts
from .fetcher import Fetcher
from .logger import ProgressLogger
from .models import (
    ContactBundle,
    DiscoveredLead,
    Lead,
    Project,
    Query,
    RunResult,
)
from .search import ProviderError, ResearchProvider, SearchHit, SearchProvider
from .settings import Settings
from .store import LeadStore, ProjectStore, QueryStore
from .validator import ValidatorConfig, validate_deep, validate_format


class Pipeline:
    """Runs one saved Query against its configured sources."""

    def __init__(
        self,
        query: Query,
        project: Project | None = None,
        search_provider: SearchProvider | None = None,
        research_provider: ResearchProvider | None = None,
        fetcher: Fetcher | None = None,
        settings: Settings | None = None,
        deep_validate: bool = False,
        verbose: bool = False,
        lead_store: LeadStore | None = None,
        query_store: QueryStore | None = None,
    ):
        self.query = query
        self.project = project
        self.search_provider = search_provider
        self.research_provider = research_provider
        self.settings = settings or Settings()
        self.fetcher = fetcher
        self.deep_validate = deep_validate
        self.lead_store = lead_store or LeadStore(self.settings.data_dir)
        self.query_store = query_store or QueryStore(self.settings.data_dir)
        self.run_id = datetime.now().strftime("%Y%m%d_%H%M%S") + "_" + uuid.uuid4().hex[:6]
        self.logger = ProgressLogger(self.run_id, verbose=verbose)

    @property
    def context(self) -> str:
        return (self.project.context or "") if self.project else ""

    def run(self, report_path: Path | None = None) -> RunResult:
        """
        Execute the run and persist its leads.

        If report_path is given, a markdown run report is written there.

        Raises:
            ProviderError: If a search or research provider fails; the query
                is marked failed first.
        """
        term = self.query.effective_term
        result = RunResult(run_id=self.run_id, query_id=self.query.id, search_term=term)

        self.logger.phase("Starting run", f"ID={self.run_id}")
        self.query_store.update(self.query.id, status="running")

        discovered: list[DiscoveredLead] = []
        try:
            if "keyword-search" in self.query.sources:
                self.logger.phase("Keyword search", term)
                discovered.extend(self._keyword_search(term, result))
            if "ai-research" in self.query.sources:
                self.logger.phase("AI research", term)
                discovered.extend(self._ai_research(term, result))
        except ProviderError as e:
            result.errors.append(str(e))
            result.finished_at = datetime.now(UTC)
            self.logger.error(str(e))
            self.query_store.update(self.query.id, status="failed", last_run=datetime.now(UTC))
            raise

        result.total_discovered = len(discovered)

        self.logger.phase("Merging", f"{len(discovered)} results")
        merged = dedupe_discovered(discovered)
        result.total_after_dedupe = len(merged)
        self.logger.deduped(len(discovered), len(merged))

        if self.deep_validate and merged:
            self.logger.phase("Deep validation", f"{len(merged)} leads")
            merged, removed = asyncio.run(self._deep_validate_all(merged))
            result.removed_by_validation += removed

        leads = self._store_leads(merged, result)

        self.query_store.update(
            self.query.id,
            status="completed",
            last_run=datetime.now(UTC),
            result_count=len(leads),
        )
        result.leads = leads
        result.finished_at = datetime.now(UTC)
        if report_path is not None:
            generate_report(result, report_path)
        self.logger.finish(len(leads), str(Path(self.settings.data_dir)))
        if report_path is not None:
            print(f"  Report: {report_path}")
        return result

    def _keyword_search(self, term: str, result: RunResult) -> list[DiscoveredLead]:
        if self.search_provider is None:
            self.logger.warning("Keyword search requested but no search provider configured")
            return []

        hits = self.search_provider.search(term, count=self.settings.search.results_per_query)
        result.search_hits = len(hits)
        self.logger.search(term, len(hits))
        if not hits:
            return []

        discovered: list[DiscoveredLead] = []
        fetched = 0
        workers = self.settings.fetcher.max_concurrent
        # map() keeps search rank order, so merges see the best hit first
        with ThreadPoolExecutor(max_workers=workers) as executor:
            for lead, page_fetched in executor.map(self._process_hit, hits):
                self.logger.heartbeat("Fetching pages")
                fetched += int(page_fetched)
                self.logger.extracted(lead.url, lead.contacts.total())
                discovered.append(lead)

        result.pages_fetched = fetched
        self.logger.pages(fetched, len(hits))
        if self.fetcher is not None and self.fetcher.config.cache_dir:
            stats = self.fetcher.get_cache_stats()
            self.logger.cache(int(stats["hits"]), int(stats["misses"]))
        return discovered

    def _process_hit(self, hit: SearchHit) -> tuple[DiscoveredLead, bool]:
        """Fetch one hit's page and extract its contacts (runs in a worker thread)."""
        page_text = ""
        page_fetched = False
        if self.fetcher is not None:
            page = self.fetcher.fetch(hit.url)
            if page.success:
                page_fetched = True
                page_text = page.text
            else:
                self.logger.skip("Fetch failed", f"{hit.url} ({page.error})")

        contacts = extract_contacts(
            f"{hit.description}\n{page_text}",
            hit.url,
            self.query.targets,
            max_websites=self.settings.validation.max_websites,
        )
        lead = DiscoveredLead(
            url=hit.url,
            title=hit.title,
            description=hit.description or None,
            contacts=contacts,
            source="keyword-search",
            quality=score_quality(contacts, bool(hit.description)),
        )
        return lead, page_fetched

    def _ai_research(self, term: str, result: RunResult) -> list[DiscoveredLead]:
        if self.research_provider is None:
            self.logger.warning("AI research requested but no research provider configured")
            return []

        research = self.research_provider.research(term, self.query.targets, context=self.context)
        result.research_hits = len(research)
        self.logger.research(term, len(research))

        targets = set(self.query.targets)
        discovered: list[DiscoveredLead] = []
        for item in research:
            requested = ContactBundle(**{kind: values for kind, values in item.contacts.items() if kind in targets})
            validated = validate_format(normalize_contacts(requested))
            result.removed_by_validation += validated.removed_count
            contacts = validated.to_bundle()
            discovered.append(
                DiscoveredLead(
                    url=item.url,
                    title=item.title,
                    description=item.description or None,
                    contacts=contacts,
                    source="ai-research",
                    quality=score_quality(contacts, bool(item.description)),
                    tags=item.tags,
                    relevance_score=item.relevance_score,
                )
            )
        return discovered

    async def _deep_validate_all(self, leads: list[DiscoveredLead]) -> tuple[list[DiscoveredLead], int]:
        """Deep-validate every lead over one shared HTTP client."""
        config: ValidatorConfig = self.settings.to_validator_config()
        removed = 0
        validated_leads = []
        async with httpx.AsyncClient(timeout=config.timeout, follow_redirects=True) as client:
            for i, lead in enumerate(leads, 1):
                self.logger.progress("Lead", i, len(leads), lead.url[:60])
                validated = await validate_deep(lead.contacts, config, client)
                removed += validated.removed_count
                validated_leads.append(lead.model_copy(update={"contacts": validated.to_bundle()}))
        self.logger.validated(sum(lead.contacts.total() for lead in validated_leads), removed)
        return validated_leads, removed

    def _store_leads(self, merged: list[DiscoveredLead], result: RunResult) -> list[Lead]:
        tiers: dict[str, int] = {}
        leads: list[Lead] = []
        for discovered in merged:
            if discovered.contacts.is_empty():
                self.logger.skip("No contacts", discovered.url)
                continue
            discovered = discovered.model_copy(
                update={"quality": score_quality(discovered.contacts, bool(discovered.description))}
            )
            lead, created = self.lead_store.upsert(discovered, self.query.project_id, self.query.id)
            if created:
                result.leads_created += 1
            else:
                result.leads_merged += 1
            tiers[lead.quality] = tiers.get(lead.quality, 0) + 1
            leads.append(lead)

        self.logger.merged(result.leads_created, result.leads_merged)
        if tiers:
            self.logger.quality_distribution(tiers)
        return leads


def enrich_lead(
    lead_id: str,
    research_provider: ResearchProvider,
    lead_store: LeadStore,
    project_store: ProjectStore | None = None,
) -> Lead | None:
    """
    Add AI background research to a stored lead.

    New contacts are format-validated and merged in; the lead is forced to
    high quality and tagged "enriched". Returns None for an unknown id.
    """
    lead = lead_store.get(lead_id)
    if lead is None:
        return None

    context = ""
    if project_store is not None and lead.project_id:
        project = project_store.get(lead.project_id)
        context = (project.context or "") if project else ""

    enrichment = research_provider.enrich(lead.url, lead.title, lead.description or "", context)
    contacts = validate_format(normalize_contacts(enrichment.additional_contacts)).to_bundle()

    incoming = DiscoveredLead(
        url=lead.url,
        title=lead.title,
        contacts=contacts,
        source="enriched",
        quality="high",
        tags=["enriched"],
    )
    lead = merge_into_lead(lead, incoming)
    lead.enrichment = enrichment
    lead.enriched_at = datetime.now(UTC)
    lead_store.save(lead)
    print(f"[Enrich] {lead.title or lead.url}: {contacts.total()} new contact values")
    return lead


def clean_leads(store: LeadStore, verbose: bool = False) -> int:
    """Re-run the format tier over every stored lead; returns the number of values removed."""
    total_removed = 0
    for lead in store.list():
        validated = validate_format(lead.contacts)
        if validated.removed_count == 0:
            continue
        total_removed += validated.removed_count
        lead.contacts = validated.to_bundle()
        lead.updated_at = datetime.now(UTC)
        store.save(lead)
        if verbose:
            print(f"[Clean] {lead.title[:40]}: removed {validated.removed_count} junk items")
    return total_removed
