"""Tests for the discovery pipeline, enrichment and cleaning."""

from pathlib import Path

import httpx
import pytest

from leadscout.fetcher import Fetcher, FetcherConfig
from leadscout.models import ContactBundle, EnrichmentData, Lead, Query, ValidationResult
from leadscout.pipeline import Pipeline, clean_leads, enrich_lead
from leadscout.search import (
    MockResearchProvider,
    MockSearchProvider,
    ProviderError,
    ResearchLead,
    SearchHit,
    SearchProvider,
)
from leadscout.settings import Settings
from leadscout.store import LeadStore, ProjectStore, QueryStore

ACME_HTML = """
<html><body>
  <p>Call +1 (415) 555-0123</p>
  <a href="https://github.com/acme-labs">GitHub</a>
</body></html>
"""


def site(request: httpx.Request) -> httpx.Response:
    if request.url.host == "acme.io":
        return httpx.Response(200, text=ACME_HTML, headers={"content-type": "text/html"})
    return httpx.Response(404, headers={"content-type": "text/html"})


@pytest.fixture
def search_provider() -> MockSearchProvider:
    return MockSearchProvider(
        [
            SearchHit(
                title="Acme Robotics",
                url="https://acme.io/about",
                description="Warehouse robots. Contact jane@acme.io",
            ),
            SearchHit(title="Beta", url="https://beta.io/", description=""),
        ]
    )


@pytest.fixture
def research_provider() -> MockResearchProvider:
    return MockResearchProvider(
        [
            ResearchLead(
                url="https://www.acme.io/about/",
                title="Acme",
                contacts=ContactBundle(twitter=["@acmehq"], emails=["info@acme.io"]),
                relevance_score=90,
                tags=["robotics"],
            ),
            ResearchLead(
                url="https://gamma.io",
                title="Gamma",
                description="Drone maker",
                contacts=ContactBundle(websites=["gamma.io"]),
            ),
        ]
    )


@pytest.fixture
def settings(data_dir: Path) -> Settings:
    return Settings(data_dir=str(data_dir))


def make_pipeline(
    query: Query,
    settings: Settings,
    search_provider: SearchProvider | None,
    research_provider: MockResearchProvider | None,
    deep_validate: bool = False,
) -> Pipeline:
    fetcher = Fetcher(
        FetcherConfig(delay_between_requests=0, max_retries=1),
        transport=httpx.MockTransport(site),
    )
    return Pipeline(
        query,
        search_provider=search_provider,
        research_provider=research_provider,
        fetcher=fetcher,
        settings=settings,
        deep_validate=deep_validate,
    )


class TestPipelineRun:
    """Tests for Pipeline.run."""

    def test_full_run(
        self,
        sample_query: Query,
        settings: Settings,
        search_provider: MockSearchProvider,
        research_provider: MockResearchProvider,
        query_store: QueryStore,
        lead_store: LeadStore,
    ) -> None:
        """Test keyword search and AI research land as merged, scored leads."""
        result = make_pipeline(sample_query, settings, search_provider, research_provider).run()

        assert result.search_hits == 2
        assert result.pages_fetched == 1
        assert result.research_hits == 2
        assert result.total_discovered == 4
        assert result.total_after_dedupe == 3
        assert result.removed_by_validation == 1  # generic inbox from research
        assert result.leads_created == 2  # beta.io had no contacts
        assert result.finished_at is not None

        acme = lead_store.find_by_url("https://acme.io/about")
        assert acme is not None
        assert acme.sources == ["keyword-search", "ai-research"]
        assert acme.contacts.emails == ["jane@acme.io"]
        assert acme.contacts.phones == ["14155550123"]
        assert acme.contacts.github == ["acme-labs"]
        assert acme.contacts.twitter == ["acmehq"]
        assert acme.relevance_score == 90
        assert acme.tags == ["robotics"]
        assert acme.quality == "high"
        assert acme.project_id == sample_query.project_id
        assert acme.query_id == sample_query.id

        gamma = lead_store.find_by_url("https://gamma.io")
        assert gamma is not None
        assert gamma.contacts.websites == ["https://gamma.io"]
        assert gamma.quality == "low"

        stored_query = query_store.get(sample_query.id)
        assert stored_query.status == "completed"
        assert stored_query.result_count == 2
        assert stored_query.last_run is not None

    def test_rerun_merges(
        self,
        sample_query: Query,
        settings: Settings,
        search_provider: MockSearchProvider,
        research_provider: MockResearchProvider,
        lead_store: LeadStore,
    ) -> None:
        make_pipeline(sample_query, settings, search_provider, research_provider).run()
        result = make_pipeline(sample_query, settings, search_provider, research_provider).run()
        assert result.leads_created == 0
        assert result.leads_merged == 2
        assert len(lead_store.list()) == 2

    def test_keyword_only(
        self,
        query_store: QueryStore,
        sample_query: Query,
        settings: Settings,
        search_provider: MockSearchProvider,
        research_provider: MockResearchProvider,
    ) -> None:
        query = query_store.update(sample_query.id, sources=["keyword-search"])
        result = make_pipeline(query, settings, search_provider, research_provider).run()
        assert result.research_hits == 0
        assert research_provider.queries == []
        assert result.leads_created == 1

    def test_targets_restrict_contacts(
        self,
        query_store: QueryStore,
        sample_query: Query,
        settings: Settings,
        search_provider: MockSearchProvider,
        research_provider: MockResearchProvider,
        lead_store: LeadStore,
    ) -> None:
        query = query_store.update(sample_query.id, targets=["emails"])
        make_pipeline(query, settings, search_provider, research_provider).run()
        acme = lead_store.find_by_url("https://acme.io/about")
        assert acme.contacts.emails == ["jane@acme.io"]
        assert acme.contacts.github == []
        assert acme.contacts.twitter == []
        # Gamma only had a website
        assert lead_store.find_by_url("https://gamma.io") is None

    def test_uses_improved_query(
        self,
        query_store: QueryStore,
        sample_query: Query,
        settings: Settings,
        search_provider: MockSearchProvider,
    ) -> None:
        query = query_store.update(
            sample_query.id, improved_query="warehouse robotics startups contact", sources=["keyword-search"]
        )
        make_pipeline(query, settings, search_provider, None).run()
        assert search_provider.queries == ["warehouse robotics startups contact"]

    def test_provider_error_marks_failed(
        self, sample_query: Query, settings: Settings, query_store: QueryStore
    ) -> None:
        class BrokenSearch(SearchProvider):
            def search(self, query: str, count: int = 10) -> list[SearchHit]:
                raise ProviderError("Brave search failed: 503")

        with pytest.raises(ProviderError):
            make_pipeline(sample_query, settings, BrokenSearch(), None).run()
        assert query_store.get(sample_query.id).status == "failed"

    def test_deep_validation(
        self,
        monkeypatch: pytest.MonkeyPatch,
        sample_query: Query,
        settings: Settings,
        search_provider: MockSearchProvider,
        research_provider: MockResearchProvider,
        lead_store: LeadStore,
    ) -> None:
        async def drop_phones(bundle, config=None, client=None) -> ValidationResult:
            data = bundle.model_dump()
            removed = len(data["phones"])
            data["phones"] = []
            return ValidationResult(**data, removed_count=removed)

        monkeypatch.setattr("leadscout.pipeline.validate_deep", drop_phones)

        result = make_pipeline(
            sample_query, settings, search_provider, research_provider, deep_validate=True
        ).run()

        assert result.removed_by_validation == 2
        assert lead_store.find_by_url("https://acme.io/about").contacts.phones == []

    def test_logs_phases(
        self,
        capsys,
        sample_query: Query,
        settings: Settings,
        search_provider: MockSearchProvider,
        research_provider: MockResearchProvider,
    ) -> None:
        make_pipeline(sample_query, settings, search_provider, research_provider).run()
        out = capsys.readouterr().out
        assert "[Phase] Keyword search" in out
        assert "[Phase] AI research" in out
        assert "[LeadScout] Run complete" in out

    def test_writes_report(
        self,
        tmp_path: Path,
        sample_query: Query,
        settings: Settings,
        search_provider: MockSearchProvider,
        research_provider: MockResearchProvider,
    ) -> None:
        report_path = tmp_path / "reports" / "run.md"
        make_pipeline(sample_query, settings, search_provider, research_provider).run(report_path)
        report = report_path.read_text(encoding="utf-8")
        assert "# LeadScout Run Report" in report
        assert "| high | 1 |" in report

    def test_logs_cache_stats(
        self,
        capsys,
        tmp_path: Path,
        sample_query: Query,
        settings: Settings,
        search_provider: MockSearchProvider,
    ) -> None:
        fetcher = Fetcher(
            FetcherConfig(delay_between_requests=0, max_retries=1, cache_dir=tmp_path / "cache"),
            transport=httpx.MockTransport(site),
        )
        Pipeline(sample_query, search_provider=search_provider, fetcher=fetcher, settings=settings).run()
        assert "[Cache] 0 hits, 2 misses" in capsys.readouterr().out


class TestEnrichLead:
    """Tests for enrich_lead."""

    def test_enrich(self, lead_store: LeadStore, project_store: ProjectStore) -> None:
        lead = lead_store.save(
            Lead(id="lead_00000001", url="https://acme.io", title="Acme", quality="low", source="keyword-search")
        )
        provider = MockResearchProvider(
            enrichment=EnrichmentData(
                industry="Robotics",
                additional_contacts=ContactBundle(emails=["bob@acme.io", "noreply@acme.io"]),
            )
        )

        enriched = enrich_lead(lead.id, provider, lead_store, project_store)

        assert enriched is not None
        assert enriched.quality == "high"
        assert "enriched" in enriched.tags
        assert "enriched" in enriched.sources
        assert enriched.contacts.emails == ["bob@acme.io"]
        assert enriched.enrichment.industry == "Robotics"
        assert enriched.enriched_at is not None

        stored = lead_store.get(lead.id)
        assert stored.quality == "high"
        assert stored.enrichment.industry == "Robotics"

    def test_unknown_lead(self, lead_store: LeadStore) -> None:
        assert enrich_lead("lead_missing", MockResearchProvider(), lead_store) is None


class TestCleanLeads:
    """Tests for clean_leads."""

    def test_removes_junk(self, lead_store: LeadStore) -> None:
        lead_store.save(
            Lead(
                id="lead_00000001",
                url="https://acme.io",
                title="Acme",
                contacts=ContactBundle(emails=["info@acme.io", "jane@acme.io"], twitter=["share"]),
            )
        )
        assert clean_leads(lead_store) == 2
        stored = lead_store.get("lead_00000001")
        assert stored.contacts.emails == ["jane@acme.io"]
        assert stored.contacts.twitter == []
        assert clean_leads(lead_store) == 0
