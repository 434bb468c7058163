"""Tests for directory search and entity enrichment."""

from pathlib import Path

import pytest

from leadscout.directory import enrich_entity, search_directory
from leadscout.models import ContactBundle, DirectoryEntity, EnrichmentData, Project
from leadscout.search import MockResearchProvider, ProviderError, ResearchEntity, ResearchProvider
from leadscout.store import DirectoryEntityStore, DirectoryQueryStore, ProjectStore


@pytest.fixture
def entity_store(data_dir: Path) -> DirectoryEntityStore:
    return DirectoryEntityStore(data_dir)


@pytest.fixture
def dir_query_store(data_dir: Path) -> DirectoryQueryStore:
    return DirectoryQueryStore(data_dir)


@pytest.fixture
def provider() -> MockResearchProvider:
    return MockResearchProvider(
        entities=[
            ResearchEntity.model_validate(
                {
                    "name": "Jane Doe",
                    "type": "person",
                    "title": "CTO",
                    "company": "Acme Robotics",
                    "email": "Jane@Acme.io",
                    "twitter": "@janedoe",
                    "tags": ["robotics"],
                }
            ),
            ResearchEntity.model_validate(
                {
                    "name": "Acme Robotics",
                    "website": "acme.io",
                    "email": "noreply@acme.io",
                }
            ),
        ],
        enrichment=EnrichmentData(
            company_info="Warehouse robots",
            industry="Robotics",
            additional_contacts=ContactBundle(
                github=["https://github.com/acme-labs"], emails=["info@acme.io"]
            ),
        ),
    )


class TestSearchDirectory:
    """Tests for search_directory."""

    def test_stores_entities(
        self,
        sample_project: Project,
        project_store: ProjectStore,
        provider: MockResearchProvider,
        entity_store: DirectoryEntityStore,
        dir_query_store: DirectoryQueryStore,
    ) -> None:
        query, entities = search_directory(
            sample_project.id,
            "warehouse robotics",
            provider,
            entity_store,
            dir_query_store,
            project_store=project_store,
        )

        assert query.status == "completed"
        assert query.result_count == 2
        assert query.last_run is not None
        assert query.entity_type == "all"

        jane, acme = entities
        assert jane.type == "person"
        assert jane.query_id == query.id
        assert jane.project_id == sample_project.id
        assert jane.contacts.emails == ["jane@acme.io"]
        assert jane.contacts.twitter == ["janedoe"]
        assert jane.tags == ["robotics"]
        # Bare domain gains a scheme; noreply@ fails the format tier
        assert acme.contacts.websites == ["https://acme.io"]
        assert acme.contacts.emails == []

        assert [e.id for e in entity_store.list_filtered(query_id=query.id)] == [jane.id, acme.id]

    def test_type_filter(
        self,
        sample_project: Project,
        provider: MockResearchProvider,
        entity_store: DirectoryEntityStore,
        dir_query_store: DirectoryQueryStore,
    ) -> None:
        query, entities = search_directory(
            sample_project.id, "robotics", provider, entity_store, dir_query_store, entity_type="person"
        )
        assert [e.name for e in entities] == ["Jane Doe"]
        assert query.entity_type == "person"

    def test_provider_error_marks_failed(
        self,
        sample_project: Project,
        entity_store: DirectoryEntityStore,
        dir_query_store: DirectoryQueryStore,
    ) -> None:
        class BrokenResearch(ResearchProvider):
            def research(self, query, targets=(), context=""):
                return []

            def research_entities(self, query, entity_type="all", context=""):
                raise ProviderError("Perplexity request failed: 503")

        with pytest.raises(ProviderError):
            search_directory(sample_project.id, "robotics", BrokenResearch(), entity_store, dir_query_store)
        assert dir_query_store.list()[0].status == "failed"
        assert entity_store.list() == []


class TestEnrichEntity:
    """Tests for enrich_entity."""

    def test_enrich(self, entity_store: DirectoryEntityStore, provider: MockResearchProvider) -> None:
        entity_store.save(
            DirectoryEntity(
                id="ent_00000001",
                name="Acme Robotics",
                contacts=ContactBundle(websites=["https://acme.io"]),
            )
        )

        enriched = enrich_entity("ent_00000001", provider, entity_store)

        assert enriched is not None
        assert enriched.contacts.websites == ["https://acme.io"]
        assert enriched.contacts.github == ["acme-labs"]
        assert enriched.contacts.emails == []  # generic inbox
        assert enriched.industry == "Robotics"
        assert enriched.description == "Warehouse robots"
        assert enriched.tags == ["enriched"]
        assert enriched.enriched_at is not None

        stored = entity_store.get("ent_00000001")
        assert stored.contacts.github == ["acme-labs"]
        assert stored.enrichment.industry == "Robotics"

    def test_keeps_existing_fields(self, entity_store: DirectoryEntityStore, provider: MockResearchProvider) -> None:
        entity_store.save(
            DirectoryEntity(id="ent_00000001", name="Acme", industry="Logistics", tags=["enriched"])
        )
        enriched = enrich_entity("ent_00000001", provider, entity_store)
        assert enriched.industry == "Logistics"
        assert enriched.tags == ["enriched"]

    def test_unknown_entity(self, entity_store: DirectoryEntityStore) -> None:
        assert enrich_entity("ent_missing", MockResearchProvider(), entity_store) is None


class TestSearchContext:
    """Tests for DirectoryEntity.search_context."""

    def test_person(self) -> None:
        entity = DirectoryEntity(id="e", name="Jane Doe", type="person", company="Acme", title="CTO")
        assert entity.search_context == "Jane Doe at Acme, CTO"

    def test_organization(self) -> None:
        entity = DirectoryEntity(id="e", name="Acme", industry="Robotics")
        assert entity.search_context == "Acme company in Robotics"

    def test_other(self) -> None:
        assert DirectoryEntity(id="e", name="Robots at Work", type="book").search_context == "Robots at Work"
