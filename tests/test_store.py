"""Tests for the JSON flat-file store."""

import json
from pathlib import Path

from leadscout.models import ContactBundle, DirectoryEntity, DiscoveredLead, Project, Query
from leadscout.store import (
    DirectoryEntityStore,
    DirectoryQueryStore,
    LeadStore,
    ProjectStore,
    QueryStore,
    new_id,
)


class TestNewId:
    """Tests for new_id."""

    def test_prefix_and_length(self) -> None:
        item_id = new_id("lead")
        assert item_id.startswith("lead_")
        assert len(item_id) == len("lead_") + 8

    def test_unique(self) -> None:
        assert new_id("proj") != new_id("proj")


class TestJsonStore:
    """Tests for the generic CRUD operations."""

    def test_missing_file_is_empty(self, project_store: ProjectStore) -> None:
        assert project_store.list() == []

    def test_create_and_get(self, project_store: ProjectStore) -> None:
        created = project_store.create(name="Robotics outreach")
        assert created.id.startswith("proj_")
        assert project_store.get(created.id) == created
        assert project_store.path.exists()

    def test_get_unknown(self, project_store: ProjectStore) -> None:
        assert project_store.get("proj_missing") is None

    def test_update_bumps_timestamp(self, project_store: ProjectStore, sample_project: Project) -> None:
        updated = project_store.update(sample_project.id, context="Seed-stage robotics")
        assert updated is not None
        assert updated.context == "Seed-stage robotics"
        assert updated.updated_at >= sample_project.updated_at
        assert project_store.get(sample_project.id).context == "Seed-stage robotics"

    def test_update_unknown(self, project_store: ProjectStore) -> None:
        assert project_store.update("proj_missing", name="x") is None

    def test_delete(self, project_store: ProjectStore, sample_project: Project) -> None:
        assert project_store.delete(sample_project.id) is True
        assert project_store.delete(sample_project.id) is False
        assert project_store.list() == []

    def test_corrupt_file_reads_empty(self, data_dir: Path, capsys) -> None:
        (data_dir / "projects.json").write_text("{not json", encoding="utf-8")
        assert ProjectStore(data_dir).list() == []
        assert "[Store]" in capsys.readouterr().out

    def test_invalid_record_skipped(self, data_dir: Path, sample_project: Project) -> None:
        path = data_dir / "projects.json"
        records = json.loads(path.read_text(encoding="utf-8"))
        records.append({"id": "proj_bad", "name": ""})
        path.write_text(json.dumps(records), encoding="utf-8")

        projects = ProjectStore(data_dir).list()
        assert [p.id for p in projects] == [sample_project.id]


class TestQueryStore:
    """Tests for QueryStore."""

    def test_list_by_project(self, query_store: QueryStore, sample_query: Query) -> None:
        query_store.create(project_id="proj_other", search_term="drone makers")
        assert [q.id for q in query_store.list_by_project(sample_query.project_id)] == [sample_query.id]


class TestLeadStore:
    """Tests for LeadStore."""

    def test_upsert_creates(self, lead_store: LeadStore, sample_discovered: DiscoveredLead) -> None:
        lead, created = lead_store.upsert(sample_discovered, "proj_1", "query_1")
        assert created is True
        assert lead.id.startswith("lead_")
        assert lead.project_id == "proj_1"
        assert lead.query_id == "query_1"
        assert lead.contacts == sample_discovered.contacts

    def test_upsert_merges_by_canonical_url(
        self, lead_store: LeadStore, sample_discovered: DiscoveredLead
    ) -> None:
        """Test the same page under a different URL spelling merges."""
        first, _ = lead_store.upsert(sample_discovered, "proj_1", "query_1")
        again = DiscoveredLead(
            url="https://www.acme.io/about/",
            contacts=ContactBundle(telegram=["acme_support"]),
            source="ai-research",
        )
        second, created = lead_store.upsert(again, "proj_1", "query_2")

        assert created is False
        assert second.id == first.id
        assert second.contacts.telegram == ["acme_support"]
        assert second.contacts.emails == ["jane@acme.io"]
        assert len(lead_store.list()) == 1

    def test_find_by_url(self, lead_store: LeadStore, sample_discovered: DiscoveredLead) -> None:
        lead, _ = lead_store.upsert(sample_discovered)
        assert lead_store.find_by_url("https://ACME.io/about#team") == lead
        assert lead_store.find_by_url("https://other.io") is None

    def test_list_filters(self, lead_store: LeadStore, sample_discovered: DiscoveredLead) -> None:
        lead_store.upsert(sample_discovered, "proj_1", "query_1")
        lead_store.upsert(DiscoveredLead(url="https://beta.io"), "proj_2", "query_2")
        assert len(lead_store.list_by_project("proj_1")) == 1
        assert len(lead_store.list_by_query("query_2")) == 1
        assert lead_store.list_by_query("query_3") == []

    def test_persists_across_instances(
        self, data_dir: Path, lead_store: LeadStore, sample_discovered: DiscoveredLead
    ) -> None:
        lead, _ = lead_store.upsert(sample_discovered)
        reloaded = LeadStore(data_dir).get(lead.id)
        assert reloaded is not None
        assert reloaded.contacts == lead.contacts


class TestDirectoryStores:
    """Tests for the directory entity and query stores."""

    def test_list_filtered(self, data_dir: Path) -> None:
        store = DirectoryEntityStore(data_dir)
        store.save_many(
            [
                DirectoryEntity(id="ent_1", project_id="proj_a", query_id="dirq_1", name="Jane Doe", type="person"),
                DirectoryEntity(id="ent_2", project_id="proj_a", query_id="dirq_2", name="Acme Robotics"),
                DirectoryEntity(id="ent_3", project_id="proj_b", query_id="dirq_3", name="Robots at Work", type="book"),
            ]
        )
        assert [e.id for e in store.list_filtered(project_id="proj_a")] == ["ent_1", "ent_2"]
        assert [e.id for e in store.list_filtered(query_id="dirq_3")] == ["ent_3"]
        assert [e.id for e in store.list_filtered(entity_type="person")] == ["ent_1"]
        assert len(store.list_filtered(entity_type="all")) == 3

    def test_save_many_replaces_by_id(self, data_dir: Path) -> None:
        store = DirectoryEntityStore(data_dir)
        store.save_many([DirectoryEntity(id="ent_1", name="Acme")])
        store.save_many([DirectoryEntity(id="ent_1", name="Acme Robotics"), DirectoryEntity(id="ent_2", name="Beta")])
        assert [e.name for e in store.list()] == ["Acme Robotics", "Beta"]

    def test_queries_by_project(self, data_dir: Path) -> None:
        store = DirectoryQueryStore(data_dir)
        created = store.create(project_id="proj_a", search_term="robotics", entity_type="person")
        store.create(project_id="proj_b", search_term="drones")
        assert created.id.startswith("dirq_")
        assert [q.id for q in store.list_by_project("proj_a")] == [created.id]
        assert (data_dir / "directory-queries.json").exists()
