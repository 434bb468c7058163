"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from leadscout.models import ContactBundle, DiscoveredLead, Lead, Project, Query
from leadscout.store import LeadStore, ProjectStore, QueryStore


@pytest.fixture
def sample_bundle() -> ContactBundle:
    """Create a sample contact bundle."""
    return ContactBundle(
        emails=["jane@acme.io"],
        phones=["14155550123"],
        websites=["https://acme.io"],
        github=["acme"],
        twitter=["acmehq"],
    )


@pytest.fixture
def sample_discovered(sample_bundle: ContactBundle) -> DiscoveredLead:
    """Create a sample discovered lead."""
    return DiscoveredLead(
        url="https://acme.io/about",
        title="Acme Robotics",
        description="Warehouse robots for small fulfilment centres",
        contacts=sample_bundle,
        source="keyword-search",
        quality="high",
    )


@pytest.fixture
def sample_lead(sample_bundle: ContactBundle) -> Lead:
    """Create a sample persisted lead."""
    return Lead(
        id="lead_0000abcd",
        project_id="proj_0000abcd",
        query_id="query_0000abcd",
        url="https://acme.io/about",
        title="Acme Robotics",
        description="Warehouse robots for small fulfilment centres",
        contacts=sample_bundle,
        source="keyword-search",
        sources=["keyword-search"],
        quality="high",
        tags=["robotics"],
    )


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Empty data directory."""
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def project_store(data_dir: Path) -> ProjectStore:
    return ProjectStore(data_dir)


@pytest.fixture
def query_store(data_dir: Path) -> QueryStore:
    return QueryStore(data_dir)


@pytest.fixture
def lead_store(data_dir: Path) -> LeadStore:
    return LeadStore(data_dir)


@pytest.fixture
def sample_project(project_store: ProjectStore) -> Project:
    """A stored project."""
    return project_store.create(name="Robotics outreach", context="B2B robotics startups")


@pytest.fixture
def sample_query(query_store: QueryStore, sample_project: Project) -> Query:
    """A stored query in sample_project."""
    return query_store.create(project_id=sample_project.id, search_term="warehouse robotics startups")
