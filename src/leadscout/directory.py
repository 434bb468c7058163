"""
LeadScout directory - AI entity search and enrichment.

A directory search asks the research provider for people, organizations,
books, products, events or places related to a term and stores them as
DirectoryEntities. Their contacts go through the same cleaners and format
tier as lead contacts.
"""

from datetime import UTC, datetime

from .dedupe import merge_bundles
from .extractor import normalize_contacts
from .models import ContactBundle, DirectoryEntity, DirectoryQuery, EntityType
from .search import ProviderError, ResearchEntity, ResearchProvider
from .store import DirectoryEntityStore, DirectoryQueryStore, ProjectStore, new_id
from .validator import validate_format


def _clean_contacts(bundle: ContactBundle) -> ContactBundle:
    return validate_format(normalize_contacts(bundle)).to_bundle()


def _to_entity(item: ResearchEntity, project_id: str, query_id: str) -> DirectoryEntity:
    contacts = _clean_contacts(item.contacts)
    fields = item.model_dump(exclude={"contacts"})
    return DirectoryEntity(
        id=new_id(DirectoryEntityStore.id_prefix),
        project_id=project_id,
        query_id=query_id,
        contacts=contacts,
        **fields,
    )


def search_directory(
    project_id: str,
    search_term: str,
    provider: ResearchProvider,
    entity_store: DirectoryEntityStore,
    query_store: DirectoryQueryStore,
    entity_type: EntityType | str = "all",
    project_store: ProjectStore | None = None,
) -> tuple[DirectoryQuery, list[DirectoryEntity]]:
    """
    Run one directory search and store what it finds.

    Raises:
        ProviderError: If the research provider fails; the directory query
            is marked failed first.
    """
    context = ""
    if project_store is not None:
        project = project_store.get(project_id)
        context = (project.context or "") if project else ""

    query = query_store.create(
        project_id=project_id,
        search_term=search_term,
        entity_type=entity_type,
        status="running",
    )
    print(f"[Directory] Searching {entity_type} entities: {search_term}")

    try:
        found = provider.research_entities(search_term, entity_type, context=context)
    except ProviderError:
        query_store.update(query.id, status="failed", last_run=datetime.now(UTC))
        raise

    entities = [_to_entity(item, project_id, query.id) for item in found]
    entity_store.save_many(entities)

    query = query_store.update(
        query.id,
        status="completed",
        result_count=len(entities),
        last_run=datetime.now(UTC),
    )
    print(f"[Directory] {len(entities)} entities stored")
    return query, entities


def enrich_entity(
    entity_id: str,
    provider: ResearchProvider,
    entity_store: DirectoryEntityStore,
    project_store: ProjectStore | None = None,
) -> DirectoryEntity | None:
    """
    Add AI background research to a stored entity.

    New contacts are format-validated and merged in; missing industry, size
    and description are filled from the research. Returns None for an
    unknown id.
    """
    entity = entity_store.get(entity_id)
    if entity is None:
        return None

    context = ""
    if project_store is not None and entity.project_id:
        project = project_store.get(entity.project_id)
        context = (project.context or "") if project else ""

    website = entity.contacts.websites[0] if entity.contacts.websites else ""
    enrichment = provider.enrich(website, entity.search_context, entity.description or "", context)
    contacts = _clean_contacts(enrichment.additional_contacts)

    entity.contacts = merge_bundles(entity.contacts, contacts)
    entity.industry = entity.industry or enrichment.industry
    entity.size = entity.size or enrichment.size
    entity.description = entity.description or enrichment.company_info
    if "enriched" not in entity.tags:
        entity.tags.append("enriched")
    entity.enrichment = enrichment
    entity.enriched_at = datetime.now(UTC)
    entity.updated_at = entity.enriched_at
    entity_store.save(entity)
    print(f"[Enrich] {entity.name}: {contacts.total()} new contact values")
    return entity
