"""
LeadScout CLI - command line interface.
"""

import json
import os
import sys
from pathlib import Path

import click
from dotenv import load_dotenv

from .models import ALL_TARGETS, ENTITY_TYPES

# Load environment variables
load_dotenv()

QUERY_SOURCES = ("keyword-search", "ai-research")


def _mask(key: str) -> str:
    return f"{key[:8]}...{key[-4:]}" if len(key) > 12 else "****"


def _load(ctx: click.Context):
    """Settings for this invocation; exits on an invalid settings file."""
    from pydantic import ValidationError

    from .settings import load_settings

    try:
        return load_settings(ctx.obj.get("settings_path"))
    except (ValidationError, ValueError) as e:
        click.echo(f"Error: invalid settings file: {e}", err=True)
        sys.exit(1)


@click.group()
@click.version_option(version="0.1.0", prog_name="leadscout")
@click.option(
    "--settings",
    "settings_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Settings file (default: ./leadscout.yml)",
)
@click.pass_context
def main(ctx: click.Context, settings_path: str | None) -> None:
    """LeadScout - find, validate and score contact leads"""
    ctx.ensure_object(dict)
    ctx.obj["settings_path"] = settings_path


@main.command()
def check() -> None:
    """Check if API keys are configured."""
    click.echo("Checking configuration...\n")

    brave_key = os.getenv("BRAVE_API_KEY")
    perplexity_key = os.getenv("PERPLEXITY_API_KEY")

    if brave_key:
        click.echo(f"  BRAVE_API_KEY:      {_mask(brave_key)} (keyword search enabled)")
    else:
        click.echo("  BRAVE_API_KEY:      NOT SET (keyword search disabled)")

    if perplexity_key:
        click.echo(f"  PERPLEXITY_API_KEY: {_mask(perplexity_key)} (AI research enabled)")
    else:
        click.echo("  PERPLEXITY_API_KEY: NOT SET (AI research and enrichment disabled)")

    if brave_key or perplexity_key:
        click.echo("\nAt least one source is configured. Ready to run!")
    else:
        click.echo("\nNo keys set. Copy env.example to .env and fill in your values.")
        sys.exit(1)


# =============================================================================
# PROJECT COMMANDS
# =============================================================================


@main.group()
def project() -> None:
    """Manage projects."""
    pass


@project.command("create")
@click.option("--name", "-n", required=True, help="Project name")
@click.option("--description", "-d", default=None, help="What this project is for")
@click.option("--context", "-c", default=None, help="Who you are looking for (steers AI research)")
@click.option("--industry", default=None, help="Target industry")
@click.option("--keyword", multiple=True, help="Target keyword (can specify multiple)")
@click.option("--exclude", multiple=True, help="Keyword to exclude (can specify multiple)")
@click.pass_context
def project_create(
    ctx: click.Context,
    name: str,
    description: str | None,
    context: str | None,
    industry: str | None,
    keyword: tuple[str, ...],
    exclude: tuple[str, ...],
) -> None:
    """Create a project."""
    from .store import ProjectStore

    settings = _load(ctx)
    created = ProjectStore(settings.data_dir).create(
        name=name,
        description=description,
        context=context,
        industry=industry,
        target_keywords=list(keyword),
        exclude_keywords=list(exclude),
    )
    click.echo(f"Project created: {created.id}")


@project.command("list")
@click.pass_context
def project_list(ctx: click.Context) -> None:
    """List all projects."""
    from .store import ProjectStore

    projects = ProjectStore(_load(ctx).data_dir).list()
    if not projects:
        click.echo("No projects found. Create one with: leadscout project create")
        return

    click.echo(f"\nProjects ({len(projects)})\n")
    click.echo(f"{'ID':<15} {'Name':<30} {'Context'}")
    click.echo("-" * 70)
    for p in projects:
        context = p.context or ""
        preview = context[:30] + "..." if len(context) > 30 else context
        click.echo(f"{p.id:<15} {p.name[:30]:<30} {preview}")


# =============================================================================
# QUERY COMMANDS
# =============================================================================


@main.group()
def query() -> None:
    """Manage saved queries."""
    pass


@query.command("create")
@click.argument("project_id")
@click.argument("search_term")
@click.option(
    "--target",
    "-t",
    multiple=True,
    type=click.Choice(ALL_TARGETS),
    help="Contact kind to look for (can specify multiple; default: all)",
)
@click.option(
    "--source",
    "-s",
    multiple=True,
    type=click.Choice(QUERY_SOURCES),
    help="Where to search (can specify multiple; default: both)",
)
@click.option("--improve", is_flag=True, help="Let the research model rewrite the search term")
@click.pass_context
def query_create(
    ctx: click.Context,
    project_id: str,
    search_term: str,
    target: tuple[str, ...],
    source: tuple[str, ...],
    improve: bool,
) -> None:
    """Create a query in a project."""
    from .search import get_research_provider
    from .store import ProjectStore, QueryStore

    settings = _load(ctx)
    proj = ProjectStore(settings.data_dir).get(project_id)
    if proj is None:
        click.echo(f"Project not found: {project_id}", err=True)
        sys.exit(1)

    targets = list(target) or list(ALL_TARGETS)
    improved = None
    if improve:
        try:
            provider = get_research_provider(model=settings.search.research_model)
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        improved = provider.improve_query(search_term, proj.context or "", targets)
        if improved == search_term:
            improved = None
        else:
            click.echo(f"Improved query: {improved}")

    created = QueryStore(settings.data_dir).create(
        project_id=project_id,
        search_term=search_term,
        improved_query=improved,
        targets=targets,
        sources=list(source) or list(QUERY_SOURCES),
    )
    click.echo(f"Query created: {created.id}")
    click.echo(f"\nRun with: leadscout run {created.id}")


@query.command("list")
@click.option("--project", "project_id", default=None, help="Only queries in this project")
@click.pass_context
def query_list(ctx: click.Context, project_id: str | None) -> None:
    """List saved queries."""
    from .store import QueryStore

    store = QueryStore(_load(ctx).data_dir)
    queries = store.list_by_project(project_id) if project_id else store.list()
    if not queries:
        click.echo("No queries found.")
        return

    click.echo(f"{'ID':<15} {'Status':<10} {'Results':<8} {'Search term'}")
    click.echo("-" * 70)
    for q in queries:
        click.echo(f"{q.id:<15} {q.status:<10} {q.result_count:<8} {q.effective_term[:40]}")


# =============================================================================
# RUN / ENRICH
# =============================================================================


@main.command()
@click.argument("query_id")
@click.option("--deep", is_flag=True, help="Deep-validate websites and social handles (slower)")
@click.option("--verbose", "-v", is_flag=True, help="Show per-page detail")
@click.option(
    "--report",
    "report_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write a markdown run report to this file",
)
@click.pass_context
def run(ctx: click.Context, query_id: str, deep: bool, verbose: bool, report_path: str | None) -> None:
    """Run a saved query and store its leads."""
    from .fetcher import Fetcher
    from .pipeline import Pipeline
    from .search import ProviderError, get_research_provider, get_search_provider
    from .store import ProjectStore, QueryStore

    settings = _load(ctx)
    q = QueryStore(settings.data_dir).get(query_id)
    if q is None:
        click.echo(f"Query not found: {query_id}", err=True)
        sys.exit(1)
    proj = ProjectStore(settings.data_dir).get(q.project_id)

    try:
        search_provider = get_search_provider() if "keyword-search" in q.sources else None
        research_provider = (
            get_research_provider(model=settings.search.research_model)
            if "ai-research" in q.sources
            else None
        )
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        click.echo("Make sure BRAVE_API_KEY and PERPLEXITY_API_KEY are set in .env", err=True)
        sys.exit(1)

    pipeline = Pipeline(
        q,
        proj,
        search_provider=search_provider,
        research_provider=research_provider,
        fetcher=Fetcher(settings.to_fetcher_config()),
        settings=settings,
        deep_validate=deep,
        verbose=verbose,
    )
    try:
        result = pipeline.run(Path(report_path) if report_path else None)
    except ProviderError as e:
        click.echo(f"Pipeline error: {e}", err=True)
        sys.exit(1)

    click.echo(f"\n{result.leads_created} new leads, {result.leads_merged} merged")
    if result.errors:
        click.echo(f"Warnings: {len(result.errors)}")
        for err in result.errors[:3]:
            click.echo(f"  - {err}")


@main.command()
@click.argument("lead_id")
@click.pass_context
def enrich(ctx: click.Context, lead_id: str) -> None:
    """Add AI background research to a stored lead."""
    from .pipeline import enrich_lead
    from .search import get_research_provider
    from .store import LeadStore, ProjectStore

    settings = _load(ctx)
    try:
        provider = get_research_provider(model=settings.search.research_model)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    lead = enrich_lead(lead_id, provider, LeadStore(settings.data_dir), ProjectStore(settings.data_dir))
    if lead is None:
        click.echo(f"Lead not found: {lead_id}", err=True)
        sys.exit(1)

    click.echo(f"Enriched: {lead.title or lead.url} (quality={lead.quality})")
    if lead.enrichment and lead.enrichment.industry:
        click.echo(f"  Industry: {lead.enrichment.industry}")


# =============================================================================
# DIRECTORY COMMANDS
# =============================================================================


@main.group()
def directory() -> None:
    """Search for and enrich people, organizations and other entities."""
    pass


@directory.command("search")
@click.argument("project_id")
@click.argument("search_term")
@click.option(
    "--type",
    "entity_type",
    type=click.Choice(("all", *ENTITY_TYPES)),
    default="all",
    help="Kind of entity to look for",
)
@click.pass_context
def directory_search(ctx: click.Context, project_id: str, search_term: str, entity_type: str) -> None:
    """Run an AI directory search in a project."""
    from .directory import search_directory
    from .search import ProviderError, get_research_provider
    from .store import DirectoryEntityStore, DirectoryQueryStore, ProjectStore

    settings = _load(ctx)
    project_store = ProjectStore(settings.data_dir)
    if project_store.get(project_id) is None:
        click.echo(f"Project not found: {project_id}", err=True)
        sys.exit(1)

    try:
        provider = get_research_provider(model=settings.search.research_model)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    try:
        dir_query, entities = search_directory(
            project_id,
            search_term,
            provider,
            DirectoryEntityStore(settings.data_dir),
            DirectoryQueryStore(settings.data_dir),
            entity_type=entity_type,
            project_store=project_store,
        )
    except ProviderError as e:
        click.echo(f"Directory search error: {e}", err=True)
        sys.exit(1)

    click.echo(f"\n{len(entities)} entities found (query {dir_query.id})")
    for entity in entities[:10]:
        click.echo(f"  {entity.id:<14} {entity.type:<13} {entity.name[:40]}")


@directory.command("list")
@click.option("--project", "project_id", default=None, help="Only entities in this project")
@click.option("--query", "query_id", default=None, help="Only entities from this directory search")
@click.option(
    "--type",
    "entity_type",
    type=click.Choice(("all", *ENTITY_TYPES)),
    default="all",
    help="Only entities of this kind",
)
@click.pass_context
def directory_list(ctx: click.Context, project_id: str | None, query_id: str | None, entity_type: str) -> None:
    """List stored directory entities."""
    from .store import DirectoryEntityStore

    entities = DirectoryEntityStore(_load(ctx).data_dir).list_filtered(project_id, query_id, entity_type)
    if not entities:
        click.echo("No entities found. Search with: leadscout directory search")
        return

    click.echo(f"{'ID':<14} {'Type':<13} {'Name':<30} {'Contacts'}")
    click.echo("-" * 70)
    for entity in entities:
        click.echo(f"{entity.id:<14} {entity.type:<13} {entity.name[:30]:<30} {entity.contacts.total()}")


@directory.command("enrich")
@click.argument("entity_id")
@click.pass_context
def directory_enrich(ctx: click.Context, entity_id: str) -> None:
    """Add AI background research to a stored entity."""
    from .directory import enrich_entity
    from .search import get_research_provider
    from .store import DirectoryEntityStore, ProjectStore

    settings = _load(ctx)
    try:
        provider = get_research_provider(model=settings.search.research_model)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    entity = enrich_entity(
        entity_id, provider, DirectoryEntityStore(settings.data_dir), ProjectStore(settings.data_dir)
    )
    if entity is None:
        click.echo(f"Entity not found: {entity_id}", err=True)
        sys.exit(1)

    click.echo(f"Enriched: {entity.name} ({entity.contacts.total()} contact values)")


# =============================================================================
# EXTRACTION / VALIDATION
# =============================================================================


@main.command()
@click.option("--url", "-u", default=None, help="Fetch and extract from this page")
@click.option(
    "--file",
    "-f",
    "file_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Extract from a local text or HTML file",
)
@click.option("--source-url", default="", help="Page URL the text came from (drops self-links)")
@click.option(
    "--target",
    "-t",
    multiple=True,
    type=click.Choice(ALL_TARGETS),
    help="Contact kind to extract (can specify multiple; default: all)",
)
@click.option("--deep", is_flag=True, help="Also run live checks on websites and handles")
@click.pass_context
def extract(
    ctx: click.Context,
    url: str | None,
    file_path: str | None,
    source_url: str,
    target: tuple[str, ...],
    deep: bool,
) -> None:
    """Extract contacts from a page or file and print them as JSON."""
    from .extractor import extract_contacts, extract_from_html
    from .fetcher import Fetcher, fetch_page_content
    from .validator import validate_deep_sync

    if bool(url) == bool(file_path):
        click.echo("Error: give exactly one of --url or --file", err=True)
        sys.exit(1)

    settings = _load(ctx)
    targets = list(target) or list(ALL_TARGETS)
    max_websites = settings.validation.max_websites

    if url:
        html = fetch_page_content(url, Fetcher(settings.to_fetcher_config()))
        if not html:
            click.echo(f"Error: could not fetch {url}", err=True)
            sys.exit(1)
        bundle = extract_from_html(html, source_url or url, targets, max_websites)
    else:
        path = Path(file_path)
        content = path.read_text(encoding="utf-8", errors="replace")
        if path.suffix.lower() in (".html", ".htm"):
            bundle = extract_from_html(content, source_url, targets, max_websites)
        else:
            bundle = extract_contacts(content, source_url, targets, max_websites)

    if deep:
        validated = validate_deep_sync(bundle, settings.to_validator_config())
        click.echo(f"[Validator] removed {validated.removed_count}", err=True)
        bundle = validated.to_bundle()

    click.echo(json.dumps(bundle.model_dump(), indent=2))


@main.command("validate-url")
@click.argument("url")
@click.pass_context
def validate_url(ctx: click.Context, url: str) -> None:
    """Check whether a profile or website URL exists."""
    from .validator import validate_single_url_sync

    check = validate_single_url_sync(url, _load(ctx).to_validator_config())
    status = "VALID" if check.valid else "INVALID"
    if check.platform:
        click.echo(f"{status} {check.platform}:{check.handle}")
    else:
        click.echo(f"{status} {url}")


@main.command()
@click.option("--verbose", "-v", is_flag=True, help="List each cleaned lead")
@click.pass_context
def clean(ctx: click.Context, verbose: bool) -> None:
    """Re-run format validation over every stored lead."""
    from .pipeline import clean_leads
    from .store import LeadStore

    removed = clean_leads(LeadStore(_load(ctx).data_dir), verbose=verbose)
    click.echo(f"Removed {removed} junk contact values")


# =============================================================================
# EXPORT
# =============================================================================


@main.command()
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["csv", "json", "xlsx"]),
    default="csv",
    help="Output format (default: csv)",
)
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None, help="Output file (default: stdout)")
@click.option("--project", "project_id", default=None, help="Only leads in this project")
@click.option("--query", "query_id", default=None, help="Only leads found by this query")
@click.pass_context
def export(
    ctx: click.Context,
    fmt: str,
    output: str | None,
    project_id: str | None,
    query_id: str | None,
) -> None:
    """Export stored leads."""
    from .exporter import export_csv, export_excel, export_json
    from .store import LeadStore

    store = LeadStore(_load(ctx).data_dir)
    if query_id:
        leads = store.list_by_query(query_id)
    elif project_id:
        leads = store.list_by_project(project_id)
    else:
        leads = store.list()

    if fmt == "xlsx":
        if not output:
            click.echo("Error: --output is required for xlsx", err=True)
            sys.exit(1)
        count = export_excel(leads, Path(output))
    elif fmt == "json":
        count = export_json(leads, Path(output) if output else sys.stdout)
    else:
        count = export_csv(leads, Path(output) if output else sys.stdout)

    if output:
        click.echo(f"Exported {count} leads to {output}")


if __name__ == "__main__":
    main()
