"""
LeadScout exporter - derives CSV/Excel/JSON and a markdown report from stored leads.
"""

import csv
import json
from pathlib import Path
from typing import TextIO

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from .models import ALL_TARGETS, Lead, RunResult

# CSV column order (stable schema - derived from Lead model)
CSV_COLUMNS = [
    # Identity
    "id",
    "project_id",
    "query_id",
    "url",
    "title",
    "description",
    # Contacts (one column per kind, ;-joined)
    *ALL_TARGETS,
    # Classification
    "source",
    "sources",
    "quality",
    "status",
    "tags",
    "relevance_score",
    "notes",
    # Enrichment
    "enriched_at",
    "industry",
    "company_size",
    # Timestamps
    "created_at",
    "updated_at",
]


def lead_to_row(lead: Lead) -> dict:
    """Convert a Lead to a flat CSV row dict; list fields are ;-joined."""
    row: dict[str, str] = {
        "id": lead.id,
        "project_id": lead.project_id,
        "query_id": lead.query_id,
        "url": lead.url,
        "title": lead.title,
        "description": lead.description or "",
    }
    for kind, values in lead.contacts.items():
        row[kind] = ";".join(values)

    enrichment = lead.enrichment
    row.update(
        {
            "source": lead.source,
            "sources": ";".join(lead.sources),
            "quality": lead.quality,
            "status": lead.status,
            "tags": ";".join(lead.tags),
            "relevance_score": "" if lead.relevance_score is None else str(lead.relevance_score),
            "notes": lead.notes or "",
            "enriched_at": lead.enriched_at.isoformat() if lead.enriched_at else "",
            "industry": (enrichment.industry or "") if enrichment else "",
            "company_size": (enrichment.size or "") if enrichment else "",
            "created_at": lead.created_at.isoformat(),
            "updated_at": lead.updated_at.isoformat(),
        }
    )
    return row


def export_csv(leads: list[Lead], output: Path | TextIO) -> int:
    """Export leads to CSV file. Returns number of rows written."""
    rows = [lead_to_row(lead) for lead in leads]

    if isinstance(output, Path):
        output.parent.mkdir(parents=True, exist_ok=True)
        with open(output, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
            writer.writeheader()
            writer.writerows(rows)
    else:
        writer = csv.DictWriter(output, fieldnames=CSV_COLUMNS)
        writer.writeheader()
        writer.writerows(rows)

    return len(rows)


def export_excel(leads: list[Lead], output: Path) -> int:
    """Export leads to Excel file with auto-fitted column widths."""
    rows = [lead_to_row(lead) for lead in leads]
    output.parent.mkdir(parents=True, exist_ok=True)

    wb = Workbook()
    ws = wb.active
    ws.title = "Leads"

    for col_idx, col_name in enumerate(CSV_COLUMNS, 1):
        ws.cell(row=1, column=col_idx, value=col_name).font = Font(bold=True)

    for row_idx, row_data in enumerate(rows, 2):
        for col_idx, col_name in enumerate(CSV_COLUMNS, 1):
            ws.cell(row=row_idx, column=col_idx, value=row_data.get(col_name, ""))

    # Auto-fit column widths
    for col_idx, col_name in enumerate(CSV_COLUMNS, 1):
        max_length = len(col_name)
        for row_data in rows:
            # Cap so long descriptions don't produce huge columns
            max_length = max(max_length, min(len(str(row_data.get(col_name, ""))), 50))
        ws.column_dimensions[get_column_letter(col_idx)].width = max_length + 2

    ws.freeze_panes = "A2"
    wb.save(output)
    return len(rows)


def export_json(leads: list[Lead], output: Path | TextIO) -> int:
    """Export leads to JSON (canonical format)."""
    data = [lead.model_dump(mode="json") for lead in leads]
    if isinstance(output, Path):
        output.parent.mkdir(parents=True, exist_ok=True)
        with open(output, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, default=str)
    else:
        json.dump(data, output, indent=2, default=str)
    return len(data)


def _count_table(title: str, label: str, counts: dict[str, int]) -> str:
    table = f"\n## {title}\n| {label} | Count |\n|---|---|\n"
    for key, count in sorted(counts.items(), key=lambda x: -x[1]):
        table += f"| {key} | {count} |\n"
    return table


def generate_report(result: RunResult, output: Path | None = None) -> str:
    """Build a markdown run report; also written to output if given."""
    by_quality: dict[str, int] = {}
    by_source: dict[str, int] = {}
    by_kind: dict[str, int] = {}

    for lead in result.leads:
        by_quality[lead.quality] = by_quality.get(lead.quality, 0) + 1
        for source in lead.sources:
            by_source[source] = by_source.get(source, 0) + 1
        for kind, values in lead.contacts.items():
            if values:
                by_kind[kind] = by_kind.get(kind, 0) + len(values)

    report = f"""# LeadScout Run Report

## Run Info
| Field | Value |
|---|---|
| Run ID | {result.run_id} |
| Query ID | {result.query_id} |
| Started | {result.started_at.isoformat()} |
| Finished | {result.finished_at.isoformat() if result.finished_at else "In progress"} |
| Search Hits | {result.search_hits} |
| Pages Fetched | {result.pages_fetched} |
| Research Hits | {result.research_hits} |
| Discovered | {result.total_discovered} |
| After Merge | {result.total_after_dedupe} |
| Removed by Validation | {result.removed_by_validation} |
| New Leads | {result.leads_created} |
| Merged Leads | {result.leads_merged} |

## Search Term
```
{result.search_term}
```
"""
    report += _count_table("Leads by Quality", "Quality", by_quality)
    report += _count_table("Leads by Source", "Source", by_source)
    if by_kind:
        report += _count_table("Contacts by Kind", "Kind", by_kind)

    if result.errors:
        report += "\n## Errors\n"
        for err in result.errors:
            report += f"- {err}\n"

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        with open(output, "w", encoding="utf-8") as f:
            f.write(report)
    return report
