"""
LeadScout store - flat-file JSON persistence for projects, queries, leads
and directory entities.

One JSON array per collection under the data directory. A missing or
corrupt file reads as an empty collection. Writes go through a temp file
and a per-store lock, so worker threads may share a store instance.
"""

from __future__ import annotations

import json
import threading
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from .dedupe import canonical_url, merge_into_lead
from .models import DirectoryEntity, DirectoryQuery, DiscoveredLead, Lead, Project, Query

T = TypeVar("T", bound=BaseModel)


def new_id(prefix: str) -> str:
    """Short random id like lead_1a2b3c4d."""
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


class JsonStore(Generic[T]):
    """A list of pydantic records in one JSON file, keyed by `id`."""

    filename: ClassVar[str]
    id_prefix: ClassVar[str]
    model: type[T]

    def __init__(self, data_dir: Path | str):
        self.path = Path(data_dir) / self.filename
        self._lock = threading.RLock()

    def _read(self) -> list[T]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            print(f"[Store] Could not read {self.path.name}, treating as empty: {e}")
            return []
        if not isinstance(raw, list):
            print(f"[Store] {self.path.name} is not a list, treating as empty")
            return []

        items = []
        for entry in raw:
            try:
                items.append(self.model.model_validate(entry))
            except ValidationError as e:
                print(f"[Store] Skipping invalid record in {self.path.name}: {e.error_count()} errors")
        return items

    def _write(self, items: list[T]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = [item.model_dump(mode="json") for item in items]
        tmp_path = self.path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        tmp_path.replace(self.path)

    def list(self) -> list[T]:
        with self._lock:
            return self._read()

    def get(self, item_id: str) -> T | None:
        return next((item for item in self.list() if item.id == item_id), None)

    def create(self, **fields: Any) -> T:
        """Build a new record with a fresh id, store and return it."""
        item = self.model(id=new_id(self.id_prefix), **fields)
        with self._lock:
            items = self._read()
            items.append(item)
            self._write(items)
        return item

    def update(self, item_id: str, **fields: Any) -> T | None:
        """Apply field changes (validated) and bump updated_at; None if unknown id."""
        with self._lock:
            items = self._read()
            for i, item in enumerate(items):
                if item.id != item_id:
                    continue
                data = {**item.model_dump(), **fields}
                if "updated_at" in type(item).model_fields:
                    data["updated_at"] = datetime.now(UTC)
                items[i] = self.model.model_validate(data)
                self._write(items)
                return items[i]
        return None

    def save(self, item: T) -> T:
        """Insert or replace a whole record by id."""
        with self._lock:
            items = self._read()
            for i, existing in enumerate(items):
                if existing.id == item.id:
                    items[i] = item
                    break
            else:
                items.append(item)
            self._write(items)
        return item

    def delete(self, item_id: str) -> bool:
        with self._lock:
            items = self._read()
            kept = [item for item in items if item.id != item_id]
            if len(kept) == len(items):
                return False
            self._write(kept)
        return True


class ProjectStore(JsonStore[Project]):
    filename = "projects.json"
    id_prefix = "proj"
    model = Project


class QueryStore(JsonStore[Query]):
    filename = "queries.json"
    id_prefix = "query"
    model = Query

    def list_by_project(self, project_id: str) -> list[Query]:
        return [query for query in self.list() if query.project_id == project_id]


class LeadStore(JsonStore[Lead]):
    filename = "leads.json"
    id_prefix = "lead"
    model = Lead

    def find_by_url(self, url: str) -> Lead | None:
        """The lead whose URL is canonically equal to url."""
        key = canonical_url(url)
        return next((lead for lead in self.list() if canonical_url(lead.url) == key), None)

    def list_by_project(self, project_id: str) -> list[Lead]:
        return [lead for lead in self.list() if lead.project_id == project_id]

    def list_by_query(self, query_id: str) -> list[Lead]:
        return [lead for lead in self.list() if lead.query_id == query_id]

    def upsert(self, discovered: DiscoveredLead, project_id: str = "", query_id: str = "") -> tuple[Lead, bool]:
        """
        Store a discovery: merge into the lead with the same URL, or create one.

        Returns:
            (lead, created) where created is False for a merge
        """
        with self._lock:
            existing = self.find_by_url(discovered.url)
            if existing is not None:
                lead = merge_into_lead(existing, discovered)
                self.save(lead)
                return lead, False

            lead = Lead(
                id=new_id(self.id_prefix),
                project_id=project_id,
                query_id=query_id,
                url=discovered.url,
                title=discovered.title,
                description=discovered.description,
                contacts=discovered.contacts,
                source=discovered.source,
                sources=list(discovered.sources),
                quality=discovered.quality,
                tags=list(discovered.tags),
                relevance_score=discovered.relevance_score,
            )
            self.save(lead)
            return lead, True


class DirectoryQueryStore(JsonStore[DirectoryQuery]):
    filename = "directory-queries.json"
    id_prefix = "dirq"
    model = DirectoryQuery

    def list_by_project(self, project_id: str) -> list[DirectoryQuery]:
        return [query for query in self.list() if query.project_id == project_id]


class DirectoryEntityStore(JsonStore[DirectoryEntity]):
    filename = "directory-entities.json"
    id_prefix = "ent"
    model = DirectoryEntity

    def list_filtered(
        self,
        project_id: str | None = None,
        query_id: str | None = None,
        entity_type: str | None = None,
    ) -> list[DirectoryEntity]:
        """Entities matching every given filter; entity_type "all" matches any type."""
        entities = self.list()
        if project_id:
            entities = [e for e in entities if e.project_id == project_id]
        if query_id:
            entities = [e for e in entities if e.query_id == query_id]
        if entity_type and entity_type != "all":
            entities = [e for e in entities if e.type == entity_type]
        return entities

    def save_many(self, entities: list[DirectoryEntity]) -> None:
        """Insert or replace several records in one write."""
        with self._lock:
            items = self._read()
            index = {item.id: i for i, item in enumerate(items)}
            for entity in entities:
                if entity.id in index:
                    items[index[entity.id]] = entity
                else:
                    index[entity.id] = len(items)
                    items.append(entity)
            self._write(items)
