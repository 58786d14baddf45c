"""In-memory entity repository.

Implements every lookup protocol the builder needs (entity store, term
resolver, media/term relation lookup and route parser) on top of plain
dictionaries, so a manifest can be built from a JSON fixture.

Fixture shape::

    {
      "nodes": [{"id": 1, "title": "Book", "fields": {"field_part_of": [], ...}}],
      "media": [{"id": 10, "name": "Page 1", "source_file_id": 100,
                 "media_of": [2], "tags": [5]}],
      "files": [{"id": 100, "url": "https://...", "mime_type": "image/tiff",
                 "uri": "public://page1.tif"}],
      "terms": [{"id": 5, "name": "hOCR", "uri": "http://pcdm.org/use#ExtractedText"}],
      "rows":  [{"entity_id": 10,
                 "tile_images": {"field_media_image": [{"file_id": 100, "viewable": true}]},
                 "ocr_files": {"field_hocr": [101]}}]
    }
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from .entities import FileRecord, Media, Node, Term
from .exceptions import ConfigurationError, EntityNotFoundError, RouteResolutionError
from .logger import get_logger
from .models import FileRef, ImageRef, RowInput

logger = get_logger(__name__)

_ROUTE_RE = re.compile(r"^/(?P<type>node|media)/(?P<id>[^/]+)/?$")

# Reference fields on media map onto Media attributes.
_MEDIA_FIELDS = {"field_media_of": "media_of", "field_media_use": "tags"}


def _same_id(a: Any, b: Any) -> bool:
    return str(a) == str(b)


class InMemoryRepository:
    """Dictionary-backed store for nodes, media, files and terms."""

    def __init__(self):
        self.nodes: dict[str, Node] = {}
        self.media: dict[str, Media] = {}
        self.files: dict[str, FileRecord] = {}
        self.terms: dict[str, Term] = {}

    def add(self, entity: Node | Media | FileRecord | Term) -> None:
        bucket = self._bucket_for(entity)
        bucket[str(entity.id)] = entity

    def _bucket_for(self, entity: Any) -> dict[str, Any]:
        if isinstance(entity, Node):
            return self.nodes
        if isinstance(entity, Media):
            return self.media
        if isinstance(entity, FileRecord):
            return self.files
        if isinstance(entity, Term):
            return self.terms
        raise TypeError(f"Unsupported entity: {entity!r}")

    def _bucket(self, entity_type: str) -> dict[str, Any]:
        buckets = {"node": self.nodes, "media": self.media, "file": self.files, "taxonomy_term": self.terms}
        try:
            return buckets[entity_type]
        except KeyError:
            raise EntityNotFoundError(f"Unknown entity type: {entity_type}") from None

    # EntityStore

    def load(self, entity_type: str, entity_id: Any) -> Any | None:
        if entity_id is None:
            return None
        return self._bucket(entity_type).get(str(entity_id))

    def query(self, entity_type: str, field_name: str, value: Any) -> list[Any]:
        ids = []
        for entity in self._bucket(entity_type).values():
            if any(_same_id(v, value) for v in self._field_values(entity, field_name)):
                ids.append(entity.id)
        return ids

    @staticmethod
    def _field_values(entity: Any, field_name: str) -> list[Any]:
        if isinstance(entity, Node):
            return entity.field_values(field_name)
        if isinstance(entity, Media) and field_name in _MEDIA_FIELDS:
            return list(getattr(entity, _MEDIA_FIELDS[field_name]))
        return []

    # TermResolver

    def term_for_uri(self, uri: str) -> Term | None:
        for term in self.terms.values():
            if term.uri == uri:
                return term
        return None

    # RelationLookup

    def media_referencing_node_and_term(self, node: Node, term: Term) -> list[Any]:
        return [
            media.id
            for media in self.media.values()
            if any(_same_id(n, node.id) for n in media.media_of) and any(_same_id(t, term.id) for t in media.tags)
        ]

    # RouteParser

    def route_parameters(self, path: str) -> dict[str, str]:
        m = _ROUTE_RE.match(path or "")
        if not m:
            raise RouteResolutionError(f"No entity route matches {path!r}")
        return {m.group("type"): m.group("id")}

    # Fixture loading

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> InMemoryRepository:
        repo = cls()
        for item in payload.get("nodes") or []:
            repo.add(Node(id=item["id"], title=item.get("title", ""), fields=dict(item.get("fields") or {})))
        for item in payload.get("media") or []:
            repo.add(
                Media(
                    id=item["id"],
                    name=item.get("name", ""),
                    source_file_id=item.get("source_file_id"),
                    media_of=list(item.get("media_of") or []),
                    tags=list(item.get("tags") or []),
                )
            )
        for item in payload.get("files") or []:
            repo.add(
                FileRecord(
                    id=item["id"],
                    url=item["url"],
                    relative_url=item.get("relative_url"),
                    mime_type=item.get("mime_type", "application/octet-stream"),
                    uri=item.get("uri"),
                    width=item.get("width"),
                    height=item.get("height"),
                    filename=item.get("filename", ""),
                )
            )
        for item in payload.get("terms") or []:
            repo.add(Term(id=item["id"], name=item.get("name", ""), uri=item.get("uri", "")))
        return repo

    def file_ref(self, file_id: Any) -> FileRef:
        record = self.load("file", file_id)
        if record is None:
            raise EntityNotFoundError(f"File {file_id} not found")
        return FileRef(
            file_id=record.id,
            url=record.url,
            relative_url=record.relative_url,
            mime_type=record.mime_type,
            file_uri=record.uri,
        )

    def image_ref(self, entry: dict[str, Any]) -> ImageRef:
        """Build an `ImageRef` from a row's image entry and its file record.

        The canvas label is the file's own label unless the entry overrides it.
        """
        record = self.load("file", entry.get("file_id"))
        if record is None:
            raise EntityNotFoundError(f"File {entry.get('file_id')} not found")
        return ImageRef(
            file_id=record.id,
            file_url=record.url,
            relative_url=record.relative_url,
            mime_type=record.mime_type,
            label=entry.get("label") or record.label(),
            width=entry.get("width", record.width),
            height=entry.get("height", record.height),
            properties=dict(entry.get("properties") or {}),
            file_uri=record.uri,
            viewable=bool(entry.get("viewable", True)),
        )

    def rows_from_dict(self, items: list[dict[str, Any]]) -> list[RowInput]:
        rows = []
        for item in items or []:
            entity_type = item.get("entity_type", "media")
            tile_images = {
                name: [self.image_ref(entry) for entry in entries]
                for name, entries in (item.get("tile_images") or {}).items()
            }
            ocr_files = {name: [self.file_ref(fid) for fid in fids] for name, fids in (item.get("ocr_files") or {}).items()}
            rows.append(
                RowInput(
                    entity_id=item["entity_id"],
                    entity_type=entity_type,
                    tile_images=tile_images,
                    ocr_files=ocr_files,
                )
            )
        return rows


def load_fixture(path: Path) -> tuple[InMemoryRepository, list[RowInput]]:
    """Read a JSON fixture and return the repository plus its result rows."""
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Cannot read fixture {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigurationError(f"Fixture {path} must contain a JSON object")

    try:
        repo = InMemoryRepository.from_dict(payload)
        rows = repo.rows_from_dict(payload.get("rows") or [])
    except (KeyError, EntityNotFoundError) as exc:
        raise ConfigurationError(f"Invalid fixture {path}: {exc}") from exc

    logger.info("Loaded fixture %s: %d rows", path, len(rows))
    return repo, rows
