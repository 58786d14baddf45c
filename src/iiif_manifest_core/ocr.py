"""Locate the hOCR (structured text) resource that belongs to a canvas image."""

from __future__ import annotations

from enum import Enum
from typing import Any, Final

from .collaborators import EntityStore, RelationLookup, TermResolver
from .entities import FileRecord, Media, Node, Term
from .logger import get_logger
from .models import ManifestOptions, RowInput

logger = get_logger(__name__)

PART_OF_FIELD: Final = "field_part_of"
OBJECT_MEDIA_FIELD: Final = "field_islandora_object_media"


class TermState(Enum):
    NOT_RESOLVED = "not_resolved"
    RESOLVED = "resolved"
    RESOLVED_TO_NONE = "resolved_to_none"


class TermCache:
    """Lazily resolve the structured text term once and hold the outcome.

    "Not found" is a cached outcome too: a second `get()` never calls the
    resolver again. One cache belongs to one manifest build.
    """

    def __init__(self, resolver: TermResolver | None, uri: str | None):
        self.resolver = resolver
        self.uri = uri
        self.state = TermState.NOT_RESOLVED
        self._term: Term | None = None

    def get(self) -> Term | None:
        if self.state is TermState.NOT_RESOLVED:
            self._term = self._resolve()
            self.state = TermState.RESOLVED if self._term is not None else TermState.RESOLVED_TO_NONE
        return self._term

    def _resolve(self) -> Term | None:
        if not self.uri or self.resolver is None:
            return None
        try:
            term = self.resolver.term_for_uri(self.uri)
        except (LookupError, ValueError) as exc:
            logger.warning("Structured text term %s could not be resolved: %s", self.uri, exc)
            return None
        if term is None:
            logger.info("No taxonomy term found for structured text URI %s", self.uri)
        return term


class OcrLocator:
    """Find the public URL of an image's hOCR file.

    A configured OCR file field wins; the structured text term is only
    consulted when no field is set.
    """

    def __init__(
        self,
        options: ManifestOptions,
        store: EntityStore | None = None,
        relations: RelationLookup | None = None,
        term_cache: TermCache | None = None,
    ):
        self.options = options
        self.store = store
        self.relations = relations
        self.term_cache = term_cache or TermCache(None, None)

    def locate(self, row: RowInput, hint_node_id: Any = None) -> str | None:
        """Return the hOCR URL for the row entity, or None."""
        if self.options.ocr_file_field:
            files = row.ocr_files.get(self.options.ocr_file_field) or []
            return files[0].public_url() if files else None

        term = self.term_cache.get()
        if term is None or self.store is None or self.relations is None:
            return None

        parent = self.parent_node(row.entity_id, hint_node_id)
        if parent is None:
            return None

        media_ids = self.relations.media_referencing_node_and_term(parent, term)
        if not media_ids:
            return None

        media = self.store.load("media", media_ids[0])
        if not isinstance(media, Media) or media.source_file_id is None:
            return None

        ocr_file = self.store.load("file", media.source_file_id)
        if not isinstance(ocr_file, FileRecord):
            return None
        logger.debug("hOCR for entity %s found on media %s", row.entity_id, media.id)
        return ocr_file.url

    def parent_node(self, entity_id: Any, hint_node_id: Any) -> Node | None:
        """Return the first child node of `hint_node_id` whose media list holds `entity_id`."""
        if not hint_node_id or self.store is None:
            return None

        for nid in self.store.query("node", PART_OF_FIELD, hint_node_id):
            node = self.store.load("node", nid)
            if node is None:
                continue
            media_ids = {str(target) for target in node.field_values(OBJECT_MEDIA_FIELD)}
            if str(entity_id) in media_ids:
                return node
        return None
