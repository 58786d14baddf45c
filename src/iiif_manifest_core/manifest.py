"""Assemble a IIIF Presentation 2.1 manifest from result rows.

The request path must look like `/<type>/<id>/<manifest-endpoint>`, e.g.
`/node/42/manifest.json`. The last segment is stripped to form the base id
of every canvas and annotation, and the second segment fills the `%node`
placeholder of the search endpoint. Other route shapes produce ids that are
still deterministic but no longer point at the parent entity.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

from .canvas import CanvasResolver
from .collaborators import CanvasAlter, EntityStore, ManifestAlter, RelationLookup, RouteParser, TermResolver
from .dimensions import DimensionResolver
from .entities import Media, Node
from .exceptions import RouteResolutionError
from .logger import get_logger
from .models import (
    DEFAULT_LABEL,
    PRESENTATION_CONTEXT,
    SEARCH_CONTEXT,
    SEARCH_LABEL,
    SEARCH_PROFILE,
    ManifestRequest,
    TitleMode,
)
from .ocr import OcrLocator, TermCache

logger = get_logger(__name__)


def split_request_path(request_path: str) -> tuple[list[str], str]:
    """Return `(segments, content_path)` with the manifest endpoint segment removed."""
    path = urlsplit(request_path or "").path
    segments = path.strip("/").split("/")
    segments.pop()
    return segments, "/" + "/".join(segments)


@dataclass
class ManifestContext:
    """What manifest alters receive next to the document itself."""

    request: ManifestRequest
    builder: ManifestBuilder
    base_id: str
    segments: list[str]


class ManifestBuilder:
    """Build manifests; one call to `build` is one independent build.

    Alter callbacks run in registration order, each with full mutable access
    to the document, so later callbacks see the changes of earlier ones.
    Their exceptions are not caught.
    """

    def __init__(
        self,
        store: EntityStore | None = None,
        term_resolver: TermResolver | None = None,
        relations: RelationLookup | None = None,
        route_parser: RouteParser | None = None,
        dimensions: DimensionResolver | None = None,
        manifest_alters: Sequence[ManifestAlter] = (),
        canvas_alters: Sequence[CanvasAlter] = (),
    ):
        self.store = store
        self.term_resolver = term_resolver
        self.relations = relations
        self.route_parser = route_parser
        self.dimensions = dimensions or DimensionResolver()
        self.manifest_alters = list(manifest_alters)
        self.canvas_alters = list(canvas_alters)

    def build(self, request: ManifestRequest) -> dict[str, Any]:
        """Return the manifest document for `request`."""
        options = request.options
        segments, content_path = split_request_path(request.request_path)
        base_id = f"{request.base_url.rstrip('/')}{content_path}"
        manifest: dict[str, Any] = {}

        if options.image_server_base_url:
            manifest.update(
                {
                    "@type": "sc:Manifest",
                    "@id": request.request_path,
                    "label": self.resolve_label(request, content_path),
                    "@context": PRESENTATION_CONTEXT,
                    "sequences": [
                        {
                            "@context": PRESENTATION_CONTEXT,
                            "@id": f"{base_id}/sequence/normal",
                            "@type": "sc:Sequence",
                            "canvases": self._canvases(request, base_id),
                        }
                    ],
                }
            )
        else:
            logger.info("No IIIF image server configured; skipping sequence for %s", request.request_path)

        self.add_search_endpoint(manifest, request, segments)

        context = ManifestContext(request=request, builder=self, base_id=base_id, segments=segments)
        for alter in self.manifest_alters:
            alter(manifest, context)

        return manifest

    def render(self, request: ManifestRequest) -> str:
        """Build and serialize the manifest; JSON is the only format."""
        return json.dumps(self.build(request), ensure_ascii=False)

    def _canvases(self, request: ManifestRequest, base_id: str) -> list[dict[str, Any]]:
        options = request.options
        term_cache = TermCache(self.term_resolver, options.structured_text_term_uri)
        ocr = OcrLocator(options, store=self.store, relations=self.relations, term_cache=term_cache)
        resolver = CanvasResolver(options, self.dimensions, ocr, canvas_alters=self.canvas_alters)

        canvases: list[dict[str, Any]] = []
        for row in request.rows:
            canvases.extend(resolver.resolve(row, options.image_server_base_url, base_id))

        logger.info("Built %d canvases from %d rows for %s", len(canvases), len(request.rows), base_id)
        return canvases

    def resolve_label(self, request: ManifestRequest, content_path: str) -> str:
        match TitleMode.parse(request.title_mode):
            case TitleMode.NONE:
                return ""
            case TitleMode.VIEW:
                return request.view_title
            case TitleMode.ENTITY:
                return self.entity_title(content_path)
            case _:
                return DEFAULT_LABEL

    def entity_title(self, content_path: str) -> str:
        """Title of the node or media behind `content_path`, or the default label."""
        if self.route_parser is None or self.store is None:
            return DEFAULT_LABEL
        try:
            params = self.route_parser.route_parameters(content_path)
        except RouteResolutionError as exc:
            logger.debug("No entity route for %s: %s", content_path, exc)
            return DEFAULT_LABEL

        if "node" in params:
            node = self.store.load("node", params["node"])
            if isinstance(node, Node):
                return node.title
        elif "media" in params:
            media = self.store.load("media", params["media"])
            if isinstance(media, Media):
                return media.name

        logger.debug("Entity for %s not found; using default label", content_path)
        return DEFAULT_LABEL

    def add_search_endpoint(self, manifest: dict[str, Any], request: ManifestRequest, segments: list[str]) -> None:
        """Append an IIIF Search API service when a search endpoint is configured."""
        template = request.options.search_endpoint_template
        if not template:
            return

        search_url = f"{request.base_url.rstrip('/')}/{template.lstrip('/')}"
        node_segment = segments[1] if len(segments) > 1 else ""
        search_url = search_url.replace("%node", node_segment)

        manifest.setdefault("service", []).append(
            {
                "@context": SEARCH_CONTEXT,
                "@id": search_url,
                "profile": SEARCH_PROFILE,
                "label": SEARCH_LABEL,
            }
        )
