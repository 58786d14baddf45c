"""Turn the images of one result row into IIIF 2.1 canvases."""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any
from urllib.parse import quote_plus

from .collaborators import CanvasAlter
from .dimensions import DimensionResolver
from .logger import get_logger
from .models import (
    FULL_IMAGE_REQUEST,
    HOCR_FORMAT,
    HOCR_LABEL,
    HOCR_PROFILE,
    IMAGE_CONTEXT,
    IMAGE_PROFILE,
    ImageRef,
    ManifestOptions,
    RowInput,
)
from .ocr import OcrLocator

logger = get_logger(__name__)

_NODE_ID_RE = re.compile(r"/node/(\d+)")


def node_id_hint(base_id: str) -> str | None:
    """Return the node id embedded in `base_id` (`.../node/<digits>`), if any."""
    m = _NODE_ID_RE.search(base_id or "")
    return m.group(1) if m else None


def image_service_url(image_server_base_url: str, file_path: str) -> str:
    """IIIF Image API base for a file; visiting it resolves to the image's info.json."""
    # escapes "~" as well, like urlencode
    encoded = quote_plus(file_path).replace("~", "%7E")
    return f"{image_server_base_url.rstrip('/')}/{encoded}"


def build_canvas(
    canvas_id: str,
    annotation_id: str,
    image_url: str,
    label: str,
    mime_type: str,
    width: int,
    height: int,
) -> dict[str, Any]:
    """Return a painted canvas carrying one image annotation."""
    return {
        "@id": canvas_id,
        "@type": "sc:Canvas",
        "label": label,
        "height": height,
        "width": width,
        "images": [
            {
                "@id": annotation_id,
                "@type": "oa:Annotation",
                "motivation": "sc:painting",
                "resource": {
                    "@id": f"{image_url}/{FULL_IMAGE_REQUEST}",
                    "@type": "dctypes:Image",
                    "format": mime_type,
                    "height": height,
                    "width": width,
                    "service": {
                        "@id": image_url,
                        "@context": IMAGE_CONTEXT,
                        "profile": IMAGE_PROFILE,
                    },
                },
                "on": canvas_id,
            }
        ],
    }


class CanvasResolver:
    """Build the canvases contributed by one result row."""

    def __init__(
        self,
        options: ManifestOptions,
        dimensions: DimensionResolver,
        ocr: OcrLocator,
        canvas_alters: Sequence[CanvasAlter] = (),
    ):
        self.options = options
        self.dimensions = dimensions
        self.ocr = ocr
        self.canvas_alters = list(canvas_alters)

    def resolve(self, row: RowInput, image_server_base_url: str, base_id: str) -> list[dict[str, Any]]:
        """Return one canvas per viewable image on the row's tile fields, in field order."""
        canvases: list[dict[str, Any]] = []
        hint = node_id_hint(base_id)

        for field_name in self.options.tile_fields:
            for image in row.tile_images.get(field_name) or []:
                if not image.viewable:
                    logger.debug("Skipping file %s on entity %s: access denied", image.file_id, row.entity_id)
                    continue
                canvas = self._canvas_for_image(row, image, image_server_base_url, base_id, hint)

                alter_options = {"options": self.options, "resolver": self}
                for alter in self.canvas_alters:
                    alter(canvas, row, alter_options)

                canvases.append(canvas)

        return canvases

    def _canvas_for_image(
        self,
        row: RowInput,
        image: ImageRef,
        image_server_base_url: str,
        base_id: str,
        hint: str | None,
    ) -> dict[str, Any]:
        file_path = image.public_url(relative=self.options.use_relative_file_paths)
        if self.options.use_relative_file_paths:
            file_path = file_path.lstrip("/")
        image_url = image_service_url(image_server_base_url, file_path)

        width, height = self.dimensions.resolve(image_url, image, image.mime_type)

        canvas = build_canvas(
            canvas_id=f"{base_id}/canvas/{row.entity_id}",
            annotation_id=f"{base_id}/annotation/{row.entity_id}",
            image_url=image_url,
            label=image.label,
            mime_type=image.mime_type,
            width=width,
            height=height,
        )

        if ocr_url := self.ocr.locate(row, hint):
            canvas["seeAlso"] = {
                "@id": ocr_url,
                "format": HOCR_FORMAT,
                "profile": HOCR_PROFILE,
                "label": HOCR_LABEL,
            }

        return canvas
