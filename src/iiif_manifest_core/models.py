"""Input types for one manifest build and the fixed IIIF wire constants."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Final
from urllib.parse import urlsplit

from .config_manager import ConfigManager, get_config_manager

PRESENTATION_CONTEXT: Final = "http://iiif.io/api/presentation/2/context.json"
IMAGE_CONTEXT: Final = "http://iiif.io/api/image/2/context.json"
IMAGE_PROFILE: Final = "http://iiif.io/api/image/2/profiles/level2.json"
SEARCH_CONTEXT: Final = "http://iiif.io/api/search/0/context.json"
SEARCH_PROFILE: Final = "http://iiif.io/api/search/0/search"
SEARCH_LABEL: Final = "Search inside this work"
HOCR_FORMAT: Final = "text/vnd.hocr+html"
HOCR_PROFILE: Final = "http://kba.cloud/hocr-spec"
HOCR_LABEL: Final = "hOCR embedded text"
FULL_IMAGE_REQUEST: Final = "full/full/0/default.jpg"
DEFAULT_LABEL: Final = "IIIF Manifest"
TIFF_MIME: Final = "image/tiff"


class TitleMode(str, Enum):
    """How the manifest `label` is chosen."""

    NONE = "none"
    VIEW = "view"
    ENTITY = "node"
    DEFAULT = "default"

    @classmethod
    def parse(cls, value: Any) -> TitleMode:
        """Map a configuration string to a mode; unknown values mean `DEFAULT`."""
        if isinstance(value, cls):
            return value
        name = str(value or "").strip().lower()
        try:
            return cls(_TITLE_MODE_ALIASES.get(name, name))
        except ValueError:
            return cls.DEFAULT


# long-form names used by the view plugin settings
_TITLE_MODE_ALIASES: Final = {"view_title": "view", "entity_title": "node"}


def _path_of(url: str) -> str:
    return urlsplit(url).path or url


@dataclass(frozen=True)
class FileRef:
    """A stored file as exposed by the file-URL service."""

    file_id: Any
    url: str
    relative_url: str | None = None
    mime_type: str = "application/octet-stream"
    file_uri: str | None = None

    def public_url(self, relative: bool = False) -> str:
        if relative:
            return self.relative_url or _path_of(self.url)
        return self.url


@dataclass(frozen=True)
class ImageRef:
    """One image value on a tile field of a result row.

    `width`/`height` are the cached dimensions stored with the field value;
    `properties` are the locally known image properties consulted only after
    the image server lookup fails.
    """

    file_id: Any
    file_url: str
    mime_type: str
    label: str = ""
    relative_url: str | None = None
    width: Any = None
    height: Any = None
    properties: Mapping[str, Any] = field(default_factory=dict)
    file_uri: str | None = None
    viewable: bool = True

    def public_url(self, relative: bool = False) -> str:
        if relative:
            return self.relative_url or _path_of(self.file_url)
        return self.file_url


@dataclass(frozen=True)
class RowInput:
    """One result row: the row entity plus its field values keyed by field name."""

    entity_id: Any
    entity_type: str = "media"
    tile_images: Mapping[str, Sequence[ImageRef]] = field(default_factory=dict)
    ocr_files: Mapping[str, Sequence[FileRef]] = field(default_factory=dict)


@dataclass(frozen=True)
class ManifestOptions:
    image_server_base_url: str = ""
    use_relative_file_paths: bool = False
    tile_fields: tuple[str, ...] = ("field_media_image",)
    ocr_file_field: str | None = None
    structured_text_term_uri: str | None = None
    search_endpoint_template: str | None = None

    @property
    def ocr_field_present(self) -> bool:
        return bool(self.ocr_file_field)


@dataclass(frozen=True)
class ManifestRequest:
    """Immutable input to one manifest build.

    `request_path` must have the shape `/<type>/<id>/<manifest-endpoint>`:
    the last segment is dropped to form the base id and the second segment
    fills the `%node` placeholder of the search endpoint.
    """

    base_url: str
    request_path: str
    options: ManifestOptions
    rows: Sequence[RowInput] = ()
    title_mode: TitleMode = TitleMode.DEFAULT
    view_title: str = ""


def manifest_options_from_config(cm: ConfigManager | None = None) -> ManifestOptions:
    """Build `ManifestOptions` from the `iiif` and `manifest` settings."""
    cm = cm or get_config_manager()
    tile_fields = cm.get_setting("manifest.tile_fields", ["field_media_image"])
    if isinstance(tile_fields, str):
        tile_fields = [tile_fields]
    return ManifestOptions(
        image_server_base_url=str(cm.get_setting("iiif.server_url", "") or ""),
        use_relative_file_paths=bool(cm.get_setting("iiif.use_relative_paths", False)),
        tile_fields=tuple(str(name) for name in tile_fields if name),
        ocr_file_field=cm.get_setting("manifest.ocr_file_field", "") or None,
        structured_text_term_uri=cm.get_setting("manifest.structured_text_term_uri", "") or None,
        search_endpoint_template=cm.get_setting("manifest.search_endpoint", "") or None,
    )


def title_mode_from_config(cm: ConfigManager | None = None) -> TitleMode:
    cm = cm or get_config_manager()
    return TitleMode.parse(cm.get_setting("iiif.show_title", "default"))
