"""Resolve canvas dimensions for one image.

Lookup order: cached field dimensions, then the image server's `info.json`,
then locally known image properties, then (TIFF only) the file header on
local storage. The resolver never raises; `0, 0` means unknown.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import requests
from PIL import TiffImagePlugin
from requests import RequestException

from .collaborators import LocalPathResolver, TokenIssuer
from .config_manager import ConfigManager, get_config_manager
from .exceptions import TokenIssuerError
from .logger import get_logger, summarize_for_debug
from .models import TIFF_MIME, ImageRef

logger = get_logger(__name__)

DEFAULT_HEADERS = {
    "Accept": "application/ld+json,application/json;q=0.9,*/*;q=0.8",
}


def as_dimension(value: Any) -> int | None:
    """Return `value` as an int when it is numeric (ints or numeric strings), else None."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        if isinstance(value, (int, float)):
            return int(value)
        return int(float(str(value).strip()))
    except (TypeError, ValueError, OverflowError):
        return None


class ConfiguredPathResolver:
    """Map `public://` and `private://` URIs onto the configured file directories."""

    def __init__(self, cm: ConfigManager | None = None):
        self.cm = cm or get_config_manager()

    def realpath(self, uri: str) -> Path | None:
        if not uri:
            return None
        scheme, sep, target = uri.partition("://")
        if not sep:
            return Path(uri).expanduser()
        if scheme == "public":
            return self.cm.get_public_files_dir() / target
        if scheme == "private":
            return self.cm.get_private_files_dir() / target
        if scheme == "file":
            return Path(target if target.startswith("/") else f"/{target}")
        return None


def read_image_header(path: Path) -> tuple[int, int] | None:
    """Read `(width, height)` from a TIFF header without decoding pixels.

    Opened through the TIFF plugin: `Image.open` rejects scans above
    Pillow's decompression-bomb pixel limit.
    """
    try:
        with TiffImagePlugin.TiffImageFile(str(path)) as img:
            width, height = img.size
    except (OSError, SyntaxError, ValueError) as exc:
        logger.warning("Could not read image header %s: %s", path, exc)
        return None
    return int(width), int(height)


class DimensionResolver:
    """Best-effort width/height lookup for canvas images."""

    def __init__(
        self,
        session: requests.Session | None = None,
        token_issuer: TokenIssuer | None = None,
        path_resolver: LocalPathResolver | None = None,
        timeout: float | None = None,
    ):
        self.session = session or requests.Session()
        self.token_issuer = token_issuer
        self.path_resolver = path_resolver or ConfiguredPathResolver()
        if timeout is None:
            timeout = get_config_manager().get_setting("iiif.request_timeout", 30)
        self.timeout = timeout

    def resolve(self, image_url: str, image: ImageRef, mime_type: str) -> tuple[int, int]:
        """Return `(width, height)` for `image`, served at `image_url`."""
        width = as_dimension(image.width)
        height = as_dimension(image.height)
        if width is not None and height is not None:
            return width, height

        try:
            return self._fetch_info_dimensions(image_url)
        except (RequestException, TokenIssuerError, KeyError, TypeError, ValueError) as exc:
            logger.warning("info.json lookup failed for %s: %s", image_url, exc)

        return self._local_dimensions(image, mime_type)

    def _headers(self) -> dict[str, str]:
        headers = dict(DEFAULT_HEADERS)
        if self.token_issuer is not None:
            headers["Authorization"] = f"Bearer {self.token_issuer.generate_token()}"
        return headers

    def _fetch_info_dimensions(self, image_url: str) -> tuple[int, int]:
        response = self.session.get(image_url, headers=self._headers(), timeout=self.timeout)
        response.raise_for_status()
        logger.debug("info.json for %s: %s", image_url, summarize_for_debug(response.text))
        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError("info.json is not an object")
        width, height = as_dimension(payload.get("width")), as_dimension(payload.get("height"))
        if width is None or height is None:
            raise ValueError(f"info.json has no usable width/height: {payload.get('width')!r}x{payload.get('height')!r}")
        return width, height

    def _local_dimensions(self, image: ImageRef, mime_type: str) -> tuple[int, int]:
        properties = image.properties or {}
        width = as_dimension(properties.get("width")) or 0
        height = as_dimension(properties.get("height")) or 0

        if mime_type == TIFF_MIME and (not width or not height) and image.file_uri:
            path = self.path_resolver.realpath(image.file_uri)
            size = read_image_header(path) if path is not None else None
            if size:
                width, height = size
                logger.debug("Read TIFF header dimensions %sx%s from %s", width, height, path)

        return width, height
