"""Entity records handed back by the entity store."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any
from urllib.parse import unquote, urlsplit


@dataclass
class Node:
    id: Any
    title: str = ""
    fields: dict[str, list[Any]] = field(default_factory=dict)

    def field_values(self, name: str) -> list[Any]:
        """Return the raw target ids stored on a reference field."""
        return list(self.fields.get(name) or [])


@dataclass
class Media:
    id: Any
    name: str = ""
    source_file_id: Any = None
    media_of: list[Any] = field(default_factory=list)
    tags: list[Any] = field(default_factory=list)


@dataclass
class FileRecord:
    id: Any
    url: str
    relative_url: str | None = None
    mime_type: str = "application/octet-stream"
    uri: str | None = None
    width: int | None = None
    height: int | None = None
    filename: str = ""

    def label(self) -> str:
        """The file entity label: its filename, or the last segment of its URL."""
        return self.filename or PurePosixPath(unquote(urlsplit(self.url).path)).name


@dataclass
class Term:
    id: Any
    name: str = ""
    uri: str = ""
