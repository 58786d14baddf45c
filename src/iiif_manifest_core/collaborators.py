"""Protocols for the collaborators a manifest build depends on.

The builder never reaches for a service locator: every capability is
passed in explicitly and may be swapped for a test double.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, Protocol

from .entities import Node, Term


class EntityStore(Protocol):
    def load(self, entity_type: str, entity_id: Any) -> Any | None:
        """Return the entity of `entity_type` with `entity_id`, or None."""

    def query(self, entity_type: str, field_name: str, value: Any) -> list[Any]:
        """Return ids of entities whose `field_name` contains `value`."""


class TermResolver(Protocol):
    def term_for_uri(self, uri: str) -> Term | None:
        """Resolve a taxonomy term from its stable URI."""


class RelationLookup(Protocol):
    def media_referencing_node_and_term(self, node: Node, term: Term) -> list[Any]:
        """Return ids of media that are `media_of` `node` and tagged with `term`."""


class RouteParser(Protocol):
    def route_parameters(self, path: str) -> Mapping[str, Any]:
        """Map a path to its route parameters, e.g. `{"node": "42"}`.

        Raises RouteResolutionError when the path matches no known route.
        """


class TokenIssuer(Protocol):
    def generate_token(self) -> str:
        """Issue a bearer token for the image server."""


class LocalPathResolver(Protocol):
    def realpath(self, uri: str) -> Path | None:
        """Map a storage URI to a local filesystem path."""


# Alter callbacks mutate their first argument in place.
ManifestAlter = Callable[[dict[str, Any], Any], None]
CanvasAlter = Callable[[dict[str, Any], Any, dict[str, Any]], None]


class StaticTokenIssuer:
    """Hands out one pre-issued bearer token."""

    def __init__(self, token: str):
        self.token = token

    def generate_token(self) -> str:
        return self.token


__all__ = [
    "CanvasAlter",
    "EntityStore",
    "LocalPathResolver",
    "ManifestAlter",
    "RelationLookup",
    "RouteParser",
    "StaticTokenIssuer",
    "TermResolver",
    "TokenIssuer",
]
