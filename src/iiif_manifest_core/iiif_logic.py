"""Pure helpers for reading built manifests.

No HTTP or storage dependencies; used by the CLI summary and by alter
callbacks that need to walk the canvas list.
"""

from __future__ import annotations

from typing import Any


def manifest_canvases(manifest: dict[str, Any]) -> list[dict[str, Any]]:
    """Return the canvases of the first sequence, or an empty list."""
    if not isinstance(manifest, dict):
        return []

    sequences = manifest.get("sequences")
    if isinstance(sequences, list) and sequences:
        canvases = (sequences[0] or {}).get("canvases")
        if isinstance(canvases, list):
            return [item for item in canvases if isinstance(item, dict)]

    return []


def total_canvases(manifest: dict[str, Any]) -> int:
    """Return the number of canvases in the manifest."""
    return len(manifest_canvases(manifest))


def unknown_dimension_canvases(manifest: dict[str, Any]) -> list[str]:
    """Return ids of canvases whose width or height resolved to the `0` sentinel."""
    return [c.get("@id", "") for c in manifest_canvases(manifest) if not c.get("width") or not c.get("height")]


def search_service_ids(manifest: dict[str, Any]) -> list[str]:
    """Return the `@id` of each service block attached to the manifest."""
    services = manifest.get("service") if isinstance(manifest, dict) else None
    if not isinstance(services, list):
        return []
    return [s.get("@id", "") for s in services if isinstance(s, dict)]
