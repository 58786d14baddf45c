import argparse
import json
import sys
from pathlib import Path

from iiif_manifest_core import __version__
from iiif_manifest_core.collaborators import StaticTokenIssuer
from iiif_manifest_core.config_manager import ConfigManager, get_config_manager
from iiif_manifest_core.dimensions import ConfiguredPathResolver, DimensionResolver
from iiif_manifest_core.exceptions import ConfigurationError
from iiif_manifest_core.iiif_logic import search_service_ids, total_canvases, unknown_dimension_canvases
from iiif_manifest_core.logger import get_logger, setup_logging
from iiif_manifest_core.manifest import ManifestBuilder
from iiif_manifest_core.models import (
    ManifestRequest,
    TitleMode,
    manifest_options_from_config,
    title_mode_from_config,
)
from iiif_manifest_core.repository import load_fixture

logger = get_logger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Build a IIIF Presentation 2.1 manifest from a JSON fixture")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("fixture", help="JSON file with nodes, media, files, terms and rows")
    parser.add_argument("--config", help="config.json to read (default: ./config.json or ~/.iiif-manifest/config.json)")
    parser.add_argument("--write-config", action="store_true", help="Save the effective configuration to --config")
    parser.add_argument("--logs-dir", help="Directory for manifest.log (overrides config)")
    parser.add_argument("--files-dir", help="Directory backing public:// file URIs (overrides config)")
    parser.add_argument("--base-url", default="http://localhost", help="Scheme and host of the site")
    parser.add_argument(
        "--request-path",
        default="/node/1/manifest.json",
        help="Manifest route, shaped like /<type>/<id>/manifest.json",
    )
    parser.add_argument("--iiif-server", help="IIIF image server base URL (overrides config)")
    parser.add_argument(
        "--title-mode",
        choices=[mode.value for mode in TitleMode] + ["view_title", "entity_title"],
        help="How to label the manifest (overrides config)",
    )
    parser.add_argument("--view-title", default="", help="Title used with --title-mode view")
    parser.add_argument("--search-endpoint", help="Search endpoint path, %%node is replaced by the node id")
    parser.add_argument("--relative-paths", action="store_true", help="Send relative file paths to the image server")
    parser.add_argument("--bearer-token", help="Bearer token for info.json requests")
    parser.add_argument("-o", "--output", help="Write the manifest to this file instead of stdout")
    parser.add_argument("--indent", type=int, default=None, help="Pretty-print with this indent")
    return parser


def _apply_overrides(cm: ConfigManager, args) -> None:
    """Fold command line overrides into the loaded configuration."""
    if args.logs_dir:
        cm.set_path("logs_dir", args.logs_dir)
    if args.files_dir:
        cm.set_path("public_files_dir", args.files_dir)
    if args.iiif_server is not None:
        cm.set_setting("iiif.server_url", args.iiif_server)
    if args.title_mode:
        cm.set_setting("iiif.show_title", TitleMode.parse(args.title_mode).value)
    if args.search_endpoint is not None:
        cm.set_setting("manifest.search_endpoint", args.search_endpoint)
    if args.relative_paths:
        cm.set_setting("iiif.use_relative_paths", True)


def main(argv=None):
    """Entry point for the `iiif-manifest` command."""
    args = _build_parser().parse_args(argv)

    cm = ConfigManager.load(Path(args.config)) if args.config else get_config_manager()
    _apply_overrides(cm, args)
    setup_logging(cm)
    if args.write_config:
        logger.info("Configuration saved to %s", cm.save())

    try:
        repo, rows = load_fixture(Path(args.fixture))
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return 2

    request = ManifestRequest(
        base_url=args.base_url,
        request_path=args.request_path,
        options=manifest_options_from_config(cm),
        rows=rows,
        title_mode=title_mode_from_config(cm),
        view_title=args.view_title,
    )

    token_issuer = StaticTokenIssuer(args.bearer_token) if args.bearer_token else None
    dimensions = DimensionResolver(
        token_issuer=token_issuer,
        path_resolver=ConfiguredPathResolver(cm),
        timeout=cm.get_setting("iiif.request_timeout", 30),
    )
    builder = ManifestBuilder(store=repo, term_resolver=repo, relations=repo, route_parser=repo, dimensions=dimensions)
    manifest = builder.build(request)

    unknown = unknown_dimension_canvases(manifest)
    if unknown:
        logger.warning("%d canvases have unknown dimensions: %s", len(unknown), ", ".join(unknown))
    services = search_service_ids(manifest)
    logger.info(
        "Manifest %s: %d canvases, search service: %s",
        request.request_path,
        total_canvases(manifest),
        ", ".join(services) or "none",
    )

    text = json.dumps(manifest, ensure_ascii=False, indent=args.indent)
    if args.output:
        out = Path(args.output)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(text + "\n", encoding="utf-8")
        logger.info("Manifest written to %s", out)
    else:
        sys.stdout.write(text + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
