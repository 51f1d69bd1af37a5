"""Command line interface.

Usage:
    # Lay out a classifier answer next to the synced notes
    horizon-canvas layout answer.json --files "Gemini/My Session" -o "Gemini/My Session/Logic_Map.canvas"

    # Also write an SVG preview
    horizon-canvas layout answer.json --svg preview.svg

    # Show the density policy for 80 source items
    horizon-canvas policy 80
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from horizon_canvas.api import estimate_raw_count, generate_canvas, render_canvas_json, render_svg, write_canvas
from horizon_canvas.config import Settings, load_settings
from horizon_canvas.content import FileEntry, file_mapping_from_names
from horizon_canvas.density import classify_density
from horizon_canvas.errors import GraphContractError
from horizon_canvas.payload import parse_graph, parse_response
from horizon_canvas.types import ClassifiedGraph

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_IO_ERROR = 1
EXIT_CONTRACT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="horizon-canvas",
        description="Lay out a classified conversation graph as a JSON Canvas document.",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-v info, -vv debug)")
    parser.add_argument("--env-file", type=Path, default=None, help="Read HORIZON_* settings from this .env file")
    sub = parser.add_subparsers(dest="command", required=True)

    layout = sub.add_parser("layout", help="Compute the canvas for a classifier answer")
    layout.add_argument("payload", help="Classifier answer (JSON or markdown-wrapped JSON); '-' for stdin")
    source = layout.add_mutually_exclusive_group()
    source.add_argument("--files", type=Path, help="Session folder with synced NNN-*.md notes")
    source.add_argument("--mapping", type=Path, help='JSON file with [{"index": 1, "fileName": "..."}]')
    layout.add_argument("--session", help="Session folder name used in back-links")
    layout.add_argument("--base-path", help="Vault folder holding the session folder")
    layout.add_argument("--raw-count", type=int, help="Number of source items (default: estimated)")
    layout.add_argument("-o", "--out", help="Canvas output path; '-' for stdout")
    layout.add_argument("--svg", type=Path, help="Also write an SVG preview here")

    policy = sub.add_parser("policy", help="Print the density policy for a raw item count")
    policy.add_argument("raw_count", type=int)
    return parser


def _configure_logging(verbosity: int, settings: Settings) -> None:
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = getattr(logging, settings.log_level)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _read_text(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def load_graph(text: str) -> ClassifiedGraph:
    """Parse plain JSON directly; anything else goes through response extraction."""
    try:
        payload: Any = json.loads(text)
    except json.JSONDecodeError:
        return parse_response(text)
    return parse_graph(payload)


def _file_mapping(args: argparse.Namespace) -> list[FileEntry] | list[dict[str, Any]]:
    if args.files is not None:
        return file_mapping_from_names(p.name for p in args.files.iterdir() if p.is_file())
    if args.mapping is not None:
        entries = json.loads(args.mapping.read_text(encoding="utf-8"))
        return entries if isinstance(entries, list) else []
    return []


def run_layout(args: argparse.Namespace, settings: Settings) -> int:
    try:
        graph = load_graph(_read_text(args.payload))
        mapping = _file_mapping(args)
    except GraphContractError as exc:
        print(f"error: malformed classifier output: {exc}", file=sys.stderr)
        return EXIT_CONTRACT_ERROR
    except (OSError, json.JSONDecodeError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_IO_ERROR

    session = args.session
    if session is None:
        session = args.files.name if args.files is not None else ""
    base_path = settings.base_path if args.base_path is None else args.base_path
    raw_count = estimate_raw_count(graph) if args.raw_count is None else args.raw_count

    try:
        document = generate_canvas(
            graph,
            raw_count,
            file_mapping=mapping,
            base_path=base_path,
            session_title=session,
        )
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_CONTRACT_ERROR

    if document.is_empty:
        logger.warning("Nothing to render: every node was filtered out as noise")

    try:
        if args.out == "-":
            sys.stdout.write(render_canvas_json(document) + "\n")
        else:
            write_canvas(document, args.out or settings.canvas_path)
        if args.svg is not None:
            args.svg.parent.mkdir(parents=True, exist_ok=True)
            args.svg.write_text(render_svg(document), encoding="utf-8")
    except OSError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_IO_ERROR
    return EXIT_OK


def run_policy(args: argparse.Namespace) -> int:
    try:
        policy = classify_density(args.raw_count)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_CONTRACT_ERROR
    print(json.dumps(policy.to_dict(), indent=2))
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings(args.env_file)
    _configure_logging(args.verbose, settings)

    if args.command == "policy":
        return run_policy(args)
    return run_layout(args, settings)
