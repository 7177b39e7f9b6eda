"""Rebuild a story graph from saved generator output and print what was found.

Examples::

    python scripts/parse_story.py --structure outline.json --content pages.json
    python scripts/parse_story.py --legacy story.txt --json
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from taleweaver.story import ParseResult, reconstruct_graph  # noqa: E402


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Parse generated story files and report the reconstructed page graph."
    )
    parser.add_argument("--structure", type=Path, help="JSON outline with nodes and startNodeId.")
    parser.add_argument("--content", type=Path, help="JSON object mapping node ids to page text.")
    parser.add_argument(
        "--legacy",
        type=Path,
        help="Single-blob story: a JSON map of page texts or 'Node ID:' delimited text.",
    )
    parser.add_argument("--start-id", help="Preferred start page, used when it exists in the story.")
    parser.add_argument("--json", action="store_true", help="Print the full graph as JSON.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show parser log messages.")
    args = parser.parse_args(argv)
    if not args.legacy and not (args.structure and args.content):
        parser.error("pass --structure and --content, or --legacy")
    return args


def _read(path: Optional[Path]) -> Optional[str]:
    if path is None:
        return None
    return path.read_text(encoding="utf-8")


def summarise(result: ParseResult) -> str:
    lines = [
        f"Format: {result.source_format}",
        f"Start page: {result.start_node_id}",
        f"Pages: {len(result.graph)}",
    ]
    for node in result.graph.values():
        if node.is_ending:
            lines.append(f"  [end] {node.id}: {node.title}")
        else:
            targets = ", ".join(decision.next_node_id for decision in node.decisions) or "-"
            lines.append(f"  {node.id}: {node.title} -> {targets}")

    report = result.report
    lines.append(
        f"Endings: {report.explicit_endings} explicit, {report.implicit_endings} inferred; "
        f"failed pages: {report.failed_nodes}; missing pages: {report.missing_content}; "
        f"skipped segments: {report.skipped_segments}"
    )
    for source, target in report.dangling_targets:
        lines.append(f"  warning: {source} points at missing page {target}")
    for error in report.strategy_errors:
        lines.append(f"  note: {error}")
    return "\n".join(lines)


def main(argv: Optional[list] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        structure = _read(args.structure)
        content = _read(args.content)
        legacy = _read(args.legacy)
    except OSError as exc:
        print(f"Unable to read story file: {exc}", file=sys.stderr)
        return 2

    result = reconstruct_graph(
        content=content,
        structure=structure,
        legacy=legacy,
        stored_start_id=args.start_id,
    )
    if result.is_empty:
        print("Story data corrupted: no pages could be reconstructed.", file=sys.stderr)
        return 1

    if args.json:
        payload = {
            "start_node_id": result.start_node_id,
            "source_format": result.source_format,
            "nodes": [node.to_dict() for node in result.graph.values()],
            "report": result.report.to_dict(),
        }
        print(json.dumps(payload, indent=2, ensure_ascii=False))
    else:
        print(summarise(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
