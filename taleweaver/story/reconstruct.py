"""Detect which story format is available and rebuild the graph from it."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, List, Mapping, Optional, Tuple

from .legacy import reconstruct_from_mapping, reconstruct_from_text
from .start_node import KeyValueLookup, resolve_start
from .structured import reconstruct_structured
from .types import ParseReport, ParseResult, StoryFormatError, StoryGraph

LOGGER = logging.getLogger(__name__)

FORMAT_STRUCTURED = "structured"
FORMAT_LEGACY_JSON = "legacy_json"
FORMAT_LEGACY_TEXT = "legacy_text"

Strategy = Callable[[ParseReport], Tuple[StoryGraph, Optional[str]]]


def reconstruct_graph(
    content: Any = None,
    structure: Any = None,
    legacy: Any = None,
    *,
    stored_start_id: Optional[str] = None,
    lookup: Optional[KeyValueLookup] = None,
) -> ParseResult:
    """Rebuild a story graph from whichever payloads the caller has.

    ``content`` (node id -> generated narrative) and ``structure`` (the
    declared outline) are used together when both are usable; otherwise the
    ``legacy`` blob is read as a JSON map of node texts or, failing that, as
    ``Node ID:`` delimited plain text. Each attempt that raises or yields no
    nodes falls through to the next one. When nothing works the result has an
    empty graph and no start node, which callers must report as corrupted
    story data.
    """

    strategy_errors: List[str] = []
    strategies: List[Tuple[str, Strategy]] = []

    if _present(content) and _present(structure):
        strategies.append(
            (FORMAT_STRUCTURED, lambda rep: reconstruct_structured(structure, content, rep))
        )
    if _present(legacy):
        strategies.append((FORMAT_LEGACY_JSON, lambda rep: _legacy_json(legacy, rep)))
        if isinstance(legacy, str):
            strategies.append((FORMAT_LEGACY_TEXT, lambda rep: reconstruct_from_text(legacy, rep)))

    for source_format, strategy in strategies:
        # Counters only describe the attempt that produced the graph.
        report = ParseReport(strategy_errors=strategy_errors)
        try:
            graph, candidate = strategy(report)
        except StoryFormatError as exc:
            LOGGER.info("Story data is not in '%s' format: %s", source_format, exc)
            report.strategy_errors.append(f"{source_format}: {exc}")
            continue
        except Exception as exc:
            LOGGER.warning("Story format '%s' could not be parsed: %s", source_format, exc)
            report.strategy_errors.append(f"{source_format}: {exc}")
            continue

        if not graph:
            LOGGER.info("Story format '%s' produced no nodes; trying the next format.", source_format)
            continue

        start_node_id = resolve_start(candidate, graph, stored_start_id, lookup=lookup)
        _record_dangling_targets(graph, report)
        LOGGER.info(
            "Reconstructed %d story nodes from '%s' data (start: %s).",
            len(graph),
            source_format,
            start_node_id,
        )
        return ParseResult(
            graph=graph,
            start_node_id=start_node_id,
            source_format=source_format,
            report=report,
        )

    if strategies:
        LOGGER.error("No usable story data could be reconstructed from the supplied payloads.")
    else:
        LOGGER.error("No story data supplied for parsing.")
    return ParseResult(
        graph={},
        start_node_id=None,
        source_format=None,
        report=ParseReport(strategy_errors=strategy_errors),
    )


def _legacy_json(legacy: Any, report: ParseReport) -> Tuple[StoryGraph, Optional[str]]:
    if isinstance(legacy, (str, bytes)):
        try:
            decoded = json.loads(legacy)
        except json.JSONDecodeError as exc:
            raise StoryFormatError("legacy story is not a JSON map") from exc
    else:
        decoded = legacy
    if not isinstance(decoded, Mapping):
        raise StoryFormatError("legacy story JSON is not an object")
    return reconstruct_from_mapping(decoded, report)


def _record_dangling_targets(graph: StoryGraph, report: ParseReport) -> None:
    for node in graph.values():
        for decision in node.decisions:
            if decision.next_node_id not in graph:
                report.dangling_targets.append((node.id, decision.next_node_id))
    if report.dangling_targets:
        LOGGER.warning(
            "%d decision(s) point at pages that do not exist: %s",
            len(report.dangling_targets),
            ", ".join(f"{source}->{target}" for source, target in report.dangling_targets),
        )


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, bytes)):
        return bool(value.strip())
    return True
