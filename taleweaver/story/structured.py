"""Merge a declared story structure with per-node generated narrative."""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional, Tuple

from .types import (
    DEFAULT_ENDING_TEXT,
    ParseReport,
    StoryFormatError,
    StoryGraph,
    StoryNode,
    StoryOutline,
)

LOGGER = logging.getLogger(__name__)

FAILURE_PREFIXES = (
    "[Content generation failed",
    "[Content generation critically failed",
)


def is_failure_placeholder(text: str) -> bool:
    return text.startswith(FAILURE_PREFIXES)


def missing_content_placeholder(node_id: str, summary: str) -> str:
    return f"[Content missing for node {node_id}. Summary: {summary}]"


def reconstruct_from_outline(
    outline: StoryOutline,
    content: Mapping[str, Any],
    report: Optional[ParseReport] = None,
) -> StoryGraph:
    """Build the graph from ``outline``, taking decisions verbatim from it.

    Decisions and ending flags come from the declaration, never from the
    generated prose. A node whose content is a generation-failure placeholder
    becomes an ending so that the reader is not offered choices into a page
    that has nothing to show.
    """

    graph: StoryGraph = {}
    for declared in outline.nodes:
        generated = content.get(declared.id)
        if generated is None:
            LOGGER.warning("No generated content for node '%s'; using a placeholder.", declared.id)
            generated = missing_content_placeholder(declared.id, declared.summary)
            if report is not None:
                report.missing_content += 1
        elif not isinstance(generated, str):
            generated = str(generated)

        failed = is_failure_placeholder(generated)
        if failed:
            LOGGER.warning("Content generation failed for node '%s'; treating it as an ending.", declared.id)
            if report is not None:
                report.failed_nodes += 1

        if declared.id in graph:
            LOGGER.warning("Node id '%s' is declared more than once; keeping the last declaration.", declared.id)

        if declared.is_ending or failed:
            if report is not None and declared.is_ending:
                report.explicit_endings += 1
            node = StoryNode(
                id=declared.id,
                title=declared.title,
                is_ending=True,
                ending_text=generated if generated.strip() else DEFAULT_ENDING_TEXT,
            )
        else:
            node = StoryNode(
                id=declared.id,
                title=declared.title,
                narrative=generated,
                decisions=declared.decisions,
            )
        graph[declared.id] = node

    return graph


def reconstruct_structured(
    structure: Any,
    content: Any,
    report: Optional[ParseReport] = None,
) -> Tuple[StoryGraph, str]:
    """Decode both payloads and reconstruct; raises :class:`StoryFormatError` on bad shapes."""

    outline = StoryOutline.from_payload(_decode(structure, "story structure"))
    content_map = _decode(content, "story content")
    if not isinstance(content_map, Mapping) or not all(isinstance(key, str) for key in content_map):
        raise StoryFormatError("Story content must be a JSON object keyed by node id.")

    return reconstruct_from_outline(outline, content_map, report), outline.start_node_id


def _decode(payload: Any, label: str) -> Any:
    if isinstance(payload, (str, bytes)):
        try:
            return json.loads(payload)
        except json.JSONDecodeError as exc:
            raise StoryFormatError(f"The {label} is not valid JSON: {exc.msg}") from exc
    return payload
