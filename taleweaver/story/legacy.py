"""Reconstruction of stories written in the older single-blob formats.

Two shapes are supported: a JSON object mapping node ids to the raw text of
each node, and plain text in which every node starts with a ``Node ID:`` line.
In both cases decisions and endings have to be inferred from the prose.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Mapping, Optional, Tuple

from .extractor import extract_node
from .patterns import NODE_ID_MARKER, is_valid_node_id
from .types import ParseReport, StoryGraph

LOGGER = logging.getLogger(__name__)

_SEGMENT_SPLIT = re.compile(r"\n" + re.escape(NODE_ID_MARKER) + r"[ \t]*")


def reconstruct_from_mapping(
    mapping: Mapping[str, Any],
    report: Optional[ParseReport] = None,
) -> Tuple[StoryGraph, Optional[str]]:
    graph: StoryGraph = {}
    first_id: Optional[str] = None
    for node_id, raw_text in mapping.items():
        if not isinstance(raw_text, str):
            LOGGER.warning("Skipping legacy node '%s': content is not text.", node_id)
            if report is not None:
                report.skipped_segments += 1
            continue
        node_key = str(node_id)
        if first_id is None:
            first_id = node_key
        graph[node_key] = extract_node(node_key, raw_text, report)
    return graph, first_id


def reconstruct_from_text(
    text: str,
    report: Optional[ParseReport] = None,
) -> Tuple[StoryGraph, Optional[str]]:
    graph: StoryGraph = {}
    first_id: Optional[str] = None

    normalized = (text or "").replace("\r\n", "\n").strip()
    if not normalized.startswith(NODE_ID_MARKER):
        offset = normalized.find(NODE_ID_MARKER)
        if offset == -1:
            LOGGER.error("No '%s' marker found in the story text.", NODE_ID_MARKER)
            return graph, None
        LOGGER.debug("Discarding %d characters of preamble before the first node.", offset)
        normalized = normalized[offset:]

    normalized = "\n" + normalized
    segments = [segment for segment in _SEGMENT_SPLIT.split(normalized) if segment.strip()]
    if not segments:
        LOGGER.error("No segments found after splitting on '%s'.", NODE_ID_MARKER)
        return graph, None

    for position, segment in enumerate(segments, start=1):
        id_line, _, body = segment.partition("\n")
        node_id = id_line.strip()
        if not node_id:
            LOGGER.warning("Skipping legacy segment %d: empty node id line.", position)
            if report is not None:
                report.skipped_segments += 1
            continue
        if not is_valid_node_id(node_id):
            LOGGER.warning("Skipping legacy segment %d: node id '%s' contains invalid characters.", position, node_id)
            if report is not None:
                report.skipped_segments += 1
            continue

        if node_id in graph:
            LOGGER.warning("Node id '%s' appears more than once; keeping the last segment.", node_id)
        graph[node_id] = extract_node(node_id, body, report)
        if first_id is None:
            first_id = node_id

    return graph, first_id
