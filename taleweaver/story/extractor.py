"""Recover a single :class:`StoryNode` from the free text written for it."""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from .patterns import (
    ENDING_KINDS,
    LineKind,
    classify_line,
    ending_marker_remainder,
    is_metadata_line,
    match_decision,
    match_title,
)
from .types import DEFAULT_ENDING_TEXT, ParseReport, StoryDecision, StoryNode, synthesize_title

LOGGER = logging.getLogger(__name__)


def extract_node(node_id: str, raw_text: Any, report: Optional[ParseReport] = None) -> StoryNode:
    """Extract title, narrative, decisions and ending state from ``raw_text``.

    The function is total: whatever the model produced, a node is returned.
    Missing pieces are filled in with deterministic fallbacks (a title built
    from ``node_id``, the generic closing line for endings) and a node whose
    text carries neither decisions nor an ending marker is treated as an
    implicit ending so the reader is never stranded on a page without a way
    forward.
    """

    text = "" if raw_text is None else str(raw_text)
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")

    title: Optional[str] = None
    title_index: Optional[int] = None
    for index, line in enumerate(lines):
        candidate = match_title(line)
        if candidate is not None:
            title, title_index = candidate, index
            break

    if title_index is None:
        title = synthesize_title(node_id)
    elif not title:
        title = f"Chapter {node_id}"

    content_lines = [
        line
        for index, line in enumerate(lines)
        if index != title_index and not is_metadata_line(line)
    ]

    boundary = len(content_lines)
    boundary_kind = LineKind.PROSE
    for index, line in enumerate(content_lines):
        kind = classify_line(line)
        if kind is not LineKind.PROSE:
            boundary, boundary_kind = index, kind
            break

    if boundary_kind in ENDING_KINDS:
        return _ending_node(node_id, title, content_lines, boundary, boundary_kind, report)

    narrative = _join(content_lines[:boundary])
    decisions: List[StoryDecision] = []
    for line in content_lines[boundary:]:
        decision = match_decision(line)
        if decision is not None:
            decisions.append(decision)

    if not decisions and boundary == len(content_lines):
        LOGGER.debug("Node '%s' has no decisions or ending marker; treating it as an implicit ending.", node_id)
        if report is not None:
            report.implicit_endings += 1
        return StoryNode(
            id=node_id,
            title=title,
            is_ending=True,
            ending_text=narrative or DEFAULT_ENDING_TEXT,
        )

    if not decisions:
        LOGGER.warning("Node '%s' opens a decision section but no decision line could be parsed.", node_id)

    return StoryNode(
        id=node_id,
        title=title,
        narrative=narrative,
        decisions=tuple(decisions),
    )


def _ending_node(
    node_id: str,
    title: str,
    content_lines: List[str],
    boundary: int,
    boundary_kind: LineKind,
    report: Optional[ParseReport],
) -> StoryNode:
    if boundary_kind is LineKind.ENDING_MARKER:
        narrative = _join(content_lines[:boundary])
        trailing = [ending_marker_remainder(content_lines[boundary])]
        trailing.extend(content_lines[boundary + 1 :])
        ending_text = _join(trailing) or narrative
    else:
        # "...and that was the end." is itself part of the closing prose.
        ending_text = _join(content_lines)

    if report is not None:
        report.explicit_endings += 1

    return StoryNode(
        id=node_id,
        title=title,
        is_ending=True,
        ending_text=ending_text or DEFAULT_ENDING_TEXT,
    )


def _join(lines: List[str]) -> str:
    return "\n".join(lines).strip()
