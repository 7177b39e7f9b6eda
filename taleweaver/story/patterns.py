"""Marker table used to recognise structure inside model-written prose.

Every pattern the extractor relies on is declared here, next to the meaning
it carries, so the matching policy can be read and tested in one place. The
model's phrasing drifts between prompt versions, so the patterns accept a
few equivalent spellings for each marker.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Optional, Tuple

from .types import StoryDecision

NODE_ID_MARKER = "Node ID:"

NODE_ID_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")
TITLE_PATTERN = re.compile(r"^(Brief Title:|Title:)", re.IGNORECASE)
METADATA_PATTERN = re.compile(
    r"^(Node ID:|Brief Title:|Title:|Segment Summary:|Summary:|Content:)",
    re.IGNORECASE,
)
DECISION_LINE_PATTERN = re.compile(
    r"^(?:\d+\.|-)\s*(.+?)\s*"
    r"(?:\(Go to page|\(Go to|\(->|Go to page|Go to|->)\s+"
    r"([A-Za-z0-9_]+)\)?\.?$",
    re.IGNORECASE,
)
DECISION_HEADER_PATTERN = re.compile(r"^(Decisions?:|What do you do\?|Choose one:)", re.IGNORECASE)
ENDING_MARKER_PATTERN = re.compile(r"^(?:Ending:\s*(?P<rest>.*)|---\s*THE END\s*---)$", re.IGNORECASE)
ENDING_PHRASE_PATTERN = re.compile(r"\bthe\s+end\b(?=\s*[.!]|\s*$)", re.IGNORECASE)


class LineKind(Enum):
    DECISION = "decision"
    DECISION_HEADER = "decision_header"
    ENDING_MARKER = "ending_marker"
    ENDING_PHRASE = "ending_phrase"
    PROSE = "prose"


# Checked in order; the first match decides what a line means.
BOUNDARY_PATTERNS: Tuple[Tuple[LineKind, "re.Pattern[str]"], ...] = (
    (LineKind.DECISION, DECISION_LINE_PATTERN),
    (LineKind.DECISION_HEADER, DECISION_HEADER_PATTERN),
    (LineKind.ENDING_MARKER, ENDING_MARKER_PATTERN),
    (LineKind.ENDING_PHRASE, ENDING_PHRASE_PATTERN),
)

ENDING_KINDS = frozenset({LineKind.ENDING_MARKER, LineKind.ENDING_PHRASE})


def classify_line(line: str) -> LineKind:
    stripped = line.strip()
    for kind, pattern in BOUNDARY_PATTERNS:
        if kind is LineKind.ENDING_PHRASE:
            matched = pattern.search(stripped)
        else:
            matched = pattern.match(stripped)
        if matched:
            return kind
    return LineKind.PROSE


def match_decision(line: str) -> Optional[StoryDecision]:
    """Parse ``1. Open the door. Go to page hallway`` into a decision."""

    match = DECISION_LINE_PATTERN.match(line.strip())
    if not match:
        return None
    text = match.group(1).strip()
    if text.endswith("."):
        text = text[:-1].rstrip()
    target = match.group(2).strip()
    if not text or not target:
        return None
    return StoryDecision(text=text, next_node_id=target)


def match_title(line: str) -> Optional[str]:
    stripped = line.strip()
    if not TITLE_PATTERN.match(stripped):
        return None
    return TITLE_PATTERN.sub("", stripped, count=1).strip()


def is_metadata_line(line: str) -> bool:
    return bool(METADATA_PATTERN.match(line.strip()))


def ending_marker_remainder(line: str) -> str:
    """Return the text written after an ``Ending:`` marker on the same line."""

    match = ENDING_MARKER_PATTERN.match(line.strip())
    if not match:
        return ""
    return (match.group("rest") or "").strip()


def is_valid_node_id(node_id: str) -> bool:
    return bool(NODE_ID_PATTERN.match(node_id))
