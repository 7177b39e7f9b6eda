"""Value types shared by the story parsing and reconstruction layer."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

LOGGER = logging.getLogger(__name__)

DEFAULT_ENDING_TEXT = "The story concludes here."

_WORD_START = re.compile(r"\b\w")


class StoryFormatError(ValueError):
    """Raised when a raw story payload does not have the expected top-level shape."""


@dataclass(frozen=True)
class StoryDecision:
    text: str
    next_node_id: str

    def to_dict(self) -> Dict[str, str]:
        return {"text": self.text, "next_node_id": self.next_node_id}


@dataclass(frozen=True)
class StoryNode:
    """A single page of an interactive story.

    ``narrative`` and ``decisions`` are only meaningful while ``is_ending`` is
    false; ``ending_text`` is only set when it is true.
    """

    id: str
    title: str
    narrative: str = ""
    decisions: Tuple[StoryDecision, ...] = ()
    is_ending: bool = False
    ending_text: Optional[str] = None

    @property
    def display_text(self) -> str:
        if self.is_ending:
            return self.ending_text or DEFAULT_ENDING_TEXT
        return self.narrative

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "narrative": self.narrative,
            "decisions": [decision.to_dict() for decision in self.decisions],
            "is_ending": self.is_ending,
            "ending_text": self.ending_text,
        }


StoryGraph = Dict[str, StoryNode]


@dataclass(frozen=True)
class NodeOutline:
    id: str
    title: str
    summary: str
    decisions: Tuple[StoryDecision, ...]
    is_ending: bool


@dataclass(frozen=True)
class StoryOutline:
    """The declared structure produced by the outline generation stage."""

    nodes: Tuple[NodeOutline, ...]
    start_node_id: str

    @classmethod
    def from_payload(cls, payload: Any) -> "StoryOutline":
        if not isinstance(payload, Mapping):
            raise StoryFormatError("Story structure must be a JSON object.")

        raw_nodes = payload.get("nodes")
        if not isinstance(raw_nodes, list) or not raw_nodes:
            raise StoryFormatError("Story structure has no nodes.")

        start_node_id = payload.get("startNodeId")
        if not isinstance(start_node_id, str) or not start_node_id.strip():
            raise StoryFormatError("Story structure is missing its startNodeId.")

        nodes: List[NodeOutline] = []
        for index, raw in enumerate(raw_nodes):
            try:
                nodes.append(_parse_node_outline(raw, index))
            except StoryFormatError as exc:
                LOGGER.warning("Skipping malformed story node: %s", exc)
        if not nodes:
            raise StoryFormatError("Story structure has no usable nodes.")
        return cls(nodes=tuple(nodes), start_node_id=start_node_id.strip())

    def to_payload(self) -> Dict[str, Any]:
        nodes: List[Dict[str, Any]] = []
        for node in self.nodes:
            entry: Dict[str, Any] = {
                "id": node.id,
                "title": node.title,
                "summary": node.summary,
                "isEnding": node.is_ending,
            }
            if node.decisions:
                entry["decisions"] = [
                    {"text": decision.text, "nextNodeId": decision.next_node_id}
                    for decision in node.decisions
                ]
            nodes.append(entry)
        return {"nodes": nodes, "startNodeId": self.start_node_id}


def synthesize_title(node_id: str) -> str:
    """Build a readable title from ``node_id`` (``forest_path`` -> ``Forest Path``)."""

    return _WORD_START.sub(lambda match: match.group(0).upper(), node_id.replace("_", " "))


def _parse_node_outline(raw: Any, index: int) -> NodeOutline:
    if not isinstance(raw, Mapping):
        raise StoryFormatError(f"Node #{index + 1} in the story structure is not an object.")

    node_id = raw.get("id")
    if not isinstance(node_id, str) or not node_id.strip():
        raise StoryFormatError(f"Node #{index + 1} in the story structure has no id.")
    node_id = node_id.strip()

    title_raw = raw.get("title")
    title = title_raw if isinstance(title_raw, str) and title_raw.strip() else synthesize_title(node_id)
    summary_raw = raw.get("summary")
    summary = summary_raw if isinstance(summary_raw, str) else ""

    decisions: List[StoryDecision] = []
    raw_decisions = raw.get("decisions") or []
    if not isinstance(raw_decisions, list):
        LOGGER.warning("Ignoring non-list decisions declared for node '%s'.", node_id)
        raw_decisions = []
    for item in raw_decisions:
        if not isinstance(item, Mapping):
            LOGGER.warning("Skipping malformed decision on node '%s': %r", node_id, item)
            continue
        text = item.get("text")
        next_node_id = item.get("nextNodeId")
        if not isinstance(text, str) or not isinstance(next_node_id, str):
            LOGGER.warning("Skipping malformed decision on node '%s': %r", node_id, item)
            continue
        decisions.append(StoryDecision(text=text, next_node_id=next_node_id))

    return NodeOutline(
        id=node_id,
        title=title,
        summary=summary,
        decisions=tuple(decisions),
        is_ending=_coerce_flag(raw.get("isEnding")),
    )


def _coerce_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


@dataclass
class ParseReport:
    """Diagnostics collected while reconstructing one graph.

    None of these counters influence the produced graph; they exist so that
    callers can monitor how often the model output needed repairing.
    """

    explicit_endings: int = 0
    implicit_endings: int = 0
    failed_nodes: int = 0
    missing_content: int = 0
    skipped_segments: int = 0
    dangling_targets: List[Tuple[str, str]] = field(default_factory=list)
    strategy_errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "explicit_endings": self.explicit_endings,
            "implicit_endings": self.implicit_endings,
            "failed_nodes": self.failed_nodes,
            "missing_content": self.missing_content,
            "skipped_segments": self.skipped_segments,
            "dangling_targets": [list(pair) for pair in self.dangling_targets],
            "strategy_errors": list(self.strategy_errors),
        }


@dataclass
class ParseResult:
    graph: StoryGraph
    start_node_id: Optional[str]
    source_format: Optional[str]
    report: ParseReport

    @property
    def is_empty(self) -> bool:
        return not self.graph
