"""Parsing and graph reconstruction for generated branching stories."""

from __future__ import annotations

from .extractor import extract_node  # noqa: F401
from .legacy import reconstruct_from_mapping, reconstruct_from_text  # noqa: F401
from .reconstruct import (  # noqa: F401
    FORMAT_LEGACY_JSON,
    FORMAT_LEGACY_TEXT,
    FORMAT_STRUCTURED,
    reconstruct_graph,
)
from .start_node import START_NODE_KEY, resolve_start  # noqa: F401
from .structured import (  # noqa: F401
    FAILURE_PREFIXES,
    is_failure_placeholder,
    reconstruct_from_outline,
    reconstruct_structured,
)
from .types import (  # noqa: F401
    DEFAULT_ENDING_TEXT,
    NodeOutline,
    ParseReport,
    ParseResult,
    StoryDecision,
    StoryFormatError,
    StoryGraph,
    StoryNode,
    StoryOutline,
)

__all__ = [
    "DEFAULT_ENDING_TEXT",
    "FAILURE_PREFIXES",
    "FORMAT_LEGACY_JSON",
    "FORMAT_LEGACY_TEXT",
    "FORMAT_STRUCTURED",
    "NodeOutline",
    "ParseReport",
    "ParseResult",
    "START_NODE_KEY",
    "StoryDecision",
    "StoryFormatError",
    "StoryGraph",
    "StoryNode",
    "StoryOutline",
    "extract_node",
    "is_failure_placeholder",
    "reconstruct_from_mapping",
    "reconstruct_from_outline",
    "reconstruct_from_text",
    "reconstruct_graph",
    "reconstruct_structured",
    "resolve_start",
]
