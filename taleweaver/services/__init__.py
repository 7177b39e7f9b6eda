"""Service layer helpers for LLM-assisted story generation."""

from __future__ import annotations

from .legacy_story import LegacyStoryError, LegacyStoryResult, generate_legacy_story  # noqa: F401
from .node_content import (  # noqa: F401
    ContentGenerationResult,
    NodeContentError,
    generate_node_content,
    generate_story_content,
)
from .prompting import PromptConfigurationError  # noqa: F401
from .story_structure import (  # noqa: F401
    StoryStructureError,
    StructureGenerationResult,
    generate_story_structure,
)

__all__ = [
    "ContentGenerationResult",
    "LegacyStoryError",
    "LegacyStoryResult",
    "NodeContentError",
    "PromptConfigurationError",
    "StoryStructureError",
    "StructureGenerationResult",
    "generate_legacy_story",
    "generate_node_content",
    "generate_story_content",
    "generate_story_structure",
]
