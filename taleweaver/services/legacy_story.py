"""Classic one-shot generation of a whole story as ``Node ID:`` delimited text."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

from flask import current_app

from ..story import StoryOutline
from .node_content import _fallback_node_content
from .prompting import (
    PromptConfigurationError,
    _apply_template,
    _extract_generation_parameters,
    _get_text_generator,
    _load_prompt_entry,
    story_context,
)
from .story_structure import StoryStructureError, build_fallback_outline, validate_story_input

PROMPT_KEY = "legacy_story"


class LegacyStoryError(RuntimeError):
    """Raised when a classic story cannot be generated."""


@dataclass
class LegacyStoryResult:
    story: str
    prompt: str
    used_fallback: bool


def generate_legacy_story(story_input: Mapping[str, Any]) -> LegacyStoryResult:
    try:
        validate_story_input(story_input)
        config_entry = _load_prompt_entry(PROMPT_KEY)
    except (StoryStructureError, PromptConfigurationError) as exc:
        raise LegacyStoryError(str(exc)) from exc

    final_prompt = _apply_template(config_entry["prompt_template"], **story_context(story_input))
    generator = _get_text_generator()
    generation_kwargs = _extract_generation_parameters(config_entry.get("parameters"))

    story_text: Optional[str] = None
    if generator is not None:
        try:
            story_text = generator.generate_response(final_prompt, **generation_kwargs)
        except Exception as exc:  # pragma: no cover - defensive logging for external integrations
            current_app.logger.warning("LLM story generation failed; using fallback story. Error: %s", exc)

    used_fallback = False
    if not story_text or not story_text.strip():
        outline = build_fallback_outline(story_input)
        story_text = render_legacy_text(
            outline,
            {node.id: _fallback_node_content(node, story_input) for node in outline.nodes},
        )
        used_fallback = True

    return LegacyStoryResult(story=story_text.strip(), prompt=final_prompt, used_fallback=used_fallback)


def render_legacy_text(outline: StoryOutline, content: Mapping[str, str]) -> str:
    """Write ``outline`` in the plain-text format the legacy parser reads."""

    blocks: List[str] = []
    for node in outline.nodes:
        lines = [f"Node ID: {node.id}", f"Brief Title: {node.title}"]
        narrative = (content.get(node.id) or node.summary).strip()
        if node.is_ending:
            lines.extend(["Ending:", narrative])
        else:
            lines.append(narrative)
            for number, decision in enumerate(node.decisions, start=1):
                lines.append(f"{number}. {decision.text}. Go to page {decision.next_node_id}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)
