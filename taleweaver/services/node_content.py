"""Per-node narrative generation for an approved story outline."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from flask import current_app

from ..story import NodeOutline, StoryFormatError, StoryOutline, is_failure_placeholder
from .prompting import (
    PromptConfigurationError,
    _apply_template,
    _extract_generation_parameters,
    _get_text_generator,
    _load_prompt_entry,
    extract_json_payload,
    story_context,
)

PROMPT_KEY = "node_content"


class NodeContentError(RuntimeError):
    """Raised when node content generation cannot start."""


@dataclass
class ContentGenerationResult:
    content: Dict[str, str]
    failed_nodes: List[str] = field(default_factory=list)
    used_fallback: bool = False


def failed_content(node: NodeOutline) -> str:
    return f"[Content generation failed for node {node.id}. Summary: {node.summary}]"


def critically_failed_content(node: NodeOutline, error: Exception) -> str:
    return f"[Content generation critically failed for node {node.id}: {error}]"


def generate_story_content(
    story_input: Mapping[str, Any],
    structure: Any,
    *,
    batch_size: Optional[int] = None,
    batch_delay: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> ContentGenerationResult:
    """Write the narrative for every declared node.

    Nodes are processed one request at a time in batches of ``batch_size``,
    pausing ``batch_delay`` seconds between batches. A node that fails gets a
    failure placeholder instead of aborting the run; the story parser turns
    such nodes into endings.
    """

    try:
        outline = structure if isinstance(structure, StoryOutline) else StoryOutline.from_payload(structure)
    except StoryFormatError as exc:
        raise NodeContentError(f"The story structure is invalid: {exc}") from exc

    try:
        config_entry = _load_prompt_entry(PROMPT_KEY)
    except PromptConfigurationError as exc:
        raise NodeContentError(str(exc)) from exc

    app_config = current_app.config
    size = batch_size if batch_size is not None else app_config.get("NODE_CONTENT_BATCH_SIZE", 3)
    size = max(1, int(size))
    delay = batch_delay if batch_delay is not None else app_config.get("NODE_CONTENT_BATCH_DELAY", 0.0)
    delay = max(0.0, float(delay))

    generator = _get_text_generator()
    result = ContentGenerationResult(content={}, used_fallback=generator is None)

    nodes = list(outline.nodes)
    for batch_start in range(0, len(nodes), size):
        if batch_start and delay and generator is not None:
            sleep(delay)
        for node in nodes[batch_start : batch_start + size]:
            if generator is None:
                text = _fallback_node_content(node, story_input)
            else:
                text = _generate_one(generator, config_entry, story_input, node)
            if is_failure_placeholder(text):
                result.failed_nodes.append(node.id)
            result.content[node.id] = text

    if result.failed_nodes:
        current_app.logger.warning(
            "Content generation failed for %d of %d nodes: %s",
            len(result.failed_nodes),
            len(nodes),
            ", ".join(result.failed_nodes),
        )
    return result


def generate_node_content(story_input: Mapping[str, Any], node: NodeOutline) -> str:
    """Generate the narrative for a single node, returning a placeholder on failure."""

    try:
        config_entry = _load_prompt_entry(PROMPT_KEY)
    except PromptConfigurationError as exc:
        raise NodeContentError(str(exc)) from exc

    generator = _get_text_generator()
    if generator is None:
        return _fallback_node_content(node, story_input)
    return _generate_one(generator, config_entry, story_input, node)


def _generate_one(
    generator: Any,
    config_entry: Mapping[str, Any],
    story_input: Mapping[str, Any],
    node: NodeOutline,
) -> str:
    final_prompt = _apply_template(
        config_entry["prompt_template"],
        nodeId=node.id,
        nodeTitle=node.title,
        nodeSummary=node.summary,
        isEnding="yes" if node.is_ending else "no",
        decisionList=_describe_decisions(node),
        **story_context(story_input),
    )
    generation_kwargs = _extract_generation_parameters(config_entry.get("parameters"))

    try:
        raw_response = generator.generate_response(final_prompt, **generation_kwargs)
    except Exception as exc:
        current_app.logger.warning("Content generation for node '%s' raised: %s", node.id, exc)
        return critically_failed_content(node, exc)

    text = _parse_content_response(raw_response)
    if not text:
        current_app.logger.error("The model returned no usable content for node '%s'.", node.id)
        return failed_content(node)
    return text


def _parse_content_response(raw_response: Optional[str]) -> str:
    if not raw_response or not raw_response.strip():
        return ""
    data = extract_json_payload(raw_response)
    if isinstance(data, dict):
        content = data.get("content")
        return content.strip() if isinstance(content, str) else ""
    return raw_response.strip()


def _describe_decisions(node: NodeOutline) -> str:
    if not node.decisions:
        return "None (this page ends its branch)."
    return "\n".join(
        f'- "{decision.text}" (leads to node: {decision.next_node_id})' for decision in node.decisions
    )


def _fallback_node_content(node: NodeOutline, story_input: Mapping[str, Any]) -> str:
    summary = node.summary.strip() or f"The tale moves on to {node.title}."
    if node.is_ending:
        return f"{summary} And so this path of the adventure comes to its close."
    style = str(story_input.get("atmosphereMood") or "").strip()
    mood = f" The air feels {style.lower()}." if style else ""
    return f"{summary}{mood} A choice lies ahead."
