"""Outline generation: the first stage of the structured story pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from flask import current_app

from ..story import StoryFormatError, StoryOutline
from .prompting import (
    PromptConfigurationError,
    _apply_template,
    _extract_generation_parameters,
    _get_text_generator,
    _load_prompt_entry,
    extract_json_payload,
    story_context,
)

PROMPT_KEY = "story_structure"
REQUIRED_FIELDS = ("storyTitle", "protagonistName", "coreConflict")


class StoryStructureError(RuntimeError):
    """Raised when a story outline cannot be produced."""


@dataclass
class StructureGenerationResult:
    structure: Dict[str, Any]
    prompt: str
    used_fallback: bool


def validate_story_input(story_input: Mapping[str, Any]) -> None:
    missing = [name for name in REQUIRED_FIELDS if not str(story_input.get(name) or "").strip()]
    if missing:
        raise StoryStructureError(
            "Missing required fields: Story Title, Protagonist Name, and Core Conflict are necessary."
        )


def generate_story_structure(story_input: Mapping[str, Any]) -> StructureGenerationResult:
    """Ask the model for a branching outline of the story described by ``story_input``."""

    validate_story_input(story_input)

    try:
        config_entry = _load_prompt_entry(PROMPT_KEY)
    except PromptConfigurationError as exc:
        raise StoryStructureError(str(exc)) from exc

    final_prompt = _apply_template(config_entry["prompt_template"], **story_context(story_input))

    generator = _get_text_generator()
    generation_kwargs = _extract_generation_parameters(config_entry.get("parameters"))

    raw_response: Optional[str] = None
    if generator is not None:
        try:
            raw_response = generator.generate_response(final_prompt, **generation_kwargs)
        except Exception as exc:  # pragma: no cover - defensive logging for external integrations
            current_app.logger.warning("LLM structure generation failed; using fallback outline. Error: %s", exc)

    outline = parse_structure_response(raw_response)
    if outline is None:
        if raw_response:
            current_app.logger.warning("The generated story structure was malformed; using fallback outline.")
        outline = build_fallback_outline(story_input)
        used_fallback = True
    else:
        used_fallback = False

    return StructureGenerationResult(
        structure=outline.to_payload(),
        prompt=final_prompt,
        used_fallback=used_fallback,
    )


def parse_structure_response(raw_response: Optional[str]) -> Optional[StoryOutline]:
    data = extract_json_payload(raw_response)
    if not isinstance(data, dict):
        return None

    nodes = data.get("nodes")
    if isinstance(nodes, list) and nodes:
        declared_ids = [
            node["id"].strip()
            for node in nodes
            if isinstance(node, dict) and isinstance(node.get("id"), str) and node["id"].strip()
        ]
        if declared_ids and data.get("startNodeId") not in declared_ids:
            current_app.logger.warning(
                "Generated startNodeId %r not found in the outline; using '%s' instead.",
                data.get("startNodeId"),
                declared_ids[0],
            )
            data = dict(data, startNodeId=declared_ids[0])

    try:
        return StoryOutline.from_payload(data)
    except StoryFormatError as exc:
        current_app.logger.warning("Rejected generated story structure: %s", exc)
        return None


def build_fallback_outline(story_input: Mapping[str, Any]) -> StoryOutline:
    """Deterministic two-branch outline used when no model output is usable."""

    protagonist = str(story_input.get("protagonistName") or "").strip() or "The hero"
    location = str(story_input.get("primaryLocation") or "").strip() or "the unknown"
    conflict = str(story_input.get("coreConflict") or "").strip().rstrip(".") or "trouble stirs"
    ending_count = _requested_endings(story_input.get("desiredEndings"))

    ending_ids = [f"ending_{number}" for number in range(1, ending_count + 1)]
    payload: Dict[str, Any] = {
        "startNodeId": "start_page",
        "nodes": [
            {
                "id": "start_page",
                "title": "The Journey Begins",
                "summary": f"{protagonist} arrives at {location} just as {conflict}.",
                "isEnding": False,
                "decisions": [
                    {"text": "Take the well-trodden road", "nextNodeId": "open_road"},
                    {"text": "Slip down the hidden path", "nextNodeId": "hidden_path"},
                ],
            },
            {
                "id": "open_road",
                "title": "The Open Road",
                "summary": f"{protagonist} follows the road and meets the first sign of the conflict head on.",
                "isEnding": False,
                "decisions": [
                    {"text": "Stand your ground", "nextNodeId": ending_ids[0]},
                    {"text": "Look for allies", "nextNodeId": ending_ids[1 % ending_count]},
                ],
            },
            {
                "id": "hidden_path",
                "title": "The Hidden Path",
                "summary": f"{protagonist} discovers a secret way through {location}.",
                "isEnding": False,
                "decisions": [
                    {"text": "Press on through the dark", "nextNodeId": ending_ids[2 % ending_count]},
                    {"text": "Turn back before it is too late", "nextNodeId": ending_ids[3 % ending_count]},
                ],
            },
        ],
    }
    for number, ending_id in enumerate(ending_ids, start=1):
        payload["nodes"].append(
            {
                "id": ending_id,
                "title": f"Ending {number}",
                "summary": f"One possible conclusion for {protagonist}'s adventure.",
                "isEnding": True,
            }
        )
    return StoryOutline.from_payload(payload)


def _requested_endings(raw: Any, *, minimum: int = 2, maximum: int = 4) -> int:
    digits: List[str] = [char for char in str(raw or "") if char.isdigit()]
    if not digits:
        return minimum
    return max(minimum, min(maximum, int("".join(digits))))
