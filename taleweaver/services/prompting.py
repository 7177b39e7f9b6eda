"""Prompt configuration and text-generator plumbing shared by the services."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from flask import current_app

PROMPT_CACHE_KEY = "_PROMPT_CONFIG_CACHE"
GENERATOR_CACHE_KEY = "_TEXT_GENERATOR_INSTANCE"


class PromptConfigurationError(RuntimeError):
    """Raised when the prompt configuration file is missing or malformed."""


def _load_prompt_entry(key: str) -> Dict[str, Any]:
    config = _load_prompt_config()
    try:
        entry = config[key]
    except KeyError as exc:  # pragma: no cover - configuration issues are caught at runtime
        raise PromptConfigurationError(f"Prompt configuration is missing the '{key}' entry.") from exc
    if not isinstance(entry, dict):
        raise PromptConfigurationError(f"Prompt configuration entry '{key}' must be a dictionary.")
    if not entry.get("prompt_template"):
        raise PromptConfigurationError(f"Prompt configuration entry '{key}' has no template text.")
    return entry


def _load_prompt_config() -> Dict[str, Any]:
    app = current_app
    cached = app.config.get(PROMPT_CACHE_KEY)
    if isinstance(cached, dict):
        return cached

    config_path = app.config.get("PROMPT_CONFIG_PATH")
    if not config_path:
        raise PromptConfigurationError("PROMPT_CONFIG_PATH is not configured.")

    path = Path(config_path)
    if not path.exists():
        raise PromptConfigurationError(f"Prompt configuration file not found at: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            data = json.load(fh)
        except json.JSONDecodeError as exc:  # pragma: no cover - malformed file should be obvious at runtime
            raise PromptConfigurationError(f"Unable to parse prompt configuration: {exc.msg}") from exc

    if not isinstance(data, dict):
        raise PromptConfigurationError("Prompt configuration must be a JSON object.")

    app.config[PROMPT_CACHE_KEY] = data
    return data


_GENERATION_PARAMETER_KEYS = {
    "max_new_tokens",
    "temperature",
    "top_p",
    "repetition_penalty",
    "top_k",
    "json_mode",
}


def _extract_generation_parameters(parameters: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Filter a raw parameters dictionary to generation kwargs supported by the backends."""

    if not isinstance(parameters, dict):
        return {}

    kwargs: Dict[str, Any] = {}
    for key in _GENERATION_PARAMETER_KEYS:
        if key in parameters and parameters[key] is not None:
            kwargs[key] = parameters[key]
    return kwargs


def _get_text_generator() -> Optional[Any]:  # pragma: no cover - integration point
    app = current_app
    if GENERATOR_CACHE_KEY in app.config:
        return app.config[GENERATOR_CACHE_KEY]

    generator = None
    api_key = app.config.get("OPENAI_API_KEY")
    model_name = app.config.get("OPENAI_MODEL")
    model_path = app.config.get("TEXT_GENERATOR_MODEL_PATH")

    if api_key and model_name:
        try:
            from ..llm.openai_backend import OpenAIStoryGenerator

            app.logger.info("Using the OpenAI backend with model %s", model_name)
            generator = OpenAIStoryGenerator(model_name=model_name, api_key=api_key)
        except Exception as exc:
            app.logger.warning("Failed to initialise the OpenAI backend: %s", exc)
    elif model_path:
        try:
            from ..llm.local import LocalStoryGenerator

            app.logger.info("Initialising local story model with path: %s", model_path)
            generator = LocalStoryGenerator(model_path=model_path)
        except Exception as exc:
            app.logger.warning("Failed to initialise the local story model at '%s': %s", model_path, exc)
    else:
        app.logger.info("No text generator configured; stories will use fallback content.")

    app.config[GENERATOR_CACHE_KEY] = generator
    return generator


def _apply_template(template: str, **values: Any) -> str:
    result = template
    for key, raw in values.items():
        replacement = raw if isinstance(raw, str) else str(raw)
        result = result.replace(f"{{{key}}}", replacement)
    return result


_CODE_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


def extract_json_payload(raw_response: Optional[str]) -> Any:
    """Decode the JSON a model returned, tolerating Markdown code fences.

    Returns ``None`` when nothing decodable is found.
    """

    if not raw_response:
        return None
    text = raw_response.strip()
    fenced = _CODE_FENCE.search(text)
    if fenced:
        text = fenced.group(1).strip()
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        return json.loads(text[start : end + 1])
    except json.JSONDecodeError:
        return None


def story_context(story_input: Mapping[str, Any]) -> Dict[str, str]:
    """Normalise the setup-form values into template substitutions."""

    fields = (
        "storyTitle",
        "genre",
        "targetAudience",
        "protagonistName",
        "protagonistDescription",
        "keyMotivation",
        "primaryLocation",
        "atmosphereMood",
        "keyFeatures",
        "supportingCharacterName",
        "supportingCharacterRole",
        "supportingCharacterDescription",
        "keyItemName",
        "keyItemSignificance",
        "coreConflict",
        "desiredStoryLength",
        "desiredEndings",
        "writingStyle",
    )
    context: Dict[str, str] = {}
    for name in fields:
        value = story_input.get(name)
        context[name] = str(value).strip() if value not in (None, "") else "Not specified"
    return context
