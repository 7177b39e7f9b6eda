import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from taleweaver.llm import openai_backend


class FakeCompletions:
    def __init__(self, content):
        self.content = content
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _generator(monkeypatch, content):
    completions = FakeCompletions(content)

    class FakeClient:
        def __init__(self, api_key):
            self.api_key = api_key
            self.chat = SimpleNamespace(completions=completions)

    monkeypatch.setattr(openai_backend.openai, "OpenAI", FakeClient)
    return openai_backend.OpenAIStoryGenerator(model_name="story-model", api_key="sk-test"), completions


def test_generate_response_sends_prompt_and_json_mode(monkeypatch):
    generator, completions = _generator(monkeypatch, '  {"content": "Once"}  ')

    text = generator.generate_response("Write a page", max_new_tokens=300, temperature=0.5, json_mode=True)

    assert text == '{"content": "Once"}'
    call = completions.calls[0]
    assert call["model"] == "story-model"
    assert call["messages"] == [{"role": "user", "content": "Write a page"}]
    assert call["max_tokens"] == 300
    assert call["temperature"] == 0.5
    assert call["response_format"] == {"type": "json_object"}
    assert "top_p" not in call


def test_generate_response_joins_text_parts(monkeypatch):
    parts = [{"type": "text", "text": "First."}, {"type": "image"}, {"type": "text", "text": "Second."}]
    generator, _ = _generator(monkeypatch, parts)

    assert generator.generate_response("Go") == "First.\nSecond."


def test_empty_completion_raises(monkeypatch):
    generator, _ = _generator(monkeypatch, "   ")

    with pytest.raises(RuntimeError):
        generator.generate_response("Go")


def test_invalid_arguments_are_rejected(monkeypatch):
    generator, _ = _generator(monkeypatch, "text")

    with pytest.raises(ValueError):
        generator.generate_response("   ")
    with pytest.raises(ValueError):
        generator.generate_response("Go", max_new_tokens=0)
    with pytest.raises(ValueError):
        openai_backend.OpenAIStoryGenerator(model_name=" ", api_key="sk-test")
