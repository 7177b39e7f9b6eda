import json
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from taleweaver.story import (
    DEFAULT_ENDING_TEXT,
    ParseReport,
    StoryDecision,
    StoryFormatError,
    StoryOutline,
    reconstruct_from_outline,
    reconstruct_structured,
)


def _two_node_structure():
    return {
        "nodes": [
            {"id": "a", "title": "Alpha", "summary": "First", "isEnding": False, "decisions": [{"text": "Go", "nextNodeId": "b"}]},
            {"id": "b", "title": "Beta", "summary": "Last", "isEnding": True},
        ],
        "startNodeId": "a",
    }


def test_declared_decisions_and_endings_are_used():
    graph, start = reconstruct_structured(_two_node_structure(), {"a": "Text A", "b": "Text B"})

    assert start == "a"
    assert list(graph) == ["a", "b"]
    assert graph["a"].narrative == "Text A"
    assert graph["a"].decisions == (StoryDecision("Go", "b"),)
    assert graph["a"].title == "Alpha"
    assert graph["b"].is_ending
    assert graph["b"].ending_text == "Text B"


def test_decisions_are_never_reinterpreted_from_prose():
    structure = {
        "nodes": [
            {
                "id": "hall",
                "title": "Hall",
                "summary": "",
                "isEnding": False,
                "decisions": [
                    {"text": "Climb", "nextNodeId": "tower"},
                    {"text": "Descend", "nextNodeId": "crypt"},
                    {"text": "Wait", "nextNodeId": "hall"},
                ],
            },
            {"id": "tower", "title": "Tower", "summary": "", "isEnding": True},
            {"id": "crypt", "title": "Crypt", "summary": "", "isEnding": True},
        ],
        "startNodeId": "hall",
    }
    content = {
        "hall": "Brief Title: Wrong\n1. Run away. Go to page elsewhere\nEnding: nope",
        "tower": "View.",
        "crypt": "Bones.",
    }

    graph, _ = reconstruct_structured(structure, content)

    hall = graph["hall"]
    assert not hall.is_ending
    assert hall.title == "Hall"
    assert hall.narrative == content["hall"]
    assert hall.decisions == (
        StoryDecision("Climb", "tower"),
        StoryDecision("Descend", "crypt"),
        StoryDecision("Wait", "hall"),
    )


def test_failure_placeholder_forces_an_ending():
    report = ParseReport()
    content = {"a": "[Content generation failed: upstream timeout]", "b": "Text B"}

    graph, _ = reconstruct_structured(_two_node_structure(), content, report)

    assert graph["a"].is_ending
    assert graph["a"].decisions == ()
    assert graph["a"].narrative == ""
    assert graph["a"].ending_text == content["a"]
    assert report.failed_nodes == 1


def test_critical_failure_placeholder_forces_an_ending():
    content = {"a": "[Content generation critically failed for node a: boom]", "b": "Text B"}

    graph, _ = reconstruct_structured(_two_node_structure(), content)

    assert graph["a"].is_ending


def test_missing_content_gets_placeholder():
    report = ParseReport()

    graph, _ = reconstruct_structured(_two_node_structure(), {"a": "Text A"}, report)

    assert "Content missing for node b" in graph["b"].ending_text
    assert "Last" in graph["b"].ending_text
    assert report.missing_content == 1


def test_blank_ending_content_uses_generic_line():
    graph, _ = reconstruct_structured(_two_node_structure(), {"a": "Text A", "b": "   "})

    assert graph["b"].ending_text == DEFAULT_ENDING_TEXT


def test_json_strings_are_decoded():
    graph, start = reconstruct_structured(
        json.dumps(_two_node_structure()),
        json.dumps({"a": "Text A", "b": "Text B"}),
    )

    assert start == "a"
    assert graph["a"].narrative == "Text A"


def test_reconstruction_is_repeatable():
    structure = json.dumps(_two_node_structure())
    content = json.dumps({"a": "Text A", "b": "[Content generation failed for node b. Summary: Last]"})

    first, _ = reconstruct_structured(structure, content)
    second, _ = reconstruct_structured(structure, content)

    assert list(first) == list(second)
    assert first == second


def test_titles_are_synthesized_when_not_declared():
    structure = {
        "nodes": [{"id": "misty_bridge", "summary": "", "isEnding": True}],
        "startNodeId": "misty_bridge",
    }

    graph, _ = reconstruct_structured(structure, {"misty_bridge": "Fog."})

    assert graph["misty_bridge"].title == "Misty Bridge"


def test_later_duplicate_declaration_wins():
    structure = {
        "nodes": [
            {"id": "a", "title": "First", "summary": "", "isEnding": False, "decisions": [{"text": "Go", "nextNodeId": "a"}]},
            {"id": "a", "title": "Second", "summary": "", "isEnding": True},
        ],
        "startNodeId": "a",
    }

    graph, _ = reconstruct_structured(structure, {"a": "Only text."})

    assert len(graph) == 1
    assert graph["a"].title == "Second"
    assert graph["a"].is_ending


@pytest.mark.parametrize(
    "structure",
    [
        "not json",
        [],
        {"nodes": [], "startNodeId": "a"},
        {"nodes": [{"id": "a"}]},
        {"nodes": [{"title": "No id"}], "startNodeId": "a"},
        {"nodes": ["a"], "startNodeId": "a"},
    ],
)
def test_bad_structure_shapes_raise_format_error(structure):
    with pytest.raises(StoryFormatError):
        reconstruct_structured(structure, {"a": "Text"})


def test_malformed_nodes_are_skipped_not_fatal():
    structure = _two_node_structure()
    structure["nodes"].append({"title": "stray node without id", "isEnding": True})
    structure["nodes"].append("junk")

    graph, start = reconstruct_structured(structure, {"a": "Text A", "b": "Text B"})

    assert start == "a"
    assert list(graph) == ["a", "b"]
    assert graph["a"].decisions == (StoryDecision("Go", "b"),)


def test_outline_keeps_valid_nodes_around_a_malformed_one():
    structure = _two_node_structure()
    structure["nodes"].insert(1, {"summary": "no id here"})

    outline = StoryOutline.from_payload(structure)

    assert [node.id for node in outline.nodes] == ["a", "b"]
    assert outline.start_node_id == "a"


@pytest.mark.parametrize("content", ["[]", ["Text A"], "{broken", {1: "Text"}])
def test_bad_content_shapes_raise_format_error(content):
    with pytest.raises(StoryFormatError):
        reconstruct_structured(_two_node_structure(), content)


def test_outline_payload_round_trips_and_skips_bad_decisions():
    payload = {
        "nodes": [
            {
                "id": "a",
                "title": "Alpha",
                "summary": "First",
                "isEnding": "false",
                "decisions": [{"text": "Go", "nextNodeId": "b"}, {"text": "Broken"}, "junk"],
            },
            {"id": "b", "title": "Beta", "summary": "Last", "isEnding": "true"},
        ],
        "startNodeId": "a",
    }

    outline = StoryOutline.from_payload(payload)

    assert [node.id for node in outline.nodes] == ["a", "b"]
    assert outline.nodes[0].decisions == (StoryDecision("Go", "b"),)
    assert not outline.nodes[0].is_ending
    assert outline.nodes[1].is_ending
    assert StoryOutline.from_payload(outline.to_payload()) == outline


def test_reconstruct_from_outline_accepts_decoded_outline():
    outline = StoryOutline.from_payload(_two_node_structure())

    graph = reconstruct_from_outline(outline, {"a": "A", "b": "B"})

    assert graph["b"].ending_text == "B"
