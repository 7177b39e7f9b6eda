import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from taleweaver.story import DEFAULT_ENDING_TEXT, ParseReport, StoryDecision, extract_node


def _assert_ending_exclusive(node):
    if node.is_ending:
        assert node.decisions == ()
        assert node.narrative == ""
        assert node.ending_text
    else:
        assert node.ending_text is None


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "   \n\t  ",
        None,
        12345,
        "Brief Title:",
        "Node ID: ???\nTitle: \n\n1.\n- ->",
        "Decisions:\n",
        "Ending:",
        "\r\n\r\nThe end!",
        "\x00� broken bytes Go to page",
    ],
)
def test_extract_node_is_total(raw):
    node = extract_node("odd_node", raw)

    assert isinstance(node.is_ending, bool)
    assert node.id == "odd_node"
    assert node.title
    _assert_ending_exclusive(node)


def test_extract_node_reads_title_narrative_and_decisions():
    raw = (
        "Brief Title: The Crossroads\n"
        "Segment Summary: a choice of paths\n"
        "The road splits beneath an old oak.\n"
        "Wind rattles the branches.\n"
        "1. Take the left fork. Go to page left_fork\n"
        "2. Take the right fork (Go to page right_fork)\n"
    )
    report = ParseReport()

    node = extract_node("crossroads", raw, report)

    assert node.title == "The Crossroads"
    assert not node.is_ending
    assert node.narrative == "The road splits beneath an old oak.\nWind rattles the branches."
    assert node.decisions == (
        StoryDecision("Take the left fork", "left_fork"),
        StoryDecision("Take the right fork", "right_fork"),
    )
    assert report.implicit_endings == 0
    assert report.explicit_endings == 0


def test_extract_node_skips_unparseable_lines_after_decision_header():
    raw = "You hear footsteps.\nWhat do you do?\nThink about it for a while.\n- Hide -> wardrobe\n"

    node = extract_node("bedroom", raw)

    assert node.narrative == "You hear footsteps."
    assert node.decisions == (StoryDecision("Hide", "wardrobe"),)


def test_decision_header_without_decisions_is_not_an_ending():
    node = extract_node("stuck", "The door is locked.\nDecisions:\nNone come to mind.")

    assert not node.is_ending
    assert node.decisions == ()
    assert node.narrative == "The door is locked."


def test_missing_and_empty_titles_fall_back():
    assert extract_node("dark_forest", "Trees everywhere.").title == "Dark Forest"
    assert extract_node("dark_forest", "Title:\nTrees everywhere.").title == "Chapter dark_forest"


def test_ending_marker_uses_following_text():
    report = ParseReport()

    node = extract_node("finale", "Title: Finale\nThe dragon sleeps.\nEnding:\nYou tiptoe away, rich.", report)

    assert node.is_ending
    assert node.ending_text == "You tiptoe away, rich."
    assert report.explicit_endings == 1


def test_ending_marker_keeps_same_line_remainder():
    node = extract_node("finale", "The dragon wakes.\nEnding: You become its dinner.\nNobody remembers you.")

    assert node.ending_text == "You become its dinner.\nNobody remembers you."


def test_ending_marker_without_text_uses_preceding_narrative():
    node = extract_node("finale", "The gates close behind you forever.\n--- THE END ---")

    assert node.is_ending
    assert node.ending_text == "The gates close behind you forever."


def test_ending_phrase_line_belongs_to_the_ending_text():
    node = extract_node("x", "Brief Title: X\nSome text.\nThe end.")

    assert node.is_ending
    assert node.ending_text == "Some text.\nThe end."
    assert node.decisions == ()


def test_text_after_ending_phrase_keeps_the_whole_ending():
    node = extract_node("x", "You fall into the sea.\nThe end.\nThanks for playing!")

    assert node.is_ending
    assert node.ending_text == "You fall into the sea.\nThe end.\nThanks for playing!"


def test_ending_marker_alone_uses_generic_line():
    node = extract_node("blank", "Ending:")

    assert node.ending_text == DEFAULT_ENDING_TEXT


def test_text_without_decisions_or_marker_is_implicit_ending():
    report = ParseReport()

    node = extract_node("quiet", "You sit by the fire until morning.", report)

    assert node.is_ending
    assert node.ending_text == "You sit by the fire until morning."
    assert report.implicit_endings == 1
    assert report.explicit_endings == 0


def test_empty_text_is_implicit_ending_with_generic_line():
    node = extract_node("void", "")

    assert node.is_ending
    assert node.ending_text == DEFAULT_ENDING_TEXT
