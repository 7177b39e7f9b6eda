import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from taleweaver import create_app
from taleweaver.config import TestConfig
from taleweaver.extensions import db
from taleweaver.session_store import (
    CURRENT_STORY_KEY,
    START_NODE_ID_KEY,
    STORY_INPUT_KEY,
    SessionStore,
)


@pytest.fixture
def app_ctx():
    app = create_app(TestConfig)
    ctx = app.app_context()
    ctx.push()
    db.create_all()
    yield app
    db.session.remove()
    db.drop_all()
    ctx.pop()


def test_values_are_scoped_to_their_token(app_ctx):
    alice = SessionStore("alice")
    bob = SessionStore("bob")

    alice.set(CURRENT_STORY_KEY, "Node ID: a")
    alice.set(CURRENT_STORY_KEY, "Node ID: b")

    assert alice.get(CURRENT_STORY_KEY) == "Node ID: b"
    assert bob.get(CURRENT_STORY_KEY) is None
    assert alice.lookup(CURRENT_STORY_KEY) == "Node ID: b"


def test_json_helpers_and_delete(app_ctx):
    store = SessionStore("reader")
    store.set_json(STORY_INPUT_KEY, {"storyTitle": "Ünïcode tale"})

    assert store.get_json(STORY_INPUT_KEY) == {"storyTitle": "Ünïcode tale"}

    store.set(START_NODE_ID_KEY, "not json {")
    assert store.get_json(START_NODE_ID_KEY) is None

    store.delete(START_NODE_ID_KEY)
    assert store.get(START_NODE_ID_KEY) is None


def test_clear_removes_only_own_entries(app_ctx):
    mine = SessionStore("mine")
    theirs = SessionStore("theirs")
    mine.set(CURRENT_STORY_KEY, "x")
    mine.set(START_NODE_ID_KEY, "y")
    theirs.set(CURRENT_STORY_KEY, "z")

    mine.clear()

    assert mine.get(CURRENT_STORY_KEY) is None
    assert mine.get(START_NODE_ID_KEY) is None
    assert theirs.get(CURRENT_STORY_KEY) == "z"


def test_store_without_token_reads_nothing_and_refuses_writes(app_ctx):
    store = SessionStore("")

    assert store.get(CURRENT_STORY_KEY) is None
    store.clear()
    with pytest.raises(RuntimeError):
        store.set(CURRENT_STORY_KEY, "value")


def test_current_session_token_is_created_once(app_ctx):
    with app_ctx.test_request_context("/"):
        first = SessionStore.for_current_session()
        second = SessionStore.for_current_session()
        assert first.token
        assert first.token == second.token

    with app_ctx.test_request_context("/"):
        assert SessionStore.for_current_session(create=False).token == ""
