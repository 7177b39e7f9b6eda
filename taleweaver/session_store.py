"""Key-value view over the state of one reader's browsing session."""

from __future__ import annotations

import json
import secrets
from typing import Any, Optional

from flask import current_app, session

from .extensions import db
from .models import SessionEntry

SESSION_TOKEN_KEY = "reader_token"

STORY_INPUT_KEY = "story_input"
STORY_STRUCTURE_KEY = "story_structure"
RICH_STORY_STRUCTURE_KEY = "rich_story_structure"
FULL_STORY_CONTENT_KEY = "full_story_content"
CURRENT_STORY_KEY = "current_story"
START_NODE_ID_KEY = "start_node_id"

STORY_KEYS = (
    STORY_INPUT_KEY,
    STORY_STRUCTURE_KEY,
    RICH_STORY_STRUCTURE_KEY,
    FULL_STORY_CONTENT_KEY,
    CURRENT_STORY_KEY,
    START_NODE_ID_KEY,
)


class SessionStore:
    """Opaque string store scoped to a single session token.

    The story parser never touches this directly; routes read the raw payloads
    out of it and hand :meth:`lookup` to the start-node resolver.
    """

    def __init__(self, token: str) -> None:
        self.token = token

    @classmethod
    def for_current_session(cls, *, create: bool = True) -> "SessionStore":
        token = session.get(SESSION_TOKEN_KEY)
        if not token and create:
            token = secrets.token_hex(16)
            session[SESSION_TOKEN_KEY] = token
        return cls(token or "")

    def _entry(self, key: str) -> Optional[SessionEntry]:
        if not self.token:
            return None
        return SessionEntry.query.filter_by(session_token=self.token, key=key).first()

    def get(self, key: str) -> Optional[str]:
        entry = self._entry(key)
        return entry.value if entry is not None else None

    def lookup(self, key: str) -> Optional[str]:
        return self.get(key)

    def set(self, key: str, value: Optional[str]) -> None:
        if not self.token:
            raise RuntimeError("Cannot store values without a session token.")
        entry = self._entry(key)
        if entry is None:
            entry = SessionEntry(session_token=self.token, key=key)
            db.session.add(entry)
        entry.value = value
        db.session.commit()

    def delete(self, key: str) -> None:
        entry = self._entry(key)
        if entry is not None:
            db.session.delete(entry)
            db.session.commit()

    def clear(self) -> None:
        if not self.token:
            return
        removed = SessionEntry.query.filter_by(session_token=self.token).delete(synchronize_session=False)
        db.session.commit()
        current_app.logger.info("Cleared %d stored value(s) for the reader session.", removed)

    def get_json(self, key: str) -> Any:
        raw = self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            current_app.logger.warning("Stored value '%s' is not valid JSON.", key)
            return None

    def set_json(self, key: str, value: Any) -> None:
        self.set(key, json.dumps(value, ensure_ascii=False))
