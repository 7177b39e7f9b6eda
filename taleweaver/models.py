from __future__ import annotations

from datetime import datetime

from .extensions import db


class SessionEntry(db.Model):
    """One value of a reader's browsing-session state.

    Story payloads are far larger than a cookie allows, so the signed Flask
    session only carries a token and the values live here.
    """

    __tablename__ = "session_entries"

    id = db.Column(db.Integer, primary_key=True)
    session_token = db.Column(db.String(64), nullable=False, index=True)
    key = db.Column(db.String(64), nullable=False)
    value = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("session_token", "key", name="uq_session_entry_key"),
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<SessionEntry {self.key} for {self.session_token[:8]}>"
