"""Choose the page a reader starts on."""

from __future__ import annotations

import logging
from typing import Callable, Mapping, Optional

LOGGER = logging.getLogger(__name__)

START_NODE_KEY = "start_node_id"

KeyValueLookup = Callable[[str], Optional[str]]


def resolve_start(
    candidate_id: Optional[str],
    graph: Mapping[str, object],
    stored_start_id: Optional[str] = None,
    *,
    lookup: Optional[KeyValueLookup] = None,
) -> Optional[str]:
    """Return a start id that is guaranteed to be a key of ``graph``.

    Precedence: the id remembered by the caller's session (``stored_start_id``,
    or whatever ``lookup`` returns for :data:`START_NODE_KEY`), then the
    candidate proposed by the reconstructor, then the first node of the graph.
    ``None`` is returned only for an empty graph.
    """

    if stored_start_id is None and lookup is not None:
        try:
            stored_start_id = lookup(START_NODE_KEY)
        except Exception as exc:  # pragma: no cover - depends on the injected store
            LOGGER.warning("Reading the stored start node failed; ignoring it. Error: %s", exc)
            stored_start_id = None

    if stored_start_id and stored_start_id in graph:
        return stored_start_id
    if stored_start_id:
        LOGGER.info("Stored start node '%s' is not part of the story.", stored_start_id)

    if candidate_id and candidate_id in graph:
        return candidate_id
    if candidate_id:
        LOGGER.warning("Declared start node '%s' is not part of the story; falling back.", candidate_id)

    return next(iter(graph), None)
