from __future__ import annotations

from typing import Optional

from flask import (
    current_app,
    flash,
    jsonify,
    redirect,
    render_template,
    url_for,
)

from ..services.legacy_story import LegacyStoryError, generate_legacy_story
from ..services.node_content import NodeContentError, generate_story_content
from ..services.story_structure import StoryStructureError, generate_story_structure
from ..session_store import (
    CURRENT_STORY_KEY,
    FULL_STORY_CONTENT_KEY,
    RICH_STORY_STRUCTURE_KEY,
    START_NODE_ID_KEY,
    STORY_INPUT_KEY,
    STORY_STRUCTURE_KEY,
    SessionStore,
)
from ..story import ParseResult, StoryFormatError, StoryOutline, reconstruct_graph
from . import bp
from .forms import StorySetupForm

CORRUPTED_STORY_MESSAGE = "Story data corrupted, please regenerate your story."
NO_STORY_MESSAGE = "No story found. Create a new adventure to start reading."


@bp.route("/", methods=["GET", "POST"])
def setup():
    store = SessionStore.for_current_session()
    form = StorySetupForm()

    if not form.is_submitted():
        stored_input = store.get_json(STORY_INPUT_KEY)
        if isinstance(stored_input, dict):
            form.load_story_input(stored_input)

    if form.validate_on_submit():
        story_input = form.to_story_input()
        store.clear()
        store.set_json(STORY_INPUT_KEY, story_input)

        try:
            if form.mode.data == "classic":
                legacy_result = generate_legacy_story(story_input)
                store.set(CURRENT_STORY_KEY, legacy_result.story)
                if legacy_result.used_fallback:
                    flash("No story model is available, so a sample adventure was written for you.", "info")
                return redirect(url_for("adventure.story_start"))

            structure_result = generate_story_structure(story_input)
            store.set_json(STORY_STRUCTURE_KEY, structure_result.structure)
            if structure_result.used_fallback:
                flash("No usable outline came back from the model; a sample outline was prepared instead.", "info")
            else:
                flash("Your story outline is ready for review.", "success")
            return redirect(url_for("adventure.review"))
        except (StoryStructureError, LegacyStoryError) as exc:
            flash(str(exc), "danger")
        except Exception:  # pragma: no cover - defensive logging for unexpected states
            current_app.logger.exception("Unexpected error while generating a story")
            flash("We couldn't generate your story right now. Please try again.", "danger")

    return render_template("adventure/setup.html", form=form)


@bp.route("/review")
def review():
    store = SessionStore.for_current_session()
    outline, error_response = _stored_outline(store)
    if error_response is not None:
        return error_response
    return render_template("adventure/review.html", outline=outline)


@bp.route("/review/approve", methods=["POST"])
def approve_review():
    store = SessionStore.for_current_session()
    outline, error_response = _stored_outline(store)
    if error_response is not None:
        return error_response

    story_input = store.get_json(STORY_INPUT_KEY)
    if not isinstance(story_input, dict):
        flash("Your story settings were lost. Please fill in the form again.", "warning")
        return redirect(url_for("adventure.setup"))

    try:
        result = generate_story_content(story_input, outline)
    except NodeContentError as exc:
        flash(str(exc), "danger")
        return redirect(url_for("adventure.review"))
    except Exception:  # pragma: no cover - defensive logging for unexpected states
        current_app.logger.exception("Unexpected error while generating page content")
        flash("We couldn't write the story pages right now. Please try again.", "danger")
        return redirect(url_for("adventure.review"))

    store.delete(CURRENT_STORY_KEY)
    store.set_json(RICH_STORY_STRUCTURE_KEY, outline.to_payload())
    store.set_json(FULL_STORY_CONTENT_KEY, result.content)
    store.set(START_NODE_ID_KEY, outline.start_node_id)

    if result.failed_nodes:
        flash(
            f"{len(result.failed_nodes)} page(s) could not be written and will end the story early.",
            "warning",
        )
    return redirect(url_for("adventure.story_node", node_id=outline.start_node_id))


@bp.route("/story")
def story_start():
    store = SessionStore.for_current_session()
    if not _has_story_data(store):
        flash(NO_STORY_MESSAGE, "info")
        return redirect(url_for("adventure.setup"))

    result = _load_story(store)
    if result.is_empty:
        return _error_page(CORRUPTED_STORY_MESSAGE, 422)
    return redirect(url_for("adventure.story_node", node_id=result.start_node_id))


@bp.route("/story/<node_id>")
def story_node(node_id: str):
    store = SessionStore.for_current_session()
    if not _has_story_data(store):
        flash(NO_STORY_MESSAGE, "info")
        return redirect(url_for("adventure.setup"))

    result = _load_story(store)
    if result.is_empty:
        return _error_page(CORRUPTED_STORY_MESSAGE, 422)

    node = result.graph.get(node_id)
    if node is None:
        current_app.logger.warning("Requested story page '%s' does not exist.", node_id)
        flash("That page does not exist in your story; back to the beginning.", "warning")
        return redirect(url_for("adventure.story_node", node_id=result.start_node_id))

    return render_template(
        "adventure/node.html",
        node=node,
        graph=result.graph,
        start_node_id=result.start_node_id,
    )


@bp.route("/api/story")
def story_api():
    store = SessionStore.for_current_session(create=False)
    if not _has_story_data(store):
        return jsonify({"error": NO_STORY_MESSAGE}), 404

    result = _load_story(store)
    if result.is_empty:
        return jsonify({"error": CORRUPTED_STORY_MESSAGE, "report": result.report.to_dict()}), 422

    return jsonify(
        {
            "start_node_id": result.start_node_id,
            "source_format": result.source_format,
            "nodes": [node.to_dict() for node in result.graph.values()],
            "report": result.report.to_dict(),
        }
    )


@bp.route("/restart", methods=["POST"])
def restart():
    store = SessionStore.for_current_session(create=False)
    store.clear()
    flash("Your previous adventure was cleared. Let's write a new one.", "info")
    return redirect(url_for("adventure.setup"))


def _load_story(store: SessionStore) -> ParseResult:
    return reconstruct_graph(
        content=store.get(FULL_STORY_CONTENT_KEY),
        structure=store.get(RICH_STORY_STRUCTURE_KEY),
        legacy=store.get(CURRENT_STORY_KEY),
        lookup=store.lookup,
    )


def _has_story_data(store: SessionStore) -> bool:
    return any(
        store.get(key)
        for key in (FULL_STORY_CONTENT_KEY, RICH_STORY_STRUCTURE_KEY, CURRENT_STORY_KEY)
    )


def _stored_outline(store: SessionStore):
    if store.get(STORY_STRUCTURE_KEY) is None:
        return None, _error_page("There is no story outline to review yet.", 404)
    try:
        outline: Optional[StoryOutline] = StoryOutline.from_payload(store.get_json(STORY_STRUCTURE_KEY))
    except StoryFormatError as exc:
        current_app.logger.warning("Stored story outline is unusable: %s", exc)
        return None, _error_page(CORRUPTED_STORY_MESSAGE, 422)
    return outline, None


def _error_page(message: str, status: int):
    return render_template("adventure/error.html", message=message, status=status), status
