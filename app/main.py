"""
People I've Met.

A personal journal of people I've met: browse, add, edit and delete
profiles, each with an optional portrait. Rows live in the Supabase
`people` table, portraits in the `portraits` storage bucket.

Response Semantics:
- 303 = Saved or deleted, redirect to the canonical page
- 400 = Form rejected (missing required fields) or unknown intent
- 404 = Person not found
- 500 = A store call failed (message shown on the page)
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from fasthtml.common import *
from starlette.responses import HTMLResponse

# Add project root to path for imports
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from core.config import (
    DEBUG,
    HOST,
    LOG_LEVEL,
    PEOPLE_TABLE,
    PORT,
    PORTRAIT_BUCKET,
    SESSION_SECRET,
    is_store_configured,
    require_store_config,
)
from core.errors import PersistError, StoreError, UploadError, ValidationError
from core.event_recorder import get_event_recorder
from core.models import PERSON_LIST_COLUMNS, Person
from core.person_forms import (
    DELETE_INTENT,
    STRICT_REQUIRED_FIELDS,
    create_person,
    delete_person,
    parse_person_form,
    update_person,
)
from core.store import get_store
from app.views import (
    PersonFormState,
    add_new_page,
    author_page,
    edit_person_page,
    landing_page,
    new_person_page,
    not_found_page,
    people_list_page,
    person_detail_page,
)

logging.basicConfig(level=LOG_LEVEL, format="%(levelname)s: %(name)s: %(message)s")
logger = logging.getLogger(__name__)


# --- LIFECYCLE ---
async def lifespan(app):
    """Refuse to start without store credentials; log the start/end of a run."""
    require_store_config()
    get_event_recorder().record("RUN_START", {
        "action": "server_start",
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
    }, actor="system")
    yield
    get_event_recorder().record("RUN_END", {
        "action": "server_shutdown",
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
    }, actor="system")


app, rt = fast_app(
    pico=False,
    secret_key=SESSION_SECRET,
    lifespan=lifespan,
)


def render(content, status_code: int) -> HTMLResponse:
    """Full page with a non-200 status."""
    return HTMLResponse(to_xml(content), status_code=status_code)


def pop_flash(sess) -> str | None:
    return sess.pop("flash", None) if sess is not None else None


def saved_message(message: str, outcome) -> str:
    """Flash text, with the portrait compression status when a photo was uploaded."""
    if outcome.compression:
        return f"{message} ({outcome.compression})"
    return message


async def load_person(person_id: str) -> Person | None:
    """Fetch one person, or None when missing or unreadable."""
    try:
        row = await get_store().select_one(PEOPLE_TABLE, person_id)
    except StoreError as e:
        logger.debug(f"Person {person_id} not loaded: {e}")
        return None
    return Person.from_row(row)


# =============================================================================
# ROUTES - HEALTH CHECK
# =============================================================================

@rt("/health")
def get():
    """Health check endpoint for deployment probes."""
    return {
        "status": "ok",
        "store_configured": is_store_configured(),
        "table": PEOPLE_TABLE,
        "bucket": PORTRAIT_BUCKET,
    }


# =============================================================================
# ROUTES - STATIC PAGES
# =============================================================================

@rt("/")
def get():
    return landing_page()


@rt("/author")
def get():
    return author_page()


# =============================================================================
# ROUTES - PEOPLE
# =============================================================================

@rt("/people")
async def get(sess):
    """All people, newest first. A store failure shows an empty list."""
    try:
        rows = await get_store().select(
            PEOPLE_TABLE,
            columns=PERSON_LIST_COLUMNS,
            order="created_at",
            ascending=False,
        )
    except StoreError as e:
        logger.error(f"Error fetching people: {e}")
        rows = []
    return people_list_page([Person.from_row(r) for r in rows], flash=pop_flash(sess))


# Registered before /people/{person_id} so "new" is not taken for an id
@rt("/people/new")
def get():
    return new_person_page()


@rt("/people/new")
async def post(request, sess):
    """Create a person. Redirects to the list on success."""
    form = await request.form()
    submission = await parse_person_form(form)

    try:
        outcome = await create_person(get_store(), submission)
    except ValidationError as e:
        state = PersonFormState.from_submission(submission, field_errors=e.field_errors)
        return render(new_person_page(state), 400)
    except (UploadError, PersistError) as e:
        logger.error(f"Create failed: {e.message}")
        state = PersonFormState.from_submission(submission, error=e.message)
        return render(new_person_page(state), 500)

    sess["flash"] = saved_message(f"Added {submission.values['name']}", outcome)
    return RedirectResponse(outcome.redirect_to, status_code=303)


@rt("/people/{person_id}")
async def get(person_id: str, sess):
    person = await load_person(person_id)
    if person is None:
        return render(not_found_page(), 404)
    return person_detail_page(person, flash=pop_flash(sess))


@rt("/people/{person_id}")
async def post(person_id: str, request, sess):
    """Actions on an existing person. Only intent=delete is accepted here."""
    submission = await parse_person_form(await request.form())
    if submission.intent != DELETE_INTENT:
        return Response("Invalid action", status_code=400)

    try:
        outcome = await delete_person(get_store(), person_id)
    except PersistError as e:
        logger.error(f"Delete failed for {person_id}: {e.message}")
        person = await load_person(person_id)
        if person is None:
            return Response(e.message, status_code=500)
        return render(person_detail_page(person, error=e.message), 500)

    sess["flash"] = "Person deleted"
    return RedirectResponse(outcome.redirect_to, status_code=303)


@rt("/people/{person_id}/edit")
async def get(person_id: str):
    person = await load_person(person_id)
    if person is None:
        return render(not_found_page(), 404)
    return edit_person_page(PersonFormState.from_person(person))


@rt("/people/{person_id}/edit")
async def post(person_id: str, request, sess):
    """Update a person. Redirects to the detail page on success."""
    form = await request.form()
    submission = await parse_person_form(form)

    try:
        outcome = await update_person(get_store(), person_id, submission)
    except ValidationError as e:
        person = await load_person(person_id) or Person(id=person_id, name="")
        state = PersonFormState.from_submission(submission, field_errors=e.field_errors, person=person)
        return render(edit_person_page(state), 400)
    except (UploadError, PersistError) as e:
        logger.error(f"Update failed for {person_id}: {e.message}")
        person = await load_person(person_id) or Person(id=person_id, name="")
        state = PersonFormState.from_submission(submission, error=e.message, person=person)
        return render(edit_person_page(state), 500)

    sess["flash"] = saved_message("Changes saved", outcome)
    return RedirectResponse(outcome.redirect_to, status_code=303)


# =============================================================================
# ROUTES - LEGACY ENTRY FORM
# =============================================================================

@rt("/addNew")
def get():
    return add_new_page()


@rt("/addNew")
async def post(request, sess):
    """The original entry form: every field except the message is required."""
    form = await request.form()
    submission = await parse_person_form(form)

    try:
        outcome = await create_person(
            get_store(),
            submission,
            required=STRICT_REQUIRED_FIELDS,
            form_error="Invalid form submission",
        )
    except ValidationError as e:
        state = PersonFormState.from_submission(
            submission, field_errors=e.field_errors, error=e.form_error
        )
        return render(add_new_page(state), 400)
    except (UploadError, PersistError) as e:
        logger.error(f"Create failed: {e.message}")
        state = PersonFormState.from_submission(submission, error=e.message)
        return render(add_new_page(state), 500)

    sess["flash"] = saved_message(f"Added {submission.values['name']}", outcome)
    return RedirectResponse(outcome.redirect_to, status_code=303)


if __name__ == "__main__":
    # Startup diagnostics
    print("=" * 60)
    print("PEOPLE I'VE MET STARTUP")
    print("=" * 60)
    print(f"[config] Host: {HOST}")
    print(f"[config] Port: {PORT}")
    print(f"[config] Debug: {DEBUG}")
    print(f"[config] Store configured: {is_store_configured()}")
    print(f"[config] Table: {PEOPLE_TABLE}, bucket: {PORTRAIT_BUCKET}")

    # Fail fast without store credentials
    require_store_config()

    print("=" * 60)
    print(f"Server starting at http://{HOST}:{PORT}")
    print("=" * 60)

    serve(host=HOST, port=PORT, reload=DEBUG)
