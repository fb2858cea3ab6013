"""
Page components for People I've Met.

Every page is a full Html document built from FastHTML components and
styled with Tailwind from the CDN. Form pages are driven by an explicit
PersonFormState so a re-render after a failed submission shows exactly what
was typed, plus the errors.
"""

from fasthtml.common import *

from dataclasses import dataclass, field
from datetime import datetime

from core.models import PERSON_TEXT_FIELDS, Person, format_date, format_short_date

SITE_TITLE = "People I've Met"

NAV_LINKS = (
    ("Home", "/"),
    ("People", "/people"),
    ("Add Person", "/people/new"),
    ("About", "/author"),
)

INPUT_CLS = "w-full p-2 border border-gray-300 rounded focus:border-black focus:ring-1 focus:ring-black"

DELETE_CONFIRM = "Are you sure you want to delete this person? This action cannot be undone."


def display_text(value: str | None) -> str:
    """UTF-8 safe text for rendering. Lone surrogates become '?'."""
    if value is None:
        return ""
    try:
        value.encode("utf-8")
        return value
    except UnicodeEncodeError:
        return value.encode("utf-8", errors="replace").decode("utf-8")


# =============================================================================
# FORM VIEW-MODEL
# =============================================================================

@dataclass
class PersonFormState:
    """
    State of one rendered person form.

    values: field name -> text shown in the input
    field_errors: field name -> message shown under the input
    error: banner message for store failures
    keep_existing_photo: initial state of the "Keep existing photo" checkbox
    photo_url: current portrait on the edit form
    """

    values: dict = field(default_factory=dict)
    field_errors: dict = field(default_factory=dict)
    error: str | None = None
    keep_existing_photo: bool = True
    photo_url: str | None = None
    person_id: str | None = None
    name: str | None = None

    @classmethod
    def from_person(cls, person: Person) -> "PersonFormState":
        return cls(
            values={name: getattr(person, name) or "" for name in PERSON_TEXT_FIELDS},
            photo_url=person.photo_url,
            person_id=person.id,
            name=person.name,
        )

    @classmethod
    def from_submission(cls, submission, field_errors=None, error=None, person=None) -> "PersonFormState":
        """Rebuild the form from a rejected submission."""
        return cls(
            values={k: v or "" for k, v in submission.values.items()},
            field_errors=dict(field_errors or {}),
            error=error,
            keep_existing_photo=submission.keep_existing_photo,
            photo_url=person.photo_url if person else None,
            person_id=person.id if person else None,
            name=person.name if person else None,
        )


# =============================================================================
# LAYOUT
# =============================================================================

def navbar() -> Nav:
    return Nav(
        Div(
            A(SITE_TITLE, href="/", cls="text-xl font-bold text-white"),
            Div(
                *[A(label, href=href, cls="text-gray-300 hover:text-white px-3 py-2 text-sm")
                  for label, href in NAV_LINKS],
                cls="flex items-center gap-1",
            ),
            cls="container mx-auto px-4 h-16 flex items-center justify-between",
        ),
        cls="bg-black",
    )


def footer() -> Footer:
    return Footer(
        P(f"© {datetime.now().year} {SITE_TITLE}. All rights reserved.",
          cls="text-center text-sm text-gray-400"),
        cls="bg-black py-6 mt-8",
    )


def toast_container(*toasts) -> Div:
    return Div(*toasts, id="toast-container", cls="fixed top-4 right-4 z-50 flex flex-col gap-2")


def toast(message: str, variant: str = "info") -> Div:
    """
    Single toast notification.
    Variants: success, error, info
    """
    colors = {
        "success": "bg-emerald-600 text-white",
        "error": "bg-red-600 text-white",
        "info": "bg-stone-700 text-white",
    }
    icons = {"success": "✓", "error": "✗", "info": "ℹ"}
    return Div(
        Span(icons.get(variant, ""), cls="mr-2"),
        Span(display_text(message)),
        cls=f"px-4 py-3 rounded shadow-lg flex items-center {colors.get(variant, colors['info'])}",
        **{"_": "on load wait 4s then remove me"},
    )


def page(title: str, *content, flash: str | None = None) -> Html:
    """Full HTML document with navbar, footer and an optional flash toast."""
    return Html(
        Head(
            Meta(charset="utf-8"),
            Meta(name="viewport", content="width=device-width, initial-scale=1"),
            Title(title),
            Meta(name="description", content="A personal collection of all the interesting "
                                              "people I've encountered on my journey through life."),
            Script(src="https://cdn.tailwindcss.com"),
            Script(src="https://unpkg.com/hyperscript.org@0.9.12"),
        ),
        Body(
            navbar(),
            Main(*content, cls="container mx-auto p-4 mt-4 flex-grow"),
            footer(),
            toast_container(toast(flash, "success") if flash else None),
            cls="min-h-screen bg-gray-50 flex flex-col",
        ),
        lang="en",
    )


def error_banner(message: str | None):
    if not message:
        return None
    return Div(
        display_text(message),
        cls="bg-red-100 border border-red-400 text-red-700 px-4 py-3 rounded mb-4",
        role="alert",
    )


def photo_placeholder(height: str = "h-48") -> Div:
    return Div(Span("No photo", cls="text-gray-400"),
               cls=f"flex items-center justify-center {height} bg-gray-200")


# =============================================================================
# PAGES
# =============================================================================

def landing_page() -> Html:
    return page(
        f"{SITE_TITLE} - A Personal Connection Journal",
        Div(
            H1(SITE_TITLE, cls="text-2xl font-bold mb-4"),
            P("A personal collection of the interesting people I've met along the way.",
              cls="text-gray-600 mb-6"),
            Div(
                A("Add New Person", href="/people/new",
                  cls="bg-black text-white px-4 py-2 rounded inline-block hover:bg-gray-800"),
                A("Browse People", href="/people",
                  cls="border border-black px-4 py-2 rounded inline-block hover:bg-gray-100"),
                cls="flex gap-3",
            ),
            cls="p-6",
        ),
    )


def author_page() -> Html:
    return page(
        f"About - {SITE_TITLE}",
        Div(
            H1("About Me", cls="text-2xl font-bold mb-4"),
            P("Hi, I'm Peter! I'm a software developer who loves building web "
              "applications and exploring new technologies. In my free time, I enjoy "
              "reading, hiking, and meeting new people."),
            cls="p-4",
        ),
    )


def not_found_page(message: str = "Person not found.") -> Html:
    return page(
        f"Not Found - {SITE_TITLE}",
        Div(
            H1("Not Found", cls="text-2xl font-bold mb-4"),
            P(message, cls="text-gray-600 mb-4"),
            A("← Back to all people", href="/people", cls="text-blue-600 hover:text-blue-800"),
            cls="p-6",
        ),
    )


def person_card(person: Person) -> A:
    return A(
        Div(
            Img(src=person.photo_url, alt=display_text(person.name), cls="object-cover w-full h-48")
            if person.photo_url else photo_placeholder(),
            cls="bg-gray-100",
        ),
        Div(
            H3(display_text(person.name), cls="font-bold text-lg text-black"),
            P(display_text(person.location), cls="text-gray-600 text-sm") if person.location else None,
            P(f"Met on {format_short_date(person.date_met)}", cls="text-gray-500 text-xs mt-2")
            if person.date_met else None,
            cls="p-4",
        ),
        href=f"/people/{person.id}",
        cls="person-card border rounded-lg overflow-hidden hover:shadow-md transition-shadow bg-white",
    )


def people_list_page(people: list[Person], flash: str | None = None) -> Html:
    if people:
        body = Div(*[person_card(p) for p in people],
                   cls="grid grid-cols-1 md:grid-cols-2 lg:grid-cols-3 gap-6")
    else:
        body = Div(P("No people added yet. Add your first person!", cls="text-gray-500"),
                   cls="text-center py-10")

    return page(
        f"All People - {SITE_TITLE}",
        H1(SITE_TITLE, cls="text-3xl font-bold mb-6"),
        Div(
            H2("All People", cls="text-xl font-semibold"),
            A("Add New Person", href="/people/new",
              cls="bg-blue-600 hover:bg-blue-700 text-white px-4 py-2 rounded-lg"),
            cls="flex justify-between items-center mb-6",
        ),
        body,
        flash=flash,
    )


def _detail_row(label: str, value, value_cls: str = "") -> Div:
    return Div(
        H3(label, cls="text-sm font-semibold text-gray-500"),
        P(value, cls=value_cls),
    )


def person_detail_page(person: Person, error: str | None = None, flash: str | None = None) -> Html:
    """Detail view with Edit link and a confirm-before-delete form."""
    delete_form = Form(
        Input(type="hidden", name="intent", value="delete"),
        Button("Delete", type="submit",
               cls="bg-red-600 hover:bg-red-700 text-white px-4 py-2 rounded-lg"),
        method="post",
        action=f"/people/{person.id}",
        onsubmit=f"return confirm('{DELETE_CONFIRM}');",
        id="delete-person-form",
    )

    details = [
        _detail_row("Location", display_text(person.location)) if person.location else None,
        _detail_row("How We Met", display_text(person.context)) if person.context else None,
        _detail_row("Date Met", format_date(person.date_met)) if person.date_met else None,
        _detail_row("Their Story", display_text(person.their_story), "whitespace-pre-line")
        if person.their_story else None,
        _detail_row("Message to the World",
                    f"“{display_text(person.message_to_the_world)}”", "italic")
        if person.message_to_the_world else None,
        _detail_row("Added on", format_date(person.created_at)),
    ]

    return page(
        f"{display_text(person.name)} - {SITE_TITLE}",
        error_banner(error),
        Div(
            A("← Back to all people", href="/people", cls="text-blue-600 hover:text-blue-800"),
            Div(
                A("Edit", href=f"/people/{person.id}/edit",
                  cls="bg-blue-600 hover:bg-blue-700 text-white px-4 py-2 rounded-lg"),
                delete_form,
                cls="flex gap-2",
            ),
            cls="flex justify-between items-center mb-6",
        ),
        Div(
            Div(
                Div(
                    Img(src=person.photo_url, alt=display_text(person.name),
                        cls="w-full h-64 md:h-auto object-cover")
                    if person.photo_url else photo_placeholder("h-64 md:h-full"),
                    cls="md:w-1/3",
                ),
                Div(
                    H1(display_text(person.name), cls="text-2xl font-bold mb-4"),
                    Div(*details, cls="space-y-4"),
                    cls="p-6 md:w-2/3",
                ),
                cls="md:flex",
            ),
            cls="bg-white shadow-lg rounded-lg overflow-hidden",
        ),
        flash=flash,
    )


# =============================================================================
# FORMS
# =============================================================================

# Shows the picked file's size and the overlay while the upload is in flight
FORM_SCRIPT = """
function showFileDetails(input) {
    var target = document.getElementById('file-details');
    var file = input.files && input.files[0];
    target.textContent = file ? 'Original: ' + Math.round(file.size / 1024) + ' KB' : '';
}
function showSavingOverlay() {
    document.getElementById('saving-overlay').classList.remove('hidden');
    return true;
}
"""


def saving_overlay(message: str) -> Div:
    return Div(
        Div(
            Div(cls="animate-spin rounded-full h-12 w-12 border-t-2 border-b-2 border-black mx-auto mb-4"),
            P(message, cls="text-lg font-semibold text-black"),
            P("Please wait, this may take a moment.", cls="text-sm text-gray-700 mt-2"),
            cls="bg-white p-6 rounded-lg shadow-lg text-center",
        ),
        id="saving-overlay",
        cls="hidden fixed inset-0 bg-black bg-opacity-50 flex items-center justify-center z-50",
    )


def _field_error(state: PersonFormState, name: str):
    message = state.field_errors.get(name)
    if not message:
        return None
    return P(message, cls="text-red-500 text-sm mt-1", id=f"{name}-error")


def _text_field(state: PersonFormState, name: str, label: str, required: bool = False,
                placeholder: str | None = None, input_type: str = "text") -> Div:
    return Div(
        Label(label, Span(" *", cls="text-red-500") if required else None,
              fr=name, cls="block text-sm font-medium mb-1"),
        Input(type=input_type, id=name, name=name, value=display_text(state.values.get(name)),
              placeholder=placeholder, required=required, cls=INPUT_CLS),
        _field_error(state, name),
    )


def _textarea_field(state: PersonFormState, name: str, label: str, rows: int,
                    placeholder: str, required: bool = False) -> Div:
    return Div(
        Label(label, Span(" *", cls="text-red-500") if required else None,
              fr=name, cls="block text-sm font-medium mb-1"),
        Textarea(display_text(state.values.get(name)), id=name, name=name, rows=rows,
                 placeholder=placeholder, required=required, cls=INPUT_CLS),
        _field_error(state, name),
    )


def _photo_field(state: PersonFormState, required: bool = False) -> Div:
    current = None
    if state.photo_url:
        current = Div(
            Img(src=state.photo_url, alt=display_text(state.name or "Current photo"),
                cls="w-24 h-24 object-cover rounded"),
            Div(
                Div(
                    Input(type="checkbox", id="keepExistingPhoto", name="keepExistingPhoto",
                          value="true", checked=state.keep_existing_photo),
                    Label("Keep existing photo", fr="keepExistingPhoto", cls="ml-2 text-sm"),
                    cls="flex items-center",
                ),
                P("Upload a new photo to replace the existing one. "
                  "Unchecked, the current photo is removed if no new photo is uploaded.",
                  cls="text-xs text-gray-500 mt-1"),
            ),
            cls="flex items-center gap-4 mb-3",
        )

    return Div(
        Label("Photo", Span(" *", cls="text-red-500") if required else None,
              fr="photo", cls="block text-sm font-medium mb-1"),
        current,
        Input(type="file", id="photo", name="photo", accept="image/*", required=required,
              cls=INPUT_CLS, onchange="showFileDetails(this)"),
        P("", id="file-details", cls="text-sm text-gray-700 mt-1"),
        _field_error(state, "photo"),
    )


def person_form(state: PersonFormState, action: str, submit_label: str,
                cancel_href: str, strict: bool = False) -> Form:
    """The shared create/edit form. `strict` marks every field but the message as required."""
    return Form(
        _text_field(state, "name", "Name", required=True),
        _text_field(state, "location", "Location", required=strict),
        _text_field(state, "context", "How You Met", required=strict,
                    placeholder="e.g., At a conference, Through a friend"),
        _textarea_field(state, "their_story", "Their Story", rows=4, required=strict,
                        placeholder="What's their story? What makes them unique?"),
        _text_field(state, "date_met", "Date Met", required=strict, input_type="date"),
        _textarea_field(state, "message_to_the_world", "Message to the World", rows=2,
                        placeholder="A message or quote they'd like to share"),
        _photo_field(state, required=strict),
        Div(
            A("Cancel", href=cancel_href,
              cls="border border-black hover:bg-gray-100 py-2 px-6 rounded-lg"),
            Button(submit_label, type="submit",
                   cls="bg-black hover:bg-gray-800 text-white py-2 px-6 rounded-lg"),
            cls="flex justify-end gap-4",
        ),
        method="post",
        action=action,
        enctype="multipart/form-data",
        onsubmit="return showSavingOverlay();",
        cls="space-y-4",
        id="person-form",
    )


def new_person_page(state: PersonFormState | None = None) -> Html:
    state = state or PersonFormState()
    return page(
        f"Add New Person - {SITE_TITLE}",
        Div(
            H2("Add New Person", cls="text-2xl font-semibold mb-6"),
            error_banner(state.error),
            person_form(state, "/people/new", "Save Person", "/people"),
            saving_overlay("Uploading photo and saving data..."),
            Script(FORM_SCRIPT),
            cls="max-w-2xl mx-auto",
        ),
    )


def edit_person_page(state: PersonFormState) -> Html:
    return page(
        f"Edit {display_text(state.name)} - {SITE_TITLE}",
        Div(
            Div(
                H2(f"Edit {display_text(state.name)}", cls="text-2xl font-semibold"),
                A("Cancel", href=f"/people/{state.person_id}", cls="text-blue-600 hover:text-blue-800"),
                cls="flex justify-between items-center mb-6",
            ),
            error_banner(state.error),
            person_form(state, f"/people/{state.person_id}/edit", "Save Changes",
                        f"/people/{state.person_id}"),
            saving_overlay("Updating person..."),
            Script(FORM_SCRIPT),
            cls="max-w-2xl mx-auto",
        ),
    )


def add_new_page(state: PersonFormState | None = None) -> Html:
    """The original all-fields-required entry form."""
    state = state or PersonFormState()
    return page(
        f"Add New Person - {SITE_TITLE}",
        Div(
            H2("Add New Person", cls="text-2xl font-semibold mb-6"),
            error_banner(state.error),
            person_form(state, "/addNew", "Save Person", "/", strict=True),
            saving_overlay("Uploading photo and saving data..."),
            Script(FORM_SCRIPT),
            cls="max-w-2xl mx-auto",
        ),
    )
