"""
Domain records: the Person row and an uploaded portrait file.

Person mirrors one row of the `people` table. The store assigns `id` and
`created_at`; every other column is written from the person form.
"""

from dataclasses import dataclass, field, fields
from datetime import date, datetime

# Columns written from the form, in display order
PERSON_TEXT_FIELDS = (
    "name",
    "location",
    "context",
    "their_story",
    "date_met",
    "message_to_the_world",
)

# Columns the list page needs
PERSON_LIST_COLUMNS = "id,name,photo_url,location,date_met,created_at"


@dataclass
class Person:
    id: str
    name: str
    location: str | None = None
    context: str | None = None
    their_story: str | None = None
    date_met: str | None = None
    message_to_the_world: str | None = None
    photo_url: str | None = None
    created_at: str | None = None

    @classmethod
    def from_row(cls, row: dict) -> "Person":
        """Build from a table row, ignoring columns this model does not know."""
        known = {f.name for f in fields(cls)}
        data = {k: v for k, v in row.items() if k in known}
        data["id"] = str(data.get("id", ""))
        data.setdefault("name", "")
        return cls(**data)

    def to_row(self) -> dict:
        """Writable columns only (no id / created_at)."""
        row = {name: getattr(self, name) for name in PERSON_TEXT_FIELDS}
        row["photo_url"] = self.photo_url
        return row


@dataclass
class PhotoUpload:
    """An uploaded image held in memory."""

    filename: str
    content_type: str
    data: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def is_image(self) -> bool:
        return (self.content_type or "").startswith("image/")


def parse_date(value: str | None) -> date | None:
    """Parse an ISO date or timestamp string. Returns None if unparseable."""
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def format_date(value: str | None, fallback: str = "Unknown date") -> str:
    """Long-form date for display, e.g. 'March 5, 2024'."""
    parsed = parse_date(value)
    if parsed is None:
        return value or fallback
    return f"{parsed.strftime('%B')} {parsed.day}, {parsed.year}"


def format_short_date(value: str | None) -> str:
    """Numeric date for cards, e.g. '3/5/2024'."""
    parsed = parse_date(value)
    if parsed is None:
        return value or ""
    return f"{parsed.month}/{parsed.day}/{parsed.year}"
