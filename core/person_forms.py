"""
Person form handling: validate a submission, resolve its portrait, persist.

Each call handles one request and keeps no state between requests:

    Received -> Validated -> PhotoResolved -> Persisted -> Done
                    |                            |
                Rejected                      Failed

Validation failures raise ValidationError before any store call. Upload and
row failures raise UploadError / PersistError and stop there: nothing is
retried and an already-uploaded portrait is not rolled back.

Portrait deletions (replaced photo, deleted person) are best-effort. A failed
deletion becomes a CleanupError on the returned PersonOutcome and in the
audit log; it never fails the request.
"""

import logging
import uuid
from dataclasses import dataclass, field
from urllib.parse import unquote, urlparse

from starlette.concurrency import run_in_threadpool

from core.config import PEOPLE_TABLE, PORTRAIT_BUCKET
from core.errors import CleanupError, PersistError, StoreError, UploadError, ValidationError
from core.event_recorder import get_event_recorder
from core.image_compression import compress_image, describe_compression
from core.models import PERSON_TEXT_FIELDS, PhotoUpload

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name",)
# Legacy /addNew form: everything except the message is mandatory
STRICT_REQUIRED_FIELDS = ("name", "location", "context", "their_story", "date_met", "photo")

FIELD_MESSAGES = {
    "name": "Name is required",
    "location": "Location is required",
    "context": "Context is required",
    "their_story": "Story is required",
    "date_met": "Date is required",
    "photo": "Photo is required",
}

DELETE_INTENT = "delete"


@dataclass
class PersonSubmission:
    """Everything read from one submitted person form."""

    values: dict[str, str | None]
    photo: PhotoUpload | None = None
    keep_existing_photo: bool = False
    intent: str | None = None

    @property
    def has_photo(self) -> bool:
        return self.photo is not None and self.photo.size > 0


@dataclass
class PersonOutcome:
    """Result of a successful create/update/delete."""

    person_id: str | None
    redirect_to: str
    photo_url: str | None = None
    compression: str | None = None
    cleanup_errors: list[CleanupError] = field(default_factory=list)


# =============================================================================
# Parsing & validation
# =============================================================================

def _text(form, name: str) -> str | None:
    value = form.get(name)
    if value is None or not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def sanitize_filename(filename: str) -> str:
    return filename.replace(" ", "_").replace("/", "_").replace("\\", "_")


async def _read_photo(part) -> PhotoUpload | None:
    """Turn a multipart file part into a PhotoUpload. Empty inputs give None."""
    if part is None or isinstance(part, str) or not hasattr(part, "read"):
        return None
    data = await part.read()
    if not data:
        return None
    return PhotoUpload(
        filename=sanitize_filename(part.filename or "photo"),
        content_type=part.content_type or "application/octet-stream",
        data=data,
    )


async def parse_person_form(form) -> PersonSubmission:
    """
    Read a submitted person form.

    Args:
        form: Starlette FormData (or any mapping with .get)

    Blank text fields become None. A non-empty `compressedPhoto` part wins
    over `photo`. `keepExistingPhoto` is only true for the exact string "true".
    """
    values = {name: _text(form, name) for name in PERSON_TEXT_FIELDS}

    photo = await _read_photo(form.get("compressedPhoto"))
    if photo is None:
        photo = await _read_photo(form.get("photo"))

    return PersonSubmission(
        values=values,
        photo=photo,
        keep_existing_photo=form.get("keepExistingPhoto") == "true",
        intent=_text(form, "intent"),
    )


def validate_submission(
    submission: PersonSubmission,
    required: tuple[str, ...] = REQUIRED_FIELDS,
    form_error: str | None = None,
) -> None:
    """Raise ValidationError listing every missing required field."""
    errors = {}
    for name in required:
        if name == "photo":
            missing = not submission.has_photo
        else:
            missing = not submission.values.get(name)
        if missing:
            errors[name] = FIELD_MESSAGES.get(name, f"{name} is required")

    if errors:
        raise ValidationError(errors, message=form_error)


# =============================================================================
# Portrait helpers
# =============================================================================

def portrait_key(filename: str) -> str:
    """Unique storage key: <random-id>-<original-filename>."""
    return f"{uuid.uuid4()}-{filename}"


def portrait_key_from_url(photo_url: str) -> str:
    """Storage key of a portrait is the last path segment of its public URL."""
    path = urlparse(photo_url).path
    return unquote(path.rstrip("/").rsplit("/", 1)[-1])


async def _upload_portrait(store, photo: PhotoUpload) -> tuple[str, str]:
    """Compress, upload, and return (public_url, compression summary)."""
    prepared = await run_in_threadpool(compress_image, photo)
    key = portrait_key(prepared.filename)

    try:
        await store.upload_blob(
            PORTRAIT_BUCKET,
            key,
            prepared.data,
            content_type=prepared.content_type,
            cache_control="3600",
            upsert=False,
        )
    except StoreError as e:
        raise UploadError(f"Failed to upload photo: {e.message}") from e

    return store.public_url(PORTRAIT_BUCKET, key), describe_compression(photo, prepared)


async def _remove_portrait(store, photo_url: str, person_id: str) -> CleanupError | None:
    """Best-effort delete of a portrait blob. Failures are returned, not raised."""
    key = portrait_key_from_url(photo_url)
    try:
        await store.delete_blob(PORTRAIT_BUCKET, key)
    except StoreError as e:
        error = CleanupError(key, e)
        logger.warning(f"{error} (person {person_id})")
        get_event_recorder().record("CLEANUP_FAILED", {
            "person_id": person_id,
            "key": key,
            "error": str(e),
        })
        return error
    return None


async def _current_photo_url(store, person_id: str) -> str | None:
    try:
        row = await store.select_one(PEOPLE_TABLE, person_id, columns="photo_url")
    except StoreError as e:
        logger.debug(f"Could not read photo_url for {person_id}: {e}")
        return None
    return row.get("photo_url")


# =============================================================================
# Operations
# =============================================================================

async def create_person(
    store,
    submission: PersonSubmission,
    required: tuple[str, ...] = REQUIRED_FIELDS,
    form_error: str | None = None,
) -> PersonOutcome:
    """Validate, upload the optional portrait, insert the row."""
    validate_submission(submission, required=required, form_error=form_error)

    photo_url = None
    compression = None
    if submission.has_photo:
        photo_url, compression = await _upload_portrait(store, submission.photo)

    record = dict(submission.values)
    record["photo_url"] = photo_url

    try:
        row = await store.insert(PEOPLE_TABLE, record)
    except StoreError as e:
        # The uploaded portrait (if any) is left behind as an orphan
        raise PersistError(f"Failed to add person: {e.message}") from e

    person_id = str(row.get("id")) if row.get("id") is not None else None
    get_event_recorder().record("PERSON_CREATED", {
        "person_id": person_id,
        "name": record["name"],
        "has_photo": photo_url is not None,
    })
    return PersonOutcome(
        person_id=person_id,
        redirect_to="/people",
        photo_url=photo_url,
        compression=compression,
    )


async def update_person(store, person_id: str, submission: PersonSubmission) -> PersonOutcome:
    """
    Validate and patch an existing row.

    Photo handling:
    1. New photo: upload it; unless keepExistingPhoto is set, the previous
       portrait is deleted (best-effort) once the row is updated.
    2. No new photo, keep flag off: photo_url is cleared.
    3. No new photo, keep flag on: photo_url is left as is.
    """
    validate_submission(submission)

    patch = dict(submission.values)
    previous_url = None
    compression = None

    if submission.has_photo:
        previous_url = await _current_photo_url(store, person_id)
        patch["photo_url"], compression = await _upload_portrait(store, submission.photo)
    elif not submission.keep_existing_photo:
        patch["photo_url"] = None

    try:
        await store.update(PEOPLE_TABLE, person_id, patch)
    except StoreError as e:
        raise PersistError(f"Failed to update person: {e.message}") from e

    cleanup_errors = []
    if previous_url and not submission.keep_existing_photo:
        error = await _remove_portrait(store, previous_url, person_id)
        if error:
            cleanup_errors.append(error)

    get_event_recorder().record("PERSON_UPDATED", {
        "person_id": person_id,
        "fields": sorted(patch),
        "photo_replaced": submission.has_photo,
    })
    return PersonOutcome(
        person_id=person_id,
        redirect_to=f"/people/{person_id}",
        photo_url=patch.get("photo_url"),
        compression=compression,
        cleanup_errors=cleanup_errors,
    )


async def delete_person(store, person_id: str) -> PersonOutcome:
    """Delete the row, then (best-effort) its portrait."""
    photo_url = await _current_photo_url(store, person_id)

    try:
        await store.delete(PEOPLE_TABLE, person_id)
    except StoreError as e:
        raise PersistError(f"Failed to delete: {e.message}") from e

    cleanup_errors = []
    if photo_url:
        error = await _remove_portrait(store, photo_url, person_id)
        if error:
            cleanup_errors.append(error)

    get_event_recorder().record("PERSON_DELETED", {
        "person_id": person_id,
        "had_photo": photo_url is not None,
    })
    return PersonOutcome(
        person_id=person_id,
        redirect_to="/people",
        cleanup_errors=cleanup_errors,
    )
