"""
Error taxonomy for store access and person form handling.

StoreError is raised by the gateway for any failed remote call.
The PersonFormError family is what routes catch and render:
- ValidationError: missing required fields (field-level messages)
- UploadError: portrait upload failed, nothing else was written
- PersistError: row insert/update/delete failed

CleanupError is never raised out of the form handler. Best-effort blob
deletions wrap their failure in one, log it, and hand it back on the
outcome so callers and tests can see it.
"""


class StoreError(Exception):
    """A table or blob call against the hosted store failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NotFoundError(StoreError):
    """select_one matched no row."""


class PersonFormError(Exception):
    """Base for errors surfaced to the user on a person form."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PersonFormError):
    def __init__(self, field_errors: dict[str, str], message: str | None = None):
        super().__init__(message or "; ".join(field_errors.values()))
        self.field_errors = field_errors
        # Form-level banner, only set by forms that want one
        self.form_error = message


class UploadError(PersonFormError):
    pass


class PersistError(PersonFormError):
    pass


class CleanupError(Exception):
    """A best-effort portrait deletion failed. Logged, never propagated."""

    def __init__(self, key: str, cause: Exception):
        super().__init__(f"Failed to delete portrait {key}: {cause}")
        self.key = key
        self.cause = cause
