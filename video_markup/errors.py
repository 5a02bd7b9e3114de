"""
Exception taxonomy for the markup service.

Every error carries a human-readable message, an HTTP status code and a
stable machine-readable ``code``.  ``main.py`` turns them into JSON
responses of the form ``{"error": message, "code": code}``.
"""


class MarkupError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class ValidationError(MarkupError):
    """Missing or malformed input. Nothing was changed."""

    status_code = 400
    code = "validation_error"


class AuthorizationError(MarkupError):
    """Token absent, unknown, or not allowed for the operation.

    The message must not reveal which of these applies.
    """

    status_code = 403
    code = "authorization_error"


class NotFoundError(MarkupError):
    status_code = 404
    code = "not_found"


class ConflictError(MarkupError):
    """Slug collision or overlapping marker range."""

    status_code = 409
    code = "conflict"


class DependencyError(MarkupError):
    """The video metadata lookup failed."""

    status_code = 502
    code = "dependency_error"


class AttachmentError(MarkupError):
    """An attachment could not be stored."""

    status_code = 500
    code = "attachment_error"
