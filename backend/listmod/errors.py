from __future__ import annotations


class ReviewError(Exception):
    """Base for pipeline errors. `detail` is safe to show to the caller."""
    status_code = 500
    default_detail = "Internal error"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(ReviewError):
    status_code = 400
    default_detail = "Invalid submission"


class AuthorizationError(ReviewError):
    status_code = 403
    default_detail = "You do not have permission to do this"


class NotFoundError(ReviewError):
    status_code = 404
    default_detail = "Not found"


class ConflictError(ReviewError):
    status_code = 409
    default_detail = "Conflicting submission state"


class StorageError(ReviewError):
    status_code = 500
    default_detail = "Internal storage error"
