"""
Error taxonomy for the blog engine.

Validation, authorization and not-found errors are raised by domain logic and
converted into component output errors at the entry points. UpstreamStoreError
is raised by adapters and propagates unchanged; retries are the caller's concern.
"""

from __future__ import annotations

from dataclasses import dataclass


class BlogError(Exception):
    """Base class for domain errors."""

    code = "error"

    def __init__(self, message: str, *, field: str | None = None) -> None:
        self.message = message
        self.field = field
        super().__init__(message)


class ValidationError(BlogError):
    """Malformed or missing required input. No mutation is applied."""

    code = "validation_error"


class InvalidScheduleError(ValidationError):
    code = "invalid_schedule"

    def __init__(self, message: str = "scheduled_for must be a valid date") -> None:
        super().__init__(message, field="scheduled_for")


class PastScheduleError(ValidationError):
    code = "past_schedule"

    def __init__(self, message: str = "scheduled_for must be in the future") -> None:
        super().__init__(message, field="scheduled_for")


class TitleRequiredError(ValidationError):
    code = "title_required"

    def __init__(self, message: str = "Title is required for published posts") -> None:
        super().__init__(message, field="title")


class PayloadTooLargeError(ValidationError):
    code = "payload_too_large"

    def __init__(self, size_bytes: int, max_bytes: int) -> None:
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes
        super().__init__(
            f"File size {size_bytes} bytes exceeds maximum of {max_bytes} bytes",
            field="file",
        )


class AuthorizationError(BlogError):
    """Caller lacks the required role or ownership."""

    code = "forbidden"


class NotFoundError(BlogError):
    code = "not_found"

    def __init__(self, resource: str, *, field: str | None = None) -> None:
        self.resource = resource
        super().__init__(f"{resource} not found", field=field)


class UpstreamStoreError(Exception):
    """A relational or object store call failed."""

    code = "upstream_error"

    def __init__(self, operation: str, detail: str) -> None:
        self.operation = operation
        self.detail = detail
        super().__init__(f"{operation} failed: {detail}")


class BulkUpsertUnsupported(UpstreamStoreError):
    """The store cannot express a multi-row upsert for this payload."""

    def __init__(self, detail: str = "bulk upsert not supported") -> None:
        super().__init__("bulk_upsert", detail)


@dataclass(frozen=True)
class BestEffortFailure:
    """A side effect that failed without reversing the primary mutation."""

    operation: str
    target: str
    detail: str
