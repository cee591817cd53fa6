"""
Engagement error taxonomy.

Every domain failure raised by the services is an ``EngagementError``
subclass carrying a stable machine-readable ``code`` and the HTTP status the
API layer renders it with. Routes never build error responses by hand; the
handlers in ``gigbridge.api.errors`` translate these exceptions.
"""

from __future__ import annotations

import uuid
from typing import Any


class EngagementError(Exception):
    """Base class for all engagement-lifecycle errors."""

    code: str = "engagement_error"
    status_code: int = 400

    def __init__(self, message: str, **details: Any) -> None:
        self.message = message
        self.details = details
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class InvalidInputError(EngagementError):
    """Required field missing or a value out of its allowed range."""

    code = "validation_error"
    status_code = 400


class NotFoundError(EngagementError):
    """The referenced job, proposal, contract or payment does not exist."""

    code = "not_found"
    status_code = 404

    def __init__(self, resource: str, resource_id: uuid.UUID | str) -> None:
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found: {resource_id}")


class ForbiddenError(EngagementError):
    """The principal is not allowed to act on this resource."""

    code = "forbidden"
    status_code = 403


class InvalidStateError(EngagementError):
    """The target is not in a state that permits the operation.

    ``current_status`` is always part of the message so callers can tell
    what they ran into.
    """

    code = "invalid_state"
    status_code = 400

    def __init__(self, message: str, current_status: str | None = None) -> None:
        self.current_status = current_status
        super().__init__(message, current_status=current_status)


class ConflictError(EngagementError):
    """A uniqueness rule would be broken (e.g. duplicate active proposal)."""

    code = "conflict"
    status_code = 400
