"""Error taxonomy shared by all instance types.

Every rejection has a stable machine-readable ``code`` (the same codes the API
returns in its ``{detail, code}`` error body).
"""

from __future__ import annotations


class CascadeError(Exception):
    """Base for rejected operations and failed lookups."""

    code = "error"

    def __init__(self, message: str = "", **context: object) -> None:
        super().__init__(message or self.code)
        self.message = message or self.code
        self.context = context


class AlreadyExists(CascadeError):
    code = "already_exists"


class NotFound(CascadeError):
    code = "not_found"


class AlreadyResolved(CascadeError):
    code = "already_resolved"


class Expired(CascadeError):
    code = "expired"


class InvalidOutcome(CascadeError):
    code = "invalid_outcome"


class InvalidParameters(CascadeError):
    code = "invalid_parameters"


class Unauthorized(CascadeError):
    code = "unauthorized"
