"""Operational error taxonomy.

Every error a caller is expected to handle derives from :class:`DocQAError`
and carries a short ``kind`` plus the HTTP status the API reports for it.
Programming errors (bad chunker arguments, malformed vectors) are plain
``ValueError`` and are not part of this hierarchy.
"""

from __future__ import annotations

from typing import Any


class DocQAError(Exception):
    """Base class for expected operational failures."""

    kind = "error"
    status_code = 500

    def __init__(self, message: str, **context: Any) -> None:
        self.message = message
        self.context = context
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "message": self.message}


class ValidationError(DocQAError):
    """Missing or invalid caller input (empty query, non-PDF upload, ...)."""

    kind = "validation"
    status_code = 400


class NotFoundError(DocQAError):
    """A referenced document or chunk does not exist."""

    kind = "not_found"
    status_code = 404


class ConflictError(DocQAError):
    """Embeddings were requested for a document that already has them."""

    kind = "conflict"
    status_code = 400


class UpstreamError(DocQAError):
    """The embedding or generation service failed, timed out, or answered garbage."""

    kind = "upstream"
    status_code = 500

    def __init__(self, operation: str, reason: str, **context: Any) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"{operation} failed: {reason}", **context)


class ConfigurationError(DocQAError):
    """A required credential, endpoint or provider setting is missing."""

    kind = "configuration"
    status_code = 500
