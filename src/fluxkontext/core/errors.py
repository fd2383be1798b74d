"""Exception taxonomy for the Flux Kontext API.

Every error raised by the core carries the HTTP status code it maps to, so the
API layer can translate it with a single exception handler.  Provider and I/O
failures are wrapped at the processing-path and reconciler boundaries with a
message that names the path they came from; the original exception is kept as
``__cause__``.
"""

from __future__ import annotations


class FluxKontextError(Exception):
    """Base class for all errors surfaced to API callers.

    Attributes:
        message: Human-readable message returned in the ``error`` field.
        status_code: HTTP status code for the response.
    """

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(FluxKontextError):
    """Missing or invalid request fields.  Client-correctable."""

    status_code = 400


class UploadRejectedError(FluxKontextError):
    """Upload refused because of its type or size."""

    status_code = 400


class NotFoundError(FluxKontextError):
    """Unknown (or already evicted) job identifier."""

    status_code = 404


class UpstreamSubmissionError(FluxKontextError):
    """The provider rejected or could not be reached during job creation."""


class UpstreamStatusError(FluxKontextError):
    """The provider could not be reached while polling a job."""


class ArtifactPersistError(FluxKontextError):
    """Downloading or writing a generated artifact failed."""
