"""Error taxonomy shared by services and the HTTP layer.

Every client-facing error carries the HTTP status it maps to, so services can
raise domain errors without importing FastAPI.
"""


class MicroApiError(Exception):
    """Base class for errors surfaced to API callers.

    Args:
        message: Human-readable reason returned in the ``error`` field.
        status_code: HTTP status code for the response.
    """

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidInputError(MicroApiError):
    """Missing or malformed request payload."""

    status_code = 400


class UnsupportedImageError(InvalidInputError):
    """Image format or dimensions the pipeline cannot handle."""


class PayloadTooLargeError(MicroApiError):
    """Upload or decoded buffer above the configured ceiling."""

    status_code = 413


class NotFoundError(MicroApiError):
    status_code = 404


class NoTextDetectedError(MicroApiError):
    """OCR ran successfully but produced no text."""

    status_code = 422


class ExtractionFailedError(MicroApiError):
    """All recognition strategies were exhausted."""

    status_code = 500


class UpstreamError(MicroApiError):
    """A remote dependency failed or replied with something unusable."""

    status_code = 502


class RemoteResponseError(Exception):
    """Remote text API replied with a body that is not a JSON object."""


class TrainedDataError(Exception):
    """A Tesseract language file could not be made available."""


class ConversionFailedError(MicroApiError):
    """A document could not be laid out as PDF."""

    status_code = 500
