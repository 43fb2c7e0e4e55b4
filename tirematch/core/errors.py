"""Exceptions raised by the service layer.

Routes translate these into HTTP responses; services never build
HTTPExceptions themselves.
"""


class UpstreamError(Exception):
    """An external system (Shopify, Airtable, LLM) failed or misbehaved."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UpstreamNotConfigured(UpstreamError):
    """Credentials for an external system are missing."""


class CatalogUnavailable(UpstreamError):
    """The Shopify catalog could not be fetched."""


class AirtableError(UpstreamError):
    """An Airtable request failed."""


class JobNotFound(Exception):
    """No installation job matches the given id or reference."""


class JobStateConflict(Exception):
    """A job status update does not apply to the job's current status."""

    def __init__(self, message: str, current_status: str | None = None) -> None:
        super().__init__(message)
        self.current_status = current_status
