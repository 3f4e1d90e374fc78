from typing import Any, Optional


class DashboardError(Exception):
    """Base error, rendered as {"error": ..., "details": ...} by the app."""

    status_code = 500

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Any] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details


class ConfigurationError(DashboardError):
    """Token or board id is missing."""

    status_code = 400


class UpstreamError(DashboardError):
    """Board API answered with errors or a non-2xx status."""

    status_code = 400


class NotFoundError(DashboardError):
    status_code = 404


class TransformError(Exception):
    """
    A single field could not be parsed.

    Never raised out of the normalizer: it is stored on the FieldResult
    and the field falls back to its default.
    """

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class TransportError(Exception):
    """Network failure or timeout of one outbound call."""

    def __init__(self, url: str, message: str):
        super().__init__(f"{url}: {message}")
        self.url = url
        self.message = message


class ImageProxyError(Exception):
    """Image proxy failure, answered as plain text."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
