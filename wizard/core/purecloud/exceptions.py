"""PureCloud-specific exceptions for error handling."""


class PureCloudError(Exception):
    """Base exception for all platform operations."""
    pass


class PureCloudAPIError(PureCloudError):
    """HTTP error from the PureCloud Platform API.

    Attributes:
        status_code: HTTP status code
        message: Error message from response
        endpoint: API endpoint that failed
    """

    def __init__(self, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message}")


class ProductNotAvailableError(PureCloudError):
    """The premium app integration type is not enabled for the org."""
    pass


class InstallationDataError(PureCloudError, ValueError):
    """Installation descriptor is missing, malformed, or inconsistent."""
    pass
