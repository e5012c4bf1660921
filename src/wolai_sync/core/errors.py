"""Exceptions raised by the Wolai client."""


class WolaiAPIError(Exception):
    """A Wolai API call failed.

    Attributes:
        status_code: HTTP status of the failed response, when there was one.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class WolaiAuthError(WolaiAPIError):
    """Token issuance failed or credentials are missing."""


class WolaiResponseError(WolaiAPIError):
    """Non-2xx status or a response body of unexpected shape."""
