"""
Error Types for GHContribLens

Every failure raised by the collection pipeline derives from ContribLensError
so callers can isolate a failing unit of work with a single except clause.
AuthenticationError and ConfigurationError are the only kinds that abort a
whole collection run.
"""

from typing import Optional


class ContribLensError(Exception):
    """Base class for all GHContribLens errors"""


class ConfigurationError(ContribLensError):
    """Raised when required settings are missing or invalid"""


class NetworkError(ContribLensError):
    """Raised when a request could not be completed at the transport level"""

    def __init__(self, message: str, endpoint: Optional[str] = None) -> None:
        super().__init__(message)
        self.endpoint = endpoint


class ApiError(NetworkError):
    """Raised when the GitHub API answers with an unexpected status code"""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 endpoint: Optional[str] = None, body: str = "") -> None:
        super().__init__(message, endpoint=endpoint)
        self.status_code = status_code
        self.body = body


class AuthenticationError(ApiError):
    """401: the token is missing, expired or invalid"""


class RateLimitError(ApiError):
    """403: rate limit exceeded or insufficient permissions"""


class ResourceNotFoundError(ApiError):
    """404: the requested resource does not exist or is not visible"""


class RecordFormatError(ContribLensError):
    """Raised when a platform record lacks a field the pipeline depends on"""


class DataNotFoundError(ContribLensError):
    """Raised when no snapshot has been collected for a developer"""

    def __init__(self, username: str) -> None:
        super().__init__(
            f"No contribution data found for '{username}'. "
            f"Run 'contriblens collect {username}' first."
        )
        self.username = username


class InvalidDateFormatError(ContribLensError):
    """Raised for malformed or inverted --since/--until values"""


FATAL_ERRORS = (ConfigurationError, AuthenticationError)
