"""
Error taxonomy for the CIF client

Every failure surfaced to a caller derives from CIFError so the CLI and
library users can catch one type. RateLimitedError is internal to the
transport retry loop and is never raised out of a call.
"""
from typing import Optional


class CIFError(Exception):
    """Base class for all client errors"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.message} (HTTP {self.status_code})"
        return self.message


class PreconditionError(CIFError):
    """Request could not be built (missing token, remote or parameters)"""


class ConfigError(CIFError):
    """Configuration file is unreadable or holds invalid values"""


class TransportError(CIFError):
    """Network-level failure talking to the remote"""


class AuthError(TransportError):
    """Remote rejected the token (HTTP 401)"""


class RequestTimeoutError(TransportError):
    """Remote or client timed out (HTTP 408 or socket timeout)"""


class ServerValidationError(TransportError):
    """Remote could not process the request (HTTP 422)"""


class GenericHttpError(TransportError):
    """Any other non-success HTTP status"""


class EmptyResponseError(TransportError):
    """Remote answered with an empty or null payload"""


class FailedStatusError(TransportError):
    """Payload carried status == "failed" """


class MissingDataError(TransportError):
    """Payload carried message == "missing data" """


class RateLimitExceededError(TransportError):
    """Remote kept answering 429 until the retry bound was reached"""

    def __init__(self, message: str, attempts: int, status_code: Optional[int] = 429):
        self.attempts = attempts
        super().__init__(message, status_code)


class RateLimitedError(TransportError):
    """
    Internal retry signal for HTTP 429

    Carries the delay the remote asked for. Consumed by the transport retry
    loop; callers only ever see RateLimitExceededError.
    """

    def __init__(self, retry_after: float):
        self.retry_after = retry_after
        super().__init__(f"Rate limited, retry after {retry_after}s", 429)


class NormalizationError(CIFError):
    """Payload could not be converted to normalized records"""


class ShapeError(NormalizationError):
    """Payload does not match any known response shape"""


class DateParseError(NormalizationError):
    """Timestamp value matched none of the recognized formats"""

    def __init__(self, value, field: Optional[str] = None):
        self.value = value
        self.field = field
        where = f" in field '{field}'" if field else ""
        super().__init__(f"Unrecognized timestamp{where}: {value!r}")
