from opensubtitles_rest.client import VERSION, Client, Response
from opensubtitles_rest.common.api_exceptions import (
    APIKeyError,
    AuthTokenError,
    CredentialsError,
    ErrorKind,
    ErrorResponse,
    FileError,
    LinkError,
    QuotaError,
    RateLimitError,
    ResponseError,
    UserAgentError,
    check_response,
)
from opensubtitles_rest.common.config import Settings
from opensubtitles_rest.common.context import (
    Context,
    ContextCancelledError,
    ContextError,
    DeadlineExceededError,
)
from opensubtitles_rest.common.models import Pagination, Quota, Rate

__all__ = [
    "VERSION",
    "APIKeyError",
    "AuthTokenError",
    "Client",
    "Context",
    "ContextCancelledError",
    "ContextError",
    "CredentialsError",
    "DeadlineExceededError",
    "ErrorKind",
    "ErrorResponse",
    "FileError",
    "LinkError",
    "Pagination",
    "Quota",
    "QuotaError",
    "Rate",
    "RateLimitError",
    "Response",
    "ResponseError",
    "Settings",
    "UserAgentError",
    "check_response",
]
