"""Classification of unsuccessful OpenSubtitles API responses.

An unsuccessful response (status outside 200-299) can carry several
independent signals at once: a message in the ``X-OpenSubtitles-Message``
header, one or more messages in the body, and problems with the request
headers we sent. Each signal becomes one classified error, and all of them
are collected into a single ErrorResponse in discovery order:

1. the header message, if present
2. body messages, in body order
3. request-header audit findings (api key, user agent, authorization)

Body parsing depends on the declared content type:
    - application/json: the ``message``, ``error`` and ``errors`` keys
    - text/html: the content of the first ``<title>`` tag, else the whole body
    - text/txt: the whole body

Dependencies:
    - httpx: Response and Request objects, case-insensitive headers
    - pydantic: tolerant decoding of the error body and the quota payload
"""

import re
from enum import StrEnum
from typing import ClassVar

import httpx
from pydantic import BaseModel, ValidationError

from opensubtitles_rest.common.logging import get_logger
from opensubtitles_rest.common.models import Quota

logger = get_logger(__name__)

MESSAGE_HEADER = "X-OpenSubtitles-Message"
API_KEY_HEADER = "Api-Key"
USER_AGENT_HEADER = "User-Agent"
AUTHORIZATION_HEADER = "Authorization"
BEARER_PREFIX = "Bearer "

MESSAGE_SEPARATOR = "; "

TITLE_PATTERN = re.compile(r"<title>(.*?)</title>")
USER_AGENT_PATTERN = re.compile(r"\S+ v\d+\.\d+\.\d+")


class ErrorKind(StrEnum):
    """Machine-readable kind of a classified response error."""

    RESPONSE = "response"
    USER_AGENT = "user_agent"
    API_KEY = "api_key"
    AUTH_TOKEN = "auth_token"
    CREDENTIALS = "credentials"
    FILE = "file"
    QUOTA = "quota"
    LINK = "link"
    RATE_LIMIT = "rate_limit"


def _request_of(response: httpx.Response | None) -> httpx.Request | None:
    if response is None:
        return None
    try:
        return response.request
    except RuntimeError:
        # httpx raises when no request was attached to the response.
        return None


class ResponseError(Exception):
    """A single diagnostic signal from an unsuccessful response.

    Attributes:
        response: The response the signal came from (shared, never closed here)
        message: Human-readable message in its original case
    """

    kind: ClassVar[ErrorKind] = ErrorKind.RESPONSE

    def __init__(self, response: httpx.Response | None, message: str) -> None:
        self.response = response
        self.message = message
        super().__init__(message)

    def describe(self) -> str:
        """Format as ``METHOD URL: STATUS MESSAGE``, dropping parts that are unknown."""
        if self.response is None:
            return self.message
        request = _request_of(self.response)
        if request is None:
            return f"{self.response.status_code} {self.message}"
        return f"{request.method} {request.url}: {self.response.status_code} {self.message}"

    def __str__(self) -> str:
        return self.describe()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self.message!r})"


class UserAgentError(ResponseError):
    """The User-Agent header is missing or malformed."""

    kind = ErrorKind.USER_AGENT


class APIKeyError(ResponseError):
    """The Api-Key header is missing or the key is not accepted."""

    kind = ErrorKind.API_KEY


class AuthTokenError(ResponseError):
    """The bearer token is missing or invalid. Re-authenticate."""

    kind = ErrorKind.AUTH_TOKEN


class CredentialsError(ResponseError):
    """Login failed because of a wrong username or password."""

    kind = ErrorKind.CREDENTIALS


class FileError(ResponseError):
    """The requested file_id does not exist."""

    kind = ErrorKind.FILE


class QuotaError(ResponseError):
    """The download allowance is exhausted.

    Attributes:
        quota: Decoded usage counters; ``quota.remaining`` is negative
    """

    kind = ErrorKind.QUOTA

    def __init__(
        self, response: httpx.Response | None, message: str, quota: Quota | None = None
    ) -> None:
        super().__init__(response, message)
        self.quota = quota if quota is not None else Quota()


class LinkError(ResponseError):
    """A download link is invalid or has expired."""

    kind = ErrorKind.LINK


class RateLimitError(ResponseError):
    """The request throttle limit was reached. Back off before retrying."""

    kind = ErrorKind.RATE_LIMIT


class ErrorResponse(ResponseError):
    """Composite error for an unsuccessful response.

    Attributes:
        message: All discovered messages joined with ``"; "``
        errors: One classified error per message, in discovery order
    """

    def __init__(
        self,
        response: httpx.Response | None,
        message: str = "",
        errors: list[ResponseError] | None = None,
    ) -> None:
        super().__init__(response, message)
        self.errors: list[ResponseError] = errors if errors is not None else []

    def kinds(self) -> list[ErrorKind]:
        return [e.kind for e in self.errors]


# First match wins. Quota matches are only honoured when the body decodes to
# an exhausted quota, see classify_message.
_RULES: tuple[tuple[tuple[str, ...], type[ResponseError]], ...] = (
    (("user-agent header is wrong", "user-agent header is empty"), UserAgentError),
    (("you cannot consume this service",), APIKeyError),
    (("invalid token", "no token"), AuthTokenError),
    (("invalid username/password",), CredentialsError),
    (("invalid file_id",), FileError),
    (("you have downloaded your allowed",), QuotaError),
    (("invalid or expired link",), LinkError),
    (("throttle limit reached",), RateLimitError),
)


class _ErrorBody(BaseModel):
    message: str | None = None
    error: str | None = None
    errors: list[str | None] | None = None


def _read_body(response: httpx.Response) -> bytes | None:
    """Buffer the whole body in memory.

    httpx keeps the buffered bytes on the response, so ``content``, ``text``
    and ``iter_bytes()`` keep serving the same payload to later readers.
    """
    try:
        return response.read()
    except (httpx.StreamError, httpx.HTTPError) as e:
        logger.debug(
            "Failed to read error response body",
            {"status_code": response.status_code, "error": repr(e)},
        )
        return None


def _body_messages(content_type: str, body: bytes, text: str) -> list[str]:
    if "application/json" in content_type:
        try:
            payload = _ErrorBody.model_validate_json(body)
        except ValidationError:
            return []
        messages = []
        if payload.message is not None:
            messages.append(payload.message)
        if payload.error is not None:
            messages.append(payload.error)
        for message in payload.errors or []:
            if message is not None:
                messages.append(message)
        return messages

    if "text/html" in content_type:
        message = text.strip()
        match = TITLE_PATTERN.search(message)
        if match:
            message = match.group(1)
        return [message]

    if "text/txt" in content_type:
        return [text.strip()]

    return []


def _first_header(headers: httpx.Headers, name: str) -> str:
    # Repeated headers count by their first value only, not the comma-joined whole.
    values = headers.get_list(name)
    return values[0] if values else ""


def _extract(response: httpx.Response) -> tuple[list[str], bytes | None]:
    messages = []

    header_message = _first_header(response.headers, MESSAGE_HEADER)
    if header_message:
        messages.append(header_message)

    body = _read_body(response)
    if body is not None:
        content_type = _first_header(response.headers, "Content-Type")
        messages.extend(_body_messages(content_type, body, response.text))

    return messages, body


def extract_messages(response: httpx.Response) -> list[str]:
    """Collect the raw error messages carried by a response.

    The body is buffered and stays readable afterwards. When it cannot be
    read, only the header message is returned.

    Args:
        response: An unsuccessful response

    Returns:
        Header message first (if any), then body messages in body order
    """
    messages, _ = _extract(response)
    return messages


def decode_quota(body: bytes | None) -> Quota | None:
    """Decode the quota counters from a response body, or None if it does not decode."""
    if not body:
        return None
    try:
        return Quota.model_validate_json(body)
    except ValidationError:
        return None


def classify_message(
    response: httpx.Response | None, message: str, body: bytes | None = None
) -> ResponseError:
    """Map one message to exactly one error kind.

    Matching is a case-insensitive substring test against the rule table;
    the first matching rule wins. A quota message only yields a QuotaError
    when ``body`` decodes to a quota whose ``remaining`` is negative,
    otherwise it is a plain ResponseError.

    Args:
        response: Response the message came from
        message: Message in its original case
        body: Raw response body, used to decode the quota

    Returns:
        The classified error, keeping the message's original case
    """
    lowered = message.lower()

    for substrings, error_class in _RULES:
        if not any(s in lowered for s in substrings):
            continue
        if error_class is QuotaError:
            quota = decode_quota(body)
            if quota is not None and quota.remaining < 0:
                return QuotaError(response, message, quota)
            return ResponseError(response, message)
        return error_class(response, message)

    return ResponseError(response, message)


def audit_request_headers(response: httpx.Response) -> list[ResponseError]:
    """Check the request that produced ``response`` for bad credential headers.

    Runs regardless of what the server reported. Checks, in order: the api
    key, the user agent, the authorization header.

    Args:
        response: Response whose originating request is inspected

    Returns:
        One error per failed check, empty when the response has no request
    """
    request = _request_of(response)
    if request is None:
        return []

    headers = request.headers
    found: list[ResponseError] = []

    if not _first_header(headers, API_KEY_HEADER):
        found.append(APIKeyError(response, "api-key header is empty"))

    user_agent = _first_header(headers, USER_AGENT_HEADER)
    if not user_agent:
        found.append(UserAgentError(response, "user-agent header is empty"))
    elif not USER_AGENT_PATTERN.search(user_agent):
        found.append(UserAgentError(response, "user-agent is wrong"))

    authorization = _first_header(headers, AUTHORIZATION_HEADER)
    if not authorization:
        found.append(AuthTokenError(response, "authorization header is empty"))
    elif not (authorization.startswith(BEARER_PREFIX) and len(authorization) > len(BEARER_PREFIX)):
        found.append(AuthTokenError(response, "authorization token is empty"))

    return found


def check_response(response: httpx.Response) -> ErrorResponse | None:
    """Classify an unsuccessful response into a composite error.

    Args:
        response: Response returned by the transport

    Returns:
        None for a 2xx status, otherwise an ErrorResponse whose ``errors``
        hold the header message, the body messages and the request-header
        audit findings, in that order
    """
    if 200 <= response.status_code <= 299:
        return None

    messages, body = _extract(response)
    errors = [classify_message(response, m, body) for m in messages]
    errors.extend(audit_request_headers(response))

    error_response = ErrorResponse(
        response,
        MESSAGE_SEPARATOR.join(e.message for e in errors),
        errors,
    )

    logger.debug(
        "Classified unsuccessful response",
        {
            "status_code": response.status_code,
            "kinds": [str(kind) for kind in error_response.kinds()],
            "message": error_response.message,
        },
    )

    return error_response
