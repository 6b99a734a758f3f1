"""OpenSubtitles REST API client.

This module provides the transport layer shared by every endpoint: URL and
request construction, the round trip, and classification of unsuccessful
responses into an ErrorResponse. The client never retries, caches or
throttles; rate-limit headers are parsed and exposed on Response only.

Dependencies:
    - httpx: Sync HTTP client for API requests
    - pydantic: Request bodies and response decoding
    - opensubtitles_rest.common.api_exceptions: Error classification
"""

from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel, ValidationError

from opensubtitles_rest.common.api_exceptions import (
    API_KEY_HEADER,
    AUTHORIZATION_HEADER,
    BEARER_PREFIX,
    USER_AGENT_HEADER,
    check_response,
)
from opensubtitles_rest.common.config import (
    DEFAULT_BASE_URL,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
    VERSION,
    Settings,
)
from opensubtitles_rest.common.context import Context
from opensubtitles_rest.common.logging import generate_id, get_logger, set_request_id
from opensubtitles_rest.common.models import Pagination, Quota, Rate
from opensubtitles_rest.services.auth import AuthService
from opensubtitles_rest.services.features import FeaturesService
from opensubtitles_rest.services.formats import FormatsService
from opensubtitles_rest.services.languages import LanguagesService
from opensubtitles_rest.services.subtitles import SubtitlesService
from opensubtitles_rest.services.users import UsersService

logger = get_logger(__name__)

__all__ = ["VERSION", "Client", "Response", "encode_query"]


@dataclass
class Response:
    """A successful API response with the metadata the API attaches to it.

    Attributes:
        response: The underlying httpx response; its body stays readable
        rate: Request rate window from the ``X-RateLimit-*`` headers
        pagination: Paging counters from a JSON body
        quota: Download allowance counters from a JSON body
    """

    response: httpx.Response
    rate: Rate = field(default_factory=Rate)
    pagination: Pagination = field(default_factory=Pagination)
    quota: Quota = field(default_factory=Quota)

    @property
    def status_code(self) -> int:
        return self.response.status_code

    @property
    def headers(self) -> httpx.Headers:
        return self.response.headers

    @property
    def content(self) -> bytes:
        return self.response.content

    def close(self) -> None:
        self.response.close()


def encode_query(params: BaseModel) -> str:
    """Encode a parameters model as a query string.

    None fields and empty lists are omitted, lists are comma-joined, booleans
    are lowercase and keys are sorted.

    Args:
        params: Parameters model

    Returns:
        Encoded query string without a leading ``?``
    """
    data = params.model_dump(exclude_none=True)

    pairs = []
    for key in sorted(data):
        value = data[key]
        if isinstance(value, bool):
            value = "true" if value else "false"
        elif isinstance(value, list):
            if not value:
                continue
            value = ",".join(str(v) for v in value)
        pairs.append((key, str(value)))

    return urlencode(pairs)


class Client:
    """Client for the OpenSubtitles REST API.

    Endpoint groups are available as ``auth``, ``features``, ``formats``,
    ``languages``, ``subtitles`` and ``users``.
    """

    def __init__(
        self,
        api_key: str = "",
        http_client: httpx.Client | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
        base_url: str = DEFAULT_BASE_URL,
        auth_token: str | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Consumer API key sent in the ``Api-Key`` header
            http_client: httpx client to send requests with (default: a new one)
            user_agent: ``User-Agent`` header value, ``name vX.Y.Z``
            base_url: API base URL, must end with a slash
            auth_token: Bearer token from a login, if any
        """
        self.api_key = api_key
        self.user_agent = user_agent
        self._http = (
            http_client if http_client is not None else httpx.Client(timeout=DEFAULT_TIMEOUT_SECONDS)
        )
        self._auth_token = auth_token
        self.set_base_url(base_url)

        self.auth = AuthService(self)
        self.features = FeaturesService(self)
        self.formats = FormatsService(self)
        self.languages = LanguagesService(self)
        self.subtitles = SubtitlesService(self)
        self.users = UsersService(self)

    @classmethod
    def from_settings(cls, settings: Settings, http_client: httpx.Client | None = None) -> "Client":
        """Build a client from application settings.

        Args:
            settings: Settings with API key, base URL, user agent and timeout
            http_client: Optional httpx client overriding the settings timeout
        """
        if http_client is None:
            http_client = httpx.Client(timeout=settings.timeout_seconds)
        return cls(
            api_key=settings.opensubtitles_api_key,
            http_client=http_client,
            user_agent=settings.opensubtitles_user_agent,
            base_url=settings.opensubtitles_base_url,
            auth_token=settings.opensubtitles_auth_token,
        )

    @property
    def http_client(self) -> httpx.Client:
        return self._http

    @property
    def base_url(self) -> str:
        return str(self._base_url)

    @property
    def auth_token(self) -> str | None:
        return self._auth_token

    def set_base_url(self, url: str) -> None:
        """Replace the base URL.

        Raises:
            ValueError: If the URL path does not end with a slash
        """
        parsed = httpx.URL(url)
        if not parsed.path.endswith("/"):
            raise ValueError(f"base url must have a trailing slash, but {url!r} does not")
        self._base_url = parsed

    def with_auth_token(self, token: str) -> "Client":
        """Return a copy of this client that authenticates with ``token``.

        The copy shares the underlying httpx client; this client is unchanged.
        """
        return Client(
            api_key=self.api_key,
            http_client=self._http,
            user_agent=self.user_agent,
            base_url=self.base_url,
            auth_token=token,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def new_url(self, path: str, params: BaseModel | None = None) -> httpx.URL:
        """Resolve an endpoint path against the base URL.

        Args:
            path: Relative endpoint path, e.g. ``"infos/formats"``
            params: Optional parameters model encoded into the query

        Returns:
            The endpoint URL

        Raises:
            ValueError: If ``path`` has a leading slash
        """
        if path.startswith("/"):
            raise ValueError(f"url path must not have a leading slash, but {path!r} does")

        url = self._base_url.join(path)
        if params is None:
            return url

        query = encode_query(params)
        if query:
            # The API drops the first parameter unless the query starts with "&".
            url = url.copy_with(query=("&" + query).encode("ascii"))

        return url

    def new_request(
        self, method: str, url: httpx.URL | str | None, body: BaseModel | None = None
    ) -> httpx.Request:
        """Build a request with the API's standard headers.

        Args:
            method: HTTP method, ``GET`` when empty
            url: Endpoint URL, usually from new_url
            body: Optional model sent as JSON with None fields omitted

        Returns:
            The request, ready for bare_do or do

        Raises:
            ValueError: If ``url`` is None
        """
        if url is None:
            raise ValueError("url must not be None")

        headers = {
            "Accept": "application/json",
            API_KEY_HEADER: self.api_key,
        }

        content = None
        if body is not None:
            content = body.model_dump_json(exclude_none=True).encode("utf-8")
            headers["Content-Type"] = "application/json"
        if self.user_agent:
            headers[USER_AGENT_HEADER] = self.user_agent
        if self._auth_token:
            headers[AUTHORIZATION_HEADER] = BEARER_PREFIX + self._auth_token

        return self._http.build_request(method or "GET", url, headers=headers, content=content)

    def bare_do(self, request: httpx.Request, ctx: Context | None = None) -> Response:
        """Send a request and classify the response.

        Args:
            request: Request from new_request
            ctx: Optional cancellation token governing the transport call

        Returns:
            Response wrapper for a 2xx response

        Raises:
            ErrorResponse: For any status outside 200-299; its response body
                remains readable
            ContextCancelledError: If ctx was cancelled before or during the call
            DeadlineExceededError: If ctx's deadline passed before or during the call
            httpx.TransportError: For other transport failures
        """
        if ctx is not None:
            ctx_error = ctx.error()
            if ctx_error is not None:
                raise ctx_error
            remaining = ctx.remaining()
            if remaining is not None:
                request.extensions["timeout"] = httpx.Timeout(remaining).as_dict()

        set_request_id(generate_id())
        try:
            logger.debug("Sending request", {"method": request.method, "url": str(request.url)})

            try:
                response = self._http.send(request)
            except httpx.TransportError as e:
                if ctx is not None:
                    ctx_error = ctx.error()
                    if ctx_error is not None:
                        raise ctx_error from e
                logger.warning(
                    "Transport error",
                    {"method": request.method, "url": str(request.url), "error": repr(e)},
                )
                raise

            error = check_response(response)
            if error is not None:
                logger.info(
                    "Request failed",
                    {
                        "method": request.method,
                        "url": str(request.url),
                        "status_code": response.status_code,
                        "message": error.message,
                    },
                )
                raise error

            logger.debug(
                "Request complete",
                {"method": request.method, "status_code": response.status_code},
            )
            return self._wrap(response)
        finally:
            set_request_id(None)

    def do(
        self, request: httpx.Request, into: Any = None, ctx: Context | None = None
    ) -> tuple[Any, Response]:
        """Send a request and decode a successful response.

        Args:
            request: Request from new_request
            into: None to ignore the body, a binary writer (anything with
                ``write``) to copy the raw body into, or a pydantic model class
                to decode the JSON body as
            ctx: Optional cancellation token governing the transport call

        Returns:
            Tuple of (decoded value, response). The value is None when
            ``into`` is None or the body is empty, and the writer itself when
            ``into`` is a writer.

        Raises:
            ErrorResponse: For any status outside 200-299
            pydantic.ValidationError: If the body does not decode as ``into``
        """
        res = self.bare_do(request, ctx)
        try:
            if into is None:
                return None, res
            if hasattr(into, "write"):
                into.write(res.content)
                return into, res
            if isinstance(into, type) and issubclass(into, BaseModel):
                if not res.content.strip():
                    return None, res
                return into.model_validate_json(res.content), res
            raise TypeError(f"cannot decode a response into {into!r}")
        finally:
            res.close()

    def _wrap(self, response: httpx.Response) -> Response:
        res = Response(response=response, rate=Rate.from_headers(response.headers))

        if "application/json" in response.headers.get("Content-Type", "") and response.content:
            try:
                res.pagination = Pagination.model_validate_json(response.content)
            except ValidationError:
                pass
            try:
                res.quota = Quota.model_validate_json(response.content)
            except ValidationError:
                pass

        return res
