from collections.abc import Callable, Iterator
from pathlib import Path

import httpx
import pytest

from opensubtitles_rest.client import Client
from opensubtitles_rest.common.logging import LOG_PATH_ENV, set_log_path

TEST_BASE_URL = "http://api.test/api/v1/"

VALID_REQUEST_HEADERS = {
    "Api-Key": "xxx",
    "User-Agent": "app v0.0.0",
    "Authorization": "Bearer yyy",
}


@pytest.fixture(autouse=True)
def isolated_log_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Send every log line of a test to its own temporary file."""
    monkeypatch.delenv(LOG_PATH_ENV, raising=False)
    log_path = tmp_path / "logs" / "opensubtitles_rest.jsonl"
    set_log_path(log_path)
    yield log_path
    set_log_path(None)


def make_response(
    status_code: int = 400,
    headers: dict[str, str] | None = None,
    body: bytes | str = b"",
    request_headers: dict[str, str] | None = None,
    method: str = "GET",
    url: str = "http://localhost/",
) -> httpx.Response:
    """Build a response whose request carries valid credential headers by default."""
    if request_headers is None:
        request_headers = dict(VALID_REQUEST_HEADERS)
    if isinstance(body, str):
        body = body.encode("utf-8")
    request = httpx.Request(method, url, headers=request_headers)
    return httpx.Response(status_code, headers=headers, content=body, request=request)


def make_client(
    handler: Callable[[httpx.Request], httpx.Response],
    api_key: str = "xxx",
    user_agent: str = "app v0.0.0",
    auth_token: str | None = None,
) -> Client:
    return Client(
        api_key=api_key,
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        user_agent=user_agent,
        base_url=TEST_BASE_URL,
        auth_token=auth_token,
    )
