"""Tests for classification of unsuccessful API responses."""

import json
from datetime import UTC, datetime

import httpx
import pytest
from conftest import make_response

from opensubtitles_rest.common.api_exceptions import (
    MESSAGE_HEADER,
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
    audit_request_headers,
    check_response,
    classify_message,
    decode_quota,
    extract_messages,
)
from opensubtitles_rest.common.logging import set_log_path
from opensubtitles_rest.common.models import Quota

JSON = {"Content-Type": "application/json"}

QUOTA_MESSAGE = (
    "You have downloaded your allowed 20 subtitles for 24h."
    "Your quota will be renewed in 23 hours and 57 minutes (2022-01-30 06:00:53 UTC) "
)


def quota_body(remaining: int) -> str:
    return json.dumps(
        {
            "message": QUOTA_MESSAGE,
            "remaining": remaining,
            "requests": 21,
            "reset_time": "23 hours and 57 minutes",
            "reset_time_utc": "2022-01-30T06:00:53.000Z",
        }
    )


class FailingStream(httpx.SyncByteStream):
    def __iter__(self):
        raise httpx.ReadError("connection reset")
        yield b""


def check(response: httpx.Response) -> ErrorResponse:
    error = check_response(response)
    assert isinstance(error, ErrorResponse)
    return error


class TestResponseErrorDisplay:
    """Tests for the display string of classified errors."""

    def test_with_request_and_response(self):
        response = make_response(400, method="GET", url="http://localhost/")
        assert str(ResponseError(response, "error")) == "GET http://localhost/: 400 error"

    def test_without_request(self):
        response = httpx.Response(400)
        assert str(ResponseError(response, "error")) == "400 error"

    def test_without_response(self):
        assert str(ResponseError(None, "error")) == "error"

    @pytest.mark.parametrize(
        "error_class",
        [
            UserAgentError,
            APIKeyError,
            AuthTokenError,
            CredentialsError,
            FileError,
            QuotaError,
            LinkError,
            RateLimitError,
            ErrorResponse,
        ],
    )
    def test_every_kind_formats_like_the_base(self, error_class):
        response = make_response(400, method="POST", url="http://localhost/download")
        error = error_class(response, "error")
        assert error.describe() == "POST http://localhost/download: 400 error"
        assert isinstance(error, ResponseError)

    def test_kinds_are_distinct(self):
        kinds = [
            ResponseError.kind,
            UserAgentError.kind,
            APIKeyError.kind,
            AuthTokenError.kind,
            CredentialsError.kind,
            FileError.kind,
            QuotaError.kind,
            LinkError.kind,
            RateLimitError.kind,
        ]
        assert len(set(kinds)) == len(kinds)
        assert QuotaError.kind == ErrorKind.QUOTA

    def test_quota_error_defaults_to_empty_quota(self):
        assert QuotaError(None, "quota").quota == Quota()


class TestExtractMessages:
    """Tests for message extraction from headers and body."""

    def test_header_message_first(self):
        response = make_response(
            400,
            headers={MESSAGE_HEADER: "from header", **JSON},
            body='{"message": "from body"}',
        )
        assert extract_messages(response) == ["from header", "from body"]

    def test_json_field_order(self):
        response = make_response(
            400,
            headers=JSON,
            body='{"errors": ["c", "d"], "error": "b", "message": "a"}',
        )
        assert extract_messages(response) == ["a", "b", "c", "d"]

    def test_json_errors_only_in_array_order(self):
        response = make_response(400, headers=JSON, body='{"errors": ["a", "b"]}')
        assert extract_messages(response) == ["a", "b"]

    def test_json_null_errors_are_skipped(self):
        response = make_response(400, headers=JSON, body='{"errors": ["a", null]}')
        assert extract_messages(response) == ["a"]

    def test_json_content_type_is_substring_match(self):
        response = make_response(
            400,
            headers={"Content-Type": "application/json; charset=utf-8"},
            body='{"error": "Internal Server Error"}',
        )
        assert extract_messages(response) == ["Internal Server Error"]

    def test_invalid_json_is_skipped(self):
        response = make_response(400, headers=JSON, body="{not json")
        assert extract_messages(response) == []

    def test_json_with_wrong_field_type_is_skipped(self):
        response = make_response(400, headers=JSON, body='{"message": 5, "error": "x"}')
        assert extract_messages(response) == []

    def test_html_title(self):
        response = make_response(
            400,
            headers={"Content-Type": "text/html"},
            body="<!DOCTYPE html><html><head><title>Error 403 - Nope</title></head></html>",
        )
        assert extract_messages(response) == ["Error 403 - Nope"]

    def test_html_without_title_uses_trimmed_body(self):
        response = make_response(
            400, headers={"Content-Type": "text/html"}, body="  <p>Bad gateway</p>\n"
        )
        assert extract_messages(response) == ["<p>Bad gateway</p>"]

    def test_text_body_is_trimmed(self):
        response = make_response(
            400, headers={"Content-Type": "text/txt"}, body="\n Error 410 - Invalid or expired link \n"
        )
        assert extract_messages(response) == ["Error 410 - Invalid or expired link"]

    def test_other_content_type_has_no_body_message(self):
        response = make_response(400, headers={"Content-Type": "text/plain"}, body="hello")
        assert extract_messages(response) == []

    def test_missing_content_type_has_no_body_message(self):
        response = make_response(400, body='{"message": "hidden"}')
        assert extract_messages(response) == []

    def test_repeated_message_header_uses_first_value(self):
        response = httpx.Response(
            400,
            headers=[(MESSAGE_HEADER, "Invalid token"), (MESSAGE_HEADER, "Throttle limit reached")],
            request=httpx.Request("GET", "http://localhost/"),
        )
        assert extract_messages(response) == ["Invalid token"]

    def test_repeated_content_type_uses_first_value(self):
        response = httpx.Response(
            400,
            headers=[("Content-Type", "text/txt"), ("Content-Type", "application/json")],
            content=b"Invalid file_id",
            request=httpx.Request("GET", "http://localhost/"),
        )
        assert extract_messages(response) == ["Invalid file_id"]

    def test_unreadable_body_keeps_header_message(self):
        request = httpx.Request("GET", "http://localhost/")
        response = httpx.Response(
            400,
            headers={MESSAGE_HEADER: "from header", **JSON},
            stream=FailingStream(),
            request=request,
        )
        assert extract_messages(response) == ["from header"]


class TestClassifyMessage:
    """Tests for mapping one message to one error kind."""

    @pytest.mark.parametrize(
        ("message", "error_class"),
        [
            ("User-Agent header is wrong", UserAgentError),
            ("User-Agent header is empty; set it to App name", UserAgentError),
            ("You cannot consume this service", APIKeyError),
            ("Invalid token a1", AuthTokenError),
            ("No token in request", AuthTokenError),
            ("Error, invalid username/password", CredentialsError),
            ("Invalid file_id", FileError),
            ("Error 410 - Invalid or expired link", LinkError),
            ("Throttle limit reached. Retry later.", RateLimitError),
            ("Query is too short", ResponseError),
        ],
    )
    def test_rule_table(self, message, error_class):
        error = classify_message(None, message)
        assert type(error) is error_class
        assert error.message == message

    def test_original_case_is_kept(self):
        error = classify_message(None, "INVALID TOKEN")
        assert isinstance(error, AuthTokenError)
        assert error.message == "INVALID TOKEN"

    def test_earlier_rule_wins(self):
        error = classify_message(None, "Invalid token: throttle limit reached")
        assert type(error) is AuthTokenError

    def test_user_agent_rule_precedes_token_rule(self):
        error = classify_message(None, "User-Agent header is empty and no token")
        assert type(error) is UserAgentError

    def test_quota_with_negative_remaining(self):
        error = classify_message(None, QUOTA_MESSAGE, quota_body(-1).encode())
        assert isinstance(error, QuotaError)
        assert error.quota.remaining == -1
        assert error.quota.requests == 21
        assert error.quota.reset_time == "23 hours and 57 minutes"
        assert error.quota.reset_time_utc == datetime(2022, 1, 30, 6, 0, 53, tzinfo=UTC)

    def test_quota_with_zero_remaining_is_plain_error(self):
        error = classify_message(None, QUOTA_MESSAGE, quota_body(0).encode())
        assert type(error) is ResponseError

    def test_quota_with_undecodable_body_is_plain_error(self):
        error = classify_message(None, QUOTA_MESSAGE, QUOTA_MESSAGE.encode())
        assert type(error) is ResponseError

    def test_quota_without_body_is_plain_error(self):
        error = classify_message(None, QUOTA_MESSAGE)
        assert type(error) is ResponseError


class TestDecodeQuota:
    def test_empty_object_decodes_to_zero_values(self):
        assert decode_quota(b"{}") == Quota()

    def test_empty_body(self):
        assert decode_quota(b"") is None

    def test_not_json(self):
        assert decode_quota(b"<html></html>") is None


class TestAuditRequestHeaders:
    """Tests for the independent audit of the request's own headers."""

    def test_valid_headers_produce_nothing(self):
        assert audit_request_headers(make_response()) == []

    def test_all_missing_in_fixed_order(self):
        errors = audit_request_headers(make_response(request_headers={}))
        assert [type(e) for e in errors] == [APIKeyError, UserAgentError, AuthTokenError]
        assert [e.message for e in errors] == [
            "api-key header is empty",
            "user-agent header is empty",
            "authorization header is empty",
        ]

    def test_empty_api_key(self):
        errors = audit_request_headers(
            make_response(request_headers={"Api-Key": "", "User-Agent": "app v1.0.0",
                                           "Authorization": "Bearer t"})
        )
        assert [e.message for e in errors] == ["api-key header is empty"]

    def test_malformed_user_agent(self):
        errors = audit_request_headers(
            make_response(request_headers={"Api-Key": "k", "User-Agent": "python-httpx/0.27",
                                           "Authorization": "Bearer t"})
        )
        assert len(errors) == 1
        assert isinstance(errors[0], UserAgentError)
        assert errors[0].message == "user-agent is wrong"

    @pytest.mark.parametrize("authorization", ["Bearer ", "Basic abc", "token"])
    def test_malformed_authorization(self, authorization):
        errors = audit_request_headers(
            make_response(request_headers={"Api-Key": "k", "User-Agent": "app v1.0.0",
                                           "Authorization": authorization})
        )
        assert len(errors) == 1
        assert isinstance(errors[0], AuthTokenError)
        assert errors[0].message == "authorization token is empty"

    def test_repeated_authorization_uses_first_value(self):
        request = httpx.Request(
            "GET",
            "http://localhost/",
            headers=[
                ("Api-Key", "k"),
                ("User-Agent", "app v1.0.0"),
                ("Authorization", "Bearer "),
                ("Authorization", "Bearer t"),
            ],
        )
        errors = audit_request_headers(httpx.Response(400, request=request))
        assert [e.message for e in errors] == ["authorization token is empty"]

    def test_response_without_request(self):
        assert audit_request_headers(httpx.Response(400)) == []


class TestCheckResponse:
    """End-to-end tests for the composite error."""

    def test_success_statuses_return_none(self):
        for status in range(200, 300):
            response = httpx.Response(
                status, headers={MESSAGE_HEADER: "ignored", **JSON}, content=b'{"error": "x"}'
            )
            assert check_response(response) is None

    @pytest.mark.parametrize("status", [100, 199, 300, 400, 404, 500])
    def test_other_statuses_return_error(self, status):
        assert isinstance(check_response(make_response(status)), ErrorResponse)

    def test_header_message_only(self):
        message = "User-Agent header is empty; set it to App name with version eg: MyApp v1.2.3"
        response = make_response(400, headers={MESSAGE_HEADER: message, **JSON})
        error = check(response)
        assert error.message == message
        assert len(error.errors) == 1
        assert isinstance(error.errors[0], UserAgentError)
        assert error.errors[0].response is response

    def test_json_errors(self):
        response = make_response(
            400,
            headers=JSON,
            body='{"errors": ["Invalid token a1", "No token in request", "Query is too short"]}',
        )
        error = check(response)
        assert [type(e) for e in error.errors] == [AuthTokenError, AuthTokenError, ResponseError]
        assert error.message == "Invalid token a1; No token in request; Query is too short"

    def test_html_link_error(self):
        response = make_response(
            400,
            headers={"Content-Type": "text/html"},
            body="<html><head><title>Error 410 - Invalid or expired link</title></head></html>",
        )
        error = check(response)
        assert len(error.errors) == 1
        assert isinstance(error.errors[0], LinkError)
        assert error.errors[0].message == "Error 410 - Invalid or expired link"

    def test_quota_error(self):
        response = make_response(400, headers=JSON, body=quota_body(-1))
        error = check(response)
        assert len(error.errors) == 1
        assert isinstance(error.errors[0], QuotaError)
        assert error.errors[0].quota.remaining == -1
        assert error.message == QUOTA_MESSAGE

    def test_missing_authorization_only(self):
        response = make_response(
            400, request_headers={"Api-Key": "xxx", "User-Agent": "app v0.0.0"}
        )
        error = check(response)
        assert len(error.errors) == 1
        assert isinstance(error.errors[0], AuthTokenError)
        assert error.message == "authorization header is empty"

    def test_audit_entries_follow_server_entries(self):
        header_message = "User-Agent header is empty; set it to App name"
        response = make_response(
            400,
            headers={MESSAGE_HEADER: header_message, **JSON},
            body='{"message": "Not enough parameters"}',
            request_headers={"User-Agent": "app v0.0.0", "Authorization": "Bearer yyy"},
        )
        error = check(response)
        assert [type(e) for e in error.errors] == [UserAgentError, ResponseError, APIKeyError]
        assert error.message == (
            f"{header_message}; Not enough parameters; api-key header is empty"
        )
        assert error.kinds() == [ErrorKind.USER_AGENT, ErrorKind.RESPONSE, ErrorKind.API_KEY]

    def test_no_messages_at_all(self):
        error = check(make_response(500))
        assert error.errors == []
        assert error.message == ""
        assert str(error) == "GET http://localhost/: 500 "

    def test_display_uses_composite_message(self):
        response = make_response(400, headers={"Content-Type": "text/txt"}, body="Invalid file_id")
        error = check(response)
        assert str(error) == "GET http://localhost/: 400 Invalid file_id"
        assert isinstance(error.errors[0], FileError)

    def test_body_stays_readable(self):
        original = b'{\n  "message": "Not enough parameters",\n  "status": 400\n}'
        response = make_response(400, headers=JSON, body=original)
        check(response)
        assert response.content == original
        assert b"".join(response.iter_bytes()) == original
        assert response.json()["status"] == 400

    def test_unreadable_body_still_audits(self):
        request = httpx.Request("GET", "http://localhost/")
        response = httpx.Response(400, headers=JSON, stream=FailingStream(), request=request)
        error = check(response)
        assert [type(e) for e in error.errors] == [APIKeyError, UserAgentError, AuthTokenError]

    def test_logs_classification(self, isolated_log_path):
        check(make_response(400, headers={"Content-Type": "text/txt"}, body="Invalid file_id"))
        entries = [json.loads(line) for line in isolated_log_path.read_text().splitlines()]
        entry = next(e for e in entries if e["message"] == "Classified unsuccessful response")
        assert entry["level"] == "debug"
        assert entry["metadata"]["kinds"] == ["file"]
        assert entry["metadata"]["status_code"] == 400

    def test_unwritable_log_path_still_returns_error(self, tmp_path):
        (tmp_path / "data").write_text("not a directory")
        set_log_path(tmp_path / "data" / "logs" / "x.jsonl")

        error = check(
            make_response(400, headers={MESSAGE_HEADER: "Throttle limit reached"})
        )

        assert [type(e) for e in error.errors] == [RateLimitError]

    def test_unconfigured_logging_writes_nothing(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        set_log_path(None)

        check(make_response(500))

        assert not (tmp_path / "data").exists()
