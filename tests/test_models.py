"""Tests for API data shapes."""

from datetime import UTC, datetime

import httpx
import pytest
from pydantic import ValidationError

from opensubtitles_rest.common.config import DEFAULT_BASE_URL, VIP_BASE_URL
from opensubtitles_rest.common.models import (
    Feature,
    FeatureEntity,
    Login,
    Quota,
    Rate,
    SubtitlesDownloadResponse,
    SubtitlesSearchResponse,
)


class TestID:
    """Tests for IDs that arrive as numbers or numeric strings."""

    def test_numeric_string(self):
        assert FeatureEntity.model_validate({"id": "646"}).id == 646

    def test_number(self):
        assert FeatureEntity.model_validate({"id": 646}).id == 646

    def test_padded_string(self):
        assert Feature.model_validate({"imdb_id": " 78748 "}).imdb_id == 78748

    def test_non_numeric_string_fails(self):
        with pytest.raises(ValidationError):
            FeatureEntity.model_validate({"id": "abc"})


class TestQuota:
    def test_defaults(self):
        quota = Quota()
        assert quota.remaining == 0
        assert quota.requests == 0
        assert quota.reset_time == ""
        assert quota.reset_time_utc is None

    def test_decodes_from_error_body(self):
        quota = Quota.model_validate_json(
            '{"requests": 21, "remaining": -1, "message": "ignored",'
            ' "reset_time": "23 hours", "reset_time_utc": "2022-01-30T06:00:53.000Z"}'
        )
        assert quota.remaining == -1
        assert quota.reset_time_utc == datetime(2022, 1, 30, 6, 0, 53, tzinfo=UTC)

    def test_is_frozen(self):
        with pytest.raises(ValidationError):
            Quota().remaining = 5


class TestRate:
    def test_from_headers(self):
        headers = httpx.Headers(
            {"X-RateLimit-Limit": "40", "X-RateLimit-Remaining": "0", "X-RateLimit-Reset": "3"}
        )
        rate = Rate.from_headers(headers)
        assert (rate.limit, rate.remaining, rate.reset) == (40, 0, 3)

    def test_missing_or_invalid_headers_are_zero(self):
        rate = Rate.from_headers(httpx.Headers({"X-RateLimit-Limit": "many"}))
        assert (rate.limit, rate.remaining, rate.reset) == (0, 0, 0)


class TestLogin:
    def test_regular_user(self):
        login = Login.model_validate({"token": "t", "user": {"vip": False}})
        assert login.client_base_url == DEFAULT_BASE_URL

    def test_vip_user(self):
        login = Login.model_validate({"token": "t", "user": {"vip": True}})
        assert login.client_base_url == VIP_BASE_URL

    def test_without_user(self):
        assert Login.model_validate({"token": "t"}).client_base_url == DEFAULT_BASE_URL

    def test_client_base_url_not_serialized(self):
        login = Login.model_validate({"token": "t", "base_url": "api.opensubtitles.com"})
        assert "client_base_url" not in login.model_dump()
        assert login.model_dump()["base_url"] == "api.opensubtitles.com"


class TestSubtitlesDownloadResponse:
    def test_collects_flat_quota_fields(self):
        result = SubtitlesDownloadResponse.model_validate(
            {"link": "https://x/a.srt", "file_name": "a.srt", "remaining": 97, "requests": 3}
        )
        assert result.link == "https://x/a.srt"
        assert result.quota == Quota(remaining=97, requests=3)

    def test_quota_not_serialized(self):
        result = SubtitlesDownloadResponse.model_validate({"link": "l", "remaining": 1})
        assert result.model_dump() == {"file_name": None, "link": "l"}


class TestSubtitlesSearchResponse:
    def test_ignores_unknown_fields(self):
        result = SubtitlesSearchResponse.model_validate(
            {"page": 1, "total_pages": 1, "data": [], "brand_new_field": True}
        )
        assert result.page == 1
        assert result.data == []
