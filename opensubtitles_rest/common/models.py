"""Data-transfer shapes for the OpenSubtitles REST API.

Every field is optional: the upstream API omits keys freely, and unknown
keys are ignored so new fields never break decoding.
"""

from datetime import datetime
from typing import Annotated, Any

import httpx
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator

from opensubtitles_rest.common.config import DEFAULT_BASE_URL, VIP_BASE_URL

RATE_LIMIT_HEADER = "X-RateLimit-Limit"
RATE_REMAINING_HEADER = "X-RateLimit-Remaining"
RATE_RESET_HEADER = "X-RateLimit-Reset"


def _coerce_id(value: Any) -> Any:
    # The API encodes IDs either as numbers or as numeric strings.
    if isinstance(value, str):
        return int(value.strip())
    return value


ID = Annotated[int, BeforeValidator(_coerce_id)]


class APIModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Quota(APIModel):
    """Download allowance reported by the API.

    A negative ``remaining`` means the allowance is exhausted.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    remaining: int = 0
    requests: int = 0
    reset_time: str = ""
    reset_time_utc: datetime | None = None


class Rate(APIModel):
    """Request rate window parsed from the ``X-RateLimit-*`` response headers."""

    limit: int = 0
    remaining: int = 0
    reset: int = 0

    @classmethod
    def from_headers(cls, headers: httpx.Headers) -> "Rate":
        def _int(name: str) -> int:
            try:
                return int(headers.get(name, "0"))
            except ValueError:
                return 0

        return cls(
            limit=_int(RATE_LIMIT_HEADER),
            remaining=_int(RATE_REMAINING_HEADER),
            reset=_int(RATE_RESET_HEADER),
        )


class Pagination(APIModel):
    page: int = 0
    per_page: int = 0
    total_count: int = 0
    total_pages: int = 0


class User(APIModel):
    allowed_downloads: int | None = None
    allowed_translations: int | None = None
    downloads_count: int | None = None
    ext_installed: bool | None = None
    level: str | None = None
    remaining_downloads: int | None = None
    user_id: ID | None = None
    username: str | None = None
    vip: bool | None = None


class UserResponse(APIModel):
    data: User | None = None


class Credentials(APIModel):
    username: str | None = None
    password: str | None = None


class Login(APIModel):
    """Result of a login.

    ``client_base_url`` is derived rather than decoded: it is the full API base
    URL (scheme and version included) to use for this user, which differs for
    VIP accounts. ``base_url`` is the bare host the API reports.
    """

    client_base_url: str = Field(default=DEFAULT_BASE_URL, exclude=True)
    base_url: str | None = None
    token: str | None = None
    user: User | None = None

    @model_validator(mode="after")
    def derive_client_base_url(self) -> "Login":
        if self.user is not None and self.user.vip:
            self.client_base_url = VIP_BASE_URL
        else:
            self.client_base_url = DEFAULT_BASE_URL
        return self


class Language(APIModel):
    language_code: str | None = None
    language_name: str | None = None


class LanguagesResponse(APIModel):
    data: list[Language] | None = None


class FormatsData(APIModel):
    output_formats: list[str] | None = None


class FormatsResponse(APIModel):
    data: FormatsData | None = None


class Episode(APIModel):
    episode_number: int | None = None
    feature_id: ID | None = None
    feature_imdb_id: ID | None = None
    title: str | None = None


class Season(APIModel):
    episodes: list[Episode] | None = None
    season_number: int | None = None


class Feature(APIModel):
    episode_number: int | None = None
    feature_id: ID | None = None
    feature_type: str | None = None
    imdb_id: ID | None = None
    img_url: str | None = None
    original_title: str | None = None
    parent_imdb_id: ID | None = None
    parent_title: str | None = None
    season_number: int | None = None
    seasons: list[Season] | None = None
    seasons_count: int | None = None
    subtitles_count: int | None = None
    subtitles_counts: dict[str, int] | None = None
    title: str | None = None
    title_aka: list[str] | None = None
    tmdb_id: ID | None = None
    url: str | None = None
    year: str | None = None


class FeatureEntity(APIModel):
    attributes: Feature | None = None
    id: ID | None = None
    type: str | None = None


class FeaturesResponse(APIModel):
    data: list[FeatureEntity] | None = None


class FeaturesPopularParameters(APIModel):
    languages: list[str] | None = None
    type: str | None = None


class FeaturesSearchParameters(APIModel):
    feature_id: ID | None = None
    imdb_id: ID | None = None
    query: str | None = None
    tmdb_id: ID | None = None
    type: str | None = None
    year: int | None = None


class FeatureDetails(APIModel):
    episode_number: int | None = None
    feature_id: ID | None = None
    feature_type: str | None = None
    imdb_id: ID | None = None
    movie_name: str | None = None
    parent_feature_id: ID | None = None
    parent_imdb_id: ID | None = None
    parent_title: str | None = None
    parent_tmdb_id: ID | None = None
    season_number: int | None = None
    title: str | None = None
    tmdb_id: ID | None = None
    year: int | None = None


class File(APIModel):
    cd_number: int | None = None
    file_id: ID | None = None
    file_name: str | None = None


class RelatedLink(APIModel):
    img_url: str | None = None
    label: str | None = None
    url: str | None = None


class Uploader(APIModel):
    name: str | None = None
    rank: str | None = None
    uploader_id: ID | None = None


class Subtitle(APIModel):
    ai_translated: bool | None = None
    comments: str | None = None
    download_count: int | None = None
    feature_details: FeatureDetails | None = None
    files: list[File] | None = None
    foreign_parts_only: bool | None = None
    fps: float | None = None
    from_trusted: bool | None = None
    hd: bool | None = None
    hearing_impaired: bool | None = None
    language: str | None = None
    machine_translated: bool | None = None
    new_download_count: int | None = None
    ratings: float | None = None
    related_links: list[RelatedLink] | None = None
    release: str | None = None
    subtitle_id: ID | None = None
    upload_date: datetime | None = None
    uploader: Uploader | None = None
    url: str | None = None
    votes: int | None = None


class SubtitleEntity(APIModel):
    attributes: Subtitle | None = None
    id: ID | None = None
    type: str | None = None


class SubtitlesSearchParameters(APIModel):
    ai_translated: str | None = None
    episode_number: int | None = None
    foreign_parts_only: str | None = None
    hearing_impaired: str | None = None
    id: ID | None = None
    imdb_id: ID | None = None
    languages: str | None = None
    machine_translated: str | None = None
    moviehash: str | None = None
    moviehash_match: str | None = None
    order_by: str | None = None
    order_direction: str | None = None
    page: int | None = None
    parent_feature_id: ID | None = None
    parent_imdb_id: ID | None = None
    parent_tmdb_id: ID | None = None
    query: str | None = None
    season_number: int | None = None
    tmdb_id: ID | None = None
    trusted_sources: str | None = None
    type: str | None = None
    user_id: ID | None = None
    year: int | None = None


class SubtitlesSearchResponse(APIModel):
    data: list[SubtitleEntity] | None = None
    page: int | None = None
    per_page: int | None = None
    total_count: int | None = None
    total_pages: int | None = None


class SubtitlesDownloadParameters(APIModel):
    file_id: ID | None = None
    file_name: str | None = None
    force_download: bool | None = None
    in_fps: int | None = None
    out_fps: int | None = None
    sub_format: str | None = None
    timeshift: int | None = None


class SubtitlesDownloadResponse(APIModel):
    """Download link for a subtitle file.

    The quota counters arrive flat in the same body as the link; they are
    collected into ``quota``.
    """

    quota: Quota | None = Field(default=None, exclude=True)
    file_name: str | None = None
    link: str | None = None

    @model_validator(mode="before")
    @classmethod
    def collect_quota(cls, data: Any) -> Any:
        if isinstance(data, dict) and "quota" not in data:
            data = {**data, "quota": data}
        return data
