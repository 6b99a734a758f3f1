"""Subtitle search and download endpoints."""

from typing import TYPE_CHECKING

from opensubtitles_rest.common.context import Context
from opensubtitles_rest.common.models import (
    SubtitlesDownloadParameters,
    SubtitlesDownloadResponse,
    SubtitlesSearchParameters,
    SubtitlesSearchResponse,
)
from opensubtitles_rest.services.base import Service

if TYPE_CHECKING:
    from opensubtitles_rest.client import Response


class SubtitlesService(Service):
    def download(
        self, params: SubtitlesDownloadParameters | None = None, ctx: Context | None = None
    ) -> tuple[SubtitlesDownloadResponse | None, "Response"]:
        """Request a download link for a subtitle file.

        Each call counts against the user's download quota. The remaining
        allowance is available as ``result.quota``. Once it is exhausted the
        call raises an ErrorResponse holding a QuotaError.

        Args:
            params: File id and optional conversion options
            ctx: Optional cancellation token

        Returns:
            Tuple of (download link and quota, response)
        """
        url = self._client.new_url("download")
        request = self._client.new_request("POST", url, params)
        return self._client.do(request, SubtitlesDownloadResponse, ctx)

    def search(
        self, params: SubtitlesSearchParameters | None = None, ctx: Context | None = None
    ) -> tuple[SubtitlesSearchResponse | None, "Response"]:
        """Search for subtitles."""
        url = self._client.new_url("subtitles", params)
        request = self._client.new_request("GET", url)
        return self._client.do(request, SubtitlesSearchResponse, ctx)
