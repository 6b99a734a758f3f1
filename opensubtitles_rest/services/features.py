"""Feature (movie, episode, tv show) lookup endpoints."""

from typing import TYPE_CHECKING

from opensubtitles_rest.common.context import Context
from opensubtitles_rest.common.models import (
    FeatureEntity,
    FeaturesPopularParameters,
    FeaturesResponse,
    FeaturesSearchParameters,
)
from opensubtitles_rest.services.base import Service

if TYPE_CHECKING:
    from opensubtitles_rest.client import Response


class FeaturesService(Service):
    def popular(
        self, params: FeaturesPopularParameters | None = None, ctx: Context | None = None
    ) -> tuple[list[FeatureEntity], "Response"]:
        """Discover popular features, according to the last 30 days of downloads.

        Args:
            params: Optional language and type filters
            ctx: Optional cancellation token

        Returns:
            Tuple of (features, response)
        """
        url = self._client.new_url("discover/popular", params)
        request = self._client.new_request("GET", url)
        r, res = self._client.do(request, FeaturesResponse, ctx)
        return (r.data or []) if r is not None else [], res

    def search(
        self, params: FeaturesSearchParameters | None = None, ctx: Context | None = None
    ) -> tuple[list[FeatureEntity], "Response"]:
        """Search for features by title, IMDB, TMDB or feature id."""
        url = self._client.new_url("features", params)
        request = self._client.new_request("GET", url)
        r, res = self._client.do(request, FeaturesResponse, ctx)
        return (r.data or []) if r is not None else [], res
