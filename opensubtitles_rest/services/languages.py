from typing import TYPE_CHECKING

from opensubtitles_rest.common.context import Context
from opensubtitles_rest.common.models import LanguagesResponse
from opensubtitles_rest.services.base import Service

if TYPE_CHECKING:
    from opensubtitles_rest.client import Response


class LanguagesService(Service):
    def list(self, ctx: Context | None = None) -> tuple[LanguagesResponse | None, "Response"]:
        """List subtitle languages."""
        url = self._client.new_url("infos/languages")
        request = self._client.new_request("GET", url)
        return self._client.do(request, LanguagesResponse, ctx)
