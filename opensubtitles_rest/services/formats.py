from typing import TYPE_CHECKING

from opensubtitles_rest.common.context import Context
from opensubtitles_rest.common.models import FormatsResponse
from opensubtitles_rest.services.base import Service

if TYPE_CHECKING:
    from opensubtitles_rest.client import Response


class FormatsService(Service):
    def list(self, ctx: Context | None = None) -> tuple[FormatsResponse | None, "Response"]:
        """List the subtitle formats the API can convert to."""
        url = self._client.new_url("infos/formats")
        request = self._client.new_request("GET", url)
        return self._client.do(request, FormatsResponse, ctx)
