from typing import TYPE_CHECKING

from opensubtitles_rest.common.context import Context
from opensubtitles_rest.common.models import UserResponse
from opensubtitles_rest.services.base import Service

if TYPE_CHECKING:
    from opensubtitles_rest.client import Response


class UsersService(Service):
    def get(self, ctx: Context | None = None) -> tuple[UserResponse | None, "Response"]:
        """Get the authenticated user's information. Requires an auth token."""
        url = self._client.new_url("infos/user")
        request = self._client.new_request("GET", url)
        return self._client.do(request, UserResponse, ctx)
