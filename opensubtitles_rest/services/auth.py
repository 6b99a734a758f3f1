"""Login and logout endpoints."""

from typing import TYPE_CHECKING

from opensubtitles_rest.common.context import Context
from opensubtitles_rest.common.models import Credentials, Login
from opensubtitles_rest.services.base import Service

if TYPE_CHECKING:
    from opensubtitles_rest.client import Response


class AuthService(Service):
    def login(
        self, credentials: Credentials | None = None, ctx: Context | None = None
    ) -> tuple[Login | None, "Response"]:
        """Create a token to authenticate a user.

        Use ``client.with_auth_token(login.token)`` for authenticated calls and
        ``client.set_base_url(login.client_base_url)`` for VIP users.

        Args:
            credentials: Username and password
            ctx: Optional cancellation token

        Returns:
            Tuple of (login, response)
        """
        url = self._client.new_url("login")
        request = self._client.new_request("POST", url, credentials)
        return self._client.do(request, Login, ctx)

    def logout(self, ctx: Context | None = None) -> "Response":
        """Destroy the current token to end a session."""
        url = self._client.new_url("logout")
        request = self._client.new_request("DELETE", url)
        _, res = self._client.do(request, None, ctx)
        return res
