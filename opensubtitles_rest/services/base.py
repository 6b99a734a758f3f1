from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from opensubtitles_rest.client import Client


class Service:
    """Group of endpoints sharing one Client."""

    def __init__(self, client: "Client") -> None:
        self._client = client
