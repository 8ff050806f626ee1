"""Protocol for fire-and-forget requests sent while a page is going away."""

from typing import Any, Protocol


class BeaconSenderProtocol(Protocol):
    """Sends a best-effort request without waiting for the response."""

    def send_beacon(self, path: str, payload: dict[str, Any]) -> bool:
        """Queue a POST of ``payload`` to ``path``.

        Returns:
            True if the request was queued, False if it could not be.
        """
        ...
