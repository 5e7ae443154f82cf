# collabart/client.py
"""
Client SDK for the registry server.

Usage:
    client = CollabClient("http://localhost:8080")

    client.register_artist("artist1", "John Doe")
    artwork_id = client.create_artwork("artist1", "My Artwork", "...").value
    client.finalize_artwork("artist1", artwork_id)
    result = client.mint_nft("artist1", artwork_id, price=1000)
    if not result.ok:
        print(f"Mint rejected: {result.code.label}")
"""

import json
from typing import Any, Dict, List, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from .errors import WireResult


def _error_message(error: HTTPError) -> str:
    """The server's {"error": ...} message, or the raw body."""
    raw = error.read().decode(errors="replace")
    try:
        return json.loads(raw)["error"]
    except (ValueError, KeyError, TypeError):
        return f"HTTP {error.code}: {raw or error.reason}"


class CollabClient:
    """
    Client for the registry server.

    Args:
        base_url: Server URL (e.g., "http://localhost:8080")
        timeout: Request timeout in seconds
    """

    def __init__(self, base_url: str = "http://localhost:8080", timeout: float = 30):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _request(self, method: str, path: str, data: Optional[Dict[str, Any]] = None) -> Any:
        """Send a JSON request and decode the JSON reply."""
        body = None if data is None else json.dumps(data).encode()
        req = Request(f"{self.base_url}{path}", data=body, method=method)
        if body is not None:
            req.add_header("Content-Type", "application/json")

        try:
            with urlopen(req, timeout=self.timeout) as response:
                payload = response.read()
        except HTTPError as e:
            raise RuntimeError(_error_message(e)) from e
        except URLError as e:
            raise ConnectionError(f"Cannot reach {self.base_url}: {e.reason}") from e
        return json.loads(payload.decode())

    def _get_optional(self, path: str) -> Optional[dict]:
        """GET that maps a 404 to None."""
        try:
            return self._request("GET", path)
        except RuntimeError as e:
            if isinstance(e.__cause__, HTTPError) and e.__cause__.code == 404:
                return None
            raise

    def health(self) -> bool:
        """Check if server is healthy."""
        try:
            result = self._request("GET", "/health")
            return result.get("status") == "ok"
        except (RuntimeError, ConnectionError):
            return False

    def command(self, command_name: str, /, **args: Any) -> WireResult:
        """Run a command by name. Keyword arguments become the JSON body."""
        return WireResult.from_wire(self._request("POST", f"/commands/{command_name}", args))

    def register_artist(self, caller: str, name: str) -> WireResult:
        return self.command("register-artist", caller=caller, name=name)

    def create_artwork(self, caller: str, title: str, description: str) -> WireResult:
        return self.command("create-artwork", caller=caller, title=title, description=description)

    def add_contribution(self, caller: str, artwork_id: int, amount: int) -> WireResult:
        return self.command("add-contribution", caller=caller, artwork_id=artwork_id, amount=amount)

    def finalize_artwork(self, caller: str, artwork_id: int) -> WireResult:
        return self.command("finalize-artwork", caller=caller, artwork_id=artwork_id)

    def mint_nft(self, caller: str, artwork_id: int, price: int) -> WireResult:
        return self.command("mint-nft", caller=caller, artwork_id=artwork_id, price=price)

    def buy_nft(self, caller: str, nft_id: int) -> WireResult:
        return self.command("buy-nft", caller=caller, nft_id=nft_id)

    def get_artist(self, caller: str) -> Optional[Dict[str, Any]]:
        return self._get_optional(f"/artists/{quote(caller, safe='')}")

    def get_artwork(self, artwork_id: int) -> Optional[Dict[str, Any]]:
        return self._get_optional(f"/artworks/{artwork_id}")

    def get_nft(self, nft_id: int) -> Optional[Dict[str, Any]]:
        return self._get_optional(f"/nfts/{nft_id}")

    def activities(self, since: int = 0) -> List[Dict[str, Any]]:
        """Activity log entries recorded after `since`."""
        return self._request("GET", f"/activities?since={since}")["activities"]

    def transfers(self, since: int = 0) -> List[Dict[str, Any]]:
        """
        Ownership-transfer-requested events whose activity sequence is
        greater than `since`.

        A settlement service polls this to learn which purchases to settle,
        passing the last `activity_sequence` it has handled.
        """
        return self._request("GET", f"/transfers?since={since}")["transfers"]

    def state(self) -> Dict[str, Any]:
        """Full state snapshot."""
        return self._request("GET", "/state")


__all__ = ["CollabClient", "WireResult"]
