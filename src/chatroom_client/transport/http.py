"""
REST HTTP client for the chat server's request/response endpoints.
"""

from typing import Any, Optional

import httpx

from chatroom_client.errors import ChatroomError

DEFAULT_BASE_URL = "http://localhost:8080"
CLIENT_VERSION = "0.1.0"
USER_AGENT = f"chatroom-client/{CLIENT_VERSION}"


class HttpClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @staticmethod
    def _unwrap(resp: httpx.Response) -> Any:
        """Decode the JSON body; the server reports failures as {"success": false, "error": ...}."""
        try:
            data = resp.json()
        except ValueError:
            data = None
        if resp.status_code >= 400:
            message = data.get("error") if isinstance(data, dict) else None
            raise ChatroomError(
                "http_error",
                f"HTTP {resp.status_code}: {message or resp.text[:200]}",
                details={"status_code": resp.status_code, "body": data},
            )
        if data is None:
            raise ChatroomError("http_error", f"Expected JSON from {resp.request.url.path}, got: {resp.text[:200]}")
        return data

    async def get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        try:
            resp = await self._client.get(path, params=params)
        except httpx.HTTPError as e:
            raise ChatroomError("http_error", f"GET {path} failed: {e}") from e
        return self._unwrap(resp)

    async def get_text(self, path: str) -> str:
        """GET a plain-text resource (e.g. Prometheus metrics)."""
        try:
            resp = await self._client.get(path, headers={"Accept": "text/plain"})
        except httpx.HTTPError as e:
            raise ChatroomError("http_error", f"GET {path} failed: {e}") from e
        if resp.status_code >= 400:
            raise ChatroomError(
                "http_error",
                f"HTTP {resp.status_code}: {resp.text[:200]}",
                details={"status_code": resp.status_code},
            )
        return resp.text

    async def post(self, path: str, body: Optional[dict[str, Any]] = None) -> Any:
        try:
            resp = await self._client.post(path, json=body)
        except httpx.HTTPError as e:
            raise ChatroomError("http_error", f"POST {path} failed: {e}") from e
        return self._unwrap(resp)

    async def close(self) -> None:
        await self._client.aclose()
