"""
Persistent-connection endpoint resolution.

The chat server serves the web page and the WebSocket on the same origin, so
the endpoint is derived from the page URL: https pages get ``wss://`` on the
same host, anything else gets ``ws://``. When the page comes from the
frontend dev server the socket goes to the backend's fixed port instead.
"""

from typing import Optional, Union

import httpx

DEV_SERVER_PORT = 5173
BACKEND_PORT = 8080
FALLBACK_HOST = f"localhost:{BACKEND_PORT}"


class EndpointResolver:
    def __init__(
        self,
        page_url: str,
        dev_port: int = DEV_SERVER_PORT,
        backend_port: int = BACKEND_PORT,
    ):
        self._page_url = page_url
        self._dev_port = dev_port
        self._backend_port = backend_port

    @property
    def page_url(self) -> str:
        return self._page_url

    def resolve(self) -> str:
        url = httpx.URL(self._page_url)
        if url.scheme in ("ws", "wss"):
            return self._page_url

        hostname = url.host
        if ":" in hostname:
            hostname = f"[{hostname}]"
        port: Optional[int] = url.port
        if hostname and port == self._dev_port:
            return f"ws://{hostname}:{self._backend_port}"

        scheme = "wss" if url.scheme == "https" else "ws"
        if not hostname:
            return f"{scheme}://{FALLBACK_HOST}"
        host = f"{hostname}:{port}" if port is not None else hostname
        return f"{scheme}://{host}"

    def __repr__(self) -> str:
        return f"EndpointResolver(page_url={self._page_url!r})"


def resolve_endpoint(endpoint: Union[str, EndpointResolver]) -> str:
    """Accept a resolver or a URL string; page URLs are resolved, ws URLs pass through."""
    if isinstance(endpoint, EndpointResolver):
        return endpoint.resolve()
    return EndpointResolver(endpoint).resolve()
