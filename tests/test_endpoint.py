"""Endpoint resolution from the page origin."""

import pytest

from chatroom_client.endpoint import EndpointResolver, resolve_endpoint


@pytest.mark.parametrize("page, expected", [
    ("https://chat.example.com/", "wss://chat.example.com"),
    ("https://chat.example.com:8443/app", "wss://chat.example.com:8443"),
    ("http://chat.example.com:8080/", "ws://chat.example.com:8080"),
    ("http://localhost:5173/", "ws://localhost:8080"),
    ("https://devbox:5173/", "ws://devbox:8080"),
])
def test_resolve(page, expected):
    assert EndpointResolver(page).resolve() == expected


def test_custom_dev_ports():
    assert EndpointResolver("http://host:3000", dev_port=3000, backend_port=9000).resolve() == "ws://host:9000"


def test_websocket_url_passes_through():
    assert resolve_endpoint("wss://chat.example.com/ws") == "wss://chat.example.com/ws"


def test_resolver_or_string():
    assert resolve_endpoint(EndpointResolver("https://a.example")) == "wss://a.example"
    assert resolve_endpoint("https://a.example") == "wss://a.example"
