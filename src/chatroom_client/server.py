"""
Read-only server endpoints: online users, message history, stats, heartbeat.
"""

from typing import Any, Optional, Union

from prometheus_client.parser import text_string_to_metric_families

from chatroom_client.errors import ChatroomError
from chatroom_client.models.server import HeartbeatResult, HistoryPage, MetricSample, ServerStats, UserList
from chatroom_client.transport.http import HttpClient


class ServerAPI:
    def __init__(self, http: HttpClient):
        self._http = http

    async def users(self) -> UserList:
        """Users with a live session."""
        return UserList.model_validate(await self._http.get("/users"))

    async def messages(self, since: int = 0, username: Optional[str] = None) -> HistoryPage:
        """Stored messages with id greater than ``since``.

        The result is not merged into a live session's log.
        """
        params: dict[str, Any] = {"since": since}
        if username:
            params["username"] = username
        return HistoryPage.model_validate(await self._http.get("/messages", params=params))

    async def stats(self) -> ServerStats:
        text = await self._http.get_text("/metrics")
        try:
            samples = [
                MetricSample(name=s.name, labels=dict(s.labels), value=s.value)
                for family in text_string_to_metric_families(text)
                for s in family.samples
            ]
        except ValueError as e:
            raise ChatroomError("http_error", f"Unreadable /metrics response: {e}") from e
        return ServerStats(samples=samples)

    async def heartbeat(
        self,
        username: str,
        connection_id: Optional[Union[int, str]] = None,
        client_version: Optional[str] = None,
    ) -> HeartbeatResult:
        """Tell the server this user is still here. Optional fields are omitted when unset."""
        body: dict[str, Any] = {"username": username}
        if client_version:
            body["client_version"] = client_version
        if connection_id is not None and connection_id != "":
            body["connection_id"] = str(connection_id)
        return HeartbeatResult.model_validate(await self._http.post("/heartbeat", body))
