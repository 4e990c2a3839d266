"""
Message log entry.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class Message(BaseModel):
    correlation_id: str
    sender_identity: Optional[str] = None
    body: str
    room: str = ""
    observed_at: datetime
    provisional: bool = False
    server_timestamp: Optional[str] = None  # display only, never used for ordering

    model_config = {"frozen": True}

    def confirmed(self, server_timestamp: Optional[str] = None) -> "Message":
        update: dict[str, object] = {"provisional": False}
        if server_timestamp is not None:
            update["server_timestamp"] = server_timestamp
        return self.model_copy(update=update)
