from __future__ import annotations

import json
from datetime import datetime
from typing import Any
from uuid import UUID

from exchange_chat.application.ports.realtime import Push


class _Encoder(json.JSONEncoder):
    def default(self, o: object) -> Any:
        if isinstance(o, UUID):
            return str(o)
        if isinstance(o, datetime):
            return o.isoformat()
        return super().default(o)


def serialize_push(user_id: int, pushes: list[Push]) -> str:
    envelope = {
        "user_id": user_id,
        "events": [{"event": event_type, "data": data} for event_type, data in pushes],
    }
    return json.dumps(envelope, cls=_Encoder)


def deserialize_push(raw: str | bytes) -> tuple[int, list[Push]]:
    envelope = json.loads(raw)
    pushes = [(item["event"], item.get("data") or {}) for item in envelope["events"]]
    return int(envelope["user_id"]), pushes
