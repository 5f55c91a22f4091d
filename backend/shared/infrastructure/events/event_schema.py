"""
The order feed message.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from typing import Any

from .event_types import ALL_ORDER_EVENTS


@dataclass
class Event:
    """
    One order feed message: "order X changed, re-fetch it".

    ``entity`` holds hints (order_number, source, appended_id) that let a
    receiver drop or re-index an order without fetching it. ``actor`` names
    who made the change. ``v`` is the message schema version.
    """

    type: str
    order_id: str
    branch_id: str | None = None
    entity: dict[str, Any] = field(default_factory=dict)
    actor: dict[str, Any] = field(default_factory=dict)
    ts: str | None = None
    v: int = 1

    def __post_init__(self) -> None:
        if self.type not in ALL_ORDER_EVENTS:
            raise ValueError(f"Unknown event type: {self.type!r}")
        if not isinstance(self.order_id, str) or not self.order_id:
            raise ValueError("Event order_id must be a non-empty string")
        if self.branch_id is not None and not isinstance(self.branch_id, str):
            raise ValueError("Event branch_id must be a string")
        self.entity = self.entity or {}
        self.actor = self.actor or {}
        if not isinstance(self.entity, dict) or not isinstance(self.actor, dict):
            raise ValueError("Event entity and actor must be objects")

    def to_json(self) -> str:
        data = asdict(self)
        data["ts"] = self.ts or datetime.now(timezone.utc).isoformat()
        return json.dumps(data, ensure_ascii=False, default=str)

    @classmethod
    def from_json(cls, raw: str) -> "Event":
        """Parse a message, ignoring keys added by newer publishers."""
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("Event must be a JSON object")
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})
