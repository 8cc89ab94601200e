from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .exceptions import ValidationException


class MessageType(Enum):
    SKIP_WAITING = "SKIP_WAITING"
    CACHE_URLS = "CACHE_URLS"


@dataclass
class ControlMessage:
    type: MessageType
    payload: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["ControlMessage"]:
        """Parse a raw control message. Unknown or empty messages yield None."""
        if not isinstance(data, dict) or "type" not in data:
            return None
        try:
            msg_type = MessageType(data["type"])
        except ValueError:
            return None

        payload = data.get("payload") or []
        if msg_type is MessageType.CACHE_URLS:
            if not isinstance(payload, (list, tuple)) or not all(isinstance(u, str) and u for u in payload):
                raise ValidationException("CACHE_URLS payload must be a list of URLs", field="payload", value=payload)
        return cls(type=msg_type, payload=list(payload))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type.value}
        if self.payload:
            data["payload"] = list(self.payload)
        return data
