from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Dict, Any, Mapping, Optional
from urllib.parse import urlparse
import time


class ResponseSource(Enum):
    CACHE = "cache"
    NETWORK = "network"
    FALLBACK = "fallback"
    PASSTHROUGH = "passthrough"


@dataclass
class Request:
    url: str
    method: str = "GET"
    headers: Dict[str, str] = field(default_factory=dict)
    mode: str = "cors"

    def __post_init__(self):
        self.method = (self.method or "GET").upper()
        self.headers = {str(k).lower(): str(v) for k, v in (self.headers or {}).items()}
        self.mode = (self.mode or "cors").lower()

    @classmethod
    def navigate(cls, url: str, headers: Optional[Dict[str, str]] = None) -> "Request":
        hdrs = {"accept": "text/html,application/xhtml+xml"}
        hdrs.update(headers or {})
        return cls(url=url, headers=hdrs, mode="navigate")

    @property
    def scheme(self) -> str:
        return (urlparse(self.url).scheme or "").lower()

    @property
    def path(self) -> str:
        return urlparse(self.url).path or "/"

    @property
    def accept(self) -> str:
        return self.headers.get("accept", "")

    def header(self, name: str, default: str = "") -> str:
        return self.headers.get(name.lower(), default)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "method": self.method,
            "mode": self.mode,
            "headers": self.headers.copy(),
        }


@dataclass(frozen=True)
class CachedResponse:
    """Immutable snapshot of a response; what the store keeps per key."""

    status: int
    body: bytes = b""
    headers: Mapping[str, str] = field(default_factory=dict)
    url: str = ""
    source: ResponseSource = ResponseSource.NETWORK
    created_at: float = field(default_factory=time.time)

    def __post_init__(self):
        # read-only copy; a stored entry never shares a dict with a caller
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    @classmethod
    def snapshot(
        cls,
        status: int,
        body: Optional[bytes] = None,
        headers: Optional[Dict[str, str]] = None,
        url: str = "",
    ) -> "CachedResponse":
        return cls(
            status=int(status),
            body=bytes(body or b""),
            headers={str(k).lower(): str(v) for k, v in (headers or {}).items()},
            url=url,
        )

    @classmethod
    def fallback(cls, status: int, message: str, url: str = "") -> "CachedResponse":
        return cls(
            status=status,
            body=message.encode("utf-8"),
            headers={"content-type": "text/plain; charset=utf-8"},
            url=url,
            source=ResponseSource.FALLBACK,
        )

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def cacheable(self) -> bool:
        return self.status == 200

    @property
    def size(self) -> int:
        return len(self.body)

    def header(self, name: str, default: str = "") -> str:
        return self.headers.get(name.lower(), default)

    def text(self, encoding: str = "utf-8") -> str:
        return self.body.decode(encoding, errors="replace")

    def with_source(self, source: ResponseSource) -> "CachedResponse":
        if source is self.source:
            return self
        return replace(self, source=source)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "url": self.url,
            "headers": dict(self.headers),
            "size": self.size,
            "source": self.source.value,
            "created_at": self.created_at,
        }
