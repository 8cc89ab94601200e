from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional
import time
import json
from .response import Request, CachedResponse, ResponseSource
from .traffic import TrafficClass

@dataclass
class Resolution:
    request: Request
    traffic_class: TrafficClass
    response: Optional[CachedResponse] = None
    duration: float = 0.0
    timestamp: float = field(default_factory=time.time)
    error: Optional[str] = None

    @property
    def source(self) -> ResponseSource:
        if self.response is None:
            return ResponseSource.PASSTHROUGH
        return self.response.source

    @property
    def status(self) -> int:
        return self.response.status if self.response is not None else 0

    @property
    def intercepted(self) -> bool:
        return self.response is not None

    @property
    def from_cache(self) -> bool:
        return self.source is ResponseSource.CACHE

    @property
    def is_fallback(self) -> bool:
        return self.source is ResponseSource.FALLBACK

    def to_tsv(self) -> str:
        fields = [
            self.request.method,
            self.request.url,
            self.traffic_class.value,
            str(self.status) if self.intercepted else "-",
            self.source.value,
            str(self.response.size) if self.response is not None else "-",
            f"{self.duration * 1000:.1f}",
        ]
        safe = []
        for f in fields:
            s = str(f)
            s = s.replace("\t", "\\t").replace("\n", "\\n").replace("\r", "\\r")
            safe.append(s)
        return "\t".join(safe)

    def to_dict(self, include_details: bool = False) -> Dict[str, Any]:
        base = {
            "method": self.request.method,
            "url": self.request.url,
            "traffic_class": self.traffic_class.value,
            "status": self.status,
            "source": self.source.value,
            "size": self.response.size if self.response is not None else 0,
            "duration_ms": round(self.duration * 1000, 3),
            "timestamp": self.timestamp,
            "intercepted": self.intercepted,
            "from_cache": self.from_cache,
            "is_fallback": self.is_fallback,
            "error": self.error,
        }
        if include_details:
            base["request"] = self.request.to_dict()
            if self.response is not None:
                base["response"] = self.response.to_dict()
        return base

    def to_json(self, include_details: bool = False) -> str:
        return json.dumps(self.to_dict(include_details=include_details), indent=2)

    @classmethod
    def get_tsv_header(cls) -> str:
        return "\t".join(
            [
                "method",
                "url",
                "traffic_class",
                "status",
                "source",
                "size",
                "duration_ms",
            ]
        )


@dataclass
class ResolutionSummary:
    run_id: str
    start_time: float
    end_time: float
    config: Dict[str, Any] = field(default_factory=dict)
    installed: bool = False
    namespace_sizes: Dict[str, int] = field(default_factory=dict)
    results: List[Resolution] = field(default_factory=list)
    class_distribution: Dict[str, int] = field(default_factory=dict)
    source_distribution: Dict[str, int] = field(default_factory=dict)
    total_requests: int = 0
    cache_hits: int = 0
    fallbacks: int = 0
    total_duration: float = 0.0
    requests_per_second: float = 0.0

    def __post_init__(self):
        self.total_duration = max(0.0, (self.end_time - self.start_time))
        self._calculate_statistics()
        self.requests_per_second = (
            (self.total_requests / self.total_duration) if self.total_duration > 0 else 0.0
        )

    def _calculate_statistics(self):
        self.class_distribution = {tc.value: 0 for tc in TrafficClass}
        self.source_distribution = {src.value: 0 for src in ResponseSource}
        for r in self.results:
            self.class_distribution[r.traffic_class.value] += 1
            self.source_distribution[r.source.value] += 1
        self.total_requests = len(self.results)
        self.cache_hits = self.source_distribution[ResponseSource.CACHE.value]
        self.fallbacks = self.source_distribution[ResponseSource.FALLBACK.value]

    @property
    def hit_rate(self) -> float:
        intercepted = sum(1 for r in self.results if r.intercepted)
        return self.cache_hits / intercepted if intercepted else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "total_duration": self.total_duration,
            "installed": self.installed,
            "config": self.config,
            "namespace_sizes": dict(self.namespace_sizes),
            "class_distribution": dict(self.class_distribution),
            "source_distribution": dict(self.source_distribution),
            "total_requests": self.total_requests,
            "cache_hits": self.cache_hits,
            "fallbacks": self.fallbacks,
            "hit_rate": round(self.hit_rate, 4),
            "requests_per_second": round(self.requests_per_second, 2),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)
