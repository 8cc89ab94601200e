from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Pattern
from urllib.parse import urlparse
import re


class TrafficClass(Enum):
    STATIC_ASSET = "static"
    API_REQUEST = "api"
    DYNAMIC_ASSET = "dynamic"
    NAVIGATION = "navigation"
    UNHANDLED = "unhandled"

    @property
    def intercepted(self) -> bool:
        return self is not TrafficClass.UNHANDLED


class RuleKind(Enum):
    CONTAINS = "contains"
    PREFIX = "prefix"
    SUFFIX = "suffix"
    PATTERN = "pattern"


@dataclass(frozen=True)
class TrafficClassRule:
    """One URL test. ``target`` selects the full URL or only its path."""

    kind: RuleKind
    value: str
    target: str = "path"
    name: Optional[str] = None

    def __post_init__(self):
        if self.target not in ("url", "path"):
            raise ValueError(f"Invalid rule target: {self.target}")
        if self.kind is RuleKind.PATTERN:
            try:
                re.compile(self.value)
            except re.error as e:
                raise ValueError(f"Invalid rule pattern '{self.value}': {e}")

    @classmethod
    def contains(cls, value: str, target: str = "path", name: Optional[str] = None) -> "TrafficClassRule":
        return cls(RuleKind.CONTAINS, value, target, name)

    @classmethod
    def suffix(cls, value: str, target: str = "path", name: Optional[str] = None) -> "TrafficClassRule":
        return cls(RuleKind.SUFFIX, value, target, name)

    @classmethod
    def prefix(cls, value: str, target: str = "url", name: Optional[str] = None) -> "TrafficClassRule":
        return cls(RuleKind.PREFIX, value, target, name)

    @classmethod
    def pattern(cls, value: str, target: str = "path", name: Optional[str] = None) -> "TrafficClassRule":
        return cls(RuleKind.PATTERN, value, target, name)

    @property
    def compiled(self) -> Pattern:
        return _compile(self.value)

    def matches(self, url: str) -> bool:
        subject = url if self.target == "url" else (urlparse(url).path or "/")
        if self.kind is RuleKind.CONTAINS:
            return self.value in subject
        if self.kind is RuleKind.PREFIX:
            return subject.startswith(self.value)
        if self.kind is RuleKind.SUFFIX:
            return subject.endswith(self.value)
        return self.compiled.search(subject) is not None


_PATTERN_CACHE: Dict[str, Pattern] = {}

def _compile(pattern: str) -> Pattern:
    compiled = _PATTERN_CACHE.get(pattern)
    if compiled is None:
        compiled = re.compile(pattern)
        _PATTERN_CACHE[pattern] = compiled
    return compiled


@dataclass
class RuleSet:
    traffic_class: TrafficClass
    rules: List[TrafficClassRule] = field(default_factory=list)

    def matches(self, url: str) -> bool:
        return any(rule.matches(url) for rule in self.rules)

    def add(self, rule: TrafficClassRule) -> None:
        if rule not in self.rules:
            self.rules.append(rule)

    def __len__(self) -> int:
        return len(self.rules)
