from typing import Dict, List, Optional, Tuple

from config.patterns import (
    CACHE_ON_DEMAND_PATTERNS,
    DYNAMIC_PATH_SEGMENTS,
    DYNAMIC_PATH_SUFFIXES,
    NAVIGATION_ACCEPT_TYPES,
    NAVIGATION_MODE,
)
from ..models.config import CacheConfig
from ..models.response import Request
from ..models.traffic import TrafficClass, TrafficClassRule, RuleSet


# Checked in this order; the first class whose rules match wins.
PRIORITY: Tuple[TrafficClass, ...] = (
    TrafficClass.STATIC_ASSET,
    TrafficClass.API_REQUEST,
    TrafficClass.DYNAMIC_ASSET,
)


def default_rules(api_endpoints: List[str]) -> Dict[TrafficClass, RuleSet]:
    static = RuleSet(TrafficClass.STATIC_ASSET)
    for name, pattern in CACHE_ON_DEMAND_PATTERNS.items():
        static.add(TrafficClassRule.pattern(pattern, name=name))

    api = RuleSet(TrafficClass.API_REQUEST)
    for endpoint in api_endpoints:
        api.add(TrafficClassRule.contains(endpoint, target="url", name=f"api:{endpoint}"))

    dynamic = RuleSet(TrafficClass.DYNAMIC_ASSET)
    for segment in DYNAMIC_PATH_SEGMENTS:
        dynamic.add(TrafficClassRule.contains(segment))
    for suffix in DYNAMIC_PATH_SUFFIXES:
        dynamic.add(TrafficClassRule.suffix(suffix))

    return {
        TrafficClass.STATIC_ASSET: static,
        TrafficClass.API_REQUEST: api,
        TrafficClass.DYNAMIC_ASSET: dynamic,
    }


class RequestClassifier:
    def __init__(self, config: Optional[CacheConfig] = None, rules: Optional[Dict[TrafficClass, RuleSet]] = None):
        self.config = config or CacheConfig()
        self.rules = rules or default_rules(self.config.api_endpoints)

    def classify(self, request: Request) -> TrafficClass:
        for traffic_class in PRIORITY:
            ruleset = self.rules.get(traffic_class)
            if ruleset is not None and ruleset.matches(request.url):
                return traffic_class
        if self.is_navigation(request):
            return TrafficClass.NAVIGATION
        return TrafficClass.UNHANDLED

    def is_navigation(self, request: Request) -> bool:
        if request.mode == NAVIGATION_MODE:
            return True
        if request.method != "GET":
            return False
        accept = request.accept.lower()
        return any(t in accept for t in NAVIGATION_ACCEPT_TYPES)

    def explain(self, request: Request) -> List[str]:
        """Names of every rule that matches, in priority order."""
        hits: List[str] = []
        for traffic_class in PRIORITY:
            ruleset = self.rules.get(traffic_class)
            if ruleset is None:
                continue
            for rule in ruleset.rules:
                if rule.matches(request.url):
                    hits.append(f"{traffic_class.value}:{rule.name or rule.value}")
        if self.is_navigation(request):
            hits.append(f"{TrafficClass.NAVIGATION.value}:{request.mode}")
        return hits
