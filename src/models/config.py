from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Set
from urllib.parse import urljoin, urlparse

from config.constants import (
    DEFAULT_CONFIG,
    CACHE_LIMITS,
    STATIC_ASSETS,
    API_ENDPOINTS,
    get_env_overrides,
    is_valid_timeout,
    is_valid_cache_size,
)
from .exceptions import ConfigurationException

_INT_FIELDS = ("max_dynamic_entries", "max_api_entries")
_FLOAT_FIELDS = ("fetch_timeout",)


@dataclass
class CacheConfig:
    origin: str = DEFAULT_CONFIG["origin"]
    app_name: str = DEFAULT_CONFIG["app_name"]
    cache_prefix: str = DEFAULT_CONFIG["cache_prefix"]
    cache_version: str = DEFAULT_CONFIG["cache_version"]
    max_dynamic_entries: int = CACHE_LIMITS["max_dynamic_entries"]
    max_api_entries: int = CACHE_LIMITS["max_api_entries"]
    fetch_timeout: Optional[float] = DEFAULT_CONFIG["fetch_timeout"]
    static_assets: List[str] = field(default_factory=lambda: list(STATIC_ASSETS))
    api_endpoints: List[str] = field(default_factory=lambda: list(API_ENDPOINTS))
    shell_path: str = DEFAULT_CONFIG["shell_path"]
    enforce_limit_on_bulk_cache: bool = DEFAULT_CONFIG["enforce_limit_on_bulk_cache"]
    user_agent: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    proxy: Optional[str] = None

    @property
    def static_cache(self) -> str:
        return f"{self.cache_prefix}-static-{self.cache_version}"

    @property
    def dynamic_cache(self) -> str:
        return f"{self.cache_prefix}-dynamic-{self.cache_version}"

    @property
    def api_cache(self) -> str:
        return f"{self.cache_prefix}-api-{self.cache_version}"

    @property
    def known_namespaces(self) -> Set[str]:
        return {self.static_cache, self.dynamic_cache, self.api_cache}

    def limit_for(self, namespace: str) -> Optional[int]:
        if namespace == self.dynamic_cache:
            return self.max_dynamic_entries
        if namespace == self.api_cache:
            return self.max_api_entries
        return None

    def absolute_url(self, path_or_url: str) -> str:
        if path_or_url.startswith(("http://", "https://")):
            return path_or_url
        return urljoin(self.origin.rstrip("/") + "/", path_or_url.lstrip("/"))

    @property
    def shell_url(self) -> str:
        return self.absolute_url(self.shell_path)

    def validate(self):
        errors = []

        parsed = urlparse(self.origin or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            errors.append("Origin must be an absolute http(s) URL")

        if not self.cache_prefix or not self.cache_version:
            errors.append("Cache prefix and version must be non-empty")

        if not is_valid_cache_size(self.max_dynamic_entries):
            errors.append(
                f"Max dynamic entries must be between {CACHE_LIMITS['min_entries']} and {CACHE_LIMITS['max_entries']}"
            )

        if not is_valid_cache_size(self.max_api_entries):
            errors.append(
                f"Max API entries must be between {CACHE_LIMITS['min_entries']} and {CACHE_LIMITS['max_entries']}"
            )

        if self.fetch_timeout is not None and not is_valid_timeout(self.fetch_timeout):
            errors.append("Fetch timeout must be between 0 and 300 seconds")

        if not self.shell_path.startswith("/"):
            errors.append("Shell path must start with '/'")

        for path in self.static_assets:
            if not path or not isinstance(path, str):
                errors.append(f"Invalid static asset path: {path!r}")

        for endpoint in self.api_endpoints:
            if not endpoint or not isinstance(endpoint, str):
                errors.append(f"Invalid API endpoint: {endpoint!r}")

        for k, v in self.headers.items():
            if not k or v is None or v == "":
                errors.append(f"Invalid header: {k}={v}")

        if errors:
            raise ConfigurationException(
                "Configuration validation failed",
                context={"errors": errors, "config": self.to_dict()},
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary"""
        return {
            "origin": self.origin,
            "app_name": self.app_name,
            "cache_prefix": self.cache_prefix,
            "cache_version": self.cache_version,
            "static_cache": self.static_cache,
            "dynamic_cache": self.dynamic_cache,
            "api_cache": self.api_cache,
            "max_dynamic_entries": self.max_dynamic_entries,
            "max_api_entries": self.max_api_entries,
            "fetch_timeout": self.fetch_timeout,
            "static_assets": list(self.static_assets),
            "api_endpoints": list(self.api_endpoints),
            "shell_path": self.shell_path,
            "enforce_limit_on_bulk_cache": self.enforce_limit_on_bulk_cache,
            "user_agent": self.user_agent,
            "headers": self.headers.copy(),
            "proxy": self.proxy,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheConfig":
        known = set(cls.__dataclass_fields__)
        kwargs: Dict[str, Any] = {}
        for key, value in (data or {}).items():
            if key not in known:
                continue
            try:
                if key in _INT_FIELDS:
                    value = int(value)
                elif key in _FLOAT_FIELDS and value is not None:
                    value = float(value)
            except (TypeError, ValueError):
                raise ConfigurationException(
                    f"Invalid value for {key}", config_key=key, config_value=value
                )
            kwargs[key] = value
        return cls(**kwargs)

    @classmethod
    def from_env(cls, **overrides: Any) -> "CacheConfig":
        data: Dict[str, Any] = get_env_overrides()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls.from_dict(data)
