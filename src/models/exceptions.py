from typing import Any, Dict, Optional

class SWCacheException(Exception):
    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        context_str = f" - Context: {self.context}" if self.context else ""
        return f"{self.__class__.__name__}: {self.message}{context_str}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, context={self.context!r})"


class NetworkException(SWCacheException):
    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = dict(context or {})
        if url:
            ctx["url"] = url
        if status_code is not None:
            ctx["status_code"] = status_code
        super().__init__(message, ctx)


class StorageException(SWCacheException):
    def __init__(
        self,
        message: str,
        namespace: Optional[str] = None,
        key: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = dict(context or {})
        if namespace:
            ctx["namespace"] = namespace
        if key:
            ctx["key"] = key
        super().__init__(message, ctx)


class ValidationException(SWCacheException):
    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = dict(context or {})
        if field:
            ctx["field"] = field
        if value is not None:
            ctx["value"] = value
        super().__init__(message, ctx)


class ConfigurationException(SWCacheException):

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = dict(context or {})
        if config_key:
            ctx["config_key"] = config_key
        if config_value is not None:
            ctx["config_value"] = config_value
        super().__init__(message, ctx)


class LifecycleException(SWCacheException):
    def __init__(
        self,
        message: str,
        phase: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = dict(context or {})
        if phase:
            ctx["phase"] = phase
        super().__init__(message, ctx)


class OutputException(SWCacheException):
    def __init__(
        self,
        message: str,
        output_format: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = dict(context or {})
        if output_format:
            ctx["output_format"] = output_format
        super().__init__(message, ctx)


class URLValidationException(ValidationException):
    """URL validation failed"""
    pass


class InstallException(LifecycleException):
    """Static manifest could not be precached"""

    def __init__(self, message: str, failed: Optional[Dict[str, str]] = None, context: Optional[Dict[str, Any]] = None):
        ctx = dict(context or {})
        if failed:
            ctx["failed"] = dict(failed)
        super().__init__(message, phase="install", context=ctx)
        self.failed = dict(failed or {})
