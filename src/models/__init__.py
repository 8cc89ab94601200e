from .config import CacheConfig
from .response import Request, CachedResponse, ResponseSource
from .traffic import TrafficClass, TrafficClassRule, RuleKind, RuleSet
from .messages import ControlMessage, MessageType
from .result import Resolution, ResolutionSummary
from .exceptions import (
    SWCacheException,
    NetworkException,
    StorageException,
    ValidationException,
    ConfigurationException,
    LifecycleException,
    OutputException,
    URLValidationException,
    InstallException,
)

__all__ = [
    "CacheConfig",
    "Request",
    "CachedResponse",
    "ResponseSource",
    "TrafficClass",
    "TrafficClassRule",
    "RuleKind",
    "RuleSet",
    "ControlMessage",
    "MessageType",
    "Resolution",
    "ResolutionSummary",
    "SWCacheException",
    "NetworkException",
    "StorageException",
    "ValidationException",
    "ConfigurationException",
    "LifecycleException",
    "OutputException",
    "URLValidationException",
    "InstallException",
]
