from .logger import setup_logging, get_logger, PerformanceLogger
from .validator import RequestValidator, InputSanitizer, request_validator, input_sanitizer
from .output_formatter import OutputFormatter, ResultSerializer, output_formatter, result_serializer
from .tasks import BackgroundTasks

__all__ = [
    "setup_logging",
    "get_logger",
    "PerformanceLogger",
    "RequestValidator",
    "InputSanitizer",
    "request_validator",
    "input_sanitizer",
    "OutputFormatter",
    "ResultSerializer",
    "output_formatter",
    "result_serializer",
    "BackgroundTasks",
]
