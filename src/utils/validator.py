import re
from urllib.parse import urlparse, urljoin
from typing import Optional, List, Dict, Any, Tuple

from config.constants import HTTP_CONFIG
from ..models.exceptions import URLValidationException, ValidationException
from ..models.response import Request

class RequestValidator:
    """Gatekeeping for the interception entry point and CLI input."""

    def __init__(self, allowed_schemes: Optional[List[str]] = None, allowed_methods: Optional[List[str]] = None):
        self.allowed_schemes = [s.lower() for s in (allowed_schemes or HTTP_CONFIG["allowed_schemes"])]
        self.allowed_methods = [m.upper() for m in (allowed_methods or ["GET"])]

    def is_interceptable(self, request: Request) -> Tuple[bool, str]:
        if request.method not in self.allowed_methods:
            return False, f"Method not intercepted: {request.method}"
        if request.scheme not in self.allowed_schemes:
            return False, f"Scheme not intercepted: {request.scheme or '-'}"
        return True, ""

    def validate_url(self, url: str, base_url: Optional[str] = None) -> Tuple[bool, str]:
        if not url or not isinstance(url, str):
            return False, "URL must be a non-empty string"

        if base_url and not url.startswith(("http://", "https://")):
            try:
                url = urljoin(base_url, url)
            except Exception as e:
                return False, f"URL join failed: {e}"

        try:
            parsed = urlparse(url)
        except Exception as e:
            return False, f"URL parsing error: {e}"

        if parsed.scheme not in self.allowed_schemes:
            return False, f"Invalid scheme: {parsed.scheme}"
        if not parsed.netloc:
            return False, "Missing network location"
        if parsed.username or parsed.password:
            return False, "Credentials in URL are not allowed"
        if len(url) > 2048:
            return False, "URL too long"
        return True, ""

    def resolve_target(self, target: str, origin: str) -> str:
        """Turn a CLI target (path or absolute URL) into an absolute URL."""
        target = (target or "").strip()
        if not target.startswith(("http://", "https://")):
            target = urljoin(origin.rstrip("/") + "/", target.lstrip("/"))
        valid, err = self.validate_url(target)
        if not valid:
            raise URLValidationException(f"URL validation failed: {err}", field="url", value=target)
        return target


class InputSanitizer:
    def __init__(self):
        self.header_name_pattern = re.compile(r"^[A-Za-z0-9!#$%&'*+.^_`|~-]+$")

    def parse_header(self, raw: str) -> Tuple[str, str]:
        if not raw or ":" not in raw:
            raise ValidationException("Header must look like 'Name: value'", field="header", value=raw)
        k, v = raw.split(":", 1)
        k, v = k.strip(), v.strip()
        if not self.header_name_pattern.match(k) or not v:
            raise ValidationException("Invalid header", field="header", value=raw)
        v = re.sub(r"[\x00-\x08\x0A-\x1F\x7F]", "", v)
        return k, v

    def sanitize_headers(self, headers: List[str]) -> Dict[str, str]:
        out: Dict[str, str] = {}
        for raw in headers or []:
            k, v = self.parse_header(raw)
            out[k] = v
        return out

    def validate_integer(self, value: Any, min_val: Optional[int] = None, max_val: Optional[int] = None) -> int:
        try:
            iv = int(value)
        except (ValueError, TypeError):
            raise ValidationException(f"Invalid integer value: {value}")
        if min_val is not None and iv < min_val:
            raise ValidationException(f"Value {iv} below minimum {min_val}")
        if max_val is not None and iv > max_val:
            raise ValidationException(f"Value {iv} above maximum {max_val}")
        return iv

request_validator = RequestValidator()
input_sanitizer = InputSanitizer()
