import posixpath
import re
from urllib.parse import urljoin, urlparse, urlunparse
from typing import Optional

from ..models.response import Request

class URLNormalizer:
    """Builds the store key for a request: ``"<METHOD> <absolute URL>"``.

    The query string is part of the identity; the fragment never is.
    """

    def __init__(self, base_url: Optional[str] = None):
        self.base_url = base_url
        self.path_clean_regex = re.compile(r'/+')

    def normalize_url(self, url: str, base_url: Optional[str] = None) -> str:
        base_url = base_url or self.base_url
        try:
            if base_url and not url.startswith(("http://", "https://")):
                url = urljoin(base_url, url)

            p = urlparse(url)

            scheme = p.scheme.lower()
            netloc = self._normalize_netloc(p.netloc, scheme)
            path = self._normalize_path(p.path)
            return urlunparse((scheme, netloc, path, p.params, p.query, ""))
        except Exception as e:
            raise ValueError(f"URL normalization failed for {url}: {e}")

    def request_key(self, request: Request) -> str:
        return self.key_for(request.url, request.method)

    def key_for(self, url: str, method: str = "GET") -> str:
        return f"{(method or 'GET').upper()} {self.normalize_url(url)}"

    def url_from_key(self, key: str) -> str:
        _, _, url = key.partition(" ")
        return url

    def _normalize_netloc(self, netloc: str, scheme: str) -> str:
        netloc = (netloc or "").lower()
        if not netloc:
            return netloc

        if "@" in netloc:
            userinfo, hostport = netloc.split("@", 1)
            userinfo += "@"
        else:
            userinfo, hostport = "", netloc

        host, sep, port = hostport.rpartition(":")
        if sep and port.isdigit():
            if (scheme == "http" and port == "80") or (scheme == "https" and port == "443"):
                hostport = host

        return f"{userinfo}{hostport}"

    def _normalize_path(self, path: str) -> str:
        path = path or "/"
        norm = posixpath.normpath(path)
        if path.endswith("/") and not norm.endswith("/"):
            norm += "/"
        if not norm.startswith("/"):
            norm = "/" + norm
        norm = self.path_clean_regex.sub("/", norm)
        return norm
