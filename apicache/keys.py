"""Cache key construction and credential stripping for proxied requests."""
from __future__ import annotations
from typing import Iterable
from urllib.parse import unquote_plus

DEFAULT_STRIP_PARAMS = ("apiKey",)


def sanitize_query(query_string: str, strip: Iterable[str] = DEFAULT_STRIP_PARAMS) -> str:
    """Drop credential parameters from a raw query string.

    Every other pair is kept byte-for-byte and in order, so requests that
    differ in anything but credentials never share a key.
    """
    if not query_string:
        return ""
    strip = set(strip)
    kept = [
        pair
        for pair in query_string.split("&")
        if unquote_plus(pair.split("=", 1)[0]) not in strip
    ]
    return "&".join(kept)


def upstream_target(path: str, query_string: str = "",
                    strip: Iterable[str] = DEFAULT_STRIP_PARAMS) -> str:
    """Path plus sanitized query, as forwarded to the upstream API."""
    if not path.startswith("/"):
        path = "/" + path
    query = sanitize_query(query_string, strip)
    return f"{path}?{query}" if query else path


def make_cache_key(method: str, path: str, query_string: str = "",
                   strip: Iterable[str] = DEFAULT_STRIP_PARAMS) -> str:
    """Build the cache key for a request, e.g. ``GET /recipes?query=pasta``."""
    return f"{method.upper()} {upstream_target(path, query_string, strip)}"
