"""URL helpers for redirect flows."""

from __future__ import annotations

from urllib.parse import parse_qs, quote, urlencode, urlsplit, urlunsplit


def _first(params: dict[str, list[str]], name: str) -> str | None:
    values = params.get(name)
    return values[0] if values and values[0] else None


def get_query(name: str, url: str) -> str | None:
    """Value of query parameter ``name``, or ``None``."""
    return _first(parse_qs(urlsplit(url).query), name)


def get_hash(name: str, url: str) -> str | None:
    """Value of ``name`` inside the fragment.

    Handles both ``#code=x`` and router-style ``#/path?code=x`` fragments.
    """
    fragment = urlsplit(url).fragment
    if "?" in fragment:
        fragment = fragment.split("?", 1)[1]
    return _first(parse_qs(fragment), name)


def remove_param(name: str, url: str) -> str:
    """Drop every occurrence of query parameter ``name`` from ``url``."""
    parts = urlsplit(url)
    if not parts.query:
        return url
    kept = [pair for pair in parts.query.split("&") if pair and pair.split("=", 1)[0] != name]
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "&".join(kept), parts.fragment))


def build_url(base: str, params: dict[str, str], fragment: str | None = None) -> str:
    """Join ``base`` and fully percent-encoded ``params``."""
    url = f"{base}?{urlencode(params, quote_via=quote)}"
    return f"{url}#{fragment}" if fragment else url
