from __future__ import annotations

import html
import logging
import re
from typing import Callable
from urllib.parse import urlparse

import httpx

from config import settings
from services.errors import ValidationError

logger = logging.getLogger(__name__)

HtmlFetcher = Callable[[str, float], str]

_BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}
_TITLE_RE = re.compile(r"<title[^>]*>([^<]*)</title>", re.IGNORECASE)


def fetch_html(url: str, timeout_s: float) -> str:
    with httpx.Client(timeout=timeout_s, follow_redirects=True) as client:
        resp = client.get(url, headers=_BROWSER_HEADERS)
        resp.raise_for_status()
        return resp.text


def _meta_content(page: str, name: str) -> str:
    key = re.escape(name)
    patterns = (
        rf"<meta[^>]*(?:property|name)=[\"']{key}[\"'][^>]*content=[\"']([^\"']*)[\"']",
        rf"<meta[^>]*content=[\"']([^\"']*)[\"'][^>]*(?:property|name)=[\"']{key}[\"']",
    )
    for pattern in patterns:
        match = re.search(pattern, page, re.IGNORECASE)
        if match:
            return html.unescape(match.group(1)).strip()
    return ""


def _first(page: str, *names: str) -> str:
    for name in names:
        value = _meta_content(page, name)
        if value:
            return value
    return ""


def validate_url(url: str | None) -> str:
    candidate = (url or "").strip()
    if not candidate:
        raise ValidationError("URL is required")
    parsed = urlparse(candidate)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValidationError("Invalid URL")
    return candidate


def fallback_preview(url: str) -> dict[str, str]:
    return {"url": url, "title": url, "description": "", "image": "", "siteName": ""}


def extract_link_metadata(url: str, page: str) -> dict[str, str]:
    title = _first(page, "og:title", "twitter:title")
    if not title:
        match = _TITLE_RE.search(page)
        title = html.unescape(match.group(1)).strip() if match else ""
    return {
        "url": url,
        "title": title or url,
        "description": _first(page, "og:description", "twitter:description", "description"),
        "image": _first(page, "og:image", "twitter:image"),
        "siteName": _first(page, "og:site_name") or (urlparse(url).hostname or ""),
    }


def fetch_link_preview(url: str, fetcher: HtmlFetcher | None = None) -> dict[str, str]:
    """Title/description/image metadata for a page.

    Fetch or parse failures degrade to a preview that only carries the URL.
    """
    url = validate_url(url)
    fetch = fetcher or fetch_html
    try:
        page = fetch(url, float(settings.LINK_PREVIEW_TIMEOUT_SECONDS))
        return extract_link_metadata(url, page)
    except Exception as e:
        logger.warning(f"Link preview failed for {url}: {e}")
        return fallback_preview(url)


def get_html_fetcher() -> HtmlFetcher:
    """FastAPI dependency; tests override it to avoid network access."""
    return fetch_html
