"""
Version listing from HTML directory pages.

The page is parsed with BeautifulSoup, elements are picked with a CSS
selector, and each element gives one token: an attribute value, or its text
when the part is ``#text``. Tokens without a version-looking substring are
dropped.
"""

import logging
from typing import List

from bs4 import BeautifulSoup

from iacenv.config.settings import ToolRemoteConfig
from iacenv.core.download import Auth, HttpClient
from iacenv.versions.finder import find_version

logger = logging.getLogger(__name__)

TEXT_PART = "#text"


def extract_tokens(page: str, selector: str, part: str) -> List[str]:
    """
    Apply selector and part extraction to an HTML page.

    Example:
        >>> extract_tokens('<a href="/tf/1.6.0/">x</a>', "a", "href")
        ['/tf/1.6.0/']
    """
    soup = BeautifulSoup(page, "html.parser")
    tokens = []
    for element in soup.select(selector):
        if part == TEXT_PART:
            value = element.get_text()
        else:
            value = element.get(part) or ""
            if isinstance(value, list):
                value = " ".join(value)
        value = value.strip()
        if value:
            tokens.append(value)
    return tokens


def extract_versions(page: str, selector: str = "a", part: str = "href") -> List[str]:
    """Versions found in the page, in document order, without duplicates."""
    versions = []
    seen = set()
    for token in extract_tokens(page, selector, part):
        version = find_version(token)
        if version and version not in seen:
            seen.add(version)
            versions.append(version)
    return versions


def list_releases(
    http: HttpClient, url: str, remote: ToolRemoteConfig, auth: Auth = None
) -> List[str]:
    """Fetch a listing page and extract versions with the tool's selector and part."""
    page = http.get_text(url, auth=auth)
    versions = extract_versions(page, remote.selector, remote.part)
    logger.debug(f"Found {len(versions)} versions in {url}")
    return versions


__all__ = ["extract_tokens", "extract_versions", "list_releases", "TEXT_PART"]
