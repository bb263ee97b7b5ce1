"""
HTTP access for iacenv.

All remote reads (version lists, release metadata, assets, checksum files,
signatures and public keys) go through HttpClient. Bodies are streamed into
memory with a size cap: nothing is written to disk until verification of
the downloaded bytes has passed.

There is no retry logic here. A failed request surfaces as NetworkError and
the caller decides what to do with it.
"""

import json
import logging
from typing import Any, Dict, Optional, Tuple

import requests
from requests.exceptions import RequestException

from iacenv.core.exceptions import NetworkError, ResponseShapeError

logger = logging.getLogger(__name__)

# release binaries of the managed tools are well below this
MAX_DOWNLOAD_SIZE = 512 * 1024 * 1024
CHUNK_SIZE = 64 * 1024
DEFAULT_TIMEOUT = 30

Auth = Optional[Tuple[str, str]]


class HttpClient:
    """
    Thin requests wrapper returning bodies as bytes, text or JSON.

    Attributes:
        session: requests session reused across calls
        timeout: Connect and read timeout in seconds
        max_size: Largest accepted body, in bytes
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: int = DEFAULT_TIMEOUT,
        max_size: int = MAX_DOWNLOAD_SIZE,
    ):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.max_size = max_size

    def get_bytes(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        auth: Auth = None,
    ) -> bytes:
        """
        Download a URL into memory.

        Args:
            url: URL to fetch
            headers: Extra request headers
            auth: Optional (user, password) for basic authentication

        Returns:
            Response body

        Raises:
            NetworkError: On transport failure, non-2xx status or oversized body

        Example:
            >>> client = HttpClient()
            >>> sums = client.get_bytes("https://example.com/SHA256SUMS")
        """
        logger.debug(f"Downloading {url}")
        try:
            with self.session.get(
                url,
                headers=headers,
                auth=auth,
                stream=True,
                timeout=self.timeout,
                allow_redirects=True,
            ) as response:
                response.raise_for_status()

                chunks = []
                received = 0
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if not chunk:
                        continue
                    received += len(chunk)
                    if received > self.max_size:
                        raise NetworkError(
                            url, f"response larger than {self.max_size} bytes"
                        )
                    chunks.append(chunk)
        except RequestException as e:
            raise NetworkError(url, str(e)) from e

        logger.debug(f"Downloaded {received} bytes from {url}")
        return b"".join(chunks)

    def get_text(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        auth: Auth = None,
    ) -> str:
        return self.get_bytes(url, headers=headers, auth=auth).decode(
            "utf-8", errors="replace"
        )

    def get_json(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        auth: Auth = None,
    ) -> Any:
        """
        Fetch and decode a JSON document.

        Raises:
            NetworkError: On transport failure
            ResponseShapeError: If the body is not valid JSON
        """
        body = self.get_bytes(url, headers=headers, auth=auth)
        try:
            return json.loads(body)
        except ValueError as e:
            raise ResponseShapeError(f"Invalid JSON from {url}: {e}") from e


__all__ = ["HttpClient", "MAX_DOWNLOAD_SIZE", "Auth"]
