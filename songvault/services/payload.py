"""Download of raw audio payloads from their source URL."""

import posixpath
from typing import Optional
from urllib.parse import unquote, urlparse

import requests

from ..core.errors import TransferError

_CHUNK = 64 * 1024


def filename_from_url(url: str, default: str = "song.bin") -> str:
    """Basename of the URL path, e.g. ".../files/track.mp3" -> "track.mp3"."""
    name = posixpath.basename(unquote(urlparse(url).path))
    return name or default


class PayloadFetcher:
    """Fetch a payload by URL and return it fully materialized in memory."""

    def __init__(self, timeout: float = 120.0, max_bytes: Optional[int] = None,
                 session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.max_bytes = max_bytes
        self.session = session or requests.Session()

    def fetch(self, url: str) -> bytes:
        buffer = bytearray()
        try:
            with self.session.get(url, stream=True, timeout=self.timeout) as response:
                if not response.ok:
                    raise TransferError(f"payload download returned HTTP {response.status_code}")
                for chunk in response.iter_content(chunk_size=_CHUNK):
                    buffer.extend(chunk)
                    if self.max_bytes is not None and len(buffer) > self.max_bytes:
                        raise TransferError(f"payload exceeds {self.max_bytes} bytes")
        except requests.RequestException as e:
            raise TransferError(f"payload download failed: {e}") from e

        return bytes(buffer)
