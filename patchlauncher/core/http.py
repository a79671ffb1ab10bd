"""Blocking HTTP helpers used by the update worker.

Every failure (connection error, timeout, non-2xx status, a body shorter
than its Content-Length) is raised as NetworkFailure. Nothing here retries;
the session decides what to do next.
"""

import logging
import os
from http.client import HTTPException
from urllib.request import Request, urlopen
from urllib.error import URLError

from patchlauncher.branding import AppBranding
from patchlauncher.core.errors import NetworkFailure

logger = logging.getLogger(__name__)

# Buffer size for streaming downloads (80 KB)
DOWNLOAD_BUFFER = 81920

# Five minutes per request
DEFAULT_TIMEOUT = 300


def _request(url: str) -> Request:
    return Request(url, headers={'User-Agent': AppBranding.user_agent()})


def fetch_bytes(url: str, timeout: float = DEFAULT_TIMEOUT) -> bytes:
    """GET a small resource fully into memory."""
    try:
        with urlopen(_request(url), timeout=timeout) as resp:
            return resp.read()
    except (URLError, OSError, HTTPException) as e:
        raise NetworkFailure(f"Request to {url} failed: {e}") from e


def fetch_text(url: str, timeout: float = DEFAULT_TIMEOUT) -> str:
    return fetch_bytes(url, timeout).decode('utf-8').strip()


def download_to_file(url: str, path: str, timeout: float = DEFAULT_TIMEOUT,
                     progress_callback=None) -> int:
    """Stream url into path. Returns the number of bytes written.

    progress_callback receives a 0..1 fraction after each chunk when the
    server sends Content-Length.
    """
    logger.info("Downloading %s", url)
    downloaded = 0
    try:
        with urlopen(_request(url), timeout=timeout) as resp:
            total = int(resp.headers.get('Content-Length', 0) or 0)
            with open(path, 'wb') as f:
                while True:
                    chunk = resp.read(DOWNLOAD_BUFFER)
                    if not chunk:
                        break
                    f.write(chunk)
                    downloaded += len(chunk)
                    if total > 0 and progress_callback:
                        progress_callback(min(downloaded / total, 1.0))
                f.flush()
                os.fsync(f.fileno())
    except (URLError, OSError, ValueError, HTTPException) as e:
        raise NetworkFailure(f"Download of {url} failed: {e}") from e

    if total > 0 and downloaded != total:
        raise NetworkFailure(
            f"Download of {url} ended after {downloaded} of {total} bytes"
        )

    logger.info("Downloaded %d bytes from %s", downloaded, url)
    return downloaded
