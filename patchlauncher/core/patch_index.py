"""Remote patch index — which source versions can patch to a destination.

The artifact store publishes patches as ``<dest>/<source>.patch`` and answers
``GET <index>?prefix=<dest>/`` with an S3-style XML bucket listing.
"""

import logging
import re
import xml.etree.ElementTree as ET
from urllib.parse import quote

from patchlauncher.core import http
from patchlauncher.core.errors import NetworkFailure

logger = logging.getLogger(__name__)

PATCH_KEY_RE = re.compile(r'(?:^|/)(\d+)/(\d+)\.patch$')


def _local_name(tag: str) -> str:
    # Strip the '{namespace}' prefix ElementTree puts on qualified tags
    return tag.rsplit('}', 1)[-1]


def parse_listing(document: bytes, destination: int) -> set[int]:
    """Extract source versions from a bucket listing for one destination."""
    try:
        root = ET.fromstring(document)
    except ET.ParseError as e:
        raise NetworkFailure(f"Malformed patch index: {e}") from e

    sources = set()
    for element in root.iter():
        if _local_name(element.tag) != 'Contents':
            continue
        key = next((child.text for child in element
                    if _local_name(child.tag) == 'Key'), None)
        if not key:
            continue
        match = PATCH_KEY_RE.search(key.strip())
        if not match or int(match.group(1)) != destination:
            logger.debug("Skipping index entry %r", key)
            continue
        sources.add(int(match.group(2)))
    return sources


class PatchIndexClient:
    """Queries the listing endpoint for patches leading to a version."""

    def __init__(self, index_url: str, prefix: str = "",
                 timeout: float = http.DEFAULT_TIMEOUT):
        self.index_url = index_url.rstrip('/')
        self.prefix = prefix
        self.timeout = timeout

    def list_sources(self, destination: int) -> set[int]:
        """Return every source version with a patch to destination.

        An empty set means no patch exists; it is not an error.
        """
        url = f"{self.index_url}?prefix={quote(f'{self.prefix}{destination}/')}"
        sources = parse_listing(http.fetch_bytes(url, self.timeout), destination)
        logger.info("Patches to %d exist from %s", destination, sorted(sources))
        return sources
