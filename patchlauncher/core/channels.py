"""Release channel lookup — latest build number per channel."""

import logging

from patchlauncher.core import http
from patchlauncher.core.errors import NetworkFailure
from patchlauncher.platform.base import PlatformSupport

logger = logging.getLogger(__name__)

STABLE = "stable"


class ReleaseChannelClient:
    """Reads ``<cdn>/<prefix><channel>``, a plain-text build number."""

    def __init__(self, cdn_url: str, platform: PlatformSupport,
                 timeout: float = http.DEFAULT_TIMEOUT):
        self.cdn_url = cdn_url
        self.platform = platform
        self.timeout = timeout

    def latest_build(self, channel: str) -> int:
        url = self.platform.channel_url(self.cdn_url, channel)
        text = http.fetch_text(url, self.timeout)
        try:
            build = int(text)
        except ValueError as e:
            raise NetworkFailure(f"Channel {channel!r} returned {text[:40]!r}") from e
        logger.info("Latest %s build: %d", channel, build)
        return build

    def launcher_build(self) -> int:
        """Build number of the newest published launcher executable."""
        url = self.platform.launcher_version_url(self.cdn_url)
        text = http.fetch_text(url, self.timeout)
        try:
            return int(text)
        except ValueError as e:
            raise NetworkFailure(f"Launcher version returned {text[:40]!r}") from e
