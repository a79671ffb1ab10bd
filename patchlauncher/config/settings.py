"""Launcher settings — persistence via JSON."""

import json
import logging
import os
from dataclasses import dataclass, asdict

from patchlauncher.branding import AppBranding

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = 'launcher.json'


@dataclass
class LauncherSettings:
    """Persistent launcher settings."""
    # Remote
    cdn_url: str = ""
    index_url: str = ""                 # '' = same as cdn_url
    release_channel: str = "stable"     # channel followed for the desired version
    request_timeout: int = 300          # seconds, per request

    # Local installation
    install_dir: str = ""               # '' = platform download folder
    package_root: str = "app"           # codec-neutral root inside install_dir

    # Patching
    xdelta_binary: str = "xdelta3"

    # Self-update
    check_launcher_updates: bool = True

    def __post_init__(self):
        if not self.cdn_url:
            self.cdn_url = AppBranding.CDN_URL
        self.cdn_url = self.cdn_url.rstrip('/')
        if not self.index_url:
            self.index_url = self.cdn_url

    @staticmethod
    def load(path: str) -> 'LauncherSettings':
        """Load settings from JSON. Returns defaults if file doesn't exist."""
        if not os.path.isfile(path):
            logger.info("No settings file, using defaults")
            return LauncherSettings()

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            settings = LauncherSettings(**{k: v for k, v in data.items()
                                           if k in LauncherSettings.__dataclass_fields__})
            logger.info("Loaded settings from %s", path)
            return settings
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning("Failed to load settings: %s", e)
            return LauncherSettings()

    def save(self, path: str):
        """Save settings to JSON."""
        os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
        try:
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(asdict(self), f, indent=2)
            logger.info("Saved settings to %s", path)
        except OSError as e:
            logger.warning("Failed to save settings: %s", e)

    def resolve_install_dir(self, default_dir: str) -> str:
        """Return the configured install dir, falling back to the platform's."""
        return os.path.abspath(self.install_dir or default_dir)

    def ensure_dirs(self, install_dir: str):
        """Create installation directories if they don't exist."""
        os.makedirs(install_dir, exist_ok=True)
        os.makedirs(os.path.join(install_dir, 'logs'), exist_ok=True)
