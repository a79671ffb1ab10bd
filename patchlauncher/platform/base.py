"""Platform capability sets.

Each supported OS is one PlatformSupport instance; the session receives the
instance for the running platform instead of subclassing per OS.
"""

import logging
import os
import stat
import subprocess
import sys
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlatformSupport:
    """Everything the launcher needs to know about one OS."""

    name: str
    prefix: str                 # CDN path prefix, e.g. 'nix/'
    package_filename: str       # full package artifact name
    launcher_filename: str      # self-update artifact name
    app_executable: str         # relative to the package root
    console: bool               # console renderer instead of the Qt window
    make_executable: bool       # chmod the app before launching
    creationflags: int
    download_folder: Callable[[], str]

    def package_url(self, cdn_url: str, version: int) -> str:
        return f"{cdn_url}/{self.prefix}{version}/{self.package_filename}"

    def patch_url(self, cdn_url: str, source: int, destination: int) -> str:
        return f"{cdn_url}/{self.prefix}{destination}/{source}.patch"

    def channel_url(self, cdn_url: str, channel: str) -> str:
        return f"{cdn_url}/{self.prefix}{channel}"

    def launcher_version_url(self, cdn_url: str) -> str:
        return f"{cdn_url}/{self.prefix}launcher/version"

    def launcher_url(self, cdn_url: str) -> str:
        return f"{cdn_url}/{self.prefix}launcher/{self.launcher_filename}"


def executable_dir() -> str:
    """Directory holding the running launcher (frozen or not)."""
    if getattr(sys, 'frozen', False):
        return os.path.dirname(os.path.abspath(sys.executable))
    return os.path.dirname(os.path.abspath(sys.argv[0] or '.'))


def own_executable() -> str:
    """Path of the running launcher executable."""
    if getattr(sys, 'frozen', False):
        return os.path.abspath(sys.executable)
    return os.path.abspath(sys.argv[0])


def detect() -> PlatformSupport:
    """Return the capability set for the running OS."""
    if sys.platform.startswith('win'):
        from patchlauncher.platform.windows import WINDOWS
        return WINDOWS
    if sys.platform == 'darwin':
        from patchlauncher.platform.macos import MACOS
        return MACOS
    from patchlauncher.platform.linux import LINUX
    return LINUX


def ensure_executable(path: str):
    """Grant u+rwx, g+rx, o+rx on POSIX."""
    mode = os.stat(path).st_mode
    os.chmod(path, mode | stat.S_IRWXU | stat.S_IRGRP | stat.S_IXGRP
             | stat.S_IROTH | stat.S_IXOTH)


def start_process(argv: list[str], cwd: str, platform: PlatformSupport):
    """Start argv detached from the launcher so it survives our exit."""
    logger.info("Starting %s in %s", argv, cwd)
    kwargs = {}
    if platform.creationflags:
        kwargs['creationflags'] = platform.creationflags
    else:
        kwargs['start_new_session'] = True
    return subprocess.Popen(argv, cwd=cwd, **kwargs)


def launch_app(platform: PlatformSupport, install_dir: str, package_root: str,
               forwarded_args: list[str]):
    """Start the installed application, then exit the launcher with status 0."""
    app_dir = os.path.join(install_dir, package_root)
    exe_path = os.path.join(app_dir, platform.app_executable)

    if platform.make_executable and os.path.isfile(exe_path):
        try:
            ensure_executable(exe_path)
        except OSError as e:
            logger.warning("Cannot mark %s executable: %s", exe_path, e)

    try:
        start_process([exe_path, '--launcher', own_executable(), *forwarded_args],
                      app_dir, platform)
    except OSError as e:
        logger.error("Failed to launch %s: %s", exe_path, e)
    sys.exit(0)
