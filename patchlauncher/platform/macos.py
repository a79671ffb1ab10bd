"""macOS capability set."""

import os

from patchlauncher.branding import AppBranding
from patchlauncher.platform.base import PlatformSupport


def _application_support() -> str:
    return os.path.join(os.path.expanduser('~'), 'Library', 'Application Support',
                        AppBranding.APP_NAME)


MACOS = PlatformSupport(
    name='macos',
    prefix='mac/',
    package_filename='MacOS.tar.gz',
    launcher_filename='Launcher-MacOS',
    app_executable=os.path.join('App.app', 'Contents', 'MacOS', 'App'),
    console=True,
    make_executable=True,
    creationflags=0,
    download_folder=_application_support,
)
