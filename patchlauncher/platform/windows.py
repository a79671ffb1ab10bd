"""Windows capability set: Qt progress window, install under LOCALAPPDATA."""

import os
import subprocess

from patchlauncher.branding import AppBranding
from patchlauncher.platform.base import PlatformSupport


def _local_app_data() -> str:
    return os.path.join(os.environ.get('LOCALAPPDATA', '.'), AppBranding.APP_NAME)


WINDOWS = PlatformSupport(
    name='windows',
    prefix='',
    package_filename='Win64.zip',
    launcher_filename='Launcher.exe',
    app_executable='App.exe',
    console=False,
    make_executable=False,
    # Detached so the app survives the launcher's exit
    creationflags=(getattr(subprocess, 'DETACHED_PROCESS', 0)
                   | getattr(subprocess, 'CREATE_NEW_PROCESS_GROUP', 0)),
    download_folder=_local_app_data,
)
