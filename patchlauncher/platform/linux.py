"""Linux capability set: console progress, launcher folder is the install dir."""

from patchlauncher.platform.base import PlatformSupport, executable_dir

LINUX = PlatformSupport(
    name='linux',
    prefix='nix/',
    package_filename='Linux.tar.gz',
    launcher_filename='Launcher-Linux',
    app_executable='App',
    console=True,
    make_executable=True,
    creationflags=0,
    download_folder=executable_dir,
)
