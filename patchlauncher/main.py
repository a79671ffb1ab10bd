"""PatchLauncher — entry point."""

import sys
import os
import logging

from patchlauncher.config.settings import LauncherSettings, SETTINGS_FILENAME
from patchlauncher.core.errors import SelfReplaceFailure
from patchlauncher.core.progress import ProgressSink
from patchlauncher.core.self_replace import SelfReplacer
from patchlauncher.core.updater import LauncherUpdater, start_worker_thread
from patchlauncher.platform.base import (
    PlatformSupport, detect, executable_dir, launch_app, own_executable,
)
from patchlauncher.ui.console import ConsoleLogHandler, ConsoleRenderer

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'


def setup_logging(install_dir: str, renderer: ConsoleRenderer | None = None):
    """Configure logging to file and console."""
    log_dir = os.path.join(install_dir, 'logs')
    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(log_dir, 'launcher.log')

    if renderer is not None:
        # Only problems reach the terminal; progress has its own lines there
        console = ConsoleLogHandler(renderer, logging.WARNING)
    else:
        console = logging.StreamHandler()

    logging.basicConfig(
        level=logging.INFO,
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(log_file, encoding='utf-8'),
            console,
        ],
    )


def run_console(updater: LauncherUpdater, renderer: ConsoleRenderer):
    """Run the session on a worker thread and render progress here."""
    worker = start_worker_thread(updater)
    renderer.run(updater.progress)
    worker.join()


def run_gui(updater: LauncherUpdater):
    """Run the session on a QThread behind the progress window."""
    from PyQt6.QtWidgets import QApplication
    from patchlauncher.core.updater import get_update_worker_class
    from patchlauncher.ui.updater_window import UpdaterWindow

    app = QApplication.instance() or QApplication(sys.argv)
    window = UpdaterWindow(updater.progress)
    window.show()

    worker = get_update_worker_class()(updater)
    worker.session_finished.connect(lambda _session: app.quit())
    worker.start()
    app.exec()
    worker.wait()
    window.close()


def main(argv: list[str] | None = None, platform: PlatformSupport | None = None):
    forwarded_args = sys.argv[1:] if argv is None else list(argv)
    platform = platform or detect()

    default_dir = platform.download_folder()
    settings = LauncherSettings.load(os.path.join(default_dir, SETTINGS_FILENAME))
    install_dir = settings.resolve_install_dir(default_dir)
    settings.ensure_dirs(install_dir)

    renderer = ConsoleRenderer() if platform.console else None
    setup_logging(install_dir, renderer)
    logger = logging.getLogger(__name__)
    logger.info("Launcher starting on %s, installing into %s", platform.name, install_dir)

    replacer = SelfReplacer(own_executable(), executable_dir(), platform)
    replacer.cleanup_stale_self()

    sink = ProgressSink()
    updater = LauncherUpdater(settings, platform, install_dir, sink)

    try:
        updater.check_launcher_update(replacer, forwarded_args)
    except SelfReplaceFailure as e:
        logger.critical("Launcher self-update failed: %s", e)
        sys.exit(1)

    if renderer is not None:
        run_console(updater, renderer)
    else:
        run_gui(updater)

    launch_app(platform, install_dir, settings.package_root, forwarded_args)


if __name__ == '__main__':
    main()
