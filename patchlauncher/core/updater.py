"""Update session — brings the installation to the desired build.

Architecture:
  LauncherUpdater — pure Python orchestration (no Qt dependency), blocking
  UpdateWorker    — QThread wrapper used by the Qt front end
  start_worker_thread — plain thread wrapper used by the console front end

Version bookkeeping is written once per completed stage (a full package
install or one patch hop), after that stage's files are on disk.
"""

import logging
import os
import tempfile
import threading
from contextlib import contextmanager

from patchlauncher.branding import AppBranding
from patchlauncher.config.settings import LauncherSettings
from patchlauncher.core import http
from patchlauncher.core.channels import STABLE, ReleaseChannelClient
from patchlauncher.core.codecs import default_codecs
from patchlauncher.core.errors import (
    ChainUnreachable, NetworkFailure, SecurityViolation, UpdateError,
)
from patchlauncher.core.installer import PackageInstaller
from patchlauncher.core.models import (
    FullReinstall, PatchChain, UpdateSession, UpToDate,
)
from patchlauncher.core.patch_index import PatchIndexClient
from patchlauncher.core.patcher import PatchApplier
from patchlauncher.core.planner import UpdatePlanner
from patchlauncher.core.progress import ProgressSink
from patchlauncher.core.self_replace import SelfReplacer
from patchlauncher.core.version_store import VERSION_FILENAME, VersionStore
from patchlauncher.platform.base import PlatformSupport

logger = logging.getLogger(__name__)

STAGING_DIRNAME = 'update-staging'


class LauncherUpdater:
    """Runs one update session. All methods block; run them off the UI thread."""

    def __init__(self, settings: LauncherSettings, platform: PlatformSupport,
                 install_dir: str, progress: ProgressSink,
                 store: VersionStore | None = None,
                 channels: ReleaseChannelClient | None = None,
                 planner: UpdatePlanner | None = None):
        self.settings = settings
        self.platform = platform
        self.install_dir = install_dir
        self.progress = progress
        self.timeout = settings.request_timeout

        self.store = store or VersionStore(os.path.join(install_dir, VERSION_FILENAME))
        self.channels = channels or ReleaseChannelClient(
            settings.cdn_url, platform, self.timeout)
        self.planner = planner or UpdatePlanner(
            PatchIndexClient(settings.index_url, platform.prefix, self.timeout))
        self.installer = PackageInstaller(progress, settings.package_root)
        self.applier = PatchApplier(progress, default_codecs(settings.xdelta_binary),
                                    settings.package_root)

    @property
    def expected_origin(self) -> str:
        return self.settings.cdn_url

    # ── Session ──────────────────────────────────────────────────────

    def run(self) -> UpdateSession | None:
        """Update to the desired build, falling back to stable on failure.

        Returns the finished session, or None when the release channels
        could not be resolved. Failures are logged, never raised.
        """
        record = self.store.load()
        self.progress.label("Checking for updates...")

        try:
            desired = self.channels.latest_build(self.settings.release_channel)
            if self.settings.release_channel == STABLE:
                stable = desired
            else:
                stable = self.channels.latest_build(STABLE)
        except NetworkFailure as e:
            logger.warning("Cannot resolve release channels, skipping update: %s", e)
            return None

        session = UpdateSession(
            current_version=record.local_version,
            desired_version=desired,
            stable_version=stable,
            origin_server=record.origin_server,
        )
        logger.info("Installed build %d (%s), desired %d, stable %d",
                    session.current_version, session.origin_server or "unknown origin",
                    desired, stable)

        try:
            self._update(session)
        except SecurityViolation as e:
            logger.error("Aborting update, unsafe archive: %s", e)
        except (UpdateError, OSError) as e:
            logger.warning("Update to %d failed at build %d: %s",
                           desired, session.current_version, e)
            self._fall_back(session)

        return session

    def _update(self, session: UpdateSession):
        decision = self._plan(session)

        if isinstance(decision, FullReinstall):
            self.update_using_package(session, decision.target_version)
            if session.current_version >= session.desired_version:
                return
            decision = self._plan(session)

        if isinstance(decision, UpToDate):
            logger.info("Build %d is up to date", session.current_version)
            return

        if not isinstance(decision, PatchChain):
            raise ChainUnreachable(
                f"No patch path from {session.current_version} "
                f"to {session.desired_version}"
            )

        for destination in decision.versions:
            self.update_using_patch(session, session.current_version, destination)

    def _plan(self, session: UpdateSession):
        return self.planner.plan(
            session.current_version, session.desired_version,
            session.origin_server, self.expected_origin, session.stable_version,
        )

    def _fall_back(self, session: UpdateSession):
        """Reinstall stable unless already there or it just failed; otherwise abandon."""
        if session.current_version == session.stable_version \
                and session.origin_server == self.expected_origin:
            logger.info("Already on stable build %d, abandoning update",
                        session.stable_version)
            return

        if session.stable_version in session.failed_packages:
            logger.error("Reinstall of stable build %d already failed, launching build %d",
                         session.stable_version, session.current_version)
            return

        logger.info("Falling back to stable build %d", session.stable_version)
        try:
            self.update_using_package(session, session.stable_version)
        except (UpdateError, OSError) as e:
            logger.error("Fallback to stable failed, launching build %d: %s",
                         session.current_version, e)

    # ── Stages ───────────────────────────────────────────────────────

    def update_using_package(self, session: UpdateSession, version: int) -> int:
        """Download and install the full package for version."""
        self.progress.report("Downloading update...", 0.0)
        url = self.platform.package_url(self.settings.cdn_url, version)

        try:
            with self._staged_download(url, self.platform.package_filename) as path:
                self.installer.install_full(path, self.install_dir)
        except (UpdateError, OSError):
            session.failed_packages.add(version)
            raise

        self.store.update(version, self.expected_origin)
        session.current_version = version
        session.origin_server = self.expected_origin
        return version

    def update_using_patch(self, session: UpdateSession, source: int,
                           destination: int) -> int:
        """Download and apply the source -> destination patch."""
        self.progress.report(f"Downloading patch for {destination}", 0.0)
        url = self.platform.patch_url(self.settings.cdn_url, source, destination)

        with self._staged_download(url, f"{source}.patch") as path:
            self.applier.apply_patch(path, self.install_dir)

        self.store.update(destination, self.expected_origin)
        session.current_version = destination
        session.applied.append(destination)
        return destination

    @contextmanager
    def _staged_download(self, url: str, suffix: str):
        staging_dir = os.path.join(self.install_dir, STAGING_DIRNAME)
        os.makedirs(staging_dir, exist_ok=True)
        fd, path = tempfile.mkstemp(prefix='download-', suffix=f'-{suffix}',
                                    dir=staging_dir)
        os.close(fd)
        try:
            http.download_to_file(url, path, self.timeout, self.progress.progress)
            yield path
        finally:
            try:
                os.remove(path)
            except OSError:
                pass

    # ── Launcher self-update ─────────────────────────────────────────

    def check_launcher_update(self, replacer: SelfReplacer, forwarded_args: list[str]):
        """Replace and relaunch the launcher if a newer build is published.

        Network problems skip the self-update. SelfReplaceFailure propagates.
        """
        if not self.settings.check_launcher_updates:
            return

        try:
            remote_build = self.channels.launcher_build()
        except NetworkFailure as e:
            logger.warning("Launcher update check failed: %s", e)
            return

        if remote_build <= AppBranding.LAUNCHER_BUILD:
            logger.info("Launcher build %d is current", AppBranding.LAUNCHER_BUILD)
            return

        logger.info("Updating launcher %d -> %d", AppBranding.LAUNCHER_BUILD, remote_build)
        self.progress.report("Updating launcher...", 0.0)
        new_path = replacer.executable_path + '.new'
        try:
            http.download_to_file(self.platform.launcher_url(self.settings.cdn_url),
                                  new_path, self.timeout, self.progress.progress)
        except NetworkFailure as e:
            logger.warning("Launcher download failed: %s", e)
            try:
                os.remove(new_path)
            except OSError:
                pass
            return

        replacer.replace_and_relaunch(new_path, forwarded_args)


def start_worker_thread(updater: LauncherUpdater) -> threading.Thread:
    """Run the session on a daemon thread; the sink is closed when it ends."""

    def _run():
        try:
            updater.run()
        except Exception:
            logger.exception("Update session crashed")
        finally:
            updater.progress.close()

    thread = threading.Thread(target=_run, name='update-worker', daemon=True)
    thread.start()
    return thread


# ── QThread Worker ───────────────────────────────────────────────────

# Import PyQt6 only when the worker is actually used (lazy import
# to keep LauncherUpdater itself free of Qt dependency)

def _get_worker_class():
    """Lazy import to avoid PyQt6 at module level."""
    from PyQt6.QtCore import QThread, pyqtSignal

    class UpdateWorker(QThread):
        """Background worker running one update session.

        Progress travels through the ProgressSink; only completion is
        signalled, which Qt dispatches to the main thread.
        """

        session_finished = pyqtSignal(object)   # UpdateSession | None

        def __init__(self, updater: LauncherUpdater, parent=None):
            super().__init__(parent)
            self._updater = updater

        def run(self):
            """Thread entry point."""
            session = None
            try:
                session = self._updater.run()
            except Exception:
                logger.exception("Update session crashed")
            finally:
                self._updater.progress.close()
            self.session_finished.emit(session)

    return UpdateWorker


# Module-level accessor
_UpdateWorkerClass = None


def get_update_worker_class():
    """Get the UpdateWorker class (lazy-imported to avoid PyQt6 at import time)."""
    global _UpdateWorkerClass
    if _UpdateWorkerClass is None:
        _UpdateWorkerClass = _get_worker_class()
    return _UpdateWorkerClass
