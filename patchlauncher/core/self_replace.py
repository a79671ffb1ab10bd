"""Self-replacement of the running launcher executable.

A running executable can be renamed but not always overwritten, so the swap
is two moves: current -> current.old, then new -> current. At every step at
least one of the two paths holds a launchable executable.
"""

import logging
import os
import shutil
import sys

from patchlauncher.core.errors import SelfReplaceFailure
from patchlauncher.platform.base import PlatformSupport, ensure_executable, start_process

logger = logging.getLogger(__name__)

OLD_SUFFIX = '.old'


class SelfReplacer:
    """Swaps the launcher executable for a downloaded one and relaunches."""

    def __init__(self, executable_path: str, working_dir: str,
                 platform: PlatformSupport):
        self.executable_path = os.path.abspath(executable_path)
        self.working_dir = working_dir
        self.platform = platform

    @property
    def old_path(self) -> str:
        return self.executable_path + OLD_SUFFIX

    def replace(self, new_executable_path: str):
        """Move the new executable into place, keeping the old one aside."""
        # A leftover .old from an earlier cycle would block the rename on Windows
        self.cleanup_stale_self()
        if os.path.exists(self.old_path):
            raise SelfReplaceFailure(f"Cannot clear stale {self.old_path}")

        try:
            os.rename(self.executable_path, self.old_path)
        except OSError as e:
            raise SelfReplaceFailure(
                f"Cannot move {self.executable_path} aside: {e}"
            ) from e

        try:
            shutil.move(new_executable_path, self.executable_path)
        except OSError as e:
            # Put the original back so the next start still works
            try:
                if os.path.exists(self.executable_path):
                    os.remove(self.executable_path)
                os.rename(self.old_path, self.executable_path)
            except OSError as restore_error:
                logger.error("Restoring %s failed, previous launcher left at %s: %s",
                             self.executable_path, self.old_path, restore_error)
            raise SelfReplaceFailure(
                f"Cannot install new launcher at {self.executable_path}: {e}"
            ) from e

        if self.platform.make_executable:
            try:
                ensure_executable(self.executable_path)
            except OSError as e:
                logger.warning("Cannot mark %s executable: %s", self.executable_path, e)

        logger.info("Launcher replaced, previous build kept at %s", self.old_path)

    def replace_and_relaunch(self, new_executable_path: str, args_to_forward: list[str]):
        """Swap executables, start the new one and exit with status 0."""
        self.replace(new_executable_path)
        try:
            start_process([self.executable_path, *args_to_forward],
                          self.working_dir, self.platform)
        except OSError as e:
            raise SelfReplaceFailure(f"Cannot relaunch {self.executable_path}: {e}") from e
        sys.exit(0)

    def cleanup_stale_self(self):
        """Delete the .old sibling left by a previous update, if possible."""
        try:
            if os.path.exists(self.old_path):
                os.remove(self.old_path)
                logger.info("Removed stale launcher %s", self.old_path)
        except OSError:
            pass
