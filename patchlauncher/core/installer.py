"""Full package installation with path containment."""

import logging
import os
import stat

from patchlauncher.core import archives
from patchlauncher.core.errors import SecurityViolation
from patchlauncher.core.progress import ProgressSink

logger = logging.getLogger(__name__)


def contained_path(root: str, key: str) -> str:
    """Resolve key under root, raising SecurityViolation if it escapes."""
    root_real = os.path.realpath(root)
    target = os.path.realpath(os.path.join(root_real, key))
    try:
        common = os.path.commonpath([root_real, target])
    except ValueError:
        # Different drives on Windows
        common = ''
    if os.path.normcase(common) != os.path.normcase(root_real):
        raise SecurityViolation(
            f"Archive entry {key!r} resolves outside {root_real}"
        )
    return target


class PackageInstaller:
    """Extracts a full versioned package over the destination tree."""

    def __init__(self, progress: ProgressSink, package_root: str = ""):
        self.progress = progress
        self.package_root = package_root

    def _display_name(self, key: str) -> str:
        prefix = f"{self.package_root}/" if self.package_root else ""
        if prefix and key.startswith(prefix):
            return key[len(prefix):]
        return key

    def install_full(self, archive_path: str, destination_root: str):
        """Extract every entry, aborting on the first one outside the root."""
        self.progress.report("Extracting package", 0.0)
        total = archives.count_entries(archive_path) or 1
        processed = 0

        for entry, _consumed in archives.iter_entries(archive_path):
            target = contained_path(destination_root, entry.key)

            if entry.is_dir:
                os.makedirs(target, exist_ok=True)
            else:
                self.progress.label(f"Extracting {self._display_name(entry.key)}")
                os.makedirs(os.path.dirname(target), exist_ok=True)
                with open(target, 'wb') as dst:
                    entry.copy_to(dst)
                if entry.mode & stat.S_IXUSR and os.name == 'posix':
                    os.chmod(target, entry.mode & 0o777)

            processed += 1
            self.progress.progress(processed / total)

        logger.info("Installed %d entries from %s into %s",
                    processed, archive_path, destination_root)
