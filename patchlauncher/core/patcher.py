"""Patch archive application.

A patch archive holds one entry per changed file. Entries under a codec
directory (``bsdiff/...`` or ``xdelta/...``) are diffs against the installed
file with the same relative path; every other entry is a literal file that
replaces or adds the file at its key. All targets live under the package
root inside the install dir.
"""

import logging
import os
import tempfile

from patchlauncher.core import archives
from patchlauncher.core.codecs import CodecApply
from patchlauncher.core.errors import PatchBaseMissing
from patchlauncher.core.installer import contained_path
from patchlauncher.core.models import Codec, PatchEntry
from patchlauncher.core.progress import ProgressSink

logger = logging.getLogger(__name__)

CODEC_DIRS = {codec.value: codec for codec in (Codec.BSDIFF, Codec.XDELTA)}


def parse_entry_key(key: str) -> tuple[Codec, str]:
    """Split a patch entry key into its codec and package-relative path."""
    head, sep, rest = key.partition('/')
    if sep and head in CODEC_DIRS:
        return CODEC_DIRS[head], rest
    return Codec.NONE, key


def write_file_atomic(path: str, data: bytes):
    """Replace path with data; a failure leaves the previous file intact."""
    directory = os.path.dirname(path)
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix='.patch-', suffix='.tmp', dir=directory)
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        if os.path.exists(path):
            # Keep the permission bits of the file being replaced
            os.chmod(tmp_path, os.stat(path).st_mode & 0o7777)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.remove(tmp_path)
        except OSError:
            pass
        raise


class PatchApplier:
    """Applies one patch archive to the installed package."""

    def __init__(self, progress: ProgressSink, codecs: dict[Codec, CodecApply],
                 package_root: str = "app"):
        self.progress = progress
        self.codecs = codecs
        self.package_root = package_root

    def apply_patch(self, archive_path: str, destination_root: str):
        self.progress.report(None, 0.0)
        package_dir = os.path.join(destination_root, self.package_root)
        patched = 0

        for entry, consumed in archives.iter_entries(archive_path):
            if entry.is_dir:
                continue

            codec, relative_path = parse_entry_key(entry.key)
            target = contained_path(package_dir, relative_path)
            self.progress.report(f"Patching {relative_path}", consumed)
            self._apply_entry(PatchEntry(relative_path, codec, entry.read()), target)
            patched += 1

        self.progress.progress(1.0)
        logger.info("Applied %d patch entries from %s", patched, archive_path)

    def _apply_entry(self, entry: PatchEntry, target: str):
        if entry.codec is Codec.NONE:
            write_file_atomic(target, entry.payload)
            return

        if not os.path.isfile(target):
            raise PatchBaseMissing(
                f"Cannot {entry.codec.value}-patch {entry.relative_path}: "
                f"{target} does not exist"
            )

        with open(target, 'rb') as f:
            base = f.read()
        result = self.codecs[entry.codec](base, entry.payload)
        write_file_atomic(target, result)
