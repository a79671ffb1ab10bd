"""Sequential archive reading for packages and patches.

Zip archives go through zipfile; anything else is handed to tarfile in
streaming mode, which accepts plain, gzip, bz2 and xz tarballs. Entries are
yielded one at a time and must be consumed before advancing.

A damaged archive surfaces as OSError, whether it is noticed while
listing entries or while reading an entry's bytes.
"""

import logging
import os
import shutil
import tarfile
import zipfile
import zlib
from dataclasses import dataclass
from typing import Callable, IO, Iterator

logger = logging.getLogger(__name__)

# What zipfile, tarfile and their decompressors raise on truncated or corrupt data
ARCHIVE_ERRORS = (tarfile.TarError, zipfile.BadZipFile, EOFError, zlib.error)


@dataclass
class ArchiveEntry:
    """One member of an archive, keyed by its '/'-separated name."""

    key: str
    is_dir: bool
    mode: int
    _opener: Callable[[], IO[bytes]]

    def open(self) -> IO[bytes]:
        try:
            return self._opener()
        except ARCHIVE_ERRORS as e:
            raise OSError(f"Cannot open archive entry {self.key}: {e}") from e

    def read(self) -> bytes:
        with self.open() as f:
            try:
                return f.read()
            except ARCHIVE_ERRORS as e:
                raise OSError(f"Corrupt archive entry {self.key}: {e}") from e

    def copy_to(self, dst: IO[bytes]):
        """Stream the entry's bytes into dst."""
        with self.open() as src:
            try:
                shutil.copyfileobj(src, dst)
            except ARCHIVE_ERRORS as e:
                raise OSError(f"Corrupt archive entry {self.key}: {e}") from e


def _normalize_key(name: str) -> str:
    key = name.replace('\\', '/')
    while key.startswith('./'):
        key = key[2:]
    return key


def count_entries(path: str) -> int:
    """Number of entries iter_entries() will yield for path."""
    try:
        if zipfile.is_zipfile(path):
            with zipfile.ZipFile(path, 'r') as zf:
                return len(zf.infolist())
        with tarfile.open(path, 'r:*') as tf:
            return sum(1 for m in tf.getmembers() if m.isdir() or m.isfile())
    except ARCHIVE_ERRORS as e:
        raise OSError(f"Invalid archive {path}: {e}") from e


def iter_entries(path: str) -> Iterator[tuple[ArchiveEntry, float]]:
    """Yield (entry, consumed) pairs in archive order.

    consumed is the fraction of the archive file read so far, sampled when
    the entry is reached.
    """
    size = os.path.getsize(path) or 1
    if zipfile.is_zipfile(path):
        yield from _iter_zip(path, size)
    else:
        yield from _iter_tar(path, size)


def _iter_zip(path: str, size: int) -> Iterator[tuple[ArchiveEntry, float]]:
    try:
        with zipfile.ZipFile(path, 'r') as zf:
            for info in zf.infolist():
                mode = (info.external_attr >> 16) & 0o7777
                entry = ArchiveEntry(
                    key=_normalize_key(info.filename),
                    is_dir=info.is_dir(),
                    mode=mode,
                    _opener=lambda info=info: zf.open(info, 'r'),
                )
                yield entry, min(info.header_offset / size, 1.0)
    except ARCHIVE_ERRORS as e:
        raise OSError(f"Invalid zip archive {path}: {e}") from e


def _iter_tar(path: str, size: int) -> Iterator[tuple[ArchiveEntry, float]]:
    with open(path, 'rb') as raw:
        try:
            with tarfile.open(fileobj=raw, mode='r|*') as tf:
                for member in tf:
                    if not (member.isdir() or member.isfile()):
                        logger.warning("Skipping non-regular archive entry %s", member.name)
                        continue
                    entry = ArchiveEntry(
                        key=_normalize_key(member.name),
                        is_dir=member.isdir(),
                        mode=member.mode,
                        _opener=lambda member=member: tf.extractfile(member),
                    )
                    yield entry, min(raw.tell() / size, 1.0)
        except ARCHIVE_ERRORS as e:
            raise OSError(f"Invalid tar archive {path}: {e}") from e
