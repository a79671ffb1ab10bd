"""Durable record of the installed version and its origin server."""

import json
import logging
import os
import tempfile
from dataclasses import asdict

from patchlauncher.core.models import VersionRecord

logger = logging.getLogger(__name__)

VERSION_FILENAME = 'version.json'


class VersionStore:
    """Loads and atomically saves the VersionRecord.

    The record on disk is only ever replaced with os.replace() of a fully
    written and fsynced sibling, so readers see the old or the new record.
    """

    def __init__(self, path: str):
        self.path = path

    def load(self) -> VersionRecord:
        """Return the persisted record, or the unknown record. Never raises."""
        if not os.path.isfile(self.path):
            logger.info("No version record at %s", self.path)
            return VersionRecord()

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return VersionRecord(
                local_version=int(data.get('local_version', 0)),
                origin_server=str(data.get('origin_server', '')),
            )
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning("Unreadable version record %s: %s", self.path, e)
            return VersionRecord()

    def save(self, record: VersionRecord):
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(prefix='.version-', suffix='.tmp',
                                        dir=directory)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(asdict(record), f)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.remove(tmp_path)
            except OSError:
                pass
            raise

        logger.info("Recorded version %d from %s",
                    record.local_version, record.origin_server)

    def update(self, version: int, origin_server: str):
        self.save(VersionRecord(local_version=version, origin_server=origin_server))
