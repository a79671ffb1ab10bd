import io
import os
import tarfile
import zipfile

import pytest

from patchlauncher.core.errors import NetworkFailure


class FakeIndex:
    """PatchIndexClient stand-in backed by a {destination: sources} dict."""

    def __init__(self, listing):
        self.listing = listing
        self.calls = []

    def list_sources(self, destination):
        self.calls.append(destination)
        return set(self.listing.get(destination, ()))


class FakeChannels:
    def __init__(self, builds, launcher=0, fail=False):
        self.builds = builds
        self.launcher = launcher
        self.fail = fail

    def latest_build(self, channel):
        if self.fail:
            raise NetworkFailure("channel lookup failed")
        return self.builds[channel]

    def launcher_build(self):
        if self.fail:
            raise NetworkFailure("launcher lookup failed")
        return self.launcher


class FakeRemote:
    """Replacement for http.download_to_file serving local files by URL."""

    def __init__(self):
        self.files = {}
        self.requested = []

    def __call__(self, url, path, timeout=None, progress_callback=None):
        self.requested.append(url)
        if url not in self.files:
            raise NetworkFailure(f"404 for {url}")
        with open(self.files[url], 'rb') as src, open(path, 'wb') as dst:
            data = src.read()
            dst.write(data)
        if progress_callback:
            progress_callback(1.0)
        return len(data)


@pytest.fixture
def make_zip(tmp_path):
    """Build a zip archive from an ordered {key: bytes | None} dict (None = dir)."""
    counter = [0]

    def _make(entries, name=None):
        counter[0] += 1
        path = tmp_path / (name or f"archive{counter[0]}.zip")
        with zipfile.ZipFile(path, 'w') as zf:
            for key, data in entries.items():
                if data is None:
                    zf.writestr(zipfile.ZipInfo(key.rstrip('/') + '/'), b'')
                else:
                    zf.writestr(key, data)
        return str(path)

    return _make


@pytest.fixture
def make_tar(tmp_path):
    """Build a .tar.gz from {key: (bytes, mode)} entries."""

    def _make(entries, name='archive.tar.gz'):
        path = tmp_path / name
        with tarfile.open(path, 'w:gz') as tf:
            for key, (data, mode) in entries.items():
                info = tarfile.TarInfo(key)
                info.size = len(data)
                info.mode = mode
                tf.addfile(info, io.BytesIO(data))
        return str(path)

    return _make


@pytest.fixture
def fake_index():
    return FakeIndex


@pytest.fixture
def fake_channels():
    return FakeChannels


@pytest.fixture
def fake_remote():
    return FakeRemote()


def read_file(*parts):
    with open(os.path.join(*parts), 'rb') as f:
        return f.read()


@pytest.fixture
def read():
    return read_file
