import os

import bsdiff4
import pytest

from patchlauncher.core.codecs import apply_bsdiff, default_codecs, make_xdelta_apply
from patchlauncher.core.errors import PatchBaseMissing, PatchCodecError, SecurityViolation
from patchlauncher.core.models import Codec
from patchlauncher.core.patcher import PatchApplier, parse_entry_key
from patchlauncher.core.progress import ProgressSink


def make_applier(sink=None, codecs=None):
    return PatchApplier(sink or ProgressSink(), codecs or default_codecs(), "app")


def test_parse_entry_key():
    assert parse_entry_key("bsdiff/bin/App") == (Codec.BSDIFF, "bin/App")
    assert parse_entry_key("xdelta/data.pak") == (Codec.XDELTA, "data.pak")
    assert parse_entry_key("data/new.txt") == (Codec.NONE, "data/new.txt")
    assert parse_entry_key("readme.txt") == (Codec.NONE, "readme.txt")


def test_applies_bsdiff_and_literal_entries(tmp_path, make_zip, read):
    old = b"version ten of the data file " * 20
    new = b"version twelve of the data file " * 20
    install = tmp_path / "install"
    (install / "app" / "bin").mkdir(parents=True)
    (install / "app" / "bin" / "data.bin").write_bytes(old)

    archive = make_zip({
        "bsdiff/": None,
        "bsdiff/bin/data.bin": bsdiff4.diff(old, new),
        "extras/new.txt": b"fresh",
    })
    sink = ProgressSink()

    make_applier(sink).apply_patch(archive, str(install))

    assert read(install, "app", "bin", "data.bin") == new
    assert read(install, "app", "extras", "new.txt") == b"fresh"
    items, _ = sink.drain()
    labels = [label for label, _ in items if label]
    assert labels == ["Patching bin/data.bin", "Patching extras/new.txt"]
    assert items[-1] == (None, 1.0)


def test_custom_codec_receives_base_and_diff(tmp_path, make_zip, read):
    install = tmp_path / "install"
    (install / "app").mkdir(parents=True)
    (install / "app" / "a.txt").write_bytes(b"base")
    seen = []

    def fake_xdelta(base, diff):
        seen.append((base, diff))
        return base + diff

    archive = make_zip({"xdelta/a.txt": b"+diff"})
    make_applier(codecs={Codec.XDELTA: fake_xdelta}).apply_patch(archive, str(install))

    assert seen == [(b"base", b"+diff")]
    assert read(install, "app", "a.txt") == b"base+diff"


def test_missing_base_file_raises(tmp_path, make_zip):
    install = tmp_path / "install"
    install.mkdir()
    archive = make_zip({"bsdiff/missing.bin": b"BSDIFF40"})

    with pytest.raises(PatchBaseMissing):
        make_applier().apply_patch(archive, str(install))
    assert not (install / "app" / "missing.bin").exists()


def test_codec_failure_leaves_file_untouched(tmp_path, make_zip, read):
    install = tmp_path / "install"
    (install / "app").mkdir(parents=True)
    (install / "app" / "a.bin").write_bytes(b"original")
    archive = make_zip({"bsdiff/a.bin": b"not a bsdiff patch"})

    with pytest.raises(PatchCodecError):
        make_applier().apply_patch(archive, str(install))

    assert read(install, "app", "a.bin") == b"original"
    assert sorted(p.name for p in (install / "app").iterdir()) == ["a.bin"]


def test_entry_escaping_package_root_is_rejected(tmp_path, make_zip):
    install = tmp_path / "install"
    install.mkdir()
    archive = make_zip({"../../outside.txt": b"evil"})

    with pytest.raises(SecurityViolation):
        make_applier().apply_patch(archive, str(install))


def test_apply_bsdiff_round_trip():
    old, new = b"a" * 100, b"a" * 50 + b"b" * 60
    assert apply_bsdiff(old, bsdiff4.diff(old, new)) == new


def test_applies_tarball_patch(tmp_path, make_tar, read):
    old = b"tar based build " * 40
    new = b"tar based build, now newer " * 40
    install = tmp_path / "install"
    (install / "app").mkdir(parents=True)
    (install / "app" / "core.bin").write_bytes(old)
    archive = make_tar({
        "./bsdiff/core.bin": (bsdiff4.diff(old, new), 0o644),
        "./notes.txt": (b"release notes", 0o644),
    }, name="10.patch")

    make_applier().apply_patch(archive, str(install))

    assert read(install, "app", "core.bin") == new
    assert read(install, "app", "notes.txt") == b"release notes"


def test_truncated_tarball_patch_raises_oserror(tmp_path, make_tar, read):
    install = tmp_path / "install"
    (install / "app").mkdir(parents=True)
    archive = make_tar({"big.bin": (os.urandom(8192), 0o644)}, name="10.patch")
    with open(archive, 'rb') as f:
        data = f.read()
    with open(archive, 'wb') as f:
        f.write(data[:len(data) // 2])

    with pytest.raises(OSError):
        make_applier().apply_patch(archive, str(install))
    assert not (install / "app" / "big.bin").exists()


@pytest.fixture
def stub_xdelta(tmp_path):
    """Shell script standing in for xdelta3: prints base, then the diff."""

    def _make(body):
        path = tmp_path / "xdelta3-stub"
        path.write_text("#!/bin/sh\n" + body)
        path.chmod(0o755)
        return str(path)

    return _make


@pytest.mark.skipif(os.name != 'posix', reason="needs a POSIX shell")
def test_xdelta_runs_decoder_with_base_file_and_diff_on_stdin(tmp_path, make_zip, read,
                                                              stub_xdelta):
    # args: -d -c -f -s <base>
    binary = stub_xdelta('[ "$1" = "-d" ] || exit 9\ncat "$5"\ncat\n')
    install = tmp_path / "install"
    (install / "app").mkdir(parents=True)
    (install / "app" / "level.pak").write_bytes(b"base-")
    archive = make_zip({"xdelta/level.pak": b"delta"})

    make_applier(codecs=default_codecs(binary)).apply_patch(archive, str(install))

    assert read(install, "app", "level.pak") == b"base-delta"


@pytest.mark.skipif(os.name != 'posix', reason="needs a POSIX shell")
def test_xdelta_nonzero_exit_is_codec_error(stub_xdelta):
    apply_xdelta = make_xdelta_apply(stub_xdelta('echo "checksum mismatch" >&2\nexit 2\n'))

    with pytest.raises(PatchCodecError, match="checksum mismatch"):
        apply_xdelta(b"base", b"diff")


def test_missing_xdelta_binary_is_codec_error(tmp_path):
    apply_xdelta = make_xdelta_apply(str(tmp_path / "no-such-xdelta3"))

    with pytest.raises(PatchCodecError):
        apply_xdelta(b"base", b"diff")
