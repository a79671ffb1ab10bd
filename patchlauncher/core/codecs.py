"""Binary-diff codecs: apply(base, diff) -> new file bytes."""

import logging
import os
import subprocess
import tempfile
from typing import Callable

import bsdiff4

from patchlauncher.core.errors import PatchCodecError
from patchlauncher.core.models import Codec

logger = logging.getLogger(__name__)

CodecApply = Callable[[bytes, bytes], bytes]


def apply_bsdiff(base: bytes, diff: bytes) -> bytes:
    try:
        return bsdiff4.patch(base, diff)
    except (ValueError, MemoryError) as e:
        raise PatchCodecError(f"bsdiff patch failed: {e}") from e


def make_xdelta_apply(binary: str = 'xdelta3') -> CodecApply:
    """Build an xdelta applier that shells out to the xdelta3 decoder."""

    def apply_xdelta(base: bytes, diff: bytes) -> bytes:
        # xdelta3 wants the source as a seekable file; the diff goes on stdin
        fd, base_path = tempfile.mkstemp(prefix='xdelta-base-')
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(base)
            result = subprocess.run(
                [binary, '-d', '-c', '-f', '-s', base_path],
                input=diff, capture_output=True, check=False,
            )
        except OSError as e:
            raise PatchCodecError(f"Cannot run {binary}: {e}") from e
        finally:
            try:
                os.remove(base_path)
            except OSError:
                pass

        if result.returncode != 0:
            stderr = result.stderr.decode('utf-8', 'replace').strip()
            raise PatchCodecError(f"xdelta3 exited with {result.returncode}: {stderr}")
        return result.stdout

    return apply_xdelta


def default_codecs(xdelta_binary: str = 'xdelta3') -> dict[Codec, CodecApply]:
    return {
        Codec.BSDIFF: apply_bsdiff,
        Codec.XDELTA: make_xdelta_apply(xdelta_binary),
    }
