"""Console progress renderer for terminal platforms.

Per-file labels ("Extracting x", "Patching y") overwrite a single line
instead of scrolling. Every write that moves the cursor happens under one
lock, shared with ConsoleLogHandler, so log lines never land in the middle
of a rewrite.
"""

import logging
import queue
import shutil
import sys
import threading

from patchlauncher.core.progress import ProgressSink

COALESCED_PREFIXES = ('Extracting', 'Patching')

# Cursor to start of previous line, then clear that line
_REWRITE_PREVIOUS = '\x1b[F\x1b[2K'

BAR_WIDTH = 30


class ConsoleRenderer:
    """Renders ProgressSink updates as label lines plus an in-place bar."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout
        self.lock = threading.Lock()
        self._bar_label: str | None = None     # label owning the active bar
        self._bar_open = False                 # cursor sits on the bar line
        self._coalescing = False               # last line is a per-file label

    def _width(self) -> int:
        return max(shutil.get_terminal_size((80, 24)).columns - 1, 10)

    def _fit(self, text: str) -> str:
        return text[:self._width()]

    def _close_bar(self):
        if self._bar_open:
            self.stream.write('\n')
            self._bar_open = False
        self._bar_label = None

    # ── Rendering ────────────────────────────────────────────────────

    def set_label(self, label: str):
        with self.lock:
            self._close_bar()
            if label.startswith(COALESCED_PREFIXES):
                if self._coalescing:
                    self.stream.write(_REWRITE_PREVIOUS)
                self.stream.write(self._fit(label) + '\n')
                self._coalescing = True
            else:
                # New label: progress restarts from indeterminate
                self._coalescing = False
                self._bar_label = label
                self.stream.write('\r' + self._fit(label))
                self._bar_open = True
            self.stream.flush()

    def set_progress(self, fraction: float):
        with self.lock:
            if self._bar_label is None:
                return
            filled = int(round(fraction * BAR_WIDTH))
            bar = '#' * filled + '-' * (BAR_WIDTH - filled)
            line = f"{self._bar_label} [{bar}] {fraction * 100:5.1f}%"
            self.stream.write('\r' + self._fit(line))
            self._bar_open = True
            self.stream.flush()

    def write_line(self, text: str):
        """Print an ordinary line (e.g. a log record) without breaking the bar."""
        with self.lock:
            if self._bar_open:
                self.stream.write('\n')
                self._bar_open = False
            self._coalescing = False
            self.stream.write(text + '\n')
            if self._bar_label is not None:
                self.stream.write(self._fit(self._bar_label))
                self._bar_open = True
            self.stream.flush()

    def finish(self):
        with self.lock:
            self._close_bar()
            self.stream.flush()

    # ── Loop ─────────────────────────────────────────────────────────

    def handle(self, label: str | None, fraction: float | None):
        if label is not None:
            self.set_label(label)
        if fraction is not None:
            self.set_progress(fraction)

    def run(self, sink: ProgressSink, poll_interval: float = 0.1):
        """Render updates until the sink is closed."""
        while True:
            try:
                item = sink.get(timeout=poll_interval)
            except queue.Empty:
                continue
            if item is None:
                break
            self.handle(*item)
        self.finish()


class ConsoleLogHandler(logging.Handler):
    """Logging handler that prints through the renderer's lock."""

    def __init__(self, renderer: ConsoleRenderer, level=logging.NOTSET):
        super().__init__(level)
        self.renderer = renderer

    def emit(self, record: logging.LogRecord):
        try:
            self.renderer.write_line(self.format(record))
        except Exception:
            self.handleError(record)
