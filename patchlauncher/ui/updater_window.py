"""Update progress window — status label and progress bar.

The update worker never touches these widgets. A QTimer on the GUI thread
drains the ProgressSink and applies the pending updates.
"""

from PyQt6.QtCore import Qt, QTimer
from PyQt6.QtWidgets import QWidget, QVBoxLayout, QLabel, QProgressBar

from patchlauncher.branding import AppBranding
from patchlauncher.core.progress import ProgressSink

# Progress bar resolution (0.1 %)
PROGRESS_STEPS = 1000

POLL_INTERVAL_MS = 50


class UpdaterWindow(QWidget):
    """Small frameless window shown while the launcher updates."""

    def __init__(self, sink: ProgressSink, parent=None):
        super().__init__(parent)
        self._sink = sink
        self.setWindowTitle(AppBranding.window_title())
        self.setFixedSize(420, 90)
        self.setStyleSheet(
            "UpdaterWindow { background-color: #1e1e1e; } "
            "QLabel { color: #cccccc; font-size: 12px; }"
        )

        layout = QVBoxLayout(self)
        layout.setContentsMargins(14, 12, 14, 12)
        layout.setSpacing(8)

        self._label = QLabel("Starting...")
        self._label.setAlignment(Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignVCenter)
        layout.addWidget(self._label)

        self._progress = QProgressBar()
        self._progress.setRange(0, PROGRESS_STEPS)
        self._progress.setValue(0)
        self._progress.setTextVisible(False)
        self._progress.setFixedHeight(14)
        self._progress.setStyleSheet(
            "QProgressBar { background-color: #27272A; border: 1px solid #444; "
            "border-radius: 4px; } "
            "QProgressBar::chunk { background-color: #264f78; border-radius: 3px; }"
        )
        layout.addWidget(self._progress)

        self._timer = QTimer(self)
        self._timer.timeout.connect(self._poll)
        self._timer.start(POLL_INTERVAL_MS)

    def set_status(self, text: str):
        self._label.setText(text)

    def set_progress(self, fraction: float):
        self._progress.setValue(int(fraction * PROGRESS_STEPS))

    def _poll(self):
        items, finished = self._sink.drain()
        for label, fraction in items:
            if label is not None:
                self.set_status(label)
            if fraction is not None:
                self.set_progress(fraction)
        if finished:
            self._timer.stop()
