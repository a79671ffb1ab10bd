"""Progress channel between the update worker and the presentation layer.

The worker only ever calls report(); the presentation thread drains the
queue and renders. No UI object is touched from the worker.
"""

import queue

# Posted by close(); never rendered
_CLOSED = object()


class ProgressSink:
    """Thread-safe queue of (label, fraction) updates.

    Either element may be None: a label-only update changes the text, a
    fraction-only update moves the bar.
    """

    def __init__(self):
        self._queue: queue.Queue = queue.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def report(self, label: str | None = None, fraction: float | None = None):
        if self._closed:
            return
        if fraction is not None:
            fraction = min(max(float(fraction), 0.0), 1.0)
        self._queue.put((label, fraction))

    def label(self, text: str):
        self.report(label=text)

    def progress(self, fraction: float):
        self.report(fraction=fraction)

    def close(self):
        """End the session; consumers stop once they see the close marker."""
        if not self._closed:
            self._closed = True
            self._queue.put(_CLOSED)

    def get(self, timeout: float | None = None):
        """Block for the next update. Returns None once the sink is closed.

        Raises queue.Empty if timeout expires first.
        """
        item = self._queue.get(timeout=timeout)
        if item is _CLOSED:
            return None
        return item

    def drain(self) -> tuple[list[tuple[str | None, float | None]], bool]:
        """Return every pending update and whether the close marker was seen."""
        items = []
        finished = False
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                break
            if item is _CLOSED:
                finished = True
                break
            items.append(item)
        return items, finished
