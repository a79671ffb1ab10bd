import io
import logging
import queue
import threading

import pytest

from patchlauncher.core.progress import ProgressSink
from patchlauncher.ui.console import ConsoleLogHandler, ConsoleRenderer


def test_sink_drain_and_close():
    sink = ProgressSink()
    sink.label("Downloading update...")
    sink.progress(1.5)
    sink.close()
    sink.report("ignored", 0.1)

    items, finished = sink.drain()

    assert items == [("Downloading update...", None), (None, 1.0)]
    assert finished
    assert sink.closed


def test_sink_get_times_out_when_idle():
    with pytest.raises(queue.Empty):
        ProgressSink().get(timeout=0.01)


def test_reports_from_worker_thread_arrive_in_order():
    sink = ProgressSink()

    def work():
        for i in range(100):
            sink.report(None, i / 100)
        sink.close()

    thread = threading.Thread(target=work)
    thread.start()
    received = []
    while True:
        item = sink.get(timeout=5)
        if item is None:
            break
        received.append(item[1])
    thread.join()

    assert received == [i / 100 for i in range(100)]


def test_console_coalesces_per_file_labels():
    out = io.StringIO()
    renderer = ConsoleRenderer(out)

    renderer.set_label("Extracting a.txt")
    renderer.set_label("Extracting b.txt")
    renderer.set_label("Patching c.txt")

    text = out.getvalue()
    assert text.count("\x1b[F\x1b[2K") == 2
    assert text.endswith("Patching c.txt\n")


def test_console_bar_resets_on_new_label():
    out = io.StringIO()
    renderer = ConsoleRenderer(out)

    renderer.set_label("Downloading update...")
    renderer.set_progress(0.5)
    renderer.set_label("Downloading patch for 13")
    renderer.finish()

    text = out.getvalue()
    assert "50.0%" in text
    assert text.endswith("\rDownloading patch for 13\n")


def test_console_run_consumes_until_closed():
    out = io.StringIO()
    sink = ProgressSink()
    sink.report("Checking for updates...", 0.25)
    sink.close()

    ConsoleRenderer(out).run(sink, poll_interval=0.01)

    assert "25.0%" in out.getvalue()


def test_log_handler_writes_through_renderer():
    out = io.StringIO()
    renderer = ConsoleRenderer(out)
    handler = ConsoleLogHandler(renderer)
    handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
    log = logging.getLogger("patchlauncher.test.console")
    log.addHandler(handler)
    log.propagate = False
    try:
        renderer.set_label("Downloading update...")
        log.warning("slow mirror")
    finally:
        log.removeHandler(handler)

    assert "Downloading update...\nWARNING slow mirror\nDownloading update..." in out.getvalue()
