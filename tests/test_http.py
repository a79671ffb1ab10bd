import io
import socket
from http.client import IncompleteRead
from unittest import mock
from urllib.error import HTTPError

import pytest

from patchlauncher.core import http
from patchlauncher.core.errors import NetworkFailure


class FakeResponse(io.BytesIO):
    def __init__(self, body, headers=None):
        super().__init__(body)
        self.headers = headers or {}


def test_download_reports_progress(tmp_path):
    body = b"x" * (http.DOWNLOAD_BUFFER * 2 + 10)
    response = FakeResponse(body, {"Content-Length": str(len(body))})
    fractions = []
    target = tmp_path / "pkg.zip"

    with mock.patch("patchlauncher.core.http.urlopen", return_value=response):
        written = http.download_to_file("https://cdn.test/pkg.zip", str(target),
                                        progress_callback=fractions.append)

    assert written == len(body)
    assert target.read_bytes() == body
    assert len(fractions) == 3
    assert fractions[-1] == 1.0


def test_download_http_error_is_network_failure(tmp_path):
    error = HTTPError("https://cdn.test/x", 404, "Not Found", {}, None)
    with mock.patch("patchlauncher.core.http.urlopen", side_effect=error):
        with pytest.raises(NetworkFailure):
            http.download_to_file("https://cdn.test/x", str(tmp_path / "x"))


def test_timeout_is_network_failure():
    with mock.patch("patchlauncher.core.http.urlopen", side_effect=socket.timeout("slow")):
        with pytest.raises(NetworkFailure):
            http.fetch_text("https://cdn.test/stable")


def test_fetch_text_strips():
    with mock.patch("patchlauncher.core.http.urlopen", return_value=FakeResponse(b"123\n")):
        assert http.fetch_text("https://cdn.test/stable") == "123"


def test_short_download_is_network_failure(tmp_path):
    response = FakeResponse(b"x" * 10, {"Content-Length": "1000"})
    with mock.patch("patchlauncher.core.http.urlopen", return_value=response):
        with pytest.raises(NetworkFailure, match="10 of 1000"):
            http.download_to_file("https://cdn.test/pkg.zip", str(tmp_path / "pkg.zip"))


def test_protocol_error_is_network_failure(tmp_path):
    error = IncompleteRead(b"partial", 100)
    with mock.patch("patchlauncher.core.http.urlopen", side_effect=error):
        with pytest.raises(NetworkFailure):
            http.download_to_file("https://cdn.test/pkg.zip", str(tmp_path / "pkg.zip"))
