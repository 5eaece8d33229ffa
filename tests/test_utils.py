"""Tests for :mod:`docsmith.utils.file_io` and :mod:`docsmith.utils.logging`."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from docsmith.utils import file_io
from docsmith.utils import logging as logging_utils


class TestUploadCandidate:
    """Advisory checks run before an upload."""

    def test_accepted_file_has_no_warnings(self, tmp_path: Path) -> None:
        source = tmp_path / "Report.PDF"
        source.write_bytes(b"%PDF")

        assert file_io.check_upload_candidate(source) == []

    def test_unsupported_extension_is_reported(self, tmp_path: Path) -> None:
        warnings = file_io.check_upload_candidate(tmp_path / "slides.pptx")

        assert len(warnings) == 1
        assert "unsupported file type" in warnings[0]

    def test_oversized_file_is_reported(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(file_io, "MAX_UPLOAD_BYTES", 4)
        source = tmp_path / "notes.txt"
        source.write_bytes(b"0123456789")

        warnings = file_io.check_upload_candidate(source)

        assert warnings == ["notes.txt: 10 bytes exceeds the 10MB upload limit"]


@pytest.mark.parametrize(
    ("original", "extension", "expected"),
    [
        ("report.v2.docx", "pdf", "report.pdf"),
        ("scan.png", "html", "scan.html"),
        ("README", "docx", "README.docx"),
        ("", "png", "document.png"),
        (None, "pdf", "document.pdf"),
        (".hidden", "html", "document.html"),
    ],
)
def test_export_filename(original: str | None, extension: str, expected: str) -> None:
    assert file_io.export_filename(original, extension) == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("report.pdf", "report.pdf"),
        ("../../etc/passwd", "passwd"),
        ("C:\\Users\\me\\out.docx", "out.docx"),
        ("..", "download"),
        (None, "download"),
    ],
)
def test_safe_filename(raw: str | None, expected: str) -> None:
    assert file_io.safe_filename(raw) == expected


def test_resolve_download_dir_prefers_argument_then_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    env_dir = tmp_path / "from-env"
    monkeypatch.setenv("DOCSMITH_DOWNLOAD_DIR", str(env_dir))

    assert file_io.resolve_download_dir() == env_dir
    assert env_dir.is_dir()
    assert file_io.resolve_download_dir(tmp_path / "explicit") == tmp_path / "explicit"


def test_write_bytes_replaces_atomically(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "out.bin"
    file_io.write_bytes(target, b"first")
    file_io.write_bytes(target, b"second")

    assert target.read_bytes() == b"second"
    assert sorted(path.name for path in target.parent.iterdir()) == ["out.bin"]


def test_write_bytes_cleans_up_temp_file_on_failure(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    def refuse(src: str, dst: object) -> None:
        raise OSError("disk full")

    monkeypatch.setattr(file_io.os, "replace", refuse)

    with pytest.raises(OSError):
        file_io.write_bytes(tmp_path / "out.bin", b"data")

    assert list(tmp_path.iterdir()) == []


@pytest.fixture
def isolated_logging(monkeypatch: pytest.MonkeyPatch):
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    monkeypatch.setattr(logging_utils, "_log_path", None)
    yield
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


def _handler(kind: type[logging.Handler]) -> logging.Handler:
    return next(handler for handler in logging.getLogger().handlers if type(handler) is kind)


@pytest.mark.usefixtures("isolated_logging")
class TestSetupLogging:
    """Tests for the rotating file and console handlers."""

    def test_creates_rotating_log_file(self, tmp_path: Path) -> None:
        log_path = logging_utils.setup_logging(log_dir=tmp_path, console=False)

        logging.getLogger("docsmith.test").info("hello log")
        logging.getLogger("docsmith.test").debug("hidden detail")

        assert log_path == tmp_path / logging_utils.LOG_FILE_NAME
        assert logging_utils.get_log_path() == log_path
        contents = log_path.read_text(encoding="utf-8")
        assert "hello log" in contents
        assert "hidden detail" not in contents

    def test_debug_logs_everything_to_file(self, tmp_path: Path) -> None:
        log_path = logging_utils.setup_logging(debug=True, log_dir=tmp_path, console=False)

        logging.getLogger("docsmith.test").debug("request detail")

        assert "request detail" in log_path.read_text(encoding="utf-8")

    def test_console_shows_warnings_only_by_default(self, tmp_path: Path) -> None:
        logging_utils.setup_logging(log_dir=tmp_path)

        assert _handler(logging.StreamHandler).level == logging.WARNING

    def test_console_is_verbose_in_debug_mode(self, tmp_path: Path) -> None:
        logging_utils.setup_logging(debug=True, log_dir=tmp_path)

        assert _handler(logging.StreamHandler).level == logging.INFO

    def test_second_call_is_noop_unless_forced(self, tmp_path: Path) -> None:
        first = logging_utils.setup_logging(log_dir=tmp_path / "a", console=False)
        second = logging_utils.setup_logging(log_dir=tmp_path / "b", console=False)
        forced = logging_utils.setup_logging(log_dir=tmp_path / "b", console=False, force=True)

        assert second == first
        assert forced == tmp_path / "b" / logging_utils.LOG_FILE_NAME

    def test_quiets_http_loggers(self, tmp_path: Path) -> None:
        logging_utils.setup_logging(debug=True, log_dir=tmp_path, console=False)

        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING
