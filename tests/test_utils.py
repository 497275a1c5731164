# tests/test_utils.py
"""Test utilities and helpers"""

import logging
from unittest.mock import Mock, patch

import pytest

from tunewrangler.utils.exceptions import (
    AudioProcessingError,
    FilePathError,
    NoArtistFoundError,
    TuneWranglerError,
    get_error_message,
    log_error,
)
from tunewrangler.utils.helpers import (
    backup_file,
    empty_directory,
    format_duration,
    is_processable,
    list_processable_files,
    replace_extension,
    retry_on_failure,
)
from tunewrangler.utils.logger import (
    SEPARATOR,
    ConsoleMessageFilter,
    create_operation_logger,
    get_logger,
    log_with_break,
    parse_size,
    setup_logging,
    get_current_log_file,
)
from tunewrangler.utils.validation import validate_directory, validate_min_count


class TestHelpers:
    """Test helper functions"""

    def test_format_duration(self):
        """Test duration formatting"""
        assert format_duration(90) == "1:30"
        assert format_duration(3661) == "1:01:01"
        assert format_duration(0) == "0:00"
        assert format_duration(-10) == "0:00"

    def test_replace_extension(self):
        assert replace_extension("Artist - Title.flac", ".flac", ".aiff") == "Artist - Title.aiff"
        assert replace_extension("Artist - Title", "", ".aiff") == "Artist - Title.aiff"

    def test_list_processable_files(self, music_dir):
        """Test that listings are sorted and skip ignored names"""
        names = list_processable_files(music_dir)

        assert ".DS_Store" not in names
        assert names == sorted(names)
        assert "Flume - Never Be Like You.mp3" in names

    def test_list_skips_directories(self, music_dir):
        (music_dir / "Subfolder").mkdir()
        assert "Subfolder" not in list_processable_files(music_dir)
        assert is_processable(music_dir / "Subfolder") is False

    def test_list_missing_directory(self, temp_dir):
        with pytest.raises(FilePathError):
            list_processable_files(temp_dir / "missing")

    def test_backup_file(self, music_dir, temp_dir):
        """Test that backups are copies and create the backup folder"""
        target = backup_file(music_dir, temp_dir / "bak", "Flume - Never Be Like You.mp3")

        assert target.exists()
        assert (music_dir / "Flume - Never Be Like You.mp3").exists()

    def test_backup_missing_file(self, music_dir, temp_dir):
        with pytest.raises(FilePathError):
            backup_file(music_dir, temp_dir / "bak", "missing.mp3")

    def test_empty_directory(self, temp_dir):
        backup = temp_dir / "bak"
        (backup / "nested").mkdir(parents=True)
        (backup / "old.mp3").write_bytes(b"")

        assert empty_directory(backup) == 2
        assert list(backup.iterdir()) == []

    def test_retry_on_failure(self):
        """Test that listed exceptions are retried until success"""
        calls = Mock(side_effect=[OSError("busy"), "ok"])

        @retry_on_failure(max_attempts=2, delay=0, exceptions=(OSError,))
        def flaky():
            return calls()

        assert flaky() == "ok"
        assert calls.call_count == 2

    def test_retry_gives_up(self):
        @retry_on_failure(max_attempts=2, delay=0, exceptions=(OSError,))
        def broken():
            raise OSError("busy")

        with pytest.raises(OSError):
            broken()


class TestValidation:
    """Test input validators"""

    def test_validate_directory(self, temp_dir):
        assert validate_directory(str(temp_dir)) == (True, None)
        assert validate_directory("")[0] is False
        assert validate_directory(str(temp_dir / "missing"))[0] is False

    def test_validate_directory_file(self, music_dir):
        valid, error = validate_directory(str(music_dir / "cover.jpg"))
        assert valid is False
        assert "Not a directory" in error

    def test_validate_min_count(self):
        assert validate_min_count(3) == (True, None)
        assert validate_min_count(0)[0] is False
        assert validate_min_count(20000)[0] is False


class TestExceptions:
    """Test the exception hierarchy"""

    def test_message_and_details(self):
        error = FilePathError("Directory not found", details={'path': '/x'})

        assert isinstance(error, TuneWranglerError)
        assert str(error) == "Directory not found"
        assert error.code == "FILE_PATH_ERROR"
        assert error.details == {'path': '/x'}

    def test_code_override(self):
        assert AudioProcessingError("failed", code="FFMPEG").code == "FFMPEG"

    def test_no_artist_found(self):
        error = NoArtistFoundError("Title.mp3")

        assert error.message == "No artist found"
        assert error.code == "NO_ARTIST_FOUND"

    def test_get_error_message(self):
        assert get_error_message(FilePathError("missing")) == "missing"
        assert get_error_message(ValueError()) == "ValueError"

    def test_log_error(self):
        logger = Mock()
        log_error(logger, FilePathError("missing", details={'path': '/x'}), {'file': 'a.mp3'})

        logger.error.assert_called_once_with("[FILE_PATH_ERROR] missing")
        assert "/x" in logger.debug.call_args[0][0]
        assert "a.mp3" in logger.debug.call_args[0][0]


class TestLogger:
    """Test logging setup and helpers"""

    def test_parse_size(self):
        assert parse_size("10MB") == 10 * 1024 ** 2
        assert parse_size("500KB") == 500 * 1024
        assert parse_size("1.5 GB") == int(1.5 * 1024 ** 3)

    def test_parse_size_invalid(self):
        with pytest.raises(ValueError):
            parse_size("lots")

    def test_console_filter(self):
        """Test that only warnings and marked messages reach the console"""
        console_filter = ConsoleMessageFilter()
        info = logging.LogRecord("tunewrangler.x", logging.INFO, "", 0, "msg", (), None)
        warning = logging.LogRecord("tunewrangler.x", logging.WARNING, "", 0, "msg", (), None)

        assert console_filter.filter(info) is False
        assert console_filter.filter(warning) is True

        info.console_output = True
        assert console_filter.filter(info) is True

    def test_file_logging(self, temp_dir):
        """Test that file logging writes to a rotating log file"""
        log_file = temp_dir / "logs" / "tunewrangler.log"
        setup_logging(level="DEBUG", log_file=str(log_file), console_output=False)

        get_logger("tunewrangler.test").info("written to file")

        assert get_current_log_file() == log_file
        assert "written to file" in log_file.read_text(encoding='utf-8')

        setup_logging(console_output=False)
        assert get_current_log_file() is None

    def test_log_with_break(self):
        """Test that the message and a separator are both marked for the console"""
        logger = logging.getLogger("tunewrangler.test.break")
        records = []
        handler = logging.Handler()
        handler.emit = records.append
        logger.addHandler(handler)

        try:
            log_with_break(logger, "Artist - Title.mp3")
        finally:
            logger.removeHandler(handler)

        assert records[0].getMessage() == "Artist - Title.mp3"
        assert SEPARATOR in records[1].getMessage()
        assert all(getattr(record, 'console_output', False) for record in records)

    def test_operation_logger(self):
        """Test that progress drives a tqdm bar that is closed on completion"""
        operation = create_operation_logger("tunewrangler.test", "Rename", "Renaming")

        with patch("tunewrangler.utils.logger.tqdm") as mock_tqdm:
            operation.start()
            operation.progress("a.mp3", 1, 2)
            operation.complete()

        mock_tqdm.assert_called_once()
        mock_tqdm.return_value.close.assert_called_once()
        assert operation.progress_bar is None
