"""
Tests for the history Writer.
"""

import json
import threading
import time
from datetime import datetime, timezone
from unittest.mock import MagicMock

from src.querier.history import HistoryStore, SensorReading
from src.querier.writer import Writer


def wait_for(condition, timeout=2.0):
    """Poll until condition() is true or the timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.01)
    return False


def sample_history():
    history = HistoryStore()
    history.append('sensor-1', SensorReading(
        name='Hall',
        timestamp=datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc),
        temperature=20,
    ))
    return history


class TestWriteNow:
    """Tests for a single write."""

    def test_writes_file(self, data_path):
        """Test the data file holds the history."""
        writer = Writer(sample_history(), str(data_path))

        assert writer.write_now() is True

        with open(data_path) as f:
            data = json.load(f)
        assert data['sensor-1'][0]['temperature'] == 20
        assert writer.get_status()['total_writes'] == 1

    def test_write_failure_reported(self, temp_dir):
        """Test an unwritable path goes to the error callback."""
        blocker = temp_dir / 'file'
        blocker.write_text('')
        on_error = MagicMock()

        writer = Writer(sample_history(), str(blocker / 'data.json'), on_error=on_error)

        assert writer.write_now() is False
        on_error.assert_called_once()
        assert isinstance(on_error.call_args[0][0], OSError)


class TestWriterLifecycle:
    """Tests for the background write thread."""

    def test_notify_writes(self, data_path):
        """Test each update pulse rewrites the file."""
        history = sample_history()
        writer = Writer(history, str(data_path))
        writer.start()
        try:
            writer.notify()
            assert wait_for(data_path.exists)
        finally:
            writer.stop()

        assert writer.is_running is False

    def test_no_write_without_notify(self, data_path):
        """Test the file is only written on a pulse."""
        writer = Writer(sample_history(), str(data_path))
        writer.start()
        time.sleep(0.05)
        writer.stop()

        assert not data_path.exists()

    def test_stop_wakes_thread(self, data_path):
        """Test stop returns promptly while idle."""
        writer = Writer(sample_history(), str(data_path))
        writer.start()

        started = time.monotonic()
        writer.stop()
        assert time.monotonic() - started < 2
        assert not writer._thread.is_alive()

    def test_failed_write_ends_loop(self, data_path):
        """Test the thread exits after a failed write."""
        history = MagicMock()
        history.save.side_effect = OSError('disk full')
        errors = []
        reported = threading.Event()

        def on_error(error):
            errors.append(error)
            reported.set()

        writer = Writer(history, str(data_path), on_error=on_error)
        writer.start()
        writer.notify()
        assert reported.wait(timeout=2)
        assert wait_for(lambda: not writer._thread.is_alive())
        writer.stop()

        assert len(errors) == 1
        assert history.save.call_count == 1

    def test_status(self, data_path):
        """Test writer statistics."""
        writer = Writer(sample_history(), str(data_path))
        status = writer.get_status()
        assert status['running'] is False
        assert status['data_file'] == str(data_path)
        assert status['last_write_time'] is None
        assert status['total_writes'] == 0
