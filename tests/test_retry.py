"""
Tests for retry logic.
"""

import pytest
from examguard.retry import (
    exponential_backoff,
    is_transient_error,
    RetryError,
)


class TestExponentialBackoff:
    """Test exponential backoff decorator."""

    def test_success_on_first_try(self):
        """Function that succeeds immediately should not retry."""
        call_count = [0]

        @exponential_backoff(max_retries=3, base_delay=0.1)
        def succeeds():
            call_count[0] += 1
            return "success"

        assert succeeds() == "success"
        assert call_count[0] == 1

    def test_retry_then_succeed(self):
        """Function that fails then succeeds should retry."""
        call_count = [0]

        @exponential_backoff(max_retries=3, base_delay=0.01)
        def fails_twice():
            call_count[0] += 1
            if call_count[0] < 3:
                raise ConnectionError("Temporary failure")
            return "success"

        assert fails_twice() == "success"
        assert call_count[0] == 3

    def test_all_retries_exhausted(self):
        """Should raise RetryError after all attempts fail."""
        call_count = [0]

        @exponential_backoff(max_retries=2, base_delay=0.01)
        def always_fails():
            call_count[0] += 1
            raise ValueError("Always fails")

        with pytest.raises(RetryError) as exc:
            always_fails()

        assert call_count[0] == 3  # Initial + 2 retries
        assert isinstance(exc.value.__cause__, ValueError)

    def test_only_catches_specified_exceptions(self):
        """Should only retry on specified exception types."""
        call_count = [0]

        @exponential_backoff(
            max_retries=3,
            base_delay=0.01,
            exceptions=(ConnectionError,)
        )
        def raises_value_error():
            call_count[0] += 1
            raise ValueError("Not retryable")

        with pytest.raises(ValueError):
            raises_value_error()

        assert call_count[0] == 1

    def test_retry_if_predicate(self):
        """Exceptions rejected by retry_if are re-raised without retrying."""
        call_count = [0]

        @exponential_backoff(
            max_retries=3,
            base_delay=0.01,
            retry_if=is_transient_error,
        )
        def permanent_failure():
            call_count[0] += 1
            raise RuntimeError("no such table: questions")

        with pytest.raises(RuntimeError):
            permanent_failure()

        assert call_count[0] == 1

    def test_exponential_delay(self):
        """Delay should increase exponentially."""
        delays = []

        def on_retry_callback(attempt, exception, delay):
            delays.append(delay)

        @exponential_backoff(
            max_retries=3,
            base_delay=0.01,
            exponential_base=2.0,
            on_retry=on_retry_callback
        )
        def always_fails():
            raise ConnectionError("Test")

        with pytest.raises(RetryError):
            always_fails()

        assert len(delays) == 3
        assert delays[0] == 0.01
        assert delays[1] == 0.02
        assert delays[2] == 0.04

    def test_max_delay_cap(self, monkeypatch):
        """Delay should not exceed max_delay."""
        delays = []
        monkeypatch.setattr("examguard.retry.time.sleep", lambda s: None)

        def on_retry_callback(attempt, exception, delay):
            delays.append(delay)

        @exponential_backoff(
            max_retries=5,
            base_delay=1.0,
            max_delay=2.0,
            exponential_base=3.0,
            on_retry=on_retry_callback
        )
        def always_fails():
            raise ConnectionError("Test")

        with pytest.raises(RetryError):
            always_fails()

        assert all(d <= 2.0 for d in delays)


class TestTransientErrorDetection:
    """Test transient error detection."""

    def test_detects_locked_database(self):
        assert is_transient_error(Exception("(sqlite3.OperationalError) database is locked"))
        assert is_transient_error(Exception("database table is locked: questions"))

    def test_detects_io_and_timeouts(self):
        assert is_transient_error(Exception("disk I/O error"))
        assert is_transient_error(TimeoutError("Timeout waiting for lock"))

    def test_non_transient_errors(self):
        errors = [
            Exception("no such table: exams"),
            ValueError("Invalid data"),
            Exception("UNIQUE constraint failed: exams.exam_code"),
        ]
        for error in errors:
            assert not is_transient_error(error)
