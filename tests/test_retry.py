"""Unit tests for retry_with_backoff."""
from unittest.mock import Mock

import pytest

from utils.retry import retry_with_backoff


class TestRetryWithBackoff:
    """Test cases for the exponential backoff helper."""

    def test_returns_first_success_without_sleeping(self):
        """Test that a successful first attempt is returned directly."""
        operation = Mock(return_value='ok')
        sleep = Mock()

        assert retry_with_backoff(operation, sleep=sleep) == 'ok'
        assert operation.call_count == 1
        sleep.assert_not_called()

    def test_succeeds_on_third_attempt(self):
        """Test that two failures followed by success yield the success value."""
        operation = Mock(side_effect=[RuntimeError('boom'), RuntimeError('boom'), 'ok'])
        sleep = Mock()

        result = retry_with_backoff(
            operation, max_attempts=3, initial_delay=1.0, sleep=sleep
        )

        assert result == 'ok'
        assert operation.call_count == 3

    def test_exhausts_attempts_and_propagates_last_error(self):
        """Test that the last failure is raised once attempts run out."""
        first = RuntimeError('first')
        second = RuntimeError('second')
        operation = Mock(side_effect=[first, second, 'ok'])

        with pytest.raises(RuntimeError) as exc_info:
            retry_with_backoff(operation, max_attempts=2, sleep=Mock())

        assert exc_info.value is second
        assert operation.call_count == 2

    def test_delays_double_without_jitter(self):
        """Test that delays follow initial_delay * 2 ** (k - 1)."""
        operation = Mock(side_effect=ValueError('nope'))
        sleep = Mock()

        with pytest.raises(ValueError):
            retry_with_backoff(
                operation, max_attempts=4, initial_delay=0.5, sleep=sleep
            )

        assert [c.args[0] for c in sleep.call_args_list] == [0.5, 1.0, 2.0]

    def test_no_sleep_after_final_attempt(self):
        """Test that the helper does not wait after the last failure."""
        sleep = Mock()

        with pytest.raises(ValueError):
            retry_with_backoff(
                Mock(side_effect=ValueError('nope')), max_attempts=1, sleep=sleep
            )

        sleep.assert_not_called()

    def test_rejects_zero_attempts(self):
        """Test that max_attempts below one is refused."""
        operation = Mock()

        with pytest.raises(ValueError, match='max_attempts'):
            retry_with_backoff(operation, max_attempts=0)

        operation.assert_not_called()
