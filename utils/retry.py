"""Retry helper with exponential backoff."""
import logging
import time
from typing import Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


def retry_with_backoff(
    operation: Callable[[], T],
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
    description: str = 'operation',
) -> T:
    """
    Call an operation, retrying failures with exponential backoff.

    The delay after failed attempt k is initial_delay * 2 ** (k - 1). There
    is no jitter.

    Args:
        operation: No-argument callable to invoke
        max_attempts: Maximum number of attempts (default: 3)
        initial_delay: Delay in seconds after the first failure (default: 1.0)
        sleep: Function used to wait between attempts
        description: Label used in log messages

    Returns:
        The operation's return value

    Raises:
        Exception: The last failure once all attempts are exhausted
    """
    if max_attempts < 1:
        raise ValueError('max_attempts must be at least 1')

    for attempt in range(1, max_attempts + 1):
        try:
            return operation()
        except Exception as e:
            if attempt == max_attempts:
                logger.error(
                    f"All {max_attempts} attempts of {description} failed. "
                    f"Last error: {e}"
                )
                raise

            delay = initial_delay * (2 ** (attempt - 1))
            logger.warning(
                f"{description} failed (attempt {attempt}/{max_attempts}): {e}. "
                f"Retrying in {delay} seconds..."
            )
            sleep(delay)
