"""
Bounded polling used to wait for eventually consistent writes to become visible.
"""

import enum
import logging
import time
from typing import Any, Callable, Tuple

from provisioner.providers.base.resource_exceptions import (
    PropagationTimeoutException,
)

logger = logging.getLogger(__name__)


class WaitStatus(str, enum.Enum):
    PENDING = "pending"
    DONE = "done"


class RetryableError(Exception):
    """
    Raised by a refresh function for a transient failure.

    The waiter counts it as a pending observation and keeps polling.
    """

    def __init__(self, error: Exception | str):
        super().__init__(str(error))
        self.error = error


def wait_for_state(
    refresh: Callable[[], Tuple[Any, WaitStatus]],
    timeout: float,
    min_interval: float = 1.0,
    required_successes: int = 1,
    description: str = "",
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
):
    """
    Poll `refresh` until it reports DONE `required_successes` times in a row.

    Args:
        refresh: returns a (value, WaitStatus) tuple. Raising RetryableError is
            a pending observation, any other exception aborts the wait.
        timeout (float): total bound in seconds.
        min_interval (float): seconds to sleep between two polls.
        required_successes (int): consecutive DONE observations needed.
        description (str): what we are waiting for, used in logs and errors.

    Returns:
        The value returned by the last refresh call.

    Raises:
        PropagationTimeoutException: the bound elapsed first.
    """
    if required_successes < 1:
        raise ValueError("required_successes must be at least 1")

    started = clock()
    consecutive = 0
    attempt = 0
    last_error = None
    while True:
        attempt += 1
        try:
            value, status = refresh()
        except RetryableError as e:
            value, status = None, WaitStatus.PENDING
            last_error = e.error

        if status == WaitStatus.DONE:
            consecutive += 1
            if consecutive >= required_successes:
                logger.debug(
                    "Wait finished",
                    extra={"description": description, "attempts": attempt},
                )
                return value
        else:
            consecutive = 0

        elapsed = clock() - started
        if elapsed >= timeout:
            message = f"timeout after {timeout}s waiting for {description or 'state'}"
            if last_error is not None:
                message = f"{message} (last error: {last_error})"
            raise PropagationTimeoutException(message, last_error=last_error)

        logger.debug(
            "Still waiting",
            extra={
                "description": description,
                "attempt": attempt,
                "status": getattr(status, "value", status),
                "consecutive": consecutive,
            },
        )
        sleep(min_interval)
