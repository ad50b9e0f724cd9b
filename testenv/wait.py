"""
Waiting utilities for test synchronization.
"""

import logging
import time
from collections.abc import Callable
from typing import Any, TypeVar

from testenv.errors import TimedOut

logger = logging.getLogger(__name__)


def wait_until(
    fn: Callable[[], Any],
    error_with: str = "Timed out",
    timeout: float = 30,
    step: float = 0.5,
):
    """
    Wait until a function call returns truth value, given time step, and timeout.

    The function is polled every `step` seconds until it returns a truthy value or
    `timeout` seconds have elapsed. Exceptions raised by `fn` are not swallowed: a
    probe that wants to treat an error as "not yet" has to catch it itself.

    Raises:
        TimedOut: If `fn` never returned a truthy value within `timeout`
    """
    start = time.monotonic()
    while time.monotonic() - start < timeout:
        if fn():
            return
        time.sleep(step)
    raise TimedOut(error_with, timeout)


T = TypeVar("T")


def wait_until_with_value(
    fn: Callable[..., T],
    predicate: Callable[[T], bool],
    error_with: str = "Timed out",
    timeout: float = 5,
    step: float = 0.5,
    debug=False,
) -> T:
    """
    Similar to `wait_until` but this returns the value of the function.
    This also takes another predicate which acts on the function value and returns a bool
    """
    start = time.monotonic()
    while time.monotonic() - start < timeout:
        r = fn()
        if debug:
            logger.debug(f"Waiting.. current value: {r}")
        if predicate(r):
            return r
        time.sleep(step)
    raise TimedOut(error_with, timeout)
