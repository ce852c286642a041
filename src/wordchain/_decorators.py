"""Decorators shared by the pipeline stages."""

import functools
import logging
import time
from typing import Callable, overload


@overload
def measure_time(func: Callable) -> Callable: ...


@overload
def measure_time(*, label: str) -> Callable[[Callable], Callable]: ...


def measure_time(func: Callable | None = None, *, label: str | None = None):
    """
    Log the wall time of the wrapped callable through its own module logger.

    Usable bare (``@measure_time``) or with a label
    (``@measure_time(label="model build")``); the label defaults to the
    function name. Time is logged even when the call raises.
    """

    def decorate(fn: Callable) -> Callable:
        name = label or fn.__name__
        logger = logging.getLogger(fn.__module__)

        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                elapsed = time.perf_counter() - start
                logger.info(f"{name} completed in {elapsed:.2f} s ({elapsed / 60:.2f} mins)")

        return wrapper

    if func is not None:
        return decorate(func)
    return decorate
