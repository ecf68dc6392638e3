import functools
import inspect
import logging
import time

logger = logging.getLogger(__name__)


def measure_latency(func):
    """Time a coroutine and record the elapsed ms on results that declare `duration_ms`."""
    if not inspect.iscoroutinefunction(func):
        raise TypeError(f"measure_latency expects a coroutine function, got {func.__name__}")

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        start_time = time.perf_counter()
        result = await func(*args, **kwargs)
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(f"Function {func.__name__} took {duration_ms:.2f}ms")
        if hasattr(result, 'duration_ms'):
            result.duration_ms = round(duration_ms, 2)
        return result
    return wrapper
