"""
Retry decorators.
"""

import functools
import logging
import time
from typing import Any, Callable, Tuple, Type


def retry_on_exception(
    logger: logging.Logger,
    max_retries: int = 3,
    delay: float = 10,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
) -> Callable:
    """
    Decorator to retry a function when it raises.

    Args:
        logger: Logger instance for retry logging.
        max_retries: Maximum number of attempts.
        delay: Delay between attempts in seconds.
        exceptions: Exception types that trigger a retry.

    Returns:
        Decorated function with retry logic. The last exception is re-raised
        once all attempts have failed.
    """

    def decorator(func: Callable) -> Callable:
        name = getattr(func, "__name__", repr(func))

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(1, max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt >= max_retries:
                        logger.error("%s failed after %s attempts.", name, max_retries)
                        raise

                    logger.warning(
                        "Error in %s, waiting %s seconds before retrying. Attempt %s/%s",
                        name, delay, attempt, max_retries,
                    )
                    logger.warning("Error: %s", e)
                    time.sleep(delay)
            return None

        return wrapper

    return decorator
