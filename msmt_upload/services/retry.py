from __future__ import annotations

import logging
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)

__all__ = [
    "call_with_retry",
]


def call_with_retry(
    attempt: Callable[[], bool],
    *,
    max_attempts: int = 8,
    delay: float = 0.15,
    backoff: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Call ``attempt`` until it returns True or ``max_attempts`` is reached.

    An attempt that raises counts as a failed attempt. The wait between
    attempts starts at ``delay`` and is multiplied by ``backoff`` each time.

    Returns:
        True if one attempt succeeded, False otherwise
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")
    wait = delay
    for n in range(1, max_attempts + 1):
        try:
            if attempt():
                return True
        except Exception as e:
            logger.debug("attempt %d/%d raised: %s", n, max_attempts, e)
        if n < max_attempts:
            sleep(wait)
            wait *= backoff
    logger.debug("gave up after %d attempts", max_attempts)
    return False
