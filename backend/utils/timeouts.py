"""
Bounded timeouts for blocking remote calls
"""
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Any, Callable, Optional
import logging

from config import settings
from utils.errors import RemoteTimeout

logger = logging.getLogger(__name__)

_executor = ThreadPoolExecutor(
    max_workers=settings.REMOTE_CALL_WORKERS,
    thread_name_prefix="remote-call"
)


def call_with_timeout(timeout: Optional[float], fn: Callable[..., Any], *args, **kwargs) -> Any:
    """
    Run a blocking call and give up waiting after ``timeout`` seconds.

    The call itself is not cancelled: once issued it runs to completion on the
    worker pool, the caller just stops waiting and gets ``RemoteTimeout``.
    Exceptions raised by ``fn`` propagate unchanged. A falsy timeout runs
    ``fn`` inline.
    """
    if not timeout:
        return fn(*args, **kwargs)

    future = _executor.submit(fn, *args, **kwargs)
    try:
        return future.result(timeout=timeout)
    except FutureTimeout:
        name = getattr(fn, "__name__", repr(fn))
        logger.warning(f"Remote call {name} timed out after {timeout}s")
        raise RemoteTimeout(f"{name} timed out after {timeout}s")
