"""Single-retry wrapper for transient storage reads."""

import asyncio

import structlog

logger = structlog.get_logger(__name__)


async def retry_once(operation, operation_name: str, delay: float = 0.5):
    """Run ``operation`` in a worker thread and, if it raises, once more after ``delay`` seconds.

    Storage calls block, so they stay off the event loop where the request
    timeout can still fire. The second failure propagates to the caller.
    """
    try:
        return await asyncio.to_thread(operation)
    except Exception as exc:
        logger.warning("Operation failed, retrying", operation=operation_name, delay=delay, error=str(exc))

    await asyncio.sleep(delay)
    try:
        return await asyncio.to_thread(operation)
    except Exception as exc:
        logger.error("Operation failed after retry", operation=operation_name, error=str(exc))
        raise
