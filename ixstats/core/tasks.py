import asyncio
from typing import Awaitable, Iterable, List


async def gather_or_cancel(aws: Iterable[Awaitable]) -> List:
    """
    Gather awaitables in order. On the first failure the remaining tasks are
    cancelled and drained before the error is re-raised.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
