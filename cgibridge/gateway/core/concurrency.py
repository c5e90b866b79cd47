import asyncio
import logging
from typing import Awaitable, Callable, Dict, TypeVar

from cgibridge.gateway.core.exceptions import ClientDisconnectedError

logger = logging.getLogger("gateway.concurrency")

T = TypeVar("T")

Receive = Callable[[], Awaitable[Dict]]


async def _wait_for_disconnect(receive: Receive) -> None:
    while True:
        message = await receive()
        if message.get("type") == "http.disconnect":
            return


async def cancel_on_disconnect(receive: Receive, work: Awaitable[T]) -> T:
    """
    Await `work`, cancelling it if the client disconnects first.

    `receive` must be the ASGI receive channel of a request whose body has
    already been read, so the only message left is the disconnect.

    Raises:
        ClientDisconnectedError: the client went away and `work` was cancelled
    """
    task = asyncio.ensure_future(work)
    watcher = asyncio.ensure_future(_wait_for_disconnect(receive))
    try:
        done, _ = await asyncio.wait({task, watcher}, return_when=asyncio.FIRST_COMPLETED)
        if task in done:
            return task.result()

        logger.info("Client disconnected, cancelling in-flight CGI run")
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        raise ClientDisconnectedError()
    finally:
        watcher.cancel()
        if not task.done():
            task.cancel()
