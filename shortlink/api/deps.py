import asyncio

from fastapi import Request
from shortlink.core.deadline import Deadline
from shortlink.services.keygen import CodeGenerator
from shortlink.services.shortener import LinkRegistry

DISCONNECT_POLL_SECONDS = 0.05


def get_registry(request: Request) -> LinkRegistry:
    return request.app.state.registry


def get_code_generator(request: Request) -> CodeGenerator:
    return request.app.state.code_generator


async def watch_disconnect(request: Request, deadline: Deadline):
    """Cancel `deadline` as soon as the client drops the connection."""
    while not deadline.cancelled:
        if await request.is_disconnected():
            deadline.cancel()
            return
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)


async def get_deadline(request: Request):
    """FastAPI dependency: a fresh deadline per request, sized by REQUEST_TIMEOUT_SECONDS.

    Sync endpoints run in the threadpool while the watcher polls the
    connection on the event loop, so a client that goes away trips the
    deadline's cancel event mid-request.
    """
    deadline = Deadline(timeout=request.app.state.settings.REQUEST_TIMEOUT_SECONDS)
    watcher = asyncio.create_task(watch_disconnect(request, deadline))
    try:
        yield deadline
    finally:
        watcher.cancel()
