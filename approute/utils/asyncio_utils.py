import asyncio
import os
import time
from collections.abc import Coroutine

_KEEP_ALIVE = set()


def create_task(
    coro: Coroutine,
    *,
    name: str,
    keep_ref: bool,
) -> asyncio.Task:
    """
    Wrapper around `asyncio.create_task`.

    Use `keep_ref` to keep an internal reference. The event loop only keeps weak
    references to tasks, so a fire-and-forget task (e.g. an apply started from
    a timer callback) could otherwise be garbage collected mid-execution.
    """
    t = asyncio.create_task(coro)
    set_task_debug_info(t, name=name)
    if keep_ref and not t.done():
        _KEEP_ALIVE.add(t)
        t.add_done_callback(_KEEP_ALIVE.discard)
    return t


def set_task_debug_info(task: asyncio.Task, *, name: str) -> None:
    task.created = time.time()  # type: ignore
    if __debug__ is True and (test := os.environ.get("PYTEST_CURRENT_TEST", None)):
        name = f"{name} [created in {test}]"
    task.set_name(name)


def task_repr(task: asyncio.Task) -> str:
    """Get a task representation with debug info."""
    name = task.get_name()
    a: float = getattr(task, "created", 0)
    if a:
        age = f" (age: {time.time() - a:.0f}s)"
    else:
        age = ""
    return f"{name}{age}"


async def cancel_task(task: asyncio.Task | None) -> None:
    """
    Cancel a task and wait until it has actually finished.
    Finished or missing tasks are ignored.
    """
    if task is None or task.done():
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
