import asyncio
import atexit
import concurrent.futures
import functools
import logging
import os
import threading
import traceback
import typing
from typing import Optional

from .exceptions import suppress_corowrap_tb_frames

logger = logging.getLogger(__name__)

T = typing.TypeVar("T")

# Either an asyncio.Future on the caller's running loop, or a concurrent.futures.Future
Handle = typing.Union[asyncio.Future, concurrent.futures.Future]


def get_running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


def _cancel_task(task: asyncio.Task, handle: asyncio.Future) -> None:
    if handle.cancelled():
        task.cancel()


async def _deliver(coro, handle: Handle):
    """Runs coro and settles handle with its outcome.

    Faults are put on the handle here rather than raised out of the task, so their
    traceback can be trimmed without another internal frame ending up in front.
    """
    is_concurrent = isinstance(handle, concurrent.futures.Future)
    if is_concurrent and not handle.set_running_or_notify_cancel():
        coro.close()
        return
    try:
        value = await coro
    except asyncio.CancelledError as exc:
        if is_concurrent:
            handle.set_exception(exc)
        elif not handle.done():
            handle.cancel()
        raise
    except Exception as exc:
        if is_concurrent or not handle.done():
            handle.set_exception(suppress_corowrap_tb_frames(exc))
    except BaseException as exc:
        if is_concurrent or not handle.done():
            handle.set_exception(exc)
        raise
    else:
        if is_concurrent or not handle.done():
            handle.set_result(value)


class Scheduler:
    """Runs the deferred work of adapters and hands out the futures that represent it.

    Callers inside a running event loop get an asyncio future on that same loop.
    Callers outside of one get a concurrent.futures.Future, with the work running
    on a loop in a daemon thread that is started on first use.
    """

    def __init__(self, thread_name: str = "corowrap-loop"):
        self._thread_name = thread_name
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._loop_creation_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._thread_exception: Optional[BaseException] = None
        self._thread_traceback: Optional[str] = None
        self._owner_pid: Optional[int] = None
        self._stopping: Optional[asyncio.Event] = None
        atexit.register(self.close)

    def _start_loop(self) -> asyncio.AbstractEventLoop:
        with self._loop_creation_lock:
            if self._loop and self._loop.is_running():
                # another thread won the race and already started it
                return self._loop

            is_ready = threading.Event()
            self._thread_exception = None

            def thread_inner():
                async def loop_inner():
                    self._loop = asyncio.get_running_loop()
                    self._stopping = asyncio.Event()
                    is_ready.set()
                    await self._stopping.wait()  # wait until told to stop

                try:
                    try:
                        asyncio.run(loop_inner())
                    except BaseException as exc_inner:
                        self._thread_exception = exc_inner
                        self._thread_traceback = traceback.format_exc()
                        raise exc_inner
                    finally:
                        is_ready.set()
                except RuntimeError as exc:
                    # Python 3.12 raises a RuntimeError when new threads are created at shutdown.
                    # The caller still gets it through _thread_exception, so don't print it here too.
                    if "can't create new thread at interpreter shutdown" not in str(exc):
                        raise exc

            self._owner_pid = os.getpid()
            thread = threading.Thread(target=thread_inner, name=self._thread_name, daemon=True)
            thread.start()
            is_ready.wait()
            if self._thread_exception is not None:
                raise RuntimeError("Scheduler thread failed to start") from self._thread_exception
            self._thread = thread
            logger.debug("Started event loop thread %s", self._thread_name)
            return self._loop

    def close(self) -> None:
        # Use getattr to protect against weird gc races when we get here via atexit
        if getattr(self, "_thread", None) is not None:
            if self._loop is not None and not self._loop.is_closed():
                # This also serves the purpose of waking up an idle loop
                self._loop.call_soon_threadsafe(self._stopping.set)
            self._thread.join()
            self._thread = None
            self._loop = None
            self._owner_pid = None

    def _get_loop(self, start=False) -> Optional[asyncio.AbstractEventLoop]:
        if self._thread and not self._thread.is_alive():
            if self._owner_pid == os.getpid():
                # the thread died without us forking
                logger.error(
                    f"""Scheduler thread unexpectedly died.
Cause: {type(self._thread_exception)}
Traceback:{self._thread_traceback}"""
                )
                raise RuntimeError("Scheduler thread unexpectedly died")

            # we are in a forked child, the thread didn't survive the fork
            self._thread = None
            self._loop = None

        if self._loop is None and start:
            return self._start_loop()
        return self._loop

    def submit(self, coro: typing.Coroutine[typing.Any, typing.Any, T]) -> Handle:
        """Schedules coro and returns the future for its outcome without waiting for it.

        Raises if the work can't be scheduled, in which case coro is closed.
        """
        loop = get_running_loop()
        if loop is not None:
            # this also covers adapters called from our own loop thread
            handle = loop.create_future()
            task = loop.create_task(_deliver(coro, handle))
            handle.add_done_callback(functools.partial(_cancel_task, task))
            return handle

        handle = concurrent.futures.Future()
        try:
            loop = self._get_loop(start=True)
        except BaseException:
            coro.close()
            raise
        asyncio.run_coroutine_threadsafe(_deliver(coro, handle), loop)
        return handle

    def resolved(self, value: typing.Any) -> Handle:
        loop = get_running_loop()
        if loop is not None:
            fut = loop.create_future()
        else:
            fut = concurrent.futures.Future()
        fut.set_result(value)
        return fut

    def rejected(self, exc: BaseException) -> Handle:
        if isinstance(exc, StopIteration):
            # futures refuse StopIteration, same conversion as for generators
            new_exc = RuntimeError("function raised StopIteration")
            new_exc.__cause__ = exc
            exc = new_exc
        loop = get_running_loop()
        if loop is not None:
            fut = loop.create_future()
        else:
            fut = concurrent.futures.Future()
        fut.set_exception(exc)
        return fut
