import asyncio
import concurrent.futures
import functools
import inspect
import logging
import typing

import typing_extensions

from .exceptions import NotYieldable, suppress_corowrap_tb_frames
from .interface import ADAPTED_KIND_ATTR, CallableKind
from .scheduler import Handle, Scheduler
from .steps import StepSequence

logger = logging.getLogger(__name__)

P = typing_extensions.ParamSpec("P")


def _is_waitable(item) -> bool:
    return isinstance(item, concurrent.futures.Future) or inspect.isawaitable(item)


async def wait_for_item(item, nested=False):
    """Wait for something yielded by a step sequence and return its value.

    Lists, tuples and dicts are waited for concurrently. Inside of them, values that
    can't be waited for are passed through as they are.
    """
    if inspect.isgenerator(item):
        return await drive(StepSequence(item))
    if isinstance(item, concurrent.futures.Future):
        return await asyncio.wrap_future(item)
    if inspect.isawaitable(item):
        return await item
    if isinstance(item, (list, tuple)):
        values = await asyncio.gather(*[wait_for_item(sub, nested=True) for sub in item])
        return tuple(values) if isinstance(item, tuple) else list(values)
    if isinstance(item, dict):
        keys = list(item.keys())
        values = await asyncio.gather(*[wait_for_item(item[key], nested=True) for key in keys])
        return dict(zip(keys, values))
    if nested:
        return item
    raise NotYieldable(item)


async def drive(steps: StepSequence):
    """Run a step sequence to completion and return its final value.

    Faults while waiting for a yielded item are thrown back in at the point where it
    yielded, including the cancellation of an item someone else cancelled. Faults the
    sequence doesn't handle end the drive.
    """
    step = steps.start()
    while not step.done:
        try:
            value = await wait_for_item(step.value)
        except Exception as exc:
            step = steps.inject(exc)
        except asyncio.CancelledError as exc:
            if asyncio.current_task().cancelling():
                # the drive itself is being cancelled
                steps.close()
                raise
            step = steps.inject(exc)
        except BaseException:
            # interrupts aren't handed to user code, just run its cleanup
            steps.close()
            raise
        else:
            step = steps.resume(value)
    return step.value


def adapt(
    func: typing.Callable[P, typing.Any], kind: CallableKind, scheduler: Scheduler
) -> typing.Callable[P, Handle]:
    """Returns a wrapper around func that always returns a future for its outcome.

    The wrapper takes the same arguments as func, including the receiver when it's
    used as a method. Calling it never raises for faults in func, they end up in the
    returned future instead.
    """
    if kind == CallableKind.PLAIN:
        raise ValueError(f"Can't adapt {func!r} since it's a plain function")

    @functools.wraps(func)
    def adapter(*args, **kwargs):
        try:
            res = func(*args, **kwargs)
        except Exception as exc:
            return scheduler.rejected(suppress_corowrap_tb_frames(exc))

        if inspect.isgenerator(res):
            work = drive(StepSequence(res))
        elif _is_waitable(res):
            work = wait_for_item(res)
        else:
            return scheduler.resolved(res)

        try:
            return scheduler.submit(work)
        except Exception as exc:
            work.close()
            if inspect.isgenerator(res) or inspect.iscoroutine(res):
                res.close()
            return scheduler.rejected(exc)

    setattr(adapter, ADAPTED_KIND_ATTR, kind)
    logger.debug("Adapted %s as %s", getattr(func, "__qualname__", func), kind.name)
    return adapter
