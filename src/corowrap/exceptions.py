import asyncio
import concurrent.futures
import os
from pathlib import Path
from types import TracebackType
from typing import Optional

import corowrap


class CorowrapError(Exception):
    pass


class InvalidArgument(CorowrapError, TypeError):
    """Raised before any member is touched, when the arguments of a wrap call are malformed."""


class NotYieldable(CorowrapError, TypeError):
    """Thrown into a step sequence that yielded something the driver can't wait for.

    Like any other fault at a suspension point, the step sequence gets a chance to catch it."""

    def __init__(self, value):
        super().__init__(
            f"You may only yield an awaitable, a future, a generator, a list, a tuple or a dict, but got {value!r}"
        )
        self.value = value


_skip_modules = [corowrap, concurrent.futures, asyncio]
_skip_module_roots = [Path(mod.__file__).parent for mod in _skip_modules if mod.__file__]


def keep_internal_frames() -> bool:
    return os.getenv("COROWRAP_TRACEBACK", "0") == "1"


def suppress_corowrap_tb_frames(exc: BaseException) -> BaseException:
    """Strip the leading corowrap and asyncio frames from a fault before it's delivered to a future.

    The fault keeps its cause and context. If every frame belongs to an internal module the
    traceback is left as is. Set COROWRAP_TRACEBACK=1 to keep the full traceback.
    """
    if keep_internal_frames():
        return exc
    tb = exc.__traceback__
    if tb is None:
        return exc

    def should_hide_file(fn: str):
        return any(Path(fn).is_relative_to(modroot) for modroot in _skip_module_roots)

    next_valid: Optional[TracebackType] = tb
    while next_valid is not None and should_hide_file(next_valid.tb_frame.f_code.co_filename or ""):
        next_valid = next_valid.tb_next

    if next_valid is None:
        # no frames outside of the internal modules - keep the original traceback
        return exc

    return exc.with_traceback(next_valid)
