import inspect
import logging
import typing
from typing import Optional, Sequence

from .exceptions import InvalidArgument
from .interface import ADAPTED_KIND_ATTR, CONSTRUCTOR_NAMES, DEFAULT_ASYNC_SUFFIXES, CallableKind, Surface

logger = logging.getLogger(__name__)


class Member(typing.NamedTuple):
    name: str
    func: typing.Callable
    kind: CallableKind
    binding: Optional[type]  # staticmethod, classmethod, or None for instance functions


def validate_method_names(method_names) -> None:
    if method_names is None:
        return
    if not isinstance(method_names, (list, tuple)):
        raise InvalidArgument(
            f"Optional method_names should be a list or tuple of names if provided, got {type(method_names).__name__}"
        )
    for name in method_names:
        if not isinstance(name, str):
            raise InvalidArgument(f"Optional method_names should only contain strings, got {name!r}")


def validate_target(cls) -> None:
    if not inspect.isclass(cls):
        raise InvalidArgument(f"Can only wrap the methods of a class, got {cls!r}")


def _follow_wrapped(func, predicate) -> bool:
    # Decorators built with functools.wraps leave the original in __wrapped__,
    # but we don't look through our own adapters
    if hasattr(func, "__wrapped__") and not hasattr(func, ADAPTED_KIND_ATTR):
        return _follow_wrapped(func.__wrapped__, predicate)
    return predicate(func)


def is_generator_function_follow_wrapped(func: typing.Callable) -> bool:
    """Determine if func returns a generator, unwrapping decorators, but not corowrap adapters."""
    return _follow_wrapped(func, inspect.isgeneratorfunction)


def is_coroutine_function_follow_wrapped(func: typing.Callable) -> bool:
    """Determine if func returns a coroutine, unwrapping decorators, but not corowrap adapters."""
    return _follow_wrapped(func, inspect.iscoroutinefunction)


def kind_of(func: typing.Callable) -> CallableKind:
    if is_generator_function_follow_wrapped(func) or is_coroutine_function_follow_wrapped(func):
        return CallableKind.SUSPENDING
    return CallableKind.PLAIN


def _is_accessor(value) -> bool:
    if isinstance(value, property):
        return True
    return hasattr(type(value), "__set__") or hasattr(type(value), "__delete__")


def iter_members(cls, surface: Surface):
    """Yields (name, function, binding) for the own function members of one surface, in declaration order."""
    for name, value in list(cls.__dict__.items()):
        if _is_accessor(value):
            continue
        if surface == Surface.STATIC:
            if isinstance(value, (staticmethod, classmethod)) and inspect.isfunction(value.__func__):
                yield name, value.__func__, type(value)
        elif inspect.isfunction(value):
            yield name, value, None


def _select(name, func, method_names, suffixes, nowrap_attr) -> CallableKind:
    if method_names is not None:
        if name not in method_names:
            return CallableKind.PLAIN
        kind = kind_of(func)
        return CallableKind.CONVENTION_NAMED if kind == CallableKind.PLAIN else kind

    if nowrap_attr is not None and getattr(func, nowrap_attr, False):
        return CallableKind.PLAIN
    kind = kind_of(func)
    if kind == CallableKind.PLAIN and name.endswith(tuple(suffixes)):
        return CallableKind.CONVENTION_NAMED
    return kind


def classify_all(
    cls,
    surface: Surface,
    method_names: Optional[Sequence[str]] = None,
    suffixes: Sequence[str] = DEFAULT_ASYNC_SUFFIXES,
    nowrap_attr: Optional[str] = None,
) -> list[Member]:
    """Tags every candidate member of one surface with the kind it should be adapted as.

    Members that shouldn't be adapted come back as PLAIN. Constructors are never included.
    """
    validate_target(cls)
    validate_method_names(method_names)
    members = []
    for name, func, binding in iter_members(cls, surface):
        if name in CONSTRUCTOR_NAMES:
            continue
        members.append(Member(name, func, _select(name, func, method_names, suffixes, nowrap_attr), binding))
    return members


def classify(
    cls,
    surface: Surface,
    method_names: Optional[Sequence[str]] = None,
    suffixes: Sequence[str] = DEFAULT_ASYNC_SUFFIXES,
    nowrap_attr: Optional[str] = None,
) -> list[Member]:
    """Like classify_all, but only returns the members that need an adapter."""
    selected = [
        member
        for member in classify_all(cls, surface, method_names, suffixes, nowrap_attr)
        if member.kind != CallableKind.PLAIN
    ]
    logger.debug(
        "Selected %d %s members of %s: %s",
        len(selected),
        surface.name.lower(),
        cls.__qualname__,
        ", ".join(member.name for member in selected),
    )
    return selected
