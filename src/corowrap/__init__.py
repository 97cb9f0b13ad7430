from .exceptions import CorowrapError, InvalidArgument, NotYieldable
from .interface import CallableKind, Surface
from .wrapper import Wrapper, get_wrapper


def wrap(cls, method_names=None):
    """Wraps static and instance methods whose name ends with an async suffix, or are generator
    or coroutine functions, so that they return futures. Accepts an optional list of method names,
    wrapping only those and disabling the suffix check. Returns the class.

    Raises InvalidArgument if method_names is provided but isn't a list or tuple.
    """
    return get_wrapper().wrap(cls, method_names)


def wrap_static_methods(cls, method_names=None):
    return get_wrapper().wrap_static_methods(cls, method_names)


def wrap_instance_methods(cls, method_names=None):
    return get_wrapper().wrap_instance_methods(cls, method_names)


def get_static_methods(cls, method_names=None):
    return get_wrapper().get_static_methods(cls, method_names)


def get_instance_methods(cls, method_names=None):
    return get_wrapper().get_instance_methods(cls, method_names)


def adapt(func, kind=None):
    return get_wrapper().adapt(func, kind)


def nowrap(obj):
    return get_wrapper().nowrap(obj)


def is_adapted(obj):
    return get_wrapper().is_adapted(obj)


__all__ = [
    "CallableKind",
    "CorowrapError",
    "InvalidArgument",
    "NotYieldable",
    "Surface",
    "Wrapper",
    "adapt",
    "get_instance_methods",
    "get_static_methods",
    "get_wrapper",
    "is_adapted",
    "nowrap",
    "wrap",
    "wrap_instance_methods",
    "wrap_static_methods",
]
