import logging
import types
import typing
import warnings
from typing import Optional, Sequence

from .adapter import adapt
from .classifier import Member, classify, classify_all, kind_of, validate_method_names, validate_target
from .interface import ADAPTED_KIND_ATTR, DEFAULT_ASYNC_SUFFIXES, CallableKind, Surface
from .scheduler import Scheduler

logger = logging.getLogger(__name__)

_wrapper_registry: dict[str, "Wrapper"] = {}

C = typing.TypeVar("C", bound=type)


def get_wrapper(name: str = "default") -> "Wrapper":
    """Get or create a wrapper instance by name from the global registry."""
    if name not in _wrapper_registry:
        _wrapper_registry[name] = Wrapper()
    return _wrapper_registry[name]


class Wrapper:
    """Makes the async-looking methods of a class return futures.

    Static methods, class methods and instance methods are wrapped when their
    name ends with one of `suffixes`, or when they are generator or coroutine
    functions. Passing `method_names` to any of the methods below replaces that
    detection with an explicit list of names.

    Wrapping happens in place and isn't guarded against repetition, so wrap each
    class once. With `multiwrap_warning=True` a warning is emitted when an
    already adapted method gets adapted again.
    """

    def __init__(
        self,
        suffixes: Sequence[str] = DEFAULT_ASYNC_SUFFIXES,
        multiwrap_warning: bool = False,
        scheduler: Optional[Scheduler] = None,
    ):
        if isinstance(suffixes, str):
            suffixes = (suffixes,)
        self._suffixes = tuple(suffixes)
        self._multiwrap_warning = multiwrap_warning
        self._scheduler = scheduler if scheduler is not None else Scheduler()

        # Special attribute to mark something as non-wrappable
        self._nowrap_attr = "_corowrap_nowrap_%d" % id(self)

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    def _classify(self, cls, surface: Surface, method_names) -> list[Member]:
        return classify(cls, surface, method_names, suffixes=self._suffixes, nowrap_attr=self._nowrap_attr)

    def _rebind(self, func, binding):
        if binding is None:
            return func
        return binding(func)

    def _wrap_surface(self, cls, surface: Surface, method_names) -> None:
        for member in self._classify(cls, surface, method_names):
            if self.is_adapted(member.func) and self._multiwrap_warning:
                warnings.warn(f"Method {cls.__qualname__}.{member.name} is already adapted, but getting adapted again")
            adapter = self.adapt(member.func, member.kind)
            setattr(cls, member.name, self._rebind(adapter, member.binding))

    def _get_methods(self, cls, surface: Surface, method_names) -> dict[str, typing.Callable]:
        methods = {}
        members = classify_all(cls, surface, method_names, suffixes=self._suffixes, nowrap_attr=self._nowrap_attr)
        for member in members:
            if member.kind == CallableKind.PLAIN:
                func = member.func
            else:
                func = self.adapt(member.func, member.kind)
            if member.binding is classmethod:
                func = types.MethodType(func, cls)
            methods[member.name] = func
        return methods

    def adapt(self, func: typing.Callable, kind: Optional[CallableKind] = None) -> typing.Callable:
        """Adapt a single function. Plain functions are adapted by naming convention."""
        if kind is None:
            kind = kind_of(func)
            if kind == CallableKind.PLAIN:
                kind = CallableKind.CONVENTION_NAMED
        return adapt(func, kind, self._scheduler)

    def wrap(self, cls: C, method_names: Optional[Sequence[str]] = None) -> C:
        validate_target(cls)
        validate_method_names(method_names)
        self._wrap_surface(cls, Surface.STATIC, method_names)
        self._wrap_surface(cls, Surface.INSTANCE, method_names)
        logger.debug("Wrapped %s", cls.__qualname__)
        return cls

    def wrap_static_methods(self, cls: C, method_names: Optional[Sequence[str]] = None) -> C:
        validate_target(cls)
        validate_method_names(method_names)
        self._wrap_surface(cls, Surface.STATIC, method_names)
        return cls

    def wrap_instance_methods(self, cls: C, method_names: Optional[Sequence[str]] = None) -> C:
        validate_target(cls)
        validate_method_names(method_names)
        self._wrap_surface(cls, Surface.INSTANCE, method_names)
        return cls

    def get_static_methods(self, cls, method_names: Optional[Sequence[str]] = None) -> dict[str, typing.Callable]:
        return self._get_methods(cls, Surface.STATIC, method_names)

    def get_instance_methods(self, cls, method_names: Optional[Sequence[str]] = None) -> dict[str, typing.Callable]:
        return self._get_methods(cls, Surface.INSTANCE, method_names)

    def nowrap(self, obj):
        if isinstance(obj, (staticmethod, classmethod)):
            setattr(obj.__func__, self._nowrap_attr, True)
        else:
            setattr(obj, self._nowrap_attr, True)
        return obj

    def is_adapted(self, obj) -> bool:
        if isinstance(obj, (staticmethod, classmethod)):
            obj = obj.__func__
        return getattr(obj, ADAPTED_KIND_ATTR, None) is not None
