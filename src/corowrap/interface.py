import enum


class CallableKind(enum.Enum):
    PLAIN = enum.auto()
    SUSPENDING = enum.auto()  # generator functions and `async def` functions
    CONVENTION_NAMED = enum.auto()  # plain function with an async suffix in its name


class Surface(enum.Enum):
    STATIC = enum.auto()  # staticmethod and classmethod entries of the class
    INSTANCE = enum.auto()  # plain functions of the class, shared by all instances


# Name suffixes that mark a plain function as asynchronous
DEFAULT_ASYNC_SUFFIXES = ("_async", "Async")

# Members that are never wrapped, regardless of filters
CONSTRUCTOR_NAMES = ("__init__", "__new__")

# Set on every adapter we produce, holds its CallableKind
ADAPTED_KIND_ATTR = "_corowrap_adapted_kind"
