import asyncio
import pytest

import corowrap
from corowrap import InvalidArgument


async def fetch_a(id):
    await asyncio.sleep(0.01)
    return {"id": id}


async def fail(exc):
    await asyncio.sleep(0)
    raise exc


class CustomException(Exception):
    pass


def make_target():
    # a fresh class per test, since wrapping mutates it
    class Target:
        def __init__(self, base=0):
            self.base = base

        @staticmethod
        def computeAsync(x):
            return x * 2

        @classmethod
        def create_async(cls, base):
            return cls(base)

        @staticmethod
        def helper(x):
            return x

        def add_async(self, *values, scale=1):
            return (self.base + sum(values)) * scale

        def loadAsync(self, id):
            a = yield fetch_a(id)
            return a

        def steps(self):
            a = yield fetch_a(1)
            b = yield fetch_a(2)
            return [a, b, self.base]

        async def fetch(self, id):
            return await fetch_a(id)

        def plain(self, x):
            return x

        def fail_async(self):
            raise CustomException("sync")

        def fail_later(self):
            yield fetch_a(1)
            raise CustomException("later")

        def recover(self):
            try:
                yield fail(CustomException("injected"))
            except CustomException as exc:
                return f"recovered from {exc}"

        @property
        def value_async(self):
            return self.base

    return Target


def test_wrap_returns_same_class():
    Target = make_target()
    assert corowrap.wrap(Target) is Target


def test_wrap_as_decorator():
    @corowrap.wrap
    class Decorated:
        def ping_async(self):
            return "pong"

    assert corowrap.is_adapted(Decorated.__dict__["ping_async"])


@pytest.mark.asyncio
async def test_static_convention_named():
    Target = corowrap.wrap(make_target())
    fut = Target.computeAsync(5)
    assert isinstance(fut, asyncio.Future)
    assert await fut == 10


@pytest.mark.asyncio
async def test_classmethod_keeps_receiver():
    Target = corowrap.wrap(make_target())
    assert isinstance(Target.__dict__["create_async"], classmethod)
    obj = await Target.create_async(3)
    assert isinstance(obj, Target)
    assert obj.base == 3


@pytest.mark.asyncio
async def test_instance_method_keeps_receiver_and_arguments():
    Target = corowrap.wrap(make_target())
    obj = Target(1)
    assert await obj.add_async(2, 3, scale=10) == 60
    assert await obj.add_async() == 1


@pytest.mark.asyncio
async def test_instance_suspend_style():
    Target = corowrap.wrap(make_target())
    assert await Target().loadAsync(7) == {"id": 7}


@pytest.mark.asyncio
async def test_generator_without_suffix():
    Target = corowrap.wrap(make_target())
    assert await Target(3).steps() == [{"id": 1}, {"id": 2}, 3]


@pytest.mark.asyncio
async def test_coroutine_function_without_suffix():
    Target = corowrap.wrap(make_target())
    fut = Target().fetch(4)
    assert isinstance(fut, asyncio.Future)
    assert await fut == {"id": 4}


@pytest.mark.asyncio
async def test_faults_are_deferred():
    Target = corowrap.wrap(make_target())
    obj = Target()
    fut = obj.fail_async()  # must not raise here
    with pytest.raises(CustomException, match="sync"):
        await fut

    fut = obj.fail_later()
    with pytest.raises(CustomException, match="later"):
        await fut


@pytest.mark.asyncio
async def test_injected_fault_is_recoverable():
    Target = corowrap.wrap(make_target())
    assert await Target().recover() == "recovered from injected"


def test_untouched_members():
    Target = make_target()
    before = dict(Target.__dict__)
    corowrap.wrap(Target)
    assert Target.__dict__["__init__"] is before["__init__"]
    assert Target.__dict__["helper"] is before["helper"]
    assert Target.__dict__["plain"] is before["plain"]
    assert Target.__dict__["value_async"] is before["value_async"]
    assert Target(5).value_async == 5
    assert Target().plain(1) == 1


def test_inherited_members_are_untouched():
    Base = make_target()
    before = dict(Base.__dict__)

    class Sub(Base):
        def own_async(self):
            return 1

    corowrap.wrap(Sub)
    assert corowrap.is_adapted(Sub.__dict__["own_async"])
    assert "add_async" not in Sub.__dict__
    assert Base.__dict__["add_async"] is before["add_async"]


@pytest.mark.asyncio
async def test_method_names_replace_detection():
    Target = make_target()
    add_async = Target.__dict__["add_async"]
    corowrap.wrap(Target, ["plain"])
    assert await Target().plain(1) == 1
    assert Target.__dict__["add_async"] is add_async
    assert Target().add_async(1) == 1


@pytest.mark.asyncio
async def test_method_names_keep_suspend_style():
    Target = make_target()
    corowrap.wrap(Target, ("steps",))
    assert await Target().steps() == [{"id": 1}, {"id": 2}, 0]
    assert not corowrap.is_adapted(Target.__dict__["loadAsync"])


@pytest.mark.parametrize("method_names", ["plain", {"plain"}, 42])
def test_invalid_method_names(method_names):
    Target = make_target()
    before = dict(Target.__dict__)
    with pytest.raises(InvalidArgument):
        corowrap.wrap(Target, method_names)
    with pytest.raises(InvalidArgument):
        corowrap.wrap_static_methods(Target, method_names)
    with pytest.raises(InvalidArgument):
        corowrap.wrap_instance_methods(Target, method_names)
    assert dict(Target.__dict__) == before


def test_invalid_target():
    with pytest.raises(InvalidArgument):
        corowrap.wrap(make_target()())


def test_constructor_is_never_wrapped():
    Target = make_target()
    init = Target.__dict__["__init__"]
    corowrap.wrap(Target, ["__init__", "__new__", "plain"])
    assert Target.__dict__["__init__"] is init
    assert "__new__" not in Target.__dict__
    assert Target(2).base == 2


def test_wrap_static_methods_only():
    Target = make_target()
    add_async = Target.__dict__["add_async"]
    corowrap.wrap_static_methods(Target)
    assert corowrap.is_adapted(Target.__dict__["computeAsync"])
    assert corowrap.is_adapted(Target.__dict__["create_async"])
    assert Target.__dict__["add_async"] is add_async


def test_wrap_instance_methods_only():
    Target = make_target()
    compute = Target.__dict__["computeAsync"]
    corowrap.wrap_instance_methods(Target)
    assert Target.__dict__["computeAsync"] is compute
    assert corowrap.is_adapted(Target.__dict__["add_async"])
    assert corowrap.is_adapted(Target.__dict__["loadAsync"])


@pytest.mark.asyncio
async def test_wrapping_twice_wraps_again():
    Target = corowrap.wrap(make_target())
    first = Target.__dict__["add_async"]
    corowrap.wrap(Target)
    second = Target.__dict__["add_async"]
    assert second is not first
    assert second.__wrapped__ is first
    assert await Target(1).add_async(1) == 2
