import pytest

from corowrap import Wrapper


@pytest.fixture(autouse=True)
def use_asyncio_debug(monkeypatch):
    monkeypatch.setenv("PYTHONASYNCIODEBUG", "1")


@pytest.fixture()
def wrapper():
    w = Wrapper()
    yield w
    w.scheduler.close()  # prevent "unclosed event loop" warnings
