"""Explicit state machine around a generator-based step sequence.

A step sequence is a generator that yields items to wait for and gets each item's
outcome back at the point where it yielded: the value through ``send``, or a
fault through ``throw``. ``StepSequence`` tracks where the generator is in that
protocol so the driver in ``corowrap.adapter`` never has to inspect the
generator itself.
"""

import enum
import typing


class StepState(enum.Enum):
    CREATED = enum.auto()
    SUSPENDED = enum.auto()
    COMPLETED = enum.auto()
    FAULTED = enum.auto()


TERMINAL_STATES = (StepState.COMPLETED, StepState.FAULTED)


class Step(typing.NamedTuple):
    done: bool
    value: typing.Any  # the yielded item, or the final value once done


class StepSequence:
    def __init__(self, gen: typing.Generator):
        self._gen = gen
        self.state = StepState.CREATED
        self.result: typing.Any = None
        self.fault: typing.Optional[BaseException] = None

    def __repr__(self):
        return f"<StepSequence {self.state.name} {self._gen!r}>"

    @property
    def done(self) -> bool:
        return self.state in TERMINAL_STATES

    def start(self) -> Step:
        return self.resume(None)

    def resume(self, value: typing.Any) -> Step:
        """Resume with the outcome of the last yielded item (``None`` to start)."""
        self._check_not_done()
        if self.state == StepState.CREATED and value is not None:
            raise RuntimeError("A step sequence has to be started with None")
        return self._advance(self._gen.send, value)

    def inject(self, exc: BaseException) -> Step:
        """Raise ``exc`` at the suspension point, giving the sequence a chance to handle it."""
        self._check_not_done()
        return self._advance(self._gen.throw, exc)

    def close(self) -> None:
        if not self.done:
            self._gen.close()
            self.state = StepState.COMPLETED

    def _check_not_done(self):
        if self.done:
            raise RuntimeError(f"Step sequence is already {self.state.name.lower()}")

    def _advance(self, method, arg) -> Step:
        try:
            item = method(arg)
        except StopIteration as exc:
            self.state = StepState.COMPLETED
            self.result = exc.value
            return Step(True, exc.value)
        except BaseException as exc:
            self.state = StepState.FAULTED
            self.fault = exc
            raise
        self.state = StepState.SUSPENDED
        return Step(False, item)
