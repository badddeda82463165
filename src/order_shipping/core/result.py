"""Success/failure values and their deferred (async) composition.

Two layers
----------
1.  ``Result[T, E]`` is ``Ok[T] | Err[E]``: a plain, synchronous value that
    is explicitly tagged as success or failure.  Domain functions return
    these instead of raising for expected failures.
2.  ``AsyncResult[T, E]`` is a *deferred* computation that resolves to a
    ``Result``.  Nothing runs until the ``AsyncResult`` is awaited; each
    ``map``/``chain`` builds a new deferred step on top of the previous one.

Ordering invariants
-------------------
*  Steps execute strictly in the order they were chained.  A step starts
   only after the previous step's value has resolved; there is no
   concurrent execution inside one chain.
*  Once a step resolves to ``Err``, every later ``map``/``chain`` step is
   skipped and the whole chain resolves to that first ``Err``.
*  Raw exceptions enter a chain only through ``AsyncResult.from_awaitable``,
   which converts them with a caller-supplied mapper.  A chain therefore
   never raises for collaborator faults.
*  Awaiting the same ``AsyncResult`` twice runs the pipeline twice.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Generator, Iterable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")
F = TypeVar("F")
A = TypeVar("A")


# ---------------------------------------------------------------------------
# Synchronous layer
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying ``value``."""

    value: T

    @property
    def is_ok(self) -> bool:
        return True

    @property
    def is_err(self) -> bool:
        return False

    def map(self, f: Callable[[T], U]) -> Ok[U]:
        return Ok(f(self.value))

    def map_error(self, f: Callable[[Any], F]) -> Ok[T]:
        return self

    def and_then(self, f: Callable[[T], Result[U, E]]) -> Result[U, E]:
        return f(self.value)

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err(Generic[E]):
    """Failed outcome carrying ``error``."""

    error: E

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def is_err(self) -> bool:
        return True

    def map(self, f: Callable[[Any], U]) -> Err[E]:
        return self

    def map_error(self, f: Callable[[E], F]) -> Err[F]:
        return Err(f(self.error))

    def and_then(self, f: Callable[[Any], Result[U, E]]) -> Err[E]:
        return self

    def unwrap(self) -> Any:
        raise ValueError(f"Called unwrap() on Err: {self.error!r}")


Result = Union[Ok[T], Err[E]]


def try_fold(
    items: Iterable[A],
    initial: T,
    step: Callable[[T, A], Result[T, E]],
) -> Result[T, E]:
    """Thread *initial* through ``step`` for each item, stopping at the first ``Err``.

    Items after the failing one are never passed to ``step``.
    """
    acc = initial
    for item in items:
        outcome = step(acc, item)
        if isinstance(outcome, Err):
            return outcome
        acc = outcome.value
    return Ok(acc)


# ---------------------------------------------------------------------------
# Deferred layer
# ---------------------------------------------------------------------------

class AsyncResult(Generic[T, E]):
    """A deferred operation that resolves to ``Ok[T] | Err[E]``.

    Build one with :meth:`from_result`, :meth:`ok`, :meth:`err` or
    :meth:`from_awaitable`, compose with :meth:`map`, :meth:`map_error`
    and :meth:`chain`, then ``await`` it to run the pipeline.
    """

    __slots__ = ("_thunk",)

    def __init__(self, thunk: Callable[[], Awaitable[Result[T, E]]]) -> None:
        self._thunk = thunk

    def __await__(self) -> Generator[Any, None, Result[T, E]]:
        return self._thunk().__await__()

    async def run(self) -> Result[T, E]:
        """Execute the pipeline and return its ``Result``."""
        return await self._thunk()

    # -- Lifting -----------------------------------------------------------

    @classmethod
    def from_result(cls, result: Result[T, E]) -> AsyncResult[T, E]:
        """Lift an already computed ``Result`` into the deferred form."""

        async def _resolved() -> Result[T, E]:
            return result

        return cls(_resolved)

    @classmethod
    def ok(cls, value: T) -> AsyncResult[T, Any]:
        return cls.from_result(Ok(value))

    @classmethod
    def err(cls, error: E) -> AsyncResult[Any, E]:
        return cls.from_result(Err(error))

    @classmethod
    def from_awaitable(
        cls,
        factory: Callable[[], Awaitable[T]],
        on_error: Callable[[Exception], E],
    ) -> AsyncResult[T, E]:
        """Lift an async operation, converting any raised fault via *on_error*.

        *factory* is called lazily, when this step is reached, so a
        short-circuited chain never creates the underlying coroutine.
        """

        async def _guarded() -> Result[T, E]:
            try:
                value = await factory()
            except Exception as exc:
                return Err(on_error(exc))
            return Ok(value)

        return cls(_guarded)

    # -- Combinators -------------------------------------------------------

    def map(self, f: Callable[[T], U]) -> AsyncResult[U, E]:
        """Transform the success value; failures pass through unchanged."""

        async def _mapped() -> Result[U, E]:
            outcome = await self._thunk()
            return outcome.map(f)

        return AsyncResult(_mapped)

    def map_error(self, f: Callable[[E], F]) -> AsyncResult[T, F]:
        """Transform the failure value; successes pass through unchanged."""

        async def _mapped() -> Result[T, F]:
            outcome = await self._thunk()
            return outcome.map_error(f)

        return AsyncResult(_mapped)

    def chain(self, f: Callable[[T], AsyncResult[U, E]]) -> AsyncResult[U, E]:
        """Sequence a dependent deferred step, short-circuiting on failure."""

        async def _chained() -> Result[U, E]:
            outcome = await self._thunk()
            if isinstance(outcome, Err):
                return outcome
            return await f(outcome.value)

        return AsyncResult(_chained)

    bind = chain

    def chain_result(self, f: Callable[[T], Result[U, E]]) -> AsyncResult[U, E]:
        """Sequence a synchronous ``Result``-returning step."""
        return self.chain(lambda value: AsyncResult.from_result(f(value)))
