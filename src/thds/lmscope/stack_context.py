"""A per-context LIFO of scoped overrides.

thds.core's StackContext holds only the innermost value for the current
thread/asyncio task. OverrideStack keeps the whole sequence of active
overrides instead, so that depth can be observed and a body can be run
with no inherited overrides at all.
"""
import typing as ty

from thds.core.stack_context import StackContext

T = ty.TypeVar("T")


class OverrideStack(ty.Generic[T]):
    """A per-context LIFO of override values, innermost last.

    The stack is an immutable tuple held in a StackContext, so a push is a
    set of a longer tuple and a pop is a reset of that exact token. A
    context that never pushed sees the empty tuple.
    """

    def __init__(self, debug_name: str):
        self._stack: StackContext[ty.Tuple[T, ...]] = StackContext(debug_name, tuple())

    def push(self, value: T) -> ty.ContextManager[ty.Tuple[T, ...]]:
        return self._stack.set(self._stack() + (value,))

    def cleared(self) -> ty.ContextManager[ty.Tuple[T, ...]]:
        return self._stack.set(tuple())

    def top(self) -> ty.Optional[T]:
        stack = self._stack()
        return stack[-1] if stack else None

    def depth(self) -> int:
        return len(self._stack())

    def __call__(self) -> ty.Tuple[T, ...]:
        return self._stack()
