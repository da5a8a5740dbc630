"""Controlling which scoped overrides a new thread or task starts with.

Left alone, Python gives a new thread an empty context (no overrides),
and gives a new asyncio task a copy of its creator's context (a snapshot
of the creator's overrides). Either way, pushes made by the child are
never seen by the parent. These helpers let you choose the other
behavior explicitly: thds.core's contextful_threadpool_executor opts pool
workers in to a snapshot, and without_overrides opts a task out.
"""
import contextlib
import typing as ty

from thds.core.concurrency import contextful_threadpool_executor, initcontext  # noqa: F401

from . import config


@contextlib.contextmanager
def without_overrides(*items: config.ConfigItem) -> ty.Iterator[None]:
    """Run the with block as though no scoped override were active for the given
    config items - or for every registered item, if none are given.

    Typically used first thing inside an asyncio task that should not inherit
    its creator's overrides.
    """
    with contextlib.ExitStack() as stack:
        for item in items or tuple(config.registered_items()):
            stack.enter_context(item.cleared())
        yield
