"""Process-wide language model configuration.

Set the default once at startup:

    settings.configure("openai/gpt-4o-mini")

then anything that needs a model calls `resolve_lm(...)` each time it
needs one, so that scoped overrides installed by callers are observed:

    with settings.use_lm(LM("anthropic/claude-3-haiku")):
        summarize(doc)  # resolves to claude-3-haiku, in this thread/task only
"""
import contextlib
import typing as ty

from thds.core.log import getLogger

from . import config
from .lm import LM

_LM: config.ConfigItem[LM] = config.item("thds.lmscope.lm", parse=LM.parse)
# seeded from THDS_LMSCOPE_LM, if set.

logger = getLogger(__name__)
R = ty.TypeVar("R")


def configure(lm: ty.Union[LM, str, None]) -> None:
    """Set the global default LM for every context with no active override.

    Passing None clears the global default entirely.
    """
    if lm is None:
        _LM.clear_global()
        logger.debug("Cleared global LM")
        return
    _LM.set_global(LM.parse(lm))
    logger.debug("Configured global LM", lm=_LM.global_value, in_scope=_LM.override_depth() > 0)


def global_lm() -> ty.Optional[LM]:
    return _LM.global_or_none()


@contextlib.contextmanager
def use_lm(lm: ty.Union[LM, str]) -> ty.Iterator[LM]:
    """Make lm the active LM for the current thread/task for the duration of the with block."""
    with _LM.set_local(LM.parse(lm)) as stack:
        logger.debug("Entered LM scope", lm=stack[-1], depth=len(stack))
        try:
            yield stack[-1]
        finally:
            logger.debug("Exiting LM scope", lm=stack[-1], depth=len(stack))


def with_lm(lm: ty.Union[LM, str], body: ty.Callable[[], R]) -> R:
    with use_lm(lm):
        return body()


async def awith_lm(lm: ty.Union[LM, str], body: ty.Callable[[], ty.Awaitable[R]]) -> R:
    with use_lm(lm):
        return await body()


def current_lm() -> ty.Optional[LM]:
    """The innermost scoped override for the calling context, ignoring instance and global LMs."""
    return _LM.current_override()


def resolve_lm(instance_lm: ty.Optional[LM] = None) -> LM:
    """Instance LM if given, else the innermost scoped LM, else the global LM.

    Raises config.NoConfigurationAvailable if none of those are set.
    """
    return _LM.resolve(instance_lm)


def lm_config_item() -> config.ConfigItem[LM]:
    return _LM
