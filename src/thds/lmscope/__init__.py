"""Scoped language model configuration: instance > scoped (per thread/task) > global."""
from importlib.metadata import PackageNotFoundError, version

from . import concurrency, config, lm, module, settings, stack_context  # noqa: F401
from .config import ConfigItem, NoConfigurationAvailable  # noqa: F401
from .lm import LM, InvalidModelId  # noqa: F401
from .module import MissingLMError, Module, ModuleConfig  # noqa: F401
from .settings import awith_lm, configure, current_lm, global_lm, resolve_lm, use_lm, with_lm  # noqa: F401

try:
    __version__ = version("thds.lmscope")
except PackageNotFoundError:  # running from a source checkout
    __version__ = "0.0.0"
