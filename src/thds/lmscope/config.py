"""Configuration whose active value is resolved through three tiers.

Highlights:

- Configuration is always accessible and configurable via normal Python code.
- All active configuration is 'registered' and therefore discoverable.
- Config can be temporarily overridden for the current thread or asyncio task,
  and those overrides nest.
- A consumer may pin its own value, which beats any override.
- Config can be seeded via a known environment variable.
- Config can be set by combining one or more configuration dicts - these may be loaded from files,
  but this system remains agnostic as to the format of those files or how and when they are actually loaded.

The basic usage is as follows:

* in module foo:

from thds.lmscope import config

_cfg = config.in_module(__name__)
MODEL = _cfg('model', 'openai/gpt-4o-mini')

def which_model(pinned=None):
    return MODEL.resolve(pinned)

* in module baz:

import foo

foo.MODEL.set_global('openai/gpt-4o')
with foo.MODEL.set_local('anthropic/claude-3'):
    assert foo.which_model() == 'anthropic/claude-3'
    assert foo.which_model('ollama/llama3') == 'ollama/llama3'
assert foo.which_model() == 'openai/gpt-4o'

* as an environment variable:

export FOO_MODEL=ollama/llama3
python -c "from foo import MODEL; assert MODEL() == 'ollama/llama3'"

* discoverability:

from thds.lmscope import config

print(config.show_all_config())
# {'foo.model': 'openai/gpt-4o-mini'}
"""
import typing as ty
from logging import getLogger
from os import getenv

from .stack_context import OverrideStack

_NOT_CONFIGURED = object()
_LOGGER = getLogger(__name__)


class NoConfigurationAvailable(ValueError):
    pass


class ConfigNameCollisionError(KeyError):
    pass


def _sanitize_env(env_var_name: str) -> str:
    return env_var_name.replace("-", "_").replace(".", "_")


def _getenv(env_var_name: str) -> ty.Optional[str]:
    """We want to support a variety of naming conventions for env
    vars, without requiring people to actually name their config using
    all caps and underscores only.

    Many modern shells support more complex env var names.
    """
    return (
        getenv(env_var_name)
        or getenv(_sanitize_env(env_var_name))
        or getenv(_sanitize_env(env_var_name).upper())
    )


T = ty.TypeVar("T")
R = ty.TypeVar("R")


def _not_none(name: str, value: ty.Any) -> None:
    if value is None:
        raise ValueError(f"Config item '{name}' cannot be set to None")


class ConfigItem(ty.Generic[T]):
    """Should only ever be constructed at a module level.

    Resolution order is: an explicitly passed instance override, then the
    innermost scoped override active in the current context, then the
    process-wide global value.
    """

    def __init__(
        self,
        name: str,
        default: T = ty.cast(T, _NOT_CONFIGURED),
        *,
        parse: ty.Callable[[ty.Any], T] = lambda x: x,
        allow_env_var: bool = True,
    ):
        if name in _REGISTRY:
            raise ConfigNameCollisionError(f"Config item {name} has already been registered!")
        _REGISTRY[name] = self
        self.name = name
        self.parse = parse
        env_value = _getenv(name) if allow_env_var else None
        if env_value:
            # env var is only applicable at initial creation.  if you
            # want to set this value globally after application start,
            # use set_global.
            self.global_value = parse(env_value)
        else:
            # a None default means no default: resolve must not hand back None.
            self.global_value = default if default is not None else ty.cast(T, _NOT_CONFIGURED)
        self._overrides: OverrideStack[T] = OverrideStack("config " + name)

    def set_global(self, value: T) -> None:
        """Global to the current process.

        Contexts currently inside a scoped override keep seeing that
        override until it exits. Will not automatically get transferred
        to spawned processes.
        """
        _not_none(self.name, value)
        self.global_value = self.parse(value)
        _LOGGER.debug("Set global value for %s", self.name)

    def clear_global(self) -> None:
        self.global_value = ty.cast(T, _NOT_CONFIGURED)

    def set_local(self, value: T) -> ty.ContextManager[ty.Tuple[T, ...]]:
        """Local to the current thread or asyncio task, for the duration of the with block.

        Will not automatically get transferred to spawned threads.
        """
        _not_none(self.name, value)
        return self._overrides.push(self.parse(value))

    def with_scoped_override(self, value: T, body: ty.Callable[[], R]) -> R:
        """Run body with value as the innermost override for the current context.

        Whatever body returns or raises passes through untouched; the
        override is popped before either reaches the caller.
        """
        with self.set_local(value):
            return body()

    async def awith_scoped_override(self, value: T, body: ty.Callable[[], ty.Awaitable[R]]) -> R:
        with self.set_local(value):
            return await body()

    def cleared(self) -> ty.ContextManager[ty.Tuple[T, ...]]:
        """Run the with block as though no scoped override were active.

        Useful at the top of a task or thread that should not observe
        whatever its parent had installed.
        """
        return self._overrides.cleared()

    def current_override(self) -> ty.Optional[T]:
        return self._overrides.top()

    def override_depth(self) -> int:
        return self._overrides.depth()

    def global_or_none(self) -> ty.Optional[T]:
        return None if self.global_value is _NOT_CONFIGURED else self.global_value

    def resolve(self, instance_override: ty.Optional[T] = None) -> T:
        if instance_override is not None:
            return instance_override
        local = self._overrides.top()
        if local is not None:
            return local
        global_value = self.global_value
        if global_value is _NOT_CONFIGURED:
            raise NoConfigurationAvailable(f"Config item '{self.name}' has not been configured!")
        return global_value

    def __call__(self) -> T:
        return self.resolve()

    def __repr__(self) -> str:
        return f"ConfigItem({self.name!r})"


class ConfigItemP(ty.Protocol[T]):
    def __call__(
        self,
        name: str,
        default: T = ty.cast(T, _NOT_CONFIGURED),
        parse: ty.Callable[[ty.Any], T] = lambda x: x,
        allow_env_var: bool = True,
    ) -> ConfigItem[T]:
        ...


item = ConfigItem


def in_module(module_name: str) -> ConfigItemP:
    """In the vast majority of cases, `in_module(__name__)(...)` should
    be the way you name your configuration items.  It will enhance
    discoverability and clarity, and will avoid configuration name
    collisions.
    """

    def _module(name: str, *args, **kwargs) -> ConfigItem:
        return ConfigItem(f"{module_name}.{name}", *args, **kwargs)

    return ty.cast(ConfigItemP, _module)


_REGISTRY: ty.Dict[str, ConfigItem] = dict()


def config_by_name(name: str) -> ConfigItem:
    """This is a dynamic interface - in general, prefer accessing the ConfigItem object directly."""
    return _REGISTRY[name]


def registered_items() -> ty.List[ConfigItem]:
    return list(_REGISTRY.values())


def set_global_defaults(config: ty.Mapping[str, ty.Any]) -> None:
    """Any config-file parser can create a dictionary of only the
    items it managed to read, and then all of those can be set at once
    via this function.
    """
    for name, value in config.items():
        if isinstance(value, ty.Mapping):  # recurse
            set_global_defaults({f"{name}.{key}": val for key, val in value.items()})
            continue

        if name not in _REGISTRY:
            # try directly importing a module - this is only best-effort and will not work
            # if you did not follow standard configuration naming conventions.
            import importlib

            maybe_module_name = ".".join(name.split(".")[:-1])
            if maybe_module_name:
                try:
                    importlib.import_module(maybe_module_name)
                except ModuleNotFoundError:
                    pass
            if name not in _REGISTRY:
                raise KeyError(
                    f"Config item {name} is not registered"
                    f" and no module with the name {maybe_module_name} registered it on import."
                    " Please double-check your configuration."
                )
        _REGISTRY[name].set_global(value)


def _shown(config_item: ConfigItem) -> ty.Any:
    local = config_item.current_override()
    return config_item.global_or_none() if local is None else local


def show_all_config() -> ty.Dict[str, ty.Any]:
    """Values as seen from the calling context. Unconfigured items show as None."""
    return {k: _shown(v) for k, v in _REGISTRY.items()}


def show_config_cli():
    import argparse
    import importlib
    from pprint import pprint

    parser = argparse.ArgumentParser(description="Print the active configuration registered by a module.")
    parser.add_argument("for_module", type=str)
    args = parser.parse_args()

    importlib.import_module(args.for_module)
    pprint(show_all_config())
