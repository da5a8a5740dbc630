"""Modules are the consumers of LM configuration.

A Module may pin its own LM, which then beats any scoped or global LM.
Modules composed of other modules can push their LM down to children that
have not been given one of their own:

    class Pipeline(Module):
        def __init__(self):
            super().__init__()
            self.draft = Drafter()
            self.review = Reviewer(lm="openai/gpt-4o")

    pipeline = Pipeline().configure(lambda c: setattr(c, "lm", LM("openai/gpt-4o-mini")))
    # draft now uses gpt-4o-mini; review keeps gpt-4o.
"""
import typing as ty

import attrs
from typing_extensions import Self

from thds.core.log import getLogger, logger_context

from .config import NoConfigurationAvailable
from .lm import LM
from .settings import resolve_lm

logger = getLogger(__name__)


class MissingLMError(NoConfigurationAvailable):
    @staticmethod
    def for_module(module_name: str) -> "MissingLMError":
        return MissingLMError(
            f"No language model configured for {module_name}. Use settings.configure(lm) to set"
            " a global LM, settings.use_lm(lm) to scope one, or"
            " module_instance.configure(lambda c: setattr(c, 'lm', lm)) to pin one to this module."
        )


def _optional_lm(value: ty.Union[LM, str, None]) -> ty.Optional[LM]:
    return None if value is None else LM.parse(value)


def _mark_explicit(
    config: "ModuleConfig", _attr: attrs.Attribute, lm: ty.Optional[LM]
) -> ty.Optional[LM]:
    config._lm_inherited = False
    return lm


@attrs.define
class ModuleConfig:
    lm: ty.Optional[LM] = attrs.field(
        default=None,
        converter=_optional_lm,
        on_setattr=attrs.setters.pipe(attrs.setters.convert, _mark_explicit),
    )
    _lm_inherited: bool = attrs.field(default=False, init=False, repr=False, eq=False)
    # true only while lm holds a value pushed down by a parent module.

    def inherit_lm(self, lm: ty.Optional[LM]) -> None:
        self.lm = lm
        self._lm_inherited = lm is not None

    @property
    def lm_is_inherited(self) -> bool:
        return self._lm_inherited


class Module:
    def __init__(self, lm: ty.Union[LM, str, None] = None):
        self.config = ModuleConfig(lm=lm)

    @property
    def lm(self) -> LM:
        """Resolved fresh on every access; do not hold on to it across operations."""
        return resolve_lm(self.config.lm)

    def require_lm(self) -> LM:
        try:
            return self.lm
        except NoConfigurationAvailable as err:
            raise MissingLMError.for_module(type(self).__name__) from err

    def named_predictors(self) -> ty.List[ty.Tuple[str, "Module"]]:
        """Direct child modules, found among this module's attributes.

        Modules nested inside list, tuple, or dict attributes are included
        with an indexed name, e.g. `steps[0]` or `experts[legal]`.
        """
        found: ty.List[ty.Tuple[str, Module]] = list()
        for name, value in vars(self).items():
            if value is self:
                continue
            if isinstance(value, Module):
                found.append((name, value))
            elif isinstance(value, (list, tuple)):
                found.extend((f"{name}[{i}]", v) for i, v in enumerate(value) if isinstance(v, Module))
            elif isinstance(value, dict):
                found.extend((f"{name}[{k}]", v) for k, v in value.items() if isinstance(v, Module))
        return found

    def predictors(self) -> ty.List["Module"]:
        return [module for _, module in self.named_predictors()]

    def configure(self, fn: ty.Callable[[ModuleConfig], ty.Any]) -> Self:
        """Mutate this module's config, then share its LM with unconfigured descendants."""
        fn(self.config)
        # a cleared LM is pushed down too, so inherited children fall back to scope/global.
        self._propagate_lm(self.config.lm, {id(self)})
        return self

    def _propagate_lm(self, lm: ty.Optional[LM], seen: ty.Set[int]) -> None:
        for name, child in self.named_predictors():
            if id(child) in seen:
                continue
            seen.add(id(child))
            if child._has_explicit_lm():
                logger.debug("Keeping explicit child LM", child=name, lm=child.config.lm)
                continue
            child.config.inherit_lm(lm)
            child._propagate_lm(lm, seen)

    def _has_explicit_lm(self) -> bool:
        return self.config.lm is not None and not self.config.lm_is_inherited

    def configure_predictor(self, name: str, fn: ty.Callable[[ModuleConfig], ty.Any]) -> Self:
        named = dict(self.named_predictors())
        if name not in named:
            raise ValueError(f"Unknown predictor: {name}. Available predictors: {', '.join(named)}")
        named[name].configure(fn)
        return self

    def forward(self, **inputs: ty.Any) -> ty.Any:
        raise NotImplementedError(f"{type(self).__name__} must implement forward")

    def __call__(self, **inputs: ty.Any) -> ty.Any:
        with logger_context(module=type(self).__name__):
            logger.debug("Calling forward", inputs=sorted(inputs))
            return self.forward(**inputs)
