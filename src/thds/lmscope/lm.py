"""The language-model handle that gets configured, overridden, and resolved.

An LM is only an identity - `provider/model` plus the credentials needed to
talk to it. Clients for the actual provider APIs are built elsewhere from
one of these.
"""
import typing as ty

import attrs


class InvalidModelId(ValueError):
    pass


def _split_model_id(model_id: str) -> ty.Tuple[str, str]:
    provider, sep, model = model_id.partition("/")
    if not sep:
        raise InvalidModelId(
            f"model_id '{model_id}' must include a provider (e.g., 'openai/gpt-4', 'anthropic/claude-3')."
        )
    if not provider or not model:
        raise InvalidModelId(f"model_id '{model_id}' must have a non-empty provider and model.")
    return provider, model


def _validate_model_id(_inst: "LM", _attr: attrs.Attribute, model_id: str) -> None:
    _split_model_id(model_id)


@attrs.frozen
class LM:
    model_id: str = attrs.field(validator=[attrs.validators.instance_of(str), _validate_model_id])
    api_key: ty.Optional[str] = attrs.field(default=None, repr=False)

    @property
    def provider(self) -> str:
        return _split_model_id(self.model_id)[0]

    @property
    def model(self) -> str:
        """Everything after the provider. May itself contain slashes."""
        return _split_model_id(self.model_id)[1]

    @staticmethod
    def parse(value: ty.Union["LM", str]) -> "LM":
        """For config: accepts an LM as-is, or a bare model id string."""
        if isinstance(value, LM):
            return value
        if isinstance(value, str):
            return LM(value.strip())
        raise TypeError(f"Cannot make an LM out of {type(value).__name__}")

    def __str__(self) -> str:
        return self.model_id
