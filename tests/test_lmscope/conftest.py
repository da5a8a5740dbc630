import typing as ty

import pytest

from thds.lmscope import LM, settings


@pytest.fixture(autouse=True)
def no_global_lm() -> ty.Iterator[None]:
    settings.configure(None)
    yield
    settings.configure(None)
    assert settings.current_lm() is None, "a test leaked a scoped LM"


@pytest.fixture
def global_lm() -> LM:
    lm = LM("openai/gpt-3.5-turbo", api_key="global-key")
    settings.configure(lm)
    return lm


@pytest.fixture
def instance_lm() -> LM:
    return LM("openai/gpt-4", api_key="instance-key")


@pytest.fixture
def scoped_lm() -> LM:
    return LM("anthropic/claude-3", api_key="fiber-key")
