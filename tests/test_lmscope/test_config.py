import asyncio
import uuid

import pytest

from thds.lmscope import config

_cfg = config.in_module("tests.test_lmscope.test_config")
A = _cfg("A", 1)
B = _cfg("B", 2)
C = _cfg("C", 3)
D = _cfg("D", 4)
UNSET = _cfg("unset")
PARSED = _cfg("parsed", 0, parse=int)


def test_recursive_config_load():
    config.set_global_defaults(
        {
            "tests.test_lmscope.test_config.A": 10,
            "tests": {"test_lmscope": {"test_config": {"C": 20}}},
        }
    )
    assert A() == 10
    assert C() == 20
    assert B() == 2
    assert D() == 4


def test_set_global_defaults_error():
    with pytest.raises(KeyError, match="Config item no_such_lmscope_module.E is not registered"):
        config.set_global_defaults({"no_such_lmscope_module.E": 10})


def test_name_collision():
    with pytest.raises(config.ConfigNameCollisionError):
        _cfg("A", 100)


def test_resolution_precedence():
    B.set_global(2)
    assert B.resolve() == 2
    with B.set_local(3):
        assert B.resolve() == 3
        assert B.resolve(instance_override=4) == 4
    assert B.resolve(instance_override=4) == 4
    assert B.resolve() == 2


def test_nothing_configured_raises():
    with pytest.raises(config.NoConfigurationAvailable, match="unset"):
        UNSET.resolve()
    assert UNSET.resolve(instance_override="pinned") == "pinned"
    with UNSET.set_local("scoped"):
        assert UNSET() == "scoped"
    with pytest.raises(config.NoConfigurationAvailable):
        UNSET()


def test_none_default_means_unconfigured():
    item = config.item(f"tests.nonedefault_{uuid.uuid4().hex}.value", None)
    assert item.global_or_none() is None
    with pytest.raises(config.NoConfigurationAvailable, match="has not been configured"):
        item.resolve()
    assert item.resolve(instance_override="pinned") == "pinned"


def test_none_is_not_a_value():
    with pytest.raises(ValueError):
        D.set_global(None)  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        D.with_scoped_override(None, lambda: 1)  # type: ignore[arg-type]
    assert D() == 4


def test_with_scoped_override_nests_and_restores():
    seen = list()

    def inner():
        seen.append((D.current_override(), D.override_depth()))
        return "inner-result"

    def outer():
        seen.append((D.current_override(), D.override_depth()))
        result = D.with_scoped_override(2, inner)
        seen.append((D.current_override(), D.override_depth()))
        return result

    assert D.current_override() is None
    assert D.with_scoped_override(1, outer) == "inner-result"
    assert seen == [(1, 1), (2, 2), (1, 1)]
    assert D.current_override() is None
    assert D.override_depth() == 0


def test_with_scoped_override_propagates_the_same_exception():
    err = RuntimeError("from the body")

    def body():
        raise err

    with D.set_local(1):
        depth_before = D.override_depth()
        with pytest.raises(RuntimeError) as caught:
            D.with_scoped_override(2, body)
        assert caught.value is err
        assert D.override_depth() == depth_before
        assert D.current_override() == 1


def test_awith_scoped_override_returns_body_result():
    async def body():
        await asyncio.sleep(0)
        return D.current_override(), D.override_depth()

    async def main():
        with D.set_local(1):
            result = await D.awith_scoped_override(2, body)
            return result, D.current_override(), D.override_depth()

    assert asyncio.run(main()) == ((2, 2), 1, 1)
    assert D.override_depth() == 0


def test_awith_scoped_override_propagates_the_same_exception():
    err = RuntimeError("from the coroutine")

    async def body():
        await asyncio.sleep(0)
        raise err

    async def main():
        with pytest.raises(RuntimeError) as caught:
            await D.awith_scoped_override(2, body)
        return caught.value, D.override_depth(), D.current_override()

    assert asyncio.run(main()) == (err, 0, None)
    assert D() == 4


def test_cleared_hides_overrides_only_within_block():
    with D.set_local(1):
        with D.cleared() as stack:
            assert stack == ()
            assert D.current_override() is None
            assert D() == 4
            with D.set_local(9):
                assert D() == 9
        assert D.current_override() == 1
        assert D.override_depth() == 1
        assert D() == 1
    assert D.override_depth() == 0


def test_global_change_does_not_affect_active_scope():
    A.set_global(1)
    with A.set_local(5):
        A.set_global(7)
        assert A() == 5
    assert A() == 7


def test_parse_applies_to_global_and_local():
    PARSED.set_global("12")
    assert PARSED() == 12
    with PARSED.set_local("13"):
        assert PARSED() == 13


def test_env_var_seeds_global(monkeypatch):
    name = f"tests.envseed_{uuid.uuid4().hex}.value"
    monkeypatch.setenv(name.replace(".", "_").upper(), "42")
    item = config.item(name, 0, parse=int)
    assert item() == 42


def test_env_var_ignored_when_disallowed(monkeypatch):
    name = f"tests.envseed_{uuid.uuid4().hex}.value"
    monkeypatch.setenv(name.replace(".", "_").upper(), "42")
    item = config.item(name, 0, parse=int, allow_env_var=False)
    assert item() == 0


def test_show_all_config_reflects_current_context():
    A.set_global(1)
    with A.set_local(9):
        shown = config.show_all_config()
        assert shown["tests.test_lmscope.test_config.A"] == 9
        assert shown["tests.test_lmscope.test_config.unset"] is None
    assert config.show_all_config()["tests.test_lmscope.test_config.A"] == 1


def test_config_by_name():
    assert config.config_by_name("tests.test_lmscope.test_config.C") is C
