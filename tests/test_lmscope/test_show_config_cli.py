import sys

from thds.lmscope import config, settings


def test_show_config_cli_prints_registered_config(monkeypatch, capsys):
    settings.configure("openai/gpt-4o-mini")
    monkeypatch.setattr(sys, "argv", ["lmscope-show-config", "thds.lmscope.settings"])
    config.show_config_cli()
    out = capsys.readouterr().out
    assert "'thds.lmscope.lm'" in out
    assert "openai/gpt-4o-mini" in out
