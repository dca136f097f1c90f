import pytest

from tycoon.sim.config import DEFAULT_CONFIG, load_config


def test_defaults_without_file(monkeypatch):
    monkeypatch.delenv("ALPHAVANTAGE_API_KEY", raising=False)
    config = load_config()
    assert config == DEFAULT_CONFIG
    assert config is not DEFAULT_CONFIG
    config["market"]["news_limit"] = 1
    assert DEFAULT_CONFIG["market"]["news_limit"] == 15


def test_yaml_overrides_merge_into_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("ALPHAVANTAGE_API_KEY", raising=False)
    path = tmp_path / "config.yaml"
    path.write_text("market:\n  seed: 123\n  news_limit: 5\nbetting:\n  payout_multiplier: 2.0\n")

    config = load_config(str(path))

    assert config["market"]["seed"] == 123
    assert config["market"]["news_limit"] == 5
    assert config["market"]["history_length"] == 50
    assert config["betting"]["payout_multiplier"] == 2.0
    assert config["betting"]["window_seconds"] == 30


def test_empty_yaml_is_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("ALPHAVANTAGE_API_KEY", raising=False)
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config(str(path)) == DEFAULT_CONFIG


def test_api_key_comes_from_environment(monkeypatch):
    monkeypatch.setenv("ALPHAVANTAGE_API_KEY", "secret-key")
    assert load_config()["fetcher"]["api_key"] == "secret-key"


def test_non_mapping_yaml_is_rejected(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ValueError):
        load_config(str(path))


def test_invalid_window_is_rejected(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("betting:\n  window_seconds: 0\n")
    with pytest.raises(ValueError):
        load_config(str(path))
