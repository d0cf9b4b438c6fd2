"""Unit tests for settings resolution."""

import json
from decimal import Decimal

import pytest

from bookpay.config import Settings, load_config_file, save_config_file
from bookpay.errors import ConfigError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in Settings.model_fields:
        monkeypatch.delenv("BOOKPAY_" + name.upper(), raising=False)


class TestSettings:
    def test_defaults(self, tmp_path):
        settings = Settings.load(tmp_path / "missing.json")
        assert settings.tax_rate_percent == Decimal("7.75")
        assert settings.deposit_percent == Decimal("33.33")
        assert settings.full_payment_threshold == Decimal("200.00")
        assert settings.authorization_ttl_minutes == 20
        assert settings.psp_secret_key is None

    def test_file_then_env_then_kwargs(self, tmp_path, monkeypatch):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"tax_rate_percent": "8.25", "currency": "cad", "deposit_percent": "25"}))
        monkeypatch.setenv("BOOKPAY_CURRENCY", "eur")
        monkeypatch.setenv("BOOKPAY_DEPOSIT_PERCENT", "40")

        settings = Settings.load(path, deposit_percent=Decimal("50"))
        assert settings.tax_rate_percent == Decimal("8.25")
        assert settings.currency == "eur"
        assert settings.deposit_percent == Decimal("50")

    def test_env_bool(self, tmp_path, monkeypatch):
        monkeypatch.setenv("BOOKPAY_DEPOSITS_ENABLED", "false")
        assert not Settings.load(tmp_path / "none.json").deposit_policy().enabled

    def test_fixed_deposit_policy(self):
        policy = Settings(deposit_fixed=Decimal("75")).deposit_policy()
        assert policy.fixed == Decimal("75")
        assert policy.percent is None

    def test_invalid_value(self, tmp_path, monkeypatch):
        monkeypatch.setenv("BOOKPAY_DEPOSIT_PERCENT", "150")
        with pytest.raises(ConfigError):
            Settings.load(tmp_path / "none.json")


class TestConfigFile:
    def test_round_trip(self, tmp_path):
        path = tmp_path / "nested" / "config.json"
        save_config_file({"currency": "usd"}, path)
        assert load_config_file(path) == {"currency": "usd"}

    def test_unknown_keys_dropped(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"currency": "usd", "access_token": "x"}))
        assert load_config_file(path) == {"currency": "usd"}

    def test_bad_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError):
            load_config_file(path)

    def test_not_an_object(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigError):
            load_config_file(path)
