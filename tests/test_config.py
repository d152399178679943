"""
Test suite for configuration module
"""

from simple_bank import config as config_module
from simple_bank.config import BankConfig, get_config, reload_config


class TestBankConfig:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("SIMPLE_BANK_API_PORT", raising=False)
        config = BankConfig(_env_file=None)

        assert config.default_initial_balance == "0"
        assert config.display_precision == 2
        assert config.api_port == 8090
        assert config.session_cookie_name == "bank_session"
        assert config.session_timeout_minutes == 30
        assert config.log_format == "json"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("SIMPLE_BANK_API_PORT", "9000")
        monkeypatch.setenv("SIMPLE_BANK_DEFAULT_INITIAL_BALANCE", "25.00")

        config = BankConfig(_env_file=None)

        assert config.api_port == 9000
        assert config.default_initial_balance == "25.00"

    def test_reload_config(self, monkeypatch):
        original = get_config()
        monkeypatch.setenv("SIMPLE_BANK_LOG_LEVEL", "DEBUG")
        try:
            reloaded = reload_config()
            assert reloaded is get_config()
            assert reloaded.log_level == "DEBUG"
        finally:
            config_module.config = original
