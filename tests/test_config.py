"""Tests for the ~/.ethdemo/.env configuration layer."""

from __future__ import annotations

import os
from pathlib import Path

from ethdemo import config


class TestEnvFile:
    def test_save_preserves_other_keys(self, ethdemo_home: Path) -> None:
        env_path = ethdemo_home / ".env"
        env_path.write_text("# comment\nPRIVATE_KEY=0xabc\n\n", encoding="utf-8")

        config.save_env_value("GREETER_ADDRESS", "0x" + "11" * 20)

        assert config.read_env_file() == {
            "PRIVATE_KEY": "0xabc",
            "GREETER_ADDRESS": "0x" + "11" * 20,
        }
        assert os.environ["GREETER_ADDRESS"] == "0x" + "11" * 20
        if os.name != "nt":
            assert env_path.stat().st_mode & 0o777 == 0o600

    def test_save_overwrites_key(self, ethdemo_home: Path) -> None:
        config.save_env_value("KEYSTORE_PATH", "/a")
        config.save_env_value("KEYSTORE_PATH", "/b")
        assert config.read_env_file() == {"KEYSTORE_PATH": "/b"}

    def test_load_env_keeps_existing_values(self, ethdemo_home: Path) -> None:
        (ethdemo_home / ".env").write_text("ETH_RPC_URL=http://file:8545\nCHAIN_ID=5\n", encoding="utf-8")
        os.environ["ETH_RPC_URL"] = "http://shell:8545"

        assert config.load_env() == ethdemo_home / ".env"
        assert os.environ["ETH_RPC_URL"] == "http://shell:8545"
        assert os.environ["CHAIN_ID"] == "5"

    def test_load_env_missing_file(self, ethdemo_home: Path) -> None:
        assert config.load_env() is None


class TestSettings:
    def test_defaults(self, ethdemo_home: Path) -> None:
        assert config.get_setting("ETH_RPC_URL") == "http://localhost:8545"
        assert config.get_setting("UNKNOWN") is None
        assert config.get_setting("UNKNOWN", "x") == "x"

    def test_environment_overrides_default(self, ethdemo_home: Path) -> None:
        os.environ["EXPLORER_URL"] = "https://explorer.test/"
        assert config.explorer_url() == "https://explorer.test"

    def test_default_explorer(self, ethdemo_home: Path) -> None:
        os.environ.pop("EXPLORER_URL", None)
        assert config.explorer_url() == "https://sepolia.etherscan.io"
