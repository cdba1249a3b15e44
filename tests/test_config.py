"""Tests for run configuration — proves env parsing is strict."""

from pathlib import Path

import pytest

from propkit.config import RunConfig, parse_bool
from propkit.errors import ConfigurationError


class TestParseBool:
    @pytest.mark.parametrize("raw", ["1", "true", "TRUE", "yes", " Yes "])
    def test_truthy(self, raw: str) -> None:
        assert parse_bool("X", raw, False) is True

    @pytest.mark.parametrize("raw", ["0", "false", "no", "NO"])
    def test_falsy(self, raw: str) -> None:
        assert parse_bool("X", raw, True) is False

    def test_missing_uses_default(self) -> None:
        assert parse_bool("X", None, True) is True
        assert parse_bool("X", "", False) is False

    def test_anything_else_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="DO_BUILD"):
            parse_bool("DO_BUILD", "maybe", True)


class TestRunConfig:
    def test_defaults(self) -> None:
        config = RunConfig.from_env(environ={})
        assert config == RunConfig()
        assert config.do_deploy and config.do_build and config.do_simulate and config.do_validate

    def test_reads_environment(self) -> None:
        config = RunConfig.from_env(environ={
            "PROPKIT_CHAIN_ID": "10",
            "PROPKIT_ADDRESSES": "addresses.json",
            "DO_DEPLOY": "false",
            "DO_VALIDATE": "0",
            "RPC_URL": "http://localhost:8545",
        })
        assert config.chain_id == 10
        assert config.addresses_path == Path("addresses.json")
        assert not config.do_deploy
        assert config.do_build
        assert not config.do_validate
        assert config.rpc_url == "http://localhost:8545"

    def test_reads_dotenv_file(self, tmp_path) -> None:
        (tmp_path / ".env").write_text("PROPKIT_CHAIN_ID=137\nDO_SIMULATE=no\n", encoding="utf-8")
        config = RunConfig.from_env(tmp_path, environ={})
        assert config.chain_id == 137
        assert not config.do_simulate

    def test_environment_wins_over_dotenv(self, tmp_path) -> None:
        (tmp_path / ".env").write_text("PROPKIT_CHAIN_ID=137\n", encoding="utf-8")
        config = RunConfig.from_env(tmp_path, environ={"PROPKIT_CHAIN_ID": "8453"})
        assert config.chain_id == 8453

    def test_bad_chain_id_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            RunConfig.from_env(environ={"PROPKIT_CHAIN_ID": "mainnet"})
        with pytest.raises(ConfigurationError):
            RunConfig.from_env(environ={"PROPKIT_CHAIN_ID": "0"})

    def test_bad_flag_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            RunConfig.from_env(environ={"DO_DEPLOY": "sometimes"})
