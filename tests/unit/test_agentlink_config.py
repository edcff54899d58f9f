import logging
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(REPO_ROOT))

import agentlink_config  # noqa: E402
from agentlink_config import AgentLinkConfig  # noqa: E402
from agentlink_errors import ConfigurationError  # noqa: E402
from agentlink_logging import configure_logging  # noqa: E402

ENV_VARS = [
    "WALLET_PUBLIC_KEY",
    "WALLET_PRIVATE_KEY",
    "SOLANA_RPC_ENDPOINT",
    "PUMPFUN_API_ENDPOINT",
    "PUMPFUN_SEARCH_ENDPOINT",
    "MORALIS_API_KEY",
    "TWITTER_API_KEY",
    "TWITTER_API_KEY_SECRET",
    "TWITTER_ACCESS_TOKEN",
    "TWITTER_ACCESS_TOKEN_SECRET",
    "SERVER_NAME",
    "SERVER_VERSION",
    "LOG_LEVEL",
    "LOG_DIR",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


def test_missing_public_key_is_fatal(clean_env):
    with pytest.raises(ConfigurationError) as exc_info:
        AgentLinkConfig.from_env()
    assert "WALLET_PUBLIC_KEY" in str(exc_info.value)


def test_blank_public_key_is_missing(clean_env):
    clean_env.setenv("WALLET_PUBLIC_KEY", "   ")
    with pytest.raises(ConfigurationError):
        AgentLinkConfig.from_env()


def test_defaults_with_only_public_key(clean_env):
    clean_env.setenv("WALLET_PUBLIC_KEY", "Wallet111")
    cfg = AgentLinkConfig.from_env()

    assert cfg.wallet_public_key == "Wallet111"
    assert cfg.wallet_private_key is None
    assert cfg.solana_rpc_endpoint == agentlink_config.DEFAULT_SOLANA_RPC_ENDPOINT
    assert cfg.pumpfun_api_endpoint == agentlink_config.DEFAULT_PUMPFUN_API_ENDPOINT
    assert cfg.server_name == "agentlink-mcp"
    assert cfg.server_version == "1.0.0"
    assert cfg.log_level == "INFO"
    assert cfg.log_dir is None
    assert cfg.trading_enabled is False
    assert cfg.metadata_enabled is False
    assert cfg.twitter_search_enabled is False
    assert cfg.twitter_post_enabled is False


def test_capabilities_follow_credentials(clean_env):
    clean_env.setenv("WALLET_PUBLIC_KEY", "Wallet111")
    clean_env.setenv("WALLET_PRIVATE_KEY", "secret")
    clean_env.setenv("MORALIS_API_KEY", "moralis")
    clean_env.setenv("TWITTER_API_KEY", "key")
    clean_env.setenv("TWITTER_API_KEY_SECRET", "key-secret")
    cfg = AgentLinkConfig.from_env()

    assert cfg.trading_enabled is True
    assert cfg.metadata_enabled is True
    assert cfg.twitter_search_enabled is True
    assert cfg.twitter_post_enabled is False

    clean_env.setenv("TWITTER_ACCESS_TOKEN", "token")
    clean_env.setenv("TWITTER_ACCESS_TOKEN_SECRET", "token-secret")
    assert AgentLinkConfig.from_env().twitter_post_enabled is True


def test_invalid_log_level_rejected(clean_env):
    clean_env.setenv("WALLET_PUBLIC_KEY", "Wallet111")
    clean_env.setenv("LOG_LEVEL", "chatty")
    with pytest.raises(ConfigurationError):
        AgentLinkConfig.from_env()


def test_log_level_is_case_insensitive(clean_env):
    clean_env.setenv("WALLET_PUBLIC_KEY", "Wallet111")
    clean_env.setenv("LOG_LEVEL", "debug")
    assert AgentLinkConfig.from_env().log_level == "DEBUG"


def test_repr_hides_private_key():
    cfg = AgentLinkConfig(wallet_public_key="Wallet111", wallet_private_key="very-secret")
    assert "very-secret" not in repr(cfg)
    assert "trading_enabled=True" in repr(cfg)


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def test_configure_logging_does_not_stack_handlers(tmp_path):
    root = configure_logging("INFO", tmp_path)
    first = len(root.handlers)
    root = configure_logging("INFO", tmp_path)

    assert len(root.handlers) == first
    logging.getLogger("agentlink.test").error("boom")
    for handler in root.handlers:
        handler.flush()

    assert (tmp_path / "combined.log").exists()
    assert "boom" in (tmp_path / "error.log").read_text(encoding="utf-8")

    configure_logging("WARNING")
