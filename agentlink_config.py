"""
Process-wide configuration for the AgentLink MCP server.

Values are sourced from environment variables or a .env file and read once at
startup. The resulting AgentLinkConfig is immutable and handed to every
component that needs it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from agentlink_errors import ConfigurationError

DEFAULT_SERVER_NAME = "agentlink-mcp"
DEFAULT_SERVER_VERSION = "1.0.0"
DEFAULT_SOLANA_RPC_ENDPOINT = "https://api.mainnet-beta.solana.com"
DEFAULT_PUMPFUN_API_ENDPOINT = "https://pumpportal.fun/api/trade-local"
DEFAULT_PUMPFUN_SEARCH_ENDPOINT = "https://frontend-api-v3.pump.fun/coins"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _optional(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True)
class AgentLinkConfig:
    """
    Configuration for the AgentLink MCP server.

    Wallet:
    - WALLET_PUBLIC_KEY: base58 wallet address (required).
    - WALLET_PRIVATE_KEY: base58-encoded 64-byte keypair. Without it buy_token
      and sell_token fail with a "trading not available" error.

    Endpoints:
    - SOLANA_RPC_ENDPOINT: JSON-RPC endpoint used to submit transactions.
    - PUMPFUN_API_ENDPOINT: PumpPortal trade-local URL that builds unsigned
      transactions.
    - PUMPFUN_SEARCH_ENDPOINT: pump.fun coin listing used for search.

    Optional providers:
    - MORALIS_API_KEY: token metadata, prices and lifecycle listings. Without
      it those reads return placeholder data with a note.
    - TWITTER_API_KEY / TWITTER_API_KEY_SECRET: enable tweet search.
    - TWITTER_ACCESS_TOKEN / TWITTER_ACCESS_TOKEN_SECRET: enable posting.

    Server:
    - SERVER_NAME, SERVER_VERSION: identity reported to MCP clients.
    - LOG_LEVEL: DEBUG, INFO, WARNING or ERROR (default INFO).
    - LOG_DIR: if set, combined.log and error.log are written there.
    """

    wallet_public_key: str
    wallet_private_key: str | None = None
    solana_rpc_endpoint: str = DEFAULT_SOLANA_RPC_ENDPOINT
    pumpfun_api_endpoint: str = DEFAULT_PUMPFUN_API_ENDPOINT
    pumpfun_search_endpoint: str = DEFAULT_PUMPFUN_SEARCH_ENDPOINT
    moralis_api_key: str | None = None
    twitter_api_key: str | None = None
    twitter_api_key_secret: str | None = None
    twitter_access_token: str | None = None
    twitter_access_token_secret: str | None = None
    server_name: str = DEFAULT_SERVER_NAME
    server_version: str = DEFAULT_SERVER_VERSION
    log_level: str = "INFO"
    log_dir: str | None = None

    @classmethod
    def from_env(cls) -> AgentLinkConfig:
        public_key = _optional("WALLET_PUBLIC_KEY")
        if not public_key:
            raise ConfigurationError(
                "WALLET_PUBLIC_KEY is required. "
                "Set it in your environment or .env file."
            )

        log_level = (_optional("LOG_LEVEL") or "INFO").upper()
        if log_level not in LOG_LEVELS:
            raise ConfigurationError(
                f"Invalid LOG_LEVEL={log_level!r}. Expected one of {', '.join(LOG_LEVELS)}."
            )

        return cls(
            wallet_public_key=public_key,
            wallet_private_key=_optional("WALLET_PRIVATE_KEY"),
            solana_rpc_endpoint=_optional("SOLANA_RPC_ENDPOINT") or DEFAULT_SOLANA_RPC_ENDPOINT,
            pumpfun_api_endpoint=_optional("PUMPFUN_API_ENDPOINT") or DEFAULT_PUMPFUN_API_ENDPOINT,
            pumpfun_search_endpoint=(
                _optional("PUMPFUN_SEARCH_ENDPOINT") or DEFAULT_PUMPFUN_SEARCH_ENDPOINT
            ),
            moralis_api_key=_optional("MORALIS_API_KEY"),
            twitter_api_key=_optional("TWITTER_API_KEY"),
            twitter_api_key_secret=_optional("TWITTER_API_KEY_SECRET"),
            twitter_access_token=_optional("TWITTER_ACCESS_TOKEN"),
            twitter_access_token_secret=_optional("TWITTER_ACCESS_TOKEN_SECRET"),
            server_name=_optional("SERVER_NAME") or DEFAULT_SERVER_NAME,
            server_version=_optional("SERVER_VERSION") or DEFAULT_SERVER_VERSION,
            log_level=log_level,
            log_dir=_optional("LOG_DIR"),
        )

    @property
    def trading_enabled(self) -> bool:
        return self.wallet_private_key is not None

    @property
    def metadata_enabled(self) -> bool:
        return self.moralis_api_key is not None

    @property
    def twitter_search_enabled(self) -> bool:
        return bool(self.twitter_api_key and self.twitter_api_key_secret)

    @property
    def twitter_post_enabled(self) -> bool:
        return self.twitter_search_enabled and bool(
            self.twitter_access_token and self.twitter_access_token_secret
        )

    def __repr__(self) -> str:
        # Keep secrets out of logs and tracebacks.
        return (
            f"AgentLinkConfig(wallet_public_key={self.wallet_public_key!r}, "
            f"trading_enabled={self.trading_enabled}, "
            f"metadata_enabled={self.metadata_enabled}, "
            f"twitter_search_enabled={self.twitter_search_enabled}, "
            f"twitter_post_enabled={self.twitter_post_enabled})"
        )
