"""
pump.fun trading operations.

Composes the PumpPortal client (search, unsigned transactions), the optional
Moralis metadata provider and the Solana RPC client into the six trading
operations exposed as MCP tools:

- search_tokens
- list_by_lifecycle_stage (graduated / bonding)
- get_token_info, get_token_price (placeholder fallback when Moralis is
  unconfigured or failing)
- buy_token, sell_token (generate -> deserialize -> sign -> send)

Reads degrade to annotated placeholder data. Writes never degrade: every
failure of the sign/send pipeline is raised with its cause.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

from agentlink_config import AgentLinkConfig
from agentlink_errors import MissingCredentialError, ProviderError, ValidationError
from agentlink_types import (
    SOLANA_DECIMALS,
    Configured,
    LifecycleToken,
    NativePrice,
    Provider,
    TokenInfo,
    TokenPage,
    TokenPrice,
    TransactionResult,
    Unconfigured,
)
from moralis_api import LIFECYCLE_STAGES, MoralisAPI
from pumpportal_api import PumpPortalAPI
from solana_rpc import (
    SolanaRPCClient,
    deserialize_transaction,
    explorer_url,
    load_keypair,
    sign_transaction,
)

logger = logging.getLogger(__name__)

POOLS = ("pump", "raydium", "pump-amm", "auto")
DEFAULT_SLIPPAGE = 1.0
DEFAULT_PRIORITY_FEE = 0.00001
DEFAULT_POOL = "pump"
MAX_PAGE_SIZE = 100

TRADING_UNAVAILABLE = "Wallet private key is not configured. Trading is not available."
METADATA_UNCONFIGURED = "MORALIS_API_KEY is not set."

TOKEN_INFO_NOTE = (
    "Limited token info available. Consider adding a Moralis API key for enhanced metadata."
)
TOKEN_PRICE_NOTE = "Price information not available without Moralis API key."
PLACEHOLDER_PAGE_NOTE = (
    "Placeholder data. For real {stage} token data, please provide a valid Moralis API key."
)

_TOKEN_AMOUNT = re.compile(r"^(\d+(\.\d+)?|\.\d+)(%?)$")


def metadata_provider_from_config(config: AgentLinkConfig) -> Provider[MoralisAPI]:
    if config.moralis_api_key is None:
        return Unconfigured(METADATA_UNCONFIGURED)
    return Configured(MoralisAPI(config.moralis_api_key))


def _degraded_note(base: str, reason: str) -> str:
    return f"{base} ({reason})"


class PumpFunTrading:
    def __init__(
        self,
        config: AgentLinkConfig,
        api: PumpPortalAPI,
        metadata: Provider[MoralisAPI],
        rpc: SolanaRPCClient,
    ) -> None:
        self._config = config
        self._api = api
        self._metadata = metadata
        self._rpc = rpc

    @classmethod
    def from_config(cls, config: AgentLinkConfig) -> PumpFunTrading:
        metadata = metadata_provider_from_config(config)
        if isinstance(metadata, Configured):
            logger.info("Moralis API initialized")
        else:
            logger.warning("Moralis API key not provided; token reads will return placeholder data")
        return cls(
            config,
            PumpPortalAPI(
                config.wallet_public_key,
                config.pumpfun_api_endpoint,
                config.pumpfun_search_endpoint,
            ),
            metadata,
            SolanaRPCClient(config.solana_rpc_endpoint),
        )

    @property
    def trading_enabled(self) -> bool:
        return self._config.trading_enabled

    # -----------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------

    def search_tokens(self, query: str) -> list[TokenInfo]:
        query = (query or "").strip()
        if not query:
            raise ValidationError("Missing query.")
        return self._api.search_tokens(query)

    def list_by_lifecycle_stage(
        self,
        stage: str,
        limit: int = MAX_PAGE_SIZE,
        cursor: str | None = None,
    ) -> TokenPage:
        if stage not in LIFECYCLE_STAGES:
            raise ValidationError(
                f"Unknown lifecycle stage {stage!r}. Expected one of {', '.join(LIFECYCLE_STAGES)}."
            )
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}.")

        metadata = self._metadata
        if isinstance(metadata, Configured):
            try:
                page = metadata.client.get_lifecycle_tokens(stage, limit, cursor)
                logger.info("Retrieved %s tokens from Moralis", stage)
                return page
            except ProviderError as exc:
                logger.warning("Failed to get %s tokens from Moralis: %s", stage, exc)
                reason = str(exc)
        else:
            reason = metadata.reason

        logger.warning("Returning placeholder data for %s tokens", stage)
        return self._placeholder_page(stage, reason)

    def get_graduated_tokens(self, limit: int = MAX_PAGE_SIZE, cursor: str | None = None) -> TokenPage:
        return self.list_by_lifecycle_stage("graduated", limit, cursor)

    def get_bonding_tokens(self, limit: int = MAX_PAGE_SIZE, cursor: str | None = None) -> TokenPage:
        return self.list_by_lifecycle_stage("bonding", limit, cursor)

    def get_token_info(self, address: str) -> TokenInfo:
        address = _require_address(address)
        logger.info("Getting token info for %s", address)

        metadata = self._metadata
        if isinstance(metadata, Configured):
            try:
                return metadata.client.get_token_metadata(address)
            except ProviderError as exc:
                logger.warning("Failed to get token info from Moralis, falling back to placeholder: %s", exc)
                reason = str(exc)
        else:
            reason = metadata.reason

        return TokenInfo(
            address=address,
            name="Unknown Token",
            symbol="UNKNOWN",
            decimals=SOLANA_DECIMALS,
            note=_degraded_note(TOKEN_INFO_NOTE, reason),
        )

    def get_token_price(self, address: str) -> TokenPrice:
        address = _require_address(address)
        logger.info("Getting token price for %s", address)

        metadata = self._metadata
        if isinstance(metadata, Configured):
            try:
                return metadata.client.get_token_price(address)
            except ProviderError as exc:
                logger.warning("Failed to get token price from Moralis: %s", exc)
                reason = str(exc)
        else:
            reason = metadata.reason

        return TokenPrice(
            address=address,
            usd_price=None,
            native_price=NativePrice(value=None),
            note=_degraded_note(TOKEN_PRICE_NOTE, reason),
        )

    @staticmethod
    def _placeholder_page(stage: str, reason: str) -> TokenPage:
        now = datetime.now(timezone.utc).isoformat()
        token = LifecycleToken(
            token_address="placeholder123456789",
            name="Placeholder Token",
            symbol="PLACE",
            logo="",
            decimals=str(SOLANA_DECIMALS),
            price_native="0.000001",
            price_usd="0.00015",
            liquidity="10000",
            fully_diluted_valuation="150000",
            graduated_at=now if stage == "graduated" else None,
            bonding_curve_progress=50.0 if stage == "bonding" else None,
        )
        return TokenPage(
            stage=stage,
            result=[token],
            note=_degraded_note(PLACEHOLDER_PAGE_NOTE.format(stage=stage), reason),
        )

    # -----------------------------------------------------------------------
    # Writes
    # -----------------------------------------------------------------------

    def _require_private_key(self) -> str:
        if self._config.wallet_private_key is None:
            raise MissingCredentialError(TRADING_UNAVAILABLE)
        return self._config.wallet_private_key

    def buy_token(
        self,
        address: str,
        sol_amount: float,
        slippage: float = DEFAULT_SLIPPAGE,
        priority_fee: float = DEFAULT_PRIORITY_FEE,
        pool: str = DEFAULT_POOL,
    ) -> TransactionResult:
        """
        Buy `address` spending `sol_amount` SOL.

        The returned status "sent" only means the RPC node accepted the
        transaction; it may still fail or expire on chain.
        """
        private_key = self._require_private_key()
        address = _require_address(address)
        if sol_amount <= 0:
            raise ValidationError("solAmount must be greater than zero.")
        _check_trade_options(slippage, priority_fee, pool)

        logger.info(
            "Buying token %s for %s SOL with %s%% slippage", address, sol_amount, slippage
        )
        blob = self._api.generate_buy_transaction(address, sol_amount, slippage, priority_fee, pool)
        signature = self._sign_and_send(blob, private_key)
        return TransactionResult(
            success=True,
            transaction_id=signature,
            token_address=address,
            amount_sol=sol_amount,
            status="sent",
            explorer_url=explorer_url(signature),
        )

    def sell_token(
        self,
        address: str,
        token_amount: str,
        slippage: float = DEFAULT_SLIPPAGE,
        priority_fee: float = DEFAULT_PRIORITY_FEE,
        pool: str = DEFAULT_POOL,
    ) -> TransactionResult:
        """
        Sell `token_amount` of `address`.

        token_amount is a token quantity ("1500000") or a share of the held
        balance ("100%"). It is passed to PumpPortal verbatim.
        """
        private_key = self._require_private_key()
        address = _require_address(address)
        token_amount = _check_token_amount(token_amount)
        _check_trade_options(slippage, priority_fee, pool)

        logger.info(
            "Selling %s of token %s with %s%% slippage", token_amount, address, slippage
        )
        blob = self._api.generate_sell_transaction(address, token_amount, slippage, priority_fee, pool)
        signature = self._sign_and_send(blob, private_key)
        return TransactionResult(
            success=True,
            transaction_id=signature,
            token_address=address,
            amount=token_amount,
            status="sent",
            explorer_url=explorer_url(signature),
        )

    def _sign_and_send(self, blob: bytes, private_key: str) -> str:
        transaction = deserialize_transaction(blob)
        keypair = load_keypair(private_key)
        if str(keypair.pubkey()) != self._config.wallet_public_key:
            logger.warning("WALLET_PRIVATE_KEY does not belong to WALLET_PUBLIC_KEY")
        signed = sign_transaction(transaction, keypair)
        return self._rpc.send_transaction(signed)


# ---------------------------------------------------------------------------
# Argument checks
# ---------------------------------------------------------------------------


def _require_address(address: str) -> str:
    address = (address or "").strip()
    if not address:
        raise ValidationError("Missing token address.")
    return address


def _check_trade_options(slippage: float, priority_fee: float, pool: str) -> None:
    if slippage < 0 or slippage > 100:
        raise ValidationError("slippage must be between 0 and 100 percent.")
    if priority_fee < 0:
        raise ValidationError("priorityFee must not be negative.")
    if pool not in POOLS:
        raise ValidationError(f"Unknown pool {pool!r}. Expected one of {', '.join(POOLS)}.")


def _check_token_amount(token_amount: str) -> str:
    value = (token_amount or "").strip()
    match = _TOKEN_AMOUNT.match(value)
    if not match:
        raise ValidationError(
            "tokenAmount must be a number or a percentage such as '100%'."
        )
    number = float(value.rstrip("%"))
    if number <= 0:
        raise ValidationError("tokenAmount must be greater than zero.")
    if match.group(3) and number > 100:
        raise ValidationError("tokenAmount percentage cannot exceed 100%.")
    return value
