"""
pump.fun trading data via PumpPortal.

Implements:
- Token search against the pump.fun coin listing
- Unsigned buy/sell transaction generation via PumpPortal trade-local

trade-local never holds keys: it answers with a serialized, unsigned
VersionedTransaction for the wallet named in the request. Signing and
submission happen locally (see solana_rpc.py).
"""

from __future__ import annotations

import logging
from typing import Any, Literal

import requests

from agentlink_config import DEFAULT_PUMPFUN_API_ENDPOINT, DEFAULT_PUMPFUN_SEARCH_ENDPOINT
from agentlink_errors import MalformedResponseError, ProviderError
from agentlink_types import TokenInfo

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 15

# pump.fun mints all bonding-curve tokens with 6 decimals.
PUMPFUN_TOKEN_DECIMALS = 6

TradeAction = Literal["buy", "sell"]


def _as_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class PumpPortalAPI:
    """Client for PumpPortal trade-local and the pump.fun search listing."""

    def __init__(
        self,
        public_key: str,
        api_endpoint: str = DEFAULT_PUMPFUN_API_ENDPOINT,
        search_endpoint: str = DEFAULT_PUMPFUN_SEARCH_ENDPOINT,
    ) -> None:
        if not public_key:
            raise ValueError("Wallet public key is required for the Pump.fun API")
        self.public_key = public_key
        self.api_endpoint = api_endpoint
        self.search_endpoint = search_endpoint

    # -----------------------------------------------------------------------
    # Search
    # -----------------------------------------------------------------------

    def search_tokens(self, query: str, limit: int = 50) -> list[TokenInfo]:
        """Search pump.fun tokens by name, symbol or mint address."""
        logger.info("Searching tokens with query: %s", query)
        params = {
            "searchTerm": query,
            "limit": limit,
            "offset": 0,
            "sort": "market_cap",
            "order": "DESC",
            "includeNsfw": "false",
        }
        try:
            resp = requests.get(self.search_endpoint, params=params, timeout=REQUEST_TIMEOUT)
            resp.raise_for_status()
        except requests.exceptions.RequestException as exc:
            raise ProviderError(f"Failed to search tokens: {exc}") from exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise MalformedResponseError("Invalid JSON in token search response") from exc

        # The listing is a bare array; some deployments wrap it in {"coins": [...]}.
        if isinstance(data, dict):
            data = data.get("coins")
        if not isinstance(data, list):
            raise MalformedResponseError("Token search response is not a list of coins.")

        tokens: list[TokenInfo] = []
        for coin in data:
            if not isinstance(coin, dict) or not coin.get("mint"):
                raise MalformedResponseError("Token search result without a mint address.")
            try:
                decimals = int(coin.get("decimals") or PUMPFUN_TOKEN_DECIMALS)
            except (TypeError, ValueError) as exc:
                raise MalformedResponseError(
                    f"Token search result for {coin['mint']} has invalid decimals: "
                    f"{coin.get('decimals')!r}"
                ) from exc
            tokens.append(
                TokenInfo(
                    address=coin["mint"],
                    name=coin.get("name") or "",
                    symbol=coin.get("symbol") or "",
                    decimals=decimals,
                    market_cap=_as_float(coin.get("usd_market_cap")),
                    image=coin.get("image_uri") or None,
                )
            )
        return tokens

    # -----------------------------------------------------------------------
    # Transaction generation
    # -----------------------------------------------------------------------

    def generate_transaction(
        self,
        action: TradeAction,
        token_address: str,
        amount: float | str,
        denominated_in_sol: bool,
        slippage: float = 1.0,
        priority_fee: float = 0.00001,
        pool: str = "pump",
    ) -> bytes:
        """
        Ask trade-local for an unsigned transaction.

        amount is forwarded as given. For sells it may be a percentage string
        such as "100%", which PumpPortal resolves against the wallet balance.
        """
        logger.info(
            "Generating %s transaction for %s %s of %s",
            action,
            amount,
            "SOL" if denominated_in_sol else "tokens",
            token_address,
        )
        payload = {
            "publicKey": self.public_key,
            "action": action,
            "mint": token_address,
            "amount": amount,
            "denominatedInSol": "true" if denominated_in_sol else "false",
            "slippage": slippage,
            "priorityFee": priority_fee,
            "pool": pool,
        }
        try:
            resp = requests.post(
                self.api_endpoint,
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=REQUEST_TIMEOUT,
            )
            resp.raise_for_status()
        except requests.exceptions.HTTPError as exc:
            detail = ""
            if exc.response is not None and exc.response.text:
                detail = f" ({exc.response.text.strip()[:200]})"
            raise ProviderError(
                f"Failed to generate {action} transaction: {exc}{detail}"
            ) from exc
        except requests.exceptions.RequestException as exc:
            raise ProviderError(f"Failed to generate {action} transaction: {exc}") from exc

        if not resp.content:
            raise MalformedResponseError(
                f"Failed to generate {action} transaction: empty response body"
            )
        return resp.content

    def generate_buy_transaction(
        self,
        token_address: str,
        amount: float,
        slippage: float = 1.0,
        priority_fee: float = 0.00001,
        pool: str = "pump",
    ) -> bytes:
        return self.generate_transaction(
            "buy", token_address, amount, True, slippage, priority_fee, pool
        )

    def generate_sell_transaction(
        self,
        token_address: str,
        amount: str,
        slippage: float = 1.0,
        priority_fee: float = 0.00001,
        pool: str = "pump",
    ) -> bytes:
        return self.generate_transaction(
            "sell", token_address, amount, False, slippage, priority_fee, pool
        )
