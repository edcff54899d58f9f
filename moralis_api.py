"""
Solana token data from the Moralis Solana gateway.

Implements:
- Token metadata (name, symbol, decimals, logo)
- Token price (USD and native SOL price)
- pump.fun lifecycle listings (graduated tokens, tokens still bonding)
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from agentlink_errors import MalformedResponseError, ProviderError
from agentlink_types import LifecycleToken, NativePrice, TokenInfo, TokenPage, TokenPrice

logger = logging.getLogger(__name__)

MORALIS_SOLANA_GATEWAY = "https://solana-gateway.moralis.io"
REQUEST_TIMEOUT = 15

LIFECYCLE_STAGES = ("graduated", "bonding")


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


def _as_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _lower_first(what: str) -> str:
    # Only the leading word; token addresses are case-sensitive.
    return what[:1].lower() + what[1:]


def _require_mapping(data: Any, what: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise MalformedResponseError(
            f"Unexpected {what} response from Moralis: expected an object, "
            f"got {type(data).__name__}."
        )
    return data


class MoralisAPI:
    """Client for the Moralis Solana gateway."""

    def __init__(
        self,
        api_key: str,
        network: str = "mainnet",
        base_url: str = MORALIS_SOLANA_GATEWAY,
    ) -> None:
        if not api_key:
            raise ValueError("Moralis API key is required")
        self._api_key = api_key
        self.network = network
        self.base_url = base_url.rstrip("/")

    # -----------------------------------------------------------------------
    # HTTP
    # -----------------------------------------------------------------------

    def _get(self, path: str, what: str, params: dict | None = None) -> Any:
        """GET request to the Moralis gateway, mapping failures to ProviderError."""
        url = f"{self.base_url}{path}"
        try:
            resp = requests.get(
                url,
                params=params,
                headers={"accept": "application/json", "X-API-Key": self._api_key},
                timeout=REQUEST_TIMEOUT,
            )
            resp.raise_for_status()
        except requests.exceptions.HTTPError as exc:
            if exc.response is not None and exc.response.status_code == 404:
                raise ProviderError(f"{what} not found on Moralis.") from exc
            raise ProviderError(f"Failed to fetch {_lower_first(what)} from Moralis: {exc}") from exc
        except requests.exceptions.RequestException as exc:
            raise ProviderError(f"Failed to fetch {_lower_first(what)} from Moralis: {exc}") from exc

        try:
            return resp.json()
        except ValueError as exc:
            raise MalformedResponseError(
                f"Invalid JSON in Moralis {_lower_first(what)} response"
            ) from exc

    # -----------------------------------------------------------------------
    # Metadata
    # -----------------------------------------------------------------------

    def get_token_metadata(self, token_address: str) -> TokenInfo:
        """
        Get metadata for an SPL token.

        Moralis reports decimals as a string; it is converted to int here.
        """
        logger.info("Getting token metadata for %s from Moralis", token_address)
        data = _require_mapping(
            self._get(
                f"/token/{self.network}/{token_address}/metadata",
                f"Token metadata for {token_address}",
            ),
            "metadata",
        )

        name = data.get("name")
        symbol = data.get("symbol")
        if not isinstance(name, str) or not isinstance(symbol, str):
            raise MalformedResponseError(
                f"Moralis metadata for {token_address} is missing name or symbol."
            )
        try:
            decimals = int(data.get("decimals", 0))
        except (TypeError, ValueError) as exc:
            raise MalformedResponseError(
                f"Moralis metadata for {token_address} has invalid decimals: "
                f"{data.get('decimals')!r}"
            ) from exc

        return TokenInfo(
            address=data.get("mint") or token_address,
            name=name,
            symbol=symbol,
            decimals=decimals,
            market_cap=_as_float(data.get("fullyDilutedValue")),
            image=data.get("logo") or None,
        )

    # -----------------------------------------------------------------------
    # Price
    # -----------------------------------------------------------------------

    def get_token_price(self, token_address: str) -> TokenPrice:
        logger.info("Getting token price for %s from Moralis", token_address)
        data = _require_mapping(
            self._get(
                f"/token/{self.network}/{token_address}/price",
                f"Token price for {token_address}",
            ),
            "price",
        )

        if "usdPrice" not in data:
            raise MalformedResponseError(
                f"Moralis price for {token_address} is missing usdPrice."
            )

        native = data.get("nativePrice") or {}
        if not isinstance(native, dict):
            raise MalformedResponseError(
                f"Moralis price for {token_address} has an invalid nativePrice."
            )
        try:
            native_decimals = int(native.get("decimals", 9))
        except (TypeError, ValueError) as exc:
            raise MalformedResponseError(
                f"Moralis price for {token_address} has invalid native decimals."
            ) from exc

        return TokenPrice(
            address=data.get("tokenAddress") or token_address,
            usd_price=_as_float(data.get("usdPrice")),
            native_price=NativePrice(
                value=_as_str(native.get("value")),
                decimals=native_decimals,
                name=native.get("name") or "Wrapped Solana",
                symbol=native.get("symbol") or "WSOL",
            ),
            exchange_name=data.get("exchangeName"),
            exchange_address=data.get("exchangeAddress"),
            pair_address=data.get("pairAddress"),
        )

    # -----------------------------------------------------------------------
    # Lifecycle listings
    # -----------------------------------------------------------------------

    def get_lifecycle_tokens(
        self,
        stage: str,
        limit: int = 100,
        cursor: str | None = None,
    ) -> TokenPage:
        """
        List pump.fun tokens in a lifecycle stage.

        stage: "graduated" for tokens that left the bonding curve, "bonding"
        for tokens still priced by it.
        """
        if stage not in LIFECYCLE_STAGES:
            raise ValueError(f"Unknown lifecycle stage: {stage}")

        logger.info(
            "Getting %s tokens from Moralis, limit: %s%s",
            stage,
            limit,
            f", cursor: {cursor}" if cursor else "",
        )
        params: dict[str, Any] = {"limit": limit}
        if cursor:
            params["cursor"] = cursor

        data = _require_mapping(
            self._get(
                f"/token/{self.network}/exchange/pumpfun/{stage}",
                f"{stage.capitalize()} tokens",
                params=params,
            ),
            f"{stage} tokens",
        )

        raw_tokens = data.get("result")
        if not isinstance(raw_tokens, list):
            raise MalformedResponseError(
                f"Moralis {stage} tokens response is missing the result list."
            )

        tokens = []
        for item in raw_tokens:
            if not isinstance(item, dict) or not item.get("tokenAddress"):
                raise MalformedResponseError(
                    f"Moralis {stage} tokens response has an entry without tokenAddress."
                )
            tokens.append(
                LifecycleToken(
                    token_address=item["tokenAddress"],
                    name=item.get("name") or "",
                    symbol=item.get("symbol") or "",
                    logo=item.get("logo"),
                    decimals=_as_str(item.get("decimals")),
                    price_native=_as_str(item.get("priceNative")),
                    price_usd=_as_str(item.get("priceUsd")),
                    liquidity=_as_str(item.get("liquidity")),
                    fully_diluted_valuation=_as_str(item.get("fullyDilutedValuation")),
                    graduated_at=item.get("graduatedAt"),
                    bonding_curve_progress=_as_float(item.get("bondingCurveProgress")),
                )
            )

        return TokenPage(stage=stage, result=tokens, cursor=data.get("cursor") or None)
